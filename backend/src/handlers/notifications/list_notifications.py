from shared.notifications import list_for_user
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the caller's latest notifications.
    GET /notifications
    """
    return format_response(200, list_for_user(actor))
