from shared.notifications import list_admin_feed
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the admin notification feed (broadcasts and targeted).
    GET /admin/notifications
    """
    return format_response(200, list_admin_feed(actor))
