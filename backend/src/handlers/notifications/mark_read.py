from shared.notifications import mark_read
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler to mark one notification read.
    PATCH /notifications/{notificationId}/read
    """
    mark_read(get_path_param(event, 'notificationId'), actor)
    return format_response(200, {'success': True})
