from shared.notifications import mark_all_read
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler to mark all of the caller's notifications read (every one for admins).
    PATCH /notifications/read-all
    """
    updated = mark_all_read(actor)
    return format_response(200, {'success': True, 'updated': updated})
