from shared.dashboard import get_analytics
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the admin charts (projects per month, category split).
    GET /admin/analytics
    """
    return format_response(200, get_analytics(actor))
