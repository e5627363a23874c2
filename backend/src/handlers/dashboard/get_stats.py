from shared.dashboard import get_stats
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the marketplace headline numbers.
    GET /stats
    """
    return format_response(200, get_stats())
