from shared.ratings import list_all_ratings
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for every rating.
    GET /admin/ratings
    """
    return format_response(200, list_all_ratings(actor))
