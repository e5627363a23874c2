from shared.dashboard import list_categories
from shared.utils import api_handler, format_response


@api_handler(public=True)
def handler(event, actor):
    """
    Handler for the category browser.
    GET /categories
    """
    return format_response(200, list_categories())
