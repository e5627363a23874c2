from shared.settlement import list_purchases
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the caller's purchases.
    GET /users/me/purchases
    """
    return format_response(200, list_purchases(actor.user_id))
