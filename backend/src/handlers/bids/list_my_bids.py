from shared.bids import list_bids_by_bidder
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the caller's bids.
    GET /bids/mine
    """
    return format_response(200, list_bids_by_bidder(actor.user_id))
