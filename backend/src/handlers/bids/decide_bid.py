from shared.bids import owner_decide_bid
from shared.utils import api_handler, format_response, get_path_param, parse_body


@api_handler
def handler(event, actor):
    """
    Handler for the project owner to accept or reject an approved bid.
    PATCH /bids/{bidId}   body: {"status": "accepted" | "rejected"}
    """
    body = parse_body(event)
    decision = body.get('status') or body.get('decision')

    bid = owner_decide_bid(get_path_param(event, 'bidId'), actor, decision)
    return format_response(200, bid)
