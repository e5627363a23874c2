from shared.bids import admin_review_bid
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler for the admin gate on bids.
    PATCH /admin/bids/{bidId}/{decision}   (decision: approve | reject)
    """
    decision = get_path_param(event, 'decision')
    bid = admin_review_bid(get_path_param(event, 'bidId'), actor, decision)

    message = 'Bid approved' if decision == 'approve' else 'Bid rejected'
    return format_response(200, {'message': message, 'bid': bid})
