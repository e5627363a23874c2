from shared.bids import place_bid
from shared.utils import api_handler, format_response, get_path_param, parse_body


@api_handler
def handler(event, actor):
    """
    Handler for placing a bid on an open project.
    POST /projects/{projectId}/bids
    """
    bid = place_bid(get_path_param(event, 'projectId'), actor, parse_body(event))
    return format_response(201, bid)
