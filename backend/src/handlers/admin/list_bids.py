from shared.bids import list_all_bids
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the admin bid table.
    GET /admin/bids
    """
    return format_response(200, list_all_bids(actor))
