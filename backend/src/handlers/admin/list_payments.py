from shared.settlement import list_payments
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for paid and released purchases.
    GET /admin/payments
    """
    return format_response(200, list_payments(actor))
