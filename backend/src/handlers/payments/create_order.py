from shared.settlement import create_order
from shared.utils import api_handler, format_response, parse_body


@api_handler
def handler(event, actor):
    """
    Handler for minting a gateway order once a project is completed.
    POST /payments/create-order   body: {"projectId": ...}
    """
    body = parse_body(event)
    return format_response(200, create_order(body.get('projectId'), actor))
