from shared.alerts import create_alert
from shared.utils import api_handler, format_response, parse_body


@api_handler
def handler(event, actor):
    """
    Handler for saving an alert (at most ten per user).
    POST /alerts
    """
    return format_response(201, create_alert(actor, parse_body(event)))
