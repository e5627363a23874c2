from shared.alerts import list_alerts
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the caller's saved alerts.
    GET /alerts
    """
    return format_response(200, list_alerts(actor))
