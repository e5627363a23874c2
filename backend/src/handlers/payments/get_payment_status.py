from shared.settlement import get_payment_status
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler for the caller's payment state on a project.
    GET /payments/status/{projectId}
    """
    return format_response(200, get_payment_status(get_path_param(event, 'projectId'), actor))
