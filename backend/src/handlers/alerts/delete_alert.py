from shared.alerts import delete_alert
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler for deleting one of the caller's alerts.
    DELETE /alerts/{alertId}
    """
    delete_alert(actor, get_path_param(event, 'alertId'))
    return format_response(200, {'success': True})
