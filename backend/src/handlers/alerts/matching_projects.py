from shared.alerts import matching_projects
from shared.utils import api_handler, format_response, get_path_param, get_query_param


@api_handler
def handler(event, actor):
    """
    Handler for the open projects matching a saved alert.
    GET /alerts/{alertId}/projects?since=
    """
    projects = matching_projects(actor, get_path_param(event, 'alertId'), get_query_param(event, 'since'))
    return format_response(200, projects)
