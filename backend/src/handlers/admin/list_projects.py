from shared.projects import list_all_projects
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the admin project table (every status).
    GET /admin/projects
    """
    return format_response(200, list_all_projects(actor))
