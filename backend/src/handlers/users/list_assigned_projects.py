from shared.projects import list_assigned_projects
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the projects the caller is working on as a freelancer.
    GET /users/me/assigned
    """
    return format_response(200, list_assigned_projects(actor.user_id))
