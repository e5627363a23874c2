from shared.projects import list_owned_projects
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the projects the caller posted.
    GET /users/me/posted
    """
    return format_response(200, list_owned_projects(actor.user_id))
