from shared.models import ProjectStatus
from shared.projects import admin_confirm
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler for admin confirmation of submitted work.
    PATCH /admin/projects/{projectId}/complete
    """
    project = admin_confirm(get_path_param(event, 'projectId'), actor)

    if project['status'] == ProjectStatus.COMPLETED:
        message = 'Project confirmed complete. Buyer notified to make payment.'
    else:
        message = 'Admin confirmation saved. Waiting for project owner to also confirm.'
    return format_response(200, {'message': message, 'project': project})
