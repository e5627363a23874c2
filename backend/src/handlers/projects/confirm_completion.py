from shared.models import ProjectStatus
from shared.projects import owner_confirm
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler for the project owner to confirm delivered work.
    PATCH /projects/{projectId}/confirm-complete
    """
    project = owner_confirm(get_path_param(event, 'projectId'), actor)

    if project['status'] == ProjectStatus.COMPLETED:
        message = 'Project confirmed complete. Please proceed to payment.'
    else:
        message = 'Your confirmation is saved. Waiting for admin to also confirm.'
    return format_response(200, {'message': message, 'project': project})
