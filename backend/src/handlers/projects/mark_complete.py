from shared.projects import mark_project_complete
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler for the owner shortcut that completes an in-progress project.
    PATCH /projects/{projectId}/complete
    """
    project = mark_project_complete(get_path_param(event, 'projectId'), actor)
    return format_response(200, {'message': 'Project marked as complete', 'project': project})
