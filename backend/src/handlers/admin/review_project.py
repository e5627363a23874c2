from shared.projects import review_project
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler for admin review of a pending project.
    PATCH /admin/projects/{projectId}/{decision}   (decision: approve | reject)
    """
    decision = get_path_param(event, 'decision')
    project = review_project(get_path_param(event, 'projectId'), actor, decision)

    message = 'Project approved' if decision == 'approve' else 'Project rejected'
    return format_response(200, {'message': message, 'project': project})
