from shared.projects import submit_work
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler for the accepted freelancer to submit finished work.
    PATCH /projects/{projectId}/submit-work
    """
    project = submit_work(get_path_param(event, 'projectId'), actor)
    return format_response(200, {
        'message': 'Work submitted. Waiting for admin and client confirmation.',
        'project': project
    })
