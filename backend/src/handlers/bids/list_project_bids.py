from shared.bids import list_bids_for_project
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler for the bids on a project.
    Owner and admins see every bid; other callers see only their own.
    GET /projects/{projectId}/bids
    """
    return format_response(200, list_bids_for_project(get_path_param(event, 'projectId'), actor))
