from shared.ratings import check_rating
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler to check whether the caller already rated a project.
    GET /ratings/check/{projectId}
    """
    return format_response(200, check_rating(get_path_param(event, 'projectId'), actor))
