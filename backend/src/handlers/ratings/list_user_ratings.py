from shared.ratings import list_ratings_for_user
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler for the ratings a user received.
    GET /ratings/{userId}
    """
    return format_response(200, list_ratings_for_user(get_path_param(event, 'userId')))
