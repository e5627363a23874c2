from shared.users import get_public_profile
from shared.utils import api_handler, format_response, get_path_param


@api_handler(public=True)
def handler(event, actor):
    """
    Handler for a user's public profile.
    GET /users/{userId}
    """
    return format_response(200, get_public_profile(get_path_param(event, 'userId')))
