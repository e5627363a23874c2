from shared.users import get_user
from shared.utils import api_handler, format_response


@api_handler
def handler(event, actor):
    """
    Handler for the caller's own profile (includes email).
    GET /users/me
    """
    return format_response(200, get_user(actor.user_id))
