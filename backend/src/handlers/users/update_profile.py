from shared.users import update_profile
from shared.utils import api_handler, format_response, parse_body


@api_handler
def handler(event, actor):
    """
    Handler for editing the caller's profile. Only supplied fields change.
    PATCH /users/me/profile
    """
    user = update_profile(actor.user_id, parse_body(event))
    return format_response(200, user)
