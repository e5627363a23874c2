from shared.users import search_users
from shared.utils import api_handler, format_response, get_query_param


@api_handler(public=True)
def handler(event, actor):
    """
    Handler for user search by name (admins excluded).
    GET /users/search?q=
    """
    return format_response(200, search_users(get_query_param(event, 'q', '')))
