from shared.projects import list_projects
from shared.utils import api_handler, format_response, get_query_param, to_positive_int

NO_CACHE = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0'
}


@api_handler(public=True)
def handler(event, actor):
    """
    Handler for the public project listing.
    GET /projects?category=&search=&status=&limit=&since=
    """
    limit = get_query_param(event, 'limit')
    projects = list_projects(
        category=get_query_param(event, 'category'),
        search=get_query_param(event, 'search'),
        status=get_query_param(event, 'status'),
        limit=to_positive_int(limit, 'limit') if limit else None,
        since=get_query_param(event, 'since')
    )
    return format_response(200, projects, NO_CACHE)
