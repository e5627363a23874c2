from shared.projects import get_project
from shared.users import find_user
from shared.utils import api_handler, format_response, get_path_param


@api_handler
def handler(event, actor):
    """
    Handler to fetch one project with its poster's public summary.
    GET /projects/{projectId}
    """
    project = get_project(get_path_param(event, 'projectId'))

    seller = find_user(project['sellerId']) or {}
    project['seller'] = {
        'userId': project['sellerId'],
        'name': seller.get('name', ''),
        'avatar': seller.get('avatar', ''),
        'rating': seller.get('rating', 0),
        'completedProjects': seller.get('completedProjects', 0),
        'role': seller.get('role', ''),
        'linkedinUrl': seller.get('linkedinUrl', '')
    }
    return format_response(200, project)
