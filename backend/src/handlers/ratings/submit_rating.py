from shared.ratings import submit_rating
from shared.utils import api_handler, format_response, parse_body


@api_handler
def handler(event, actor):
    """
    Handler for the project owner to rate the freelancer.
    POST /ratings   body: {projectId, stars, comment}
    """
    body = parse_body(event)
    rating = submit_rating(body.get('projectId'), actor, body.get('stars'), body.get('comment', ''))
    return format_response(201, {'message': 'Rating submitted successfully', 'rating': rating})
