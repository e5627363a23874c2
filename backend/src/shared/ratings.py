"""
Ratings: the project owner rates the accepted freelancer once per project.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List
from boto3.dynamodb.conditions import Key
from .config import config
from .dynamo import get_item, query, scan_all, put_op, update_op, transact_write
from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .logging import logger
from .models import ProjectStatus
from .permissions import Action, authorize
from .projects import find_project, get_project
from .users import find_user, set_rating
from .utils import now_iso, to_decimal

MIN_STARS = 1
MAX_STARS = 5


def _stars(value: Any) -> int:
    if value is None or value == '':
        raise ValidationError('Project ID and stars are required')
    stars = to_decimal(value, 'stars')
    if stars != stars.to_integral_value():
        raise ValidationError('Stars must be a whole number')
    if stars < MIN_STARS or stars > MAX_STARS:
        raise ValidationError(f"Stars must be between {MIN_STARS} and {MAX_STARS}")
    return int(stars)


def find_rating(project_id: str, rater_id: str):
    return get_item(config.RATINGS_TABLE, {'projectId': project_id, 'raterId': rater_id})


def average_rating(stars: List[Any]) -> Decimal:
    """Mean of `stars` rounded half-up to one decimal (0 when empty)."""
    if not stars:
        return Decimal('0')
    mean = sum(Decimal(str(s)) for s in stars) / Decimal(len(stars))
    return mean.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)


def recompute_user_rating(user_id: str, include: dict = None) -> Dict[str, Any]:
    """
    Recompute a user's rating from every rating they received.

    Args:
        user_id: The ratee
        include: A rating just written, counted even if the index lags

    Returns:
        {'rating': Decimal, 'ratingCount': int}
    """
    ratings = {
        (r['projectId'], r['raterId']): r
        for r in query(config.RATINGS_TABLE, Key('rateeId').eq(user_id), index_name='byRatee')
    }
    if include:
        ratings[(include['projectId'], include['raterId'])] = include

    stars = [r['stars'] for r in ratings.values()]
    rating = average_rating(stars)
    set_rating(user_id, rating, len(stars))
    return {'rating': rating, 'ratingCount': len(stars)}


def submit_rating(project_id: str, actor, stars: Any, comment: str = '') -> dict:
    """
    Rate the accepted freelancer of a completed project.

    The rating and the rater's purchase isRated flag are written together;
    the freelancer's rating is then recomputed from scratch.

    Raises:
        ValidationError: stars missing, not an integer or outside 1-5
        NotFoundError: project missing, or it has no accepted freelancer
        InvalidStateError: project not completed
        ForbiddenError: caller is not the project owner
        ConflictError: caller already rated this project
    """
    if not project_id:
        raise ValidationError('Project ID and stars are required')
    stars = _stars(stars)

    project = get_project(project_id)
    if project['status'] != ProjectStatus.COMPLETED:
        raise InvalidStateError('You can only rate completed projects')
    authorize(actor, Action.SUBMIT_RATING, project, 'Only the project owner can submit a rating')
    if find_rating(project_id, actor.user_id):
        raise ConflictError('You have already rated this project')

    ratee_id = project.get('acceptedBidderId')
    if not ratee_id:
        raise NotFoundError('No accepted freelancer found for this project')

    rating = {
        'projectId': project_id,
        'raterId': actor.user_id,
        'rateeId': ratee_id,
        'stars': stars,
        'comment': str(comment or '').strip(),
        'createdAt': now_iso()
    }

    operations = [
        put_op(config.RATINGS_TABLE, rating, condition='attribute_not_exists(projectId)')
    ]
    purchase_key = {'projectId': project_id, 'buyerId': actor.user_id}
    if get_item(config.PURCHASES_TABLE, purchase_key):
        operations.append(update_op(
            config.PURCHASES_TABLE,
            purchase_key,
            'SET isRated = :true, updatedAt = :ts',
            values={':true': True, ':ts': rating['createdAt']},
            condition='attribute_exists(projectId)'
        ))

    if not transact_write(operations):
        raise ConflictError('You have already rated this project')

    summary = recompute_user_rating(ratee_id, include=rating)
    logger.info(f"Rating {stars} for {ratee_id} on project {project_id}; now {summary['rating']} "
                f"over {summary['ratingCount']}")
    return rating


def check_rating(project_id: str, actor) -> Dict[str, Any]:
    rating = find_rating(project_id, actor.user_id)
    return {'hasRated': rating is not None, 'rating': rating}


def _with_context(rating: dict) -> dict:
    rater = find_user(rating['raterId']) or {}
    project = find_project(rating['projectId']) or {}
    return dict(
        rating,
        rater={'userId': rating['raterId'], 'name': rater.get('name', ''), 'avatar': rater.get('avatar', '')},
        project={'projectId': rating['projectId'], 'title': project.get('title', '')}
    )


def list_ratings_for_user(user_id: str) -> List[dict]:
    """Ratings received by a user, newest first."""
    ratings = query(
        config.RATINGS_TABLE,
        Key('rateeId').eq(user_id),
        index_name='byRatee',
        scan_forward=False
    )
    return [_with_context(r) for r in ratings]


def list_all_ratings(actor) -> List[dict]:
    authorize(actor, Action.VIEW_ADMIN_DATA, message='Admin access required')
    ratings = scan_all(config.RATINGS_TABLE)
    ratings.sort(key=lambda r: r.get('createdAt', ''), reverse=True)
    return [_with_context(r) for r in ratings]
