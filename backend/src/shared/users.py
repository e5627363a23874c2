"""
Identity store: user profiles keyed by Cognito sub.

Credentials live in Cognito; this table holds the marketplace profile,
the rolling rating and the completed-projects counter.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional
from .config import config
from .dynamo import get_item, put_item, update_item, update_op, scan_all, set_expression
from .errors import ConflictError, NotFoundError, ValidationError
from .logging import logger
from .models import UserRole, EXPERIENCE_LEVELS, AVAILABILITY_OPTIONS, PROFILE_SNAPSHOT_FIELDS
from .utils import now_iso, to_decimal, to_string_list

PRIVATE_FIELDS = ('email',)
TEXT_FIELDS = ('bio', 'portfolioUrl', 'linkedinUrl')


def create_user(user_id: str, name: str, email: str, role: str = UserRole.BUYER) -> dict:
    """
    Create a marketplace profile.

    Raises:
        ValidationError: missing name/email or unknown role
        ConflictError: a profile already exists for this user
    """
    if not user_id or not name or not email:
        raise ValidationError('Name, email and user id are required')
    role = role or UserRole.BUYER
    if role not in UserRole.ALL:
        raise ValidationError(f"Role must be one of {', '.join(UserRole.ALL)}")

    timestamp = now_iso()
    item = {
        'userId': user_id,
        'name': str(name).strip(),
        'email': str(email).strip().lower(),
        'role': role,
        'avatar': '',
        'rating': Decimal('0'),
        'ratingCount': 0,
        'completedProjects': 0,
        'skills': [],
        'experienceLevel': '',
        'yearsOfExperience': 0,
        'bio': '',
        'portfolioUrl': '',
        'linkedinUrl': '',
        'availability': '',
        'createdAt': timestamp,
        'updatedAt': timestamp
    }

    created = put_item(config.USERS_TABLE, item, condition_expression='attribute_not_exists(userId)')
    if not created:
        raise ConflictError('User profile already exists')

    logger.info(f"Created user {user_id} ({role})")
    return item


def find_user(user_id: str) -> Optional[dict]:
    if not user_id:
        return None
    return get_item(config.USERS_TABLE, {'userId': user_id})


def get_user(user_id: str) -> dict:
    user = find_user(user_id)
    if not user:
        raise NotFoundError('User not found')
    return user


def get_public_profile(user_id: str) -> dict:
    """Profile without private fields."""
    user = get_user(user_id)
    return {k: v for k, v in user.items() if k not in PRIVATE_FIELDS}


def display_name(user_id: str, default: str = '') -> str:
    user = find_user(user_id)
    return (user or {}).get('name') or default


def _validate_profile_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize profile fields, raising ValidationError on bad values."""
    clean = {}
    if 'skills' in fields:
        clean['skills'] = to_string_list(fields['skills'])
    if 'experienceLevel' in fields:
        level = fields['experienceLevel'] or ''
        if level not in EXPERIENCE_LEVELS:
            raise ValidationError('Invalid experience level')
        clean['experienceLevel'] = level
    if 'yearsOfExperience' in fields:
        years = to_decimal(fields['yearsOfExperience'], 'yearsOfExperience')
        if years < 0 or years > 50:
            raise ValidationError('yearsOfExperience must be between 0 and 50')
        clean['yearsOfExperience'] = int(years)
    if 'availability' in fields:
        availability = fields['availability'] or ''
        if availability not in AVAILABILITY_OPTIONS:
            raise ValidationError('Invalid availability')
        clean['availability'] = availability
    for field in TEXT_FIELDS:
        if field in fields:
            clean[field] = str(fields[field] or '').strip()
    if fields.get('name'):
        clean['name'] = str(fields['name']).strip()
    if fields.get('avatar'):
        clean['avatar'] = str(fields['avatar'])
    return clean


def update_profile(user_id: str, fields: Dict[str, Any]) -> dict:
    """Overwrite only the supplied profile fields."""
    clean = _validate_profile_fields(fields)
    clean['updatedAt'] = now_iso()
    expression, names, values = set_expression(clean)

    updated = update_item(
        config.USERS_TABLE,
        {'userId': user_id},
        expression,
        expression_values=values,
        expression_names=names,
        condition_expression='attribute_exists(userId)'
    )
    if updated is None:
        raise NotFoundError('User not found')
    return updated


def snapshot_fields(proposal: Dict[str, Any]) -> Dict[str, Any]:
    """
    Profile fields a bid copies onto its bidder.
    Empty values never overwrite; yearsOfExperience counts whenever supplied.
    """
    supplied = {}
    for field in PROFILE_SNAPSHOT_FIELDS:
        value = proposal.get(field)
        if field == 'yearsOfExperience':
            if value is not None and value != '':
                supplied[field] = value
        elif field == 'skills':
            if to_string_list(value):
                supplied[field] = value
        elif value:
            supplied[field] = value
    return _validate_profile_fields(supplied)


def snapshot_update_op(user_id: str, fields: Dict[str, Any]) -> Optional[dict]:
    """Transaction entry applying bid snapshot fields, or None if nothing to write."""
    if not fields:
        return None
    expression, names, values = set_expression(dict(fields, updatedAt=now_iso()))
    return update_op(
        config.USERS_TABLE,
        {'userId': user_id},
        expression,
        values=values,
        names=names,
        condition='attribute_exists(userId)'
    )


def increment_completed_op(user_id: str) -> dict:
    """Transaction entry adding one completed project to a user."""
    return update_op(
        config.USERS_TABLE,
        {'userId': user_id},
        'ADD completedProjects :one',
        values={':one': 1}
    )


def set_rating(user_id: str, rating: Decimal, rating_count: int) -> dict:
    return update_item(
        config.USERS_TABLE,
        {'userId': user_id},
        'SET #rating = :rating, ratingCount = :count, updatedAt = :ts',
        expression_values={
            ':rating': rating,
            ':count': rating_count,
            ':ts': now_iso()
        },
        expression_names={'#rating': 'rating'}
    )


def search_users(search: str, limit: int = 8) -> List[dict]:
    """Non-admin users whose name contains `search` (case-insensitive)."""
    term = (search or '').strip().lower()
    if len(term) < 2:
        return []

    results = []
    for user in scan_all(config.USERS_TABLE):
        if user.get('role') == UserRole.ADMIN:
            continue
        if term in user.get('name', '').lower():
            results.append({
                'id': user['userId'],
                'name': user.get('name'),
                'avatar': user.get('avatar', ''),
                'role': user.get('role'),
                'rating': user.get('rating'),
                'completedProjects': user.get('completedProjects', 0)
            })
        if len(results) >= limit:
            break
    return results
