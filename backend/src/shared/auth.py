"""
Authentication utilities for extracting user info from Cognito tokens.
Token issuance, expiry and password checks are handled by Cognito before
the request reaches a handler; here we only read the verified claims.
"""
from typing import Optional, List
from .models import UserRole


class Actor:
    """The authenticated caller of an operation."""

    def __init__(self, user_id: str, groups: Optional[List[str]] = None, email: Optional[str] = None):
        self.user_id = user_id
        self.groups = list(groups or [])
        self.email = email

    @property
    def is_admin(self) -> bool:
        return UserRole.ADMIN in self.groups

    def __repr__(self):
        return f"Actor({self.user_id!r}, groups={self.groups!r})"


def get_user_sub(event: dict) -> Optional[str]:
    """
    Extract user sub (unique ID) from Cognito authorizer claims.

    Args:
        event: API Gateway Lambda proxy event

    Returns:
        User sub string or None if not authenticated
    """
    try:
        return event['requestContext']['authorizer']['claims']['sub']
    except (KeyError, TypeError):
        return None


def get_user_email(event: dict) -> Optional[str]:
    """Extract user email from Cognito claims."""
    try:
        return event['requestContext']['authorizer']['claims']['email']
    except (KeyError, TypeError):
        return None


def get_user_groups(event: dict) -> list:
    """Extract user groups (buyer, seller, admin) from Cognito claims."""
    try:
        groups = event['requestContext']['authorizer']['claims'].get('cognito:groups', '')
        if isinstance(groups, str):
            return groups.split(',') if groups else []
        return groups or []
    except (KeyError, TypeError, AttributeError):
        return []


def get_actor(event: dict) -> Optional[Actor]:
    """Build the Actor for the request, or None if not authenticated."""
    user_sub = get_user_sub(event)
    if not user_sub:
        return None
    return Actor(user_sub, get_user_groups(event), get_user_email(event))
