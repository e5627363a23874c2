"""
Capability checks: one rule per action, shared by every operation.
"""
from typing import Optional
from .errors import ForbiddenError


class Action:
    """Actions guarded by a capability rule."""
    REVIEW_PROJECT = 'project:review'
    REVIEW_BID = 'bid:review'
    DECIDE_BID = 'bid:decide'
    VIEW_ALL_BIDS = 'bid:view_all'
    SUBMIT_WORK = 'work:submit'
    CONFIRM_AS_ADMIN = 'work:confirm_admin'
    CONFIRM_AS_OWNER = 'work:confirm_owner'
    MARK_COMPLETE = 'project:mark_complete'
    CREATE_ORDER = 'payment:create_order'
    SUBMIT_RATING = 'rating:submit'
    READ_NOTIFICATION = 'notification:read'
    VIEW_ADMIN_DATA = 'admin:view'


def _is_owner(actor, project: Optional[dict]) -> bool:
    return bool(project) and project.get('sellerId') == actor.user_id


def _is_accepted_bidder(actor, project: Optional[dict]) -> bool:
    return bool(project) and project.get('acceptedBidderId') == actor.user_id


def _is_recipient(actor, notification: Optional[dict]) -> bool:
    return bool(notification) and notification.get('recipientId') == actor.user_id


# Action -> rule(actor, resource)
_RULES = {
    Action.REVIEW_PROJECT: lambda actor, _: actor.is_admin,
    Action.REVIEW_BID: lambda actor, _: actor.is_admin,
    Action.CONFIRM_AS_ADMIN: lambda actor, _: actor.is_admin,
    Action.VIEW_ADMIN_DATA: lambda actor, _: actor.is_admin,
    Action.VIEW_ALL_BIDS: lambda actor, project: actor.is_admin or _is_owner(actor, project),
    Action.DECIDE_BID: _is_owner,
    Action.CONFIRM_AS_OWNER: _is_owner,
    Action.MARK_COMPLETE: _is_owner,
    Action.CREATE_ORDER: _is_owner,
    Action.SUBMIT_RATING: _is_owner,
    Action.SUBMIT_WORK: _is_accepted_bidder,
    Action.READ_NOTIFICATION: lambda actor, notification: actor.is_admin or _is_recipient(actor, notification),
}


def is_allowed(actor, action: str, resource: Optional[dict] = None) -> bool:
    """Return True if `actor` may perform `action` on `resource`."""
    if actor is None:
        return False
    rule = _RULES.get(action)
    if rule is None:
        raise ValueError(f"No capability rule for action {action}")
    return bool(rule(actor, resource))


def authorize(actor, action: str, resource: Optional[dict] = None, message: str = None) -> None:
    """Raise ForbiddenError unless `actor` may perform `action`."""
    if not is_allowed(actor, action, resource):
        raise ForbiddenError(message or 'You are not allowed to perform this action')
