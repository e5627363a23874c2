"""
Notification ledger.

Notifications are append-only. They are written in the same transaction as
the state change that produced them (see `put_op`), and the table stream
dispatches emails afterwards. `read` is the only field ever updated.
"""
from typing import List, Optional
from boto3.dynamodb.conditions import Key, Attr
from .config import config
from .dynamo import put_op as dynamo_put_op, get_item, query, scan_all, update_item
from .errors import NotFoundError
from .permissions import Action, authorize, is_allowed
from .utils import new_id, now_iso


def build(
    notification_type: str,
    message: str,
    project: dict,
    actor_id: str,
    actor_name: str,
    recipient_id: Optional[str] = None,
    bid_id: Optional[str] = None
) -> dict:
    """
    Build a notification item.

    Args:
        notification_type: One of NotificationType
        message: Human-readable text
        project: The project the event is about
        actor_id: User who triggered the event
        actor_name: Display name of the actor ("Admin", "System", a user name)
        recipient_id: Target user; None makes it an admin broadcast
        bid_id: Related bid, if any
    """
    item = {
        'notificationId': new_id(),
        'type': notification_type,
        'message': message,
        'projectId': project['projectId'],
        'projectTitle': project.get('title', ''),
        'actorId': actor_id,
        'actorName': actor_name or '',
        'read': False,
        'createdAt': now_iso()
    }
    # recipientId is left out entirely for broadcasts (sparse index)
    if recipient_id:
        item['recipientId'] = recipient_id
    if bid_id:
        item['bidId'] = bid_id
    return item


def put_op(notification: dict) -> dict:
    """Transaction entry that appends `notification` to the ledger."""
    return dynamo_put_op(
        config.NOTIFICATIONS_TABLE,
        notification,
        condition='attribute_not_exists(notificationId)'
    )


def put_ops(notifications: List[dict]) -> List[dict]:
    return [put_op(n) for n in notifications]


def get_notification(notification_id: str) -> dict:
    item = get_item(config.NOTIFICATIONS_TABLE, {'notificationId': notification_id})
    if not item:
        raise NotFoundError('Notification not found')
    return item


def list_for_user(actor) -> List[dict]:
    """Latest notifications targeted at the caller, newest first."""
    return query(
        config.NOTIFICATIONS_TABLE,
        Key('recipientId').eq(actor.user_id),
        index_name='byRecipient',
        limit=config.NOTIFICATION_FEED_LIMIT,
        scan_forward=False
    )


def list_admin_feed(actor) -> List[dict]:
    """Latest notifications of every kind (admin only), newest first."""
    authorize(actor, Action.VIEW_ADMIN_DATA, message='Admin access required')
    items = scan_all(config.NOTIFICATIONS_TABLE)
    items.sort(key=lambda n: n.get('createdAt', ''), reverse=True)
    return items[:config.NOTIFICATION_FEED_LIMIT]


def _set_read(notification_id: str) -> dict:
    return update_item(
        config.NOTIFICATIONS_TABLE,
        {'notificationId': notification_id},
        'SET #read = :true',
        expression_values={':true': True},
        expression_names={'#read': 'read'}
    )


def mark_read(notification_id: str, actor) -> dict:
    """
    Mark one notification read.
    Users may only mark their own; admins may mark any.
    """
    notification = get_notification(notification_id)
    if not is_allowed(actor, Action.READ_NOTIFICATION, notification):
        # Other users' notifications are reported as missing
        raise NotFoundError('Notification not found')
    return _set_read(notification_id)


def mark_all_read(actor) -> int:
    """
    Mark every unread notification of the caller read.
    For admins this covers the whole ledger.

    Returns:
        Number of notifications updated
    """
    unread = Attr('read').eq(False)
    if actor.is_admin:
        items = scan_all(config.NOTIFICATIONS_TABLE, filter_expression=unread)
    else:
        items = query(
            config.NOTIFICATIONS_TABLE,
            Key('recipientId').eq(actor.user_id),
            index_name='byRecipient',
            filter_expression=unread
        )

    for item in items:
        _set_read(item['notificationId'])
    return len(items)
