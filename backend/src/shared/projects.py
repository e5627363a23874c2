"""
Project lifecycle state machine.

    pending --approve--> open --accept bid--> in-progress --complete--> completed
    pending --reject---> cancelled

Every path into `completed` goes through `complete_project`, which is guarded
by `status = in-progress` so the bidder's completedProjects counter moves
exactly once per project.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional
from boto3.dynamodb.conditions import Key, Attr
from boto3.dynamodb.types import DYNAMODB_CONTEXT
from . import notifications
from .config import config
from .dynamo import get_item, query, scan_all, set_expression, transact_write, put_op, update_op
from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .logging import logger
from .models import (
    ProjectStatus, ProjectType, UrgencyLevel, NotificationType, BidStatus, BidAdminStatus, PaymentStatus,
    can_transition
)
from .permissions import Action, authorize
from .s3_utils import upload_attachment
from .users import display_name, increment_completed_op
from .utils import new_id, now_iso, parse_iso, to_decimal, to_string_list, format_amount

SEARCH_FIELDS = (
    'title', 'description', 'category', 'subcategory', 'companyName',
    'location', 'projectType', 'urgencyLevel'
)
SEARCH_LIST_FIELDS = ('skills', 'posterSkills')

# confirming role -> (own flag, other party's flag)
CONFIRM_FLAGS = {
    'admin': ('adminConfirmed', 'ownerConfirmed'),
    'owner': ('ownerConfirmed', 'adminConfirmed'),
}


def find_project(project_id: str) -> Optional[dict]:
    if not project_id:
        return None
    return get_item(config.PROJECTS_TABLE, {'projectId': project_id})


def get_project(project_id: str) -> dict:
    project = find_project(project_id)
    if not project:
        raise NotFoundError('Project not found')
    return project


def project_update_op(
    project_id: str,
    fields: Dict[str, Any],
    condition: str = None,
    names: Dict[str, str] = None,
    values: Dict[str, Any] = None
) -> dict:
    """Transaction entry setting `fields` on a project under an optional condition."""
    expression, set_names, set_values = set_expression(dict(fields, updatedAt=now_iso()))
    return update_op(
        config.PROJECTS_TABLE,
        {'projectId': project_id},
        expression,
        values=dict(set_values, **(values or {})),
        names=dict(set_names, **(names or {})),
        condition=condition
    )


# =============================================================================
# CREATION AND REVIEW
# =============================================================================

def _budget(data: Dict[str, Any]) -> Dict[str, Decimal]:
    budget = data.get('budget') if isinstance(data.get('budget'), dict) else {}
    low = data.get('budgetMin', budget.get('min'))
    high = data.get('budgetMax', budget.get('max'))
    if not low or not high:
        raise ValidationError('Title, description, category, budget and deadline are required')

    low = to_decimal(low, 'budgetMin')
    high = to_decimal(high, 'budgetMax')
    if low <= 0 or high <= 0:
        raise ValidationError('Budget must be positive')
    if low > high:
        raise ValidationError('Minimum budget cannot exceed maximum budget')
    return {'min': low, 'max': high}


def _delivery_days(value: Any) -> int:
    """Optional on a project; 0 when not given."""
    if value is None or value == '':
        return 0
    days = to_decimal(value, 'deliveryDays')
    if days < 0 or days != days.to_integral_value():
        raise ValidationError('deliveryDays must be a whole number of days')
    if days.adjusted() >= DYNAMODB_CONTEXT.prec:
        raise ValidationError('deliveryDays is out of range')
    return int(days)


def create_project(actor, data: Dict[str, Any], attachments: List[dict] = None) -> dict:
    """
    Post a new project. It waits in `pending` until an admin reviews it.

    Args:
        actor: The poster (becomes sellerId)
        data: Project fields from the request
        attachments: Optional list of {'filename', 'content', 'contentType'}

    Returns:
        The created project item

    Raises:
        ValidationError: missing required fields, an invalid budget or invalid deliveryDays
    """
    title = str(data.get('title') or '').strip()
    description = str(data.get('description') or '').strip()
    category = str(data.get('category') or '').strip()
    deadline = str(data.get('deadline') or '').strip()
    if not title or not description or not category or not deadline:
        raise ValidationError('Title, description, category, budget and deadline are required')
    budget = _budget(data)

    project_type = data.get('projectType') or ProjectType.FIXED_PRICE
    if project_type not in ProjectType.ALL:
        raise ValidationError(f"projectType must be one of {', '.join(ProjectType.ALL)}")
    urgency = data.get('urgencyLevel') or UrgencyLevel.NORMAL
    if urgency not in UrgencyLevel.ALL:
        raise ValidationError(f"urgencyLevel must be one of {', '.join(UrgencyLevel.ALL)}")

    remote = data.get('remoteFriendly')
    remote_friendly = True if remote is None else remote is True or remote == 'true'

    # Failed uploads are skipped; the project is still created
    attachment_urls = []
    for attachment in attachments or []:
        url = upload_attachment(
            attachment.get('content'),
            attachment.get('filename'),
            attachment.get('contentType')
        )
        if url:
            attachment_urls.append(url)

    timestamp = now_iso()
    project = {
        'projectId': new_id(),
        'title': title,
        'description': description,
        'category': category,
        'subcategory': data.get('subcategory') or '',
        'skills': to_string_list(data.get('skills')),
        'budget': budget,
        'deliveryDays': _delivery_days(data.get('deliveryDays')),
        'deadline': deadline,
        'status': ProjectStatus.PENDING,
        'sellerId': actor.user_id,
        'bidsCount': 0,
        'projectType': project_type,
        'posterSkills': to_string_list(data.get('posterSkills')),
        'companyName': data.get('companyName') or '',
        'location': data.get('location') or '',
        'remoteFriendly': remote_friendly,
        'urgencyLevel': urgency,
        'attachments': attachment_urls,
        'workSubmitted': False,
        'adminConfirmed': False,
        'ownerConfirmed': False,
        'createdAt': timestamp,
        'updatedAt': timestamp
    }

    seller_name = display_name(actor.user_id, 'a user')
    announcement = notifications.build(
        NotificationType.NEW_PROJECT,
        f'New project "{title}" posted by {seller_name}',
        project,
        actor.user_id,
        seller_name
    )

    committed = transact_write([
        put_op(config.PROJECTS_TABLE, project, condition='attribute_not_exists(projectId)'),
        notifications.put_op(announcement)
    ])
    if not committed:
        raise ConflictError('Could not create project, please retry')

    logger.info(f"Project {project['projectId']} created by {actor.user_id}")
    return project


def review_project(project_id: str, actor, decision: str) -> dict:
    """Admin approval (pending -> open) or rejection (pending -> cancelled)."""
    authorize(actor, Action.REVIEW_PROJECT, message='Admin access required')
    targets = {'approve': ProjectStatus.OPEN, 'reject': ProjectStatus.CANCELLED}
    if decision not in targets:
        raise ValidationError("Decision must be 'approve' or 'reject'")

    project = get_project(project_id)
    target = targets[decision]
    if project['status'] != ProjectStatus.PENDING:
        raise InvalidStateError(f"Only pending projects can be reviewed (status is {project['status']})")

    committed = transact_write([
        project_update_op(
            project_id,
            {'status': target},
            condition='#status = :pending',
            values={':pending': ProjectStatus.PENDING}
        )
    ])
    if not committed:
        raise InvalidStateError('Only pending projects can be reviewed')

    logger.info(f"Project {project_id} {decision}d by admin {actor.user_id}")
    return get_project(project_id)


# =============================================================================
# LISTINGS
# =============================================================================

def _matches_search(project: dict, term: str) -> bool:
    for field in SEARCH_FIELDS:
        if term in str(project.get(field) or '').lower():
            return True
    for field in SEARCH_LIST_FIELDS:
        if any(term in str(value).lower() for value in project.get(field) or []):
            return True
    return False


def _newest_first(items: List[dict]) -> List[dict]:
    return sorted(items, key=lambda item: item.get('createdAt', ''), reverse=True)


def list_projects(
    category: str = None,
    search: str = None,
    status: str = None,
    limit: int = None,
    since: str = None
) -> List[dict]:
    """
    Public project listing, newest first.

    Pending projects are hidden unless `status` asks for them explicitly.
    `since` keeps only projects created after that timestamp.
    """
    if status:
        filter_expression = Attr('status').eq(status)
    else:
        filter_expression = Attr('status').ne(ProjectStatus.PENDING)
    if category and category != 'all':
        filter_expression = filter_expression & Attr('category').eq(category)

    projects = scan_all(config.PROJECTS_TABLE, filter_expression=filter_expression)

    term = (search or '').strip().lower()
    if term:
        projects = [p for p in projects if _matches_search(p, term)]
    if since:
        cutoff = parse_iso(since, 'since')
        projects = [p for p in projects if parse_iso(p['createdAt']) > cutoff]

    projects = _newest_first(projects)
    if limit:
        projects = projects[:int(limit)]
    return projects


def list_owned_projects(user_id: str) -> List[dict]:
    """Projects posted by `user_id`, newest first."""
    return query(
        config.PROJECTS_TABLE,
        Key('sellerId').eq(user_id),
        index_name='bySeller',
        scan_forward=False
    )


def list_assigned_projects(user_id: str) -> List[dict]:
    """
    Projects a seller is working on: their bid was accepted, or approved by
    admin and not rejected by the owner.
    """
    bids = query(
        config.BIDS_TABLE,
        Key('bidderId').eq(user_id),
        index_name='byBidder',
        scan_forward=False
    )

    assigned = []
    seen = set()
    for bid in bids:
        active = bid.get('status') == BidStatus.ACCEPTED or (
            bid.get('adminStatus') == BidAdminStatus.APPROVED and bid.get('status') != BidStatus.REJECTED
        )
        if not active or bid['projectId'] in seen:
            continue
        seen.add(bid['projectId'])
        project = find_project(bid['projectId'])
        if project:
            assigned.append(dict(project, myBid={
                'bidId': bid['bidId'],
                'amount': bid['amount'],
                'status': bid['status'],
                'adminStatus': bid['adminStatus']
            }))
    return assigned


def list_all_projects(actor) -> List[dict]:
    """Every project in any status (admin only)."""
    authorize(actor, Action.VIEW_ADMIN_DATA, message='Admin access required')
    return _newest_first(scan_all(config.PROJECTS_TABLE))


# =============================================================================
# WORK SUBMISSION AND COMPLETION
# =============================================================================

def submit_work(project_id: str, actor) -> dict:
    """
    The accepted freelancer marks the work as delivered.
    Admin and owner are both notified so they can confirm.
    """
    project = get_project(project_id)
    if project['status'] != ProjectStatus.IN_PROGRESS:
        raise InvalidStateError('Only in-progress projects can have work submitted')
    authorize(actor, Action.SUBMIT_WORK, project, 'Only the accepted freelancer can submit work')
    if project.get('workSubmitted'):
        raise InvalidStateError('Work has already been submitted for this project')

    title = project['title']
    name = display_name(actor.user_id, 'Freelancer')
    feed = [
        notifications.build(
            NotificationType.WORK_SUBMITTED,
            f'{name} has marked project "{title}" as complete. Admin confirmation required.',
            project, actor.user_id, name
        ),
        notifications.build(
            NotificationType.WORK_SUBMITTED,
            f'{name} has completed the work on "{title}". Please review and confirm completion.',
            project, actor.user_id, name,
            recipient_id=project['sellerId']
        ),
    ]

    committed = transact_write([
        project_update_op(
            project_id,
            {'workSubmitted': True},
            condition='#status = :in_progress AND #workSubmitted = :false AND acceptedBidderId = :bidder',
            names={'#status': 'status'},
            values={
                ':in_progress': ProjectStatus.IN_PROGRESS,
                ':false': False,
                ':bidder': actor.user_id
            }
        )
    ] + notifications.put_ops(feed))

    if not committed:
        current = get_project(project_id)
        if current['status'] != ProjectStatus.IN_PROGRESS:
            raise InvalidStateError('Only in-progress projects can have work submitted')
        raise InvalidStateError('Work has already been submitted for this project')

    logger.info(f"Work submitted on project {project_id} by {actor.user_id}")
    return get_project(project_id)


def complete_project(
    project: dict,
    bidder_id: str,
    feed: List[dict] = None,
    fields: Dict[str, Any] = None,
    condition: str = None,
    names: Dict[str, str] = None,
    values: Dict[str, Any] = None,
    extra_ops: List[dict] = None
) -> bool:
    """
    Move a project from in-progress to completed.

    The project update, the bidder's completedProjects increment, the
    notifications in `feed` and any `extra_ops` commit together or not at all.

    Args:
        project: The project as last read
        bidder_id: Accepted bidder credited with the completion
        feed: Notifications written with the transition
        fields: Extra project fields to set (e.g. a confirmation flag)
        condition: Extra condition ANDed with `status = in-progress`
        names: Expression names used by `condition`
        values: Expression values used by `condition`
        extra_ops: Further transaction entries (e.g. a purchase release)

    Returns:
        True if committed, False if an extra condition failed while the
        project is still in progress

    Raises:
        InvalidStateError: the project is no longer in progress
    """
    project_id = project['projectId']
    if not can_transition(project['status'], ProjectStatus.COMPLETED):
        raise InvalidStateError('Only in-progress projects can be completed')

    guard = '#status = :in_progress'
    if condition:
        guard = f"{guard} AND {condition}"

    operations = [
        project_update_op(
            project_id,
            dict(fields or {}, status=ProjectStatus.COMPLETED),
            condition=guard,
            names=names,
            values=dict(values or {}, **{':in_progress': ProjectStatus.IN_PROGRESS})
        ),
        increment_completed_op(bidder_id)
    ]
    operations.extend(extra_ops or [])
    operations.extend(notifications.put_ops(feed or []))

    if transact_write(operations):
        logger.info(f"Project {project_id} completed, credited to {bidder_id}")
        return True

    current = get_project(project_id)
    if current['status'] != ProjectStatus.IN_PROGRESS:
        raise InvalidStateError('Project is already completed')
    return False


def _check_confirmable(project: dict, flag: str, already_message: str) -> None:
    if project['status'] != ProjectStatus.IN_PROGRESS:
        raise InvalidStateError('Only in-progress projects can be confirmed')
    if not project.get('workSubmitted'):
        raise InvalidStateError('Freelancer has not submitted work yet')
    if project.get(flag):
        raise InvalidStateError(already_message)


def _completion_feed(project: dict, actor, actor_name: str, confirmer: str) -> List[dict]:
    title = project['title']
    parties = 'admin and the client' if confirmer == 'admin' else 'the client and admin'
    return [
        notifications.build(
            NotificationType.PROJECT_COMPLETED,
            f'Both {parties} have confirmed "{title}" is complete. Payment will be released shortly.',
            project, actor.user_id, actor_name,
            recipient_id=project['acceptedBidderId']
        ),
        notifications.build(
            NotificationType.PAYMENT_PENDING,
            f'Both you and admin have confirmed "{title}" is complete. '
            f'Please make payment to release funds to the freelancer.',
            project, actor.user_id, actor_name,
            recipient_id=project['sellerId']
        ),
    ]


def _confirmation_feed(project: dict, actor, actor_name: str, confirmer: str) -> List[dict]:
    title = project['title']
    if confirmer == 'admin':
        notification_type = NotificationType.WORK_CONFIRMED_ADMIN
        message = f'Admin has confirmed your work on "{title}". Waiting for client confirmation.'
    else:
        notification_type = NotificationType.WORK_CONFIRMED_OWNER
        message = f'The client has confirmed your work on "{title}". Waiting for admin confirmation.'
    return [
        notifications.build(
            notification_type, message, project, actor.user_id, actor_name,
            recipient_id=project['acceptedBidderId']
        )
    ]


def _confirm(project_id: str, actor, confirmer: str) -> dict:
    flag, other = CONFIRM_FLAGS[confirmer]
    already = 'Admin has already confirmed this project' if confirmer == 'admin' \
        else 'You have already confirmed this project'

    # A failed write means the other party confirmed in between: re-read and
    # take the completing branch.
    for _ in range(2):
        project = get_project(project_id)
        if confirmer == 'owner':
            authorize(actor, Action.CONFIRM_AS_OWNER, project, 'Only the project owner can confirm completion')
        _check_confirmable(project, flag, already)

        actor_name = 'Admin' if confirmer == 'admin' else display_name(actor.user_id, 'Client')
        flag_names = {'#workSubmitted': 'workSubmitted', f'#{flag}': flag, f'#{other}': other}

        if project.get(other):
            completed = complete_project(
                project,
                project['acceptedBidderId'],
                feed=_completion_feed(project, actor, actor_name, confirmer),
                fields={flag: True},
                condition=f'#workSubmitted = :true AND #{flag} = :false AND #{other} = :true',
                names=flag_names,
                values={':true': True, ':false': False}
            )
            if completed:
                return get_project(project_id)
            continue

        committed = transact_write([
            project_update_op(
                project_id,
                {flag: True},
                condition=f'#status = :in_progress AND #workSubmitted = :true '
                          f'AND #{flag} = :false AND #{other} = :false',
                names=dict(flag_names, **{'#status': 'status'}),
                values={':in_progress': ProjectStatus.IN_PROGRESS, ':true': True, ':false': False}
            )
        ] + notifications.put_ops(_confirmation_feed(project, actor, actor_name, confirmer)))
        if committed:
            logger.info(f"Project {project_id} confirmed by {confirmer} {actor.user_id}")
            return get_project(project_id)

    raise ConflictError('Project was updated concurrently, please retry')


def admin_confirm(project_id: str, actor) -> dict:
    """Admin confirms delivered work; completes the project if the owner already did."""
    authorize(actor, Action.CONFIRM_AS_ADMIN, message='Admin access required')
    return _confirm(project_id, actor, 'admin')


def owner_confirm(project_id: str, actor) -> dict:
    """Owner confirms delivered work; completes the project if admin already did."""
    return _confirm(project_id, actor, 'owner')


def _paid_purchases(project_id: str) -> List[dict]:
    return query(
        config.PURCHASES_TABLE,
        Key('projectId').eq(project_id),
        filter_expression=Attr('paymentStatus').eq(PaymentStatus.PAID)
    )


def mark_project_complete(project_id: str, actor) -> dict:
    """
    Owner shortcut: complete an in-progress project without the dual
    confirmation and release any paid purchase. The confirmation flags are
    left as they are.
    """
    project = get_project(project_id)
    authorize(actor, Action.MARK_COMPLETE, project, 'Only the project owner can mark it complete')
    if project['status'] != ProjectStatus.IN_PROGRESS:
        raise InvalidStateError('Only in-progress projects can be marked complete')

    bidder_id = project['acceptedBidderId']
    owner_name = display_name(actor.user_id, 'Client')
    timestamp = now_iso()
    title = project['title']

    feed = [
        notifications.build(
            NotificationType.PROJECT_COMPLETED,
            f'The project "{title}" has been marked complete by the client. Great work!',
            project, actor.user_id, owner_name,
            recipient_id=bidder_id
        )
    ]
    release_ops = []
    for purchase in _paid_purchases(project_id):
        release_ops.append(update_op(
            config.PURCHASES_TABLE,
            {'projectId': project_id, 'buyerId': purchase['buyerId']},
            'SET paymentStatus = :released, releasedAt = :ts, updatedAt = :ts',
            values={':released': PaymentStatus.RELEASED, ':paid': PaymentStatus.PAID, ':ts': timestamp},
            condition='paymentStatus = :paid'
        ))
        amount = format_amount(purchase['amount'], config.CURRENCY_SYMBOL)
        feed.append(notifications.build(
            NotificationType.PAYMENT_RELEASED,
            f'Payment of {amount} for "{title}" has been released to you.',
            project, actor.user_id, owner_name,
            recipient_id=bidder_id
        ))

    if not complete_project(project, bidder_id, feed=feed, extra_ops=release_ops):
        raise ConflictError('Project was updated concurrently, please retry')

    logger.info(f"Project {project_id} marked complete by owner, {len(release_ops)} purchase(s) released")
    return get_project(project_id)
