"""
Bid admission pipeline: intake -> admin gate -> owner decision.

A bid is keyed by (projectId, bidderId), so one bidder can hold at most one
bid per project. Acceptance takes the project's acceptance lock
(acceptedBidId) in the same transaction that flips the bid, which keeps a
project to a single accepted bid.
"""
from typing import Any, Dict, List
from boto3.dynamodb.conditions import Key
from . import notifications
from .config import config
from .dynamo import get_item, query, scan_all, set_expression, transact_write, put_op, update_op
from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .logging import logger
from .models import BidStatus, BidAdminStatus, ProjectStatus, NotificationType
from .permissions import Action, authorize, is_allowed
from .projects import find_project, get_project, project_update_op
from .users import find_user, snapshot_fields, snapshot_update_op
from .utils import new_id, now_iso, to_positive_decimal, to_positive_int

ADMIN_DECISIONS = ('approve', 'reject')
OWNER_DECISIONS = {
    'accept': BidStatus.ACCEPTED,
    'accepted': BidStatus.ACCEPTED,
    'reject': BidStatus.REJECTED,
    'rejected': BidStatus.REJECTED,
}


def _bid_key(bid: dict) -> dict:
    return {'projectId': bid['projectId'], 'bidderId': bid['bidderId']}


def find_bid(project_id: str, bidder_id: str):
    return get_item(config.BIDS_TABLE, {'projectId': project_id, 'bidderId': bidder_id})


def get_bid(bid_id: str) -> dict:
    """Look up a bid by its id."""
    if not bid_id:
        raise NotFoundError('Bid not found')
    matches = query(config.BIDS_TABLE, Key('bidId').eq(bid_id), index_name='byBidId', limit=1)
    if not matches:
        raise NotFoundError('Bid not found')
    # Index reads are eventually consistent; re-read the base item
    bid = find_bid(matches[0]['projectId'], matches[0]['bidderId'])
    if not bid:
        raise NotFoundError('Bid not found')
    return bid


def _bid_update_op(bid: dict, fields: Dict[str, Any], condition: str = None, values: Dict[str, Any] = None) -> dict:
    expression, names, set_values = set_expression(dict(fields, updatedAt=now_iso()))
    return update_op(
        config.BIDS_TABLE,
        _bid_key(bid),
        expression,
        values=dict(set_values, **(values or {})),
        names=names,
        condition=condition
    )


# =============================================================================
# INTAKE
# =============================================================================

def place_bid(project_id: str, actor, proposal: Dict[str, Any]) -> dict:
    """
    Place a bid on an open project.

    The bid, the project's bidsCount increment, the bidder's profile snapshot
    and the two new_bid notifications are written in one transaction.

    Args:
        project_id: Target project
        actor: The bidder
        proposal: amount, deliveryDays, coverLetter and optional profile fields

    Returns:
        The created bid

    Raises:
        ValidationError: missing/non-positive amount or deliveryDays, short cover letter
        NotFoundError: the project does not exist
        InvalidStateError: the project is not open
        ConflictError: this bidder already bid on the project
    """
    if not proposal.get('amount') or not proposal.get('deliveryDays') or not proposal.get('coverLetter'):
        raise ValidationError('Amount, delivery days and cover letter are required')
    amount = to_positive_decimal(proposal['amount'], 'amount')
    delivery_days = to_positive_int(proposal['deliveryDays'], 'deliveryDays')
    cover_letter = str(proposal['coverLetter']).strip()
    if len(cover_letter) < config.MIN_COVER_LETTER_LENGTH:
        raise ValidationError(f"Cover letter must be at least {config.MIN_COVER_LETTER_LENGTH} characters")
    snapshot = snapshot_fields(proposal)

    project = get_project(project_id)
    if project['status'] != ProjectStatus.OPEN:
        raise InvalidStateError('Bids are only accepted on open projects')
    if find_bid(project_id, actor.user_id):
        raise ConflictError('You have already placed a bid on this project')

    timestamp = now_iso()
    bid = {
        'projectId': project_id,
        'bidderId': actor.user_id,
        'bidId': new_id(),
        'amount': amount,
        'deliveryDays': delivery_days,
        'coverLetter': cover_letter,
        'skills': [],
        'experienceLevel': '',
        'yearsOfExperience': 0,
        'bio': '',
        'portfolioUrl': '',
        'linkedinUrl': '',
        'availability': '',
        'status': BidStatus.PENDING,
        'adminStatus': BidAdminStatus.PENDING_ADMIN,
        'createdAt': timestamp,
        'updatedAt': timestamp
    }
    bid.update(snapshot)

    bidder = find_user(actor.user_id)
    title = project['title']
    operations = [
        put_op(config.BIDS_TABLE, bid, condition='attribute_not_exists(projectId)'),
        update_op(
            config.PROJECTS_TABLE,
            {'projectId': project_id},
            'ADD bidsCount :one SET updatedAt = :ts',
            values={':one': 1, ':ts': timestamp, ':open': ProjectStatus.OPEN},
            names={'#status': 'status'},
            condition='#status = :open'
        )
    ]
    if bidder:
        snapshot_op = snapshot_update_op(actor.user_id, snapshot)
        if snapshot_op:
            operations.append(snapshot_op)

    feed = [
        notifications.build(
            NotificationType.NEW_BID,
            f'New bid on "{title}" by {(bidder or {}).get("name") or "a user"}',
            project, actor.user_id, (bidder or {}).get('name', ''),
            bid_id=bid['bidId']
        ),
        notifications.build(
            NotificationType.NEW_BID,
            f'{(bidder or {}).get("name") or "Someone"} placed a bid on your project "{title}"',
            project, actor.user_id, (bidder or {}).get('name', ''),
            recipient_id=project['sellerId'],
            bid_id=bid['bidId']
        ),
    ]
    operations.extend(notifications.put_ops(feed))

    if not transact_write(operations):
        if find_bid(project_id, actor.user_id):
            raise ConflictError('You have already placed a bid on this project')
        if get_project(project_id)['status'] != ProjectStatus.OPEN:
            raise InvalidStateError('Bids are only accepted on open projects')
        raise ConflictError('Could not place bid, please retry')

    logger.info(f"Bid {bid['bidId']} placed on project {project_id} by {actor.user_id}")
    return bid


# =============================================================================
# ADMIN GATE
# =============================================================================

def admin_review_bid(bid_id: str, actor, decision: str) -> dict:
    """
    Admin approves or rejects a bid.

    Approval makes the bid eligible for owner acceptance. Rejection is
    terminal for the bid (status becomes rejected as well).
    """
    authorize(actor, Action.REVIEW_BID, message='Admin access required')
    if decision not in ADMIN_DECISIONS:
        raise ValidationError("Decision must be 'approve' or 'reject'")

    bid = get_bid(bid_id)
    project = get_project(bid['projectId'])
    title = project['title']

    if decision == 'approve':
        if bid['adminStatus'] == BidAdminStatus.REJECTED_ADMIN:
            raise InvalidStateError('Bid has already been rejected by admin')
        bid_op = _bid_update_op(
            bid,
            {'adminStatus': BidAdminStatus.APPROVED},
            condition='#adminStatus <> :rejected_admin',
            values={':rejected_admin': BidAdminStatus.REJECTED_ADMIN}
        )
        notification = notifications.build(
            NotificationType.BID_APPROVED_ADMIN,
            f'Your bid on "{title}" has been approved by admin. The project owner can now accept it.',
            project, actor.user_id, 'Admin',
            recipient_id=bid['bidderId'], bid_id=bid['bidId']
        )
    else:
        if bid['status'] == BidStatus.ACCEPTED:
            raise InvalidStateError('An accepted bid cannot be rejected')
        bid_op = _bid_update_op(
            bid,
            {'adminStatus': BidAdminStatus.REJECTED_ADMIN, 'status': BidStatus.REJECTED},
            condition='#status <> :accepted',
            values={':accepted': BidStatus.ACCEPTED}
        )
        notification = notifications.build(
            NotificationType.BID_REJECTED_ADMIN,
            f'Your bid on "{title}" was not approved by admin.',
            project, actor.user_id, 'Admin',
            recipient_id=bid['bidderId'], bid_id=bid['bidId']
        )

    if not transact_write([bid_op, notifications.put_op(notification)]):
        raise InvalidStateError('Bid changed while it was being reviewed, please reload')

    logger.info(f"Bid {bid_id} {decision}d by admin {actor.user_id}")
    return get_bid(bid_id)


# =============================================================================
# OWNER DECISION
# =============================================================================

def _classify_failed_acceptance(bid: dict) -> None:
    project = get_project(bid['projectId'])
    if project.get('acceptedBidId'):
        raise ConflictError('Another bid has already been accepted for this project')
    if project['status'] != ProjectStatus.OPEN:
        raise InvalidStateError('Bids can only be accepted on open projects')
    current = find_bid(bid['projectId'], bid['bidderId']) or {}
    if current.get('adminStatus') != BidAdminStatus.APPROVED:
        raise InvalidStateError('Admin must approve this bid first before you can accept it')
    raise ConflictError('Could not accept bid, please retry')


def owner_decide_bid(bid_id: str, actor, decision: str) -> dict:
    """
    The project owner accepts or rejects an admin-approved bid.

    Accepting moves the project to in-progress and records the accepted bid
    on it; a second acceptance on the same project is a ConflictError.
    """
    if decision not in OWNER_DECISIONS:
        raise ValidationError("Decision must be 'accept' or 'reject'")
    target = OWNER_DECISIONS[decision]

    bid = get_bid(bid_id)
    project = get_project(bid['projectId'])
    authorize(actor, Action.DECIDE_BID, project, 'Only the project owner can accept or reject bids')

    owner = find_user(actor.user_id) or {}
    title = project['title']

    if target == BidStatus.ACCEPTED:
        if bid['adminStatus'] != BidAdminStatus.APPROVED:
            raise InvalidStateError('Admin must approve this bid first before you can accept it')
        if project.get('acceptedBidId'):
            raise ConflictError('Another bid has already been accepted for this project')
        if project['status'] != ProjectStatus.OPEN:
            raise InvalidStateError('Bids can only be accepted on open projects')

        operations = [
            _bid_update_op(
                bid,
                {'status': BidStatus.ACCEPTED},
                condition='adminStatus = :approved',
                values={':approved': BidAdminStatus.APPROVED}
            ),
            project_update_op(
                project['projectId'],
                {
                    'status': ProjectStatus.IN_PROGRESS,
                    'acceptedBidId': bid['bidId'],
                    'acceptedBidderId': bid['bidderId']
                },
                condition='#status = :open AND attribute_not_exists(#acceptedBidId)',
                values={':open': ProjectStatus.OPEN}
            ),
            notifications.put_op(notifications.build(
                NotificationType.BID_ACCEPTED,
                f'Your bid on "{title}" was accepted! The project is now in progress. Start working!',
                project, actor.user_id, owner.get('name', ''),
                recipient_id=bid['bidderId'], bid_id=bid['bidId']
            ))
        ]
        if not transact_write(operations):
            _classify_failed_acceptance(bid)
        logger.info(f"Bid {bid_id} accepted, project {project['projectId']} in progress")
    else:
        if bid['status'] == BidStatus.ACCEPTED:
            raise InvalidStateError('An accepted bid cannot be rejected')
        operations = [
            _bid_update_op(
                bid,
                {'status': BidStatus.REJECTED},
                condition='#status <> :accepted',
                values={':accepted': BidStatus.ACCEPTED}
            ),
            notifications.put_op(notifications.build(
                NotificationType.BID_REJECTED,
                f'Your bid on "{title}" was not selected this time.',
                project, actor.user_id, owner.get('name', ''),
                recipient_id=bid['bidderId'], bid_id=bid['bidId']
            ))
        ]
        if not transact_write(operations):
            raise InvalidStateError('An accepted bid cannot be rejected')
        logger.info(f"Bid {bid_id} rejected by owner")

    return get_bid(bid_id)


# =============================================================================
# LISTINGS
# =============================================================================

def _newest_first(bids: List[dict]) -> List[dict]:
    return sorted(bids, key=lambda b: b.get('createdAt', ''), reverse=True)


def _with_bidder(bid: dict) -> dict:
    bidder = find_user(bid['bidderId']) or {}
    return dict(bid, bidder={
        'userId': bid['bidderId'],
        'name': bidder.get('name', ''),
        'avatar': bidder.get('avatar', ''),
        'rating': bidder.get('rating', 0),
        'completedProjects': bidder.get('completedProjects', 0)
    })


def list_bids_for_project(project_id: str, actor) -> List[dict]:
    """Owner and admins see every bid on the project; anyone else only their own."""
    project = get_project(project_id)
    bids = query(config.BIDS_TABLE, Key('projectId').eq(project_id))
    if not is_allowed(actor, Action.VIEW_ALL_BIDS, project):
        bids = [b for b in bids if b['bidderId'] == actor.user_id]
    return [_with_bidder(b) for b in _newest_first(bids)]


def list_bids_by_bidder(user_id: str) -> List[dict]:
    """A seller's bids with a summary of each project, newest first."""
    bids = query(
        config.BIDS_TABLE,
        Key('bidderId').eq(user_id),
        index_name='byBidder',
        scan_forward=False
    )
    results = []
    for bid in bids:
        project = find_project(bid['projectId']) or {}
        results.append(dict(bid, project={
            'projectId': bid['projectId'],
            'title': project.get('title', ''),
            'status': project.get('status', ''),
            'budget': project.get('budget')
        }))
    return results


def list_all_bids(actor) -> List[dict]:
    """Every bid (admin only), newest first."""
    authorize(actor, Action.VIEW_ADMIN_DATA, message='Admin access required')
    return [_with_bidder(b) for b in _newest_first(scan_all(config.BIDS_TABLE))]
