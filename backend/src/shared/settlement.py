"""
Settlement: gateway orders, payment capture and release bookkeeping.

A Purchase is keyed by (projectId, buyerId). Its paymentStatus only moves
forward (pending -> paid -> released); every write that could move it back
is conditional.
"""
import json
from typing import Any, Dict, List, Optional
from boto3.dynamodb.conditions import Key, Attr
from . import gateway, notifications
from .bids import find_bid, get_bid
from .config import config
from .dynamo import get_item, query, scan_all, set_expression, update_item, update_op, transact_write
from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .logging import logger
from .models import ProjectStatus, PaymentStatus, NotificationType
from .permissions import Action, authorize
from .projects import find_project, get_project
from .users import display_name
from .utils import now_iso, format_amount

CAPTURE_EVENT = 'payment.captured'


def find_purchase(project_id: str, buyer_id: str) -> Optional[dict]:
    return get_item(config.PURCHASES_TABLE, {'projectId': project_id, 'buyerId': buyer_id})


def _accepted_bid(project: dict) -> Optional[dict]:
    bidder_id = project.get('acceptedBidderId')
    if not bidder_id:
        return None
    return find_bid(project['projectId'], bidder_id)


def _purchase_upsert(bid: dict, gateway_ids: Dict[str, str], timestamp: str):
    """Update expression parts marking a purchase as paid for the accepted bid."""
    fields = {
        'freelancerId': bid['bidderId'],
        'bidId': bid['bidId'],
        'amount': bid['amount'],
        'paymentStatus': PaymentStatus.PAID,
        'paidAt': timestamp,
        'updatedAt': timestamp,
    }
    fields.update(gateway_ids)

    expression, names, values = set_expression(fields)
    expression += ', createdAt = if_not_exists(createdAt, :ts), isRated = if_not_exists(isRated, :false)'
    values.update({':ts': timestamp, ':false': False})
    return expression, names, values


def create_order(project_id: str, actor) -> Dict[str, Any]:
    """
    Mint a gateway order for the accepted bid on a completed project.
    Nothing is written; the Purchase appears once the payment is verified.

    Returns:
        {orderId, amount, currency, keyId}
    """
    if not project_id:
        raise ValidationError('projectId is required')

    project = get_project(project_id)
    authorize(actor, Action.CREATE_ORDER, project, 'Only the project owner can initiate payment')
    if project['status'] != ProjectStatus.COMPLETED:
        raise InvalidStateError('Project must be completed before payment')

    bid = _accepted_bid(project)
    if not bid:
        raise ValidationError('No accepted bid found. Accept a bid first.')

    purchase = find_purchase(project_id, actor.user_id)
    if purchase and purchase.get('paymentStatus') in (PaymentStatus.PAID, PaymentStatus.RELEASED):
        raise ConflictError('Payment already completed for this project')

    order = gateway.create_order(
        gateway.to_minor_units(bid['amount']),
        config.PAYMENT_CURRENCY,
        gateway.new_receipt(),
        {
            'projectId': project_id,
            'bidId': bid['bidId'],
            'buyerId': actor.user_id,
            'freelancerId': bid['bidderId']
        }
    )

    return {
        'orderId': order['id'],
        'amount': order.get('amount'),
        'currency': order.get('currency', config.PAYMENT_CURRENCY),
        'keyId': config.RAZORPAY_KEY_ID
    }


def verify_payment(project_id: str, order_id: str, payment_id: str, signature: str, actor) -> dict:
    """
    Verify a checkout signature and record the Purchase as paid.

    The signature is checked before anything is read or written. The
    purchase upsert and the freelancer's payment_received notification
    commit together.

    Raises:
        ValidationError: missing fields, bad signature or no accepted bid
        NotFoundError: the project does not exist
        ConflictError: the purchase was already released
    """
    if not order_id or not payment_id or not signature or not project_id:
        raise ValidationError('Missing required payment fields')
    if not gateway.verify_payment_signature(order_id, payment_id, signature):
        logger.warning(f"Invalid payment signature for order {order_id}")
        raise ValidationError('Payment verification failed: invalid signature')

    project = get_project(project_id)
    bid = _accepted_bid(project)
    if not bid:
        raise ValidationError('No accepted bid found for this project')

    timestamp = now_iso()
    expression, names, values = _purchase_upsert(bid, {
        'razorpayOrderId': order_id,
        'razorpayPaymentId': payment_id,
        'razorpaySignature': signature
    }, timestamp)
    values[':released'] = PaymentStatus.RELEASED

    amount = format_amount(bid['amount'], config.CURRENCY_SYMBOL)
    notification = notifications.build(
        NotificationType.PAYMENT_RECEIVED,
        f'Payment of {amount} has been released for "{project["title"]}". Thank you!',
        project, actor.user_id, display_name(actor.user_id),
        recipient_id=bid['bidderId']
    )

    committed = transact_write([
        update_op(
            config.PURCHASES_TABLE,
            {'projectId': project_id, 'buyerId': actor.user_id},
            expression,
            values=values,
            names=names,
            condition='attribute_not_exists(projectId) OR #paymentStatus <> :released'
        ),
        notifications.put_op(notification)
    ])
    if not committed:
        raise ConflictError('Payment has already been released for this project')

    logger.info(f"Payment {payment_id} verified for project {project_id}")
    return find_purchase(project_id, actor.user_id)


def webhook_capture(raw_body: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """
    Gateway webhook, the server-to-server fallback for verify_payment.

    Only `payment.captured` events carrying projectId, bidId and buyerId in
    the payment notes are processed. Redelivery is harmless: the upsert is
    conditioned on the purchase not being paid or released yet.

    Returns:
        {status: 'ok', processed: bool}
    """
    if not config.RAZORPAY_WEBHOOK_SECRET:
        logger.info("No webhook secret configured, skipping webhook")
        return {'status': 'ok', 'processed': False}

    if not gateway.verify_webhook_signature(raw_body, signature):
        logger.warning("Invalid webhook signature")
        raise ValidationError('Invalid webhook signature')

    try:
        event = json.loads(raw_body.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError('Malformed webhook payload')
    if not isinstance(event, dict):
        raise ValidationError('Malformed webhook payload')

    if event.get('event') != CAPTURE_EVENT:
        return {'status': 'ok', 'processed': False}

    payment = ((event.get('payload') or {}).get('payment') or {}).get('entity') or {}
    notes = payment.get('notes') or {}
    project_id = notes.get('projectId')
    bid_id = notes.get('bidId')
    buyer_id = notes.get('buyerId')
    if not payment or not (project_id and bid_id and buyer_id):
        return {'status': 'ok', 'processed': False}

    settled = query(
        config.PURCHASES_TABLE,
        Key('projectId').eq(project_id),
        filter_expression=Attr('paymentStatus').is_in([PaymentStatus.PAID, PaymentStatus.RELEASED])
    )
    if settled:
        logger.info(f"Webhook for project {project_id} already settled, skipping")
        return {'status': 'ok', 'processed': False}

    try:
        bid = get_bid(bid_id)
    except NotFoundError:
        logger.warning(f"Webhook references unknown bid {bid_id}")
        return {'status': 'ok', 'processed': False}

    expression, names, values = _purchase_upsert(bid, {
        'razorpayOrderId': payment.get('order_id', ''),
        'razorpayPaymentId': payment.get('id', '')
    }, now_iso())
    values[':pending'] = PaymentStatus.PENDING

    updated = update_item(
        config.PURCHASES_TABLE,
        {'projectId': project_id, 'buyerId': buyer_id},
        expression,
        expression_values=values,
        expression_names=names,
        condition_expression='attribute_not_exists(projectId) OR #paymentStatus = :pending'
    )
    if updated is None:
        logger.info(f"Purchase for project {project_id} settled concurrently, skipping")
        return {'status': 'ok', 'processed': False}

    logger.info(f"Webhook captured payment {payment.get('id')} for project {project_id}")
    return {'status': 'ok', 'processed': True}


def get_payment_status(project_id: str, actor) -> Dict[str, Any]:
    """The caller's purchase state for a project. A missing purchase is not an error."""
    purchase = find_purchase(project_id, actor.user_id)
    if not purchase:
        return {'hasPurchase': False, 'paymentStatus': None, 'amount': None, 'paidAt': None}
    return {
        'hasPurchase': True,
        'paymentStatus': purchase['paymentStatus'],
        'amount': purchase['amount'],
        'paidAt': purchase.get('paidAt')
    }


def list_purchases(user_id: str) -> List[dict]:
    """A buyer's purchases with project summaries, newest first."""
    purchases = query(
        config.PURCHASES_TABLE,
        Key('buyerId').eq(user_id),
        index_name='byBuyer',
        scan_forward=False
    )
    results = []
    for purchase in purchases:
        project = find_project(purchase['projectId']) or {}
        results.append(dict(purchase, project={
            'projectId': purchase['projectId'],
            'title': project.get('title', ''),
            'status': project.get('status', ''),
            'category': project.get('category', '')
        }))
    return results


def list_payments(actor) -> List[dict]:
    """Paid and released purchases (admin only), most recently paid first."""
    authorize(actor, Action.VIEW_ADMIN_DATA, message='Admin access required')
    payments = scan_all(
        config.PURCHASES_TABLE,
        filter_expression=Attr('paymentStatus').is_in([PaymentStatus.PAID, PaymentStatus.RELEASED])
    )
    payments.sort(key=lambda p: p.get('paidAt', ''), reverse=True)
    return payments
