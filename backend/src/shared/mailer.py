"""
Email notifier (Amazon SES).
Delivery is a side effect: failures are logged, never raised.
"""
import boto3
from typing import Any, Dict, Optional
from .config import config
from .logging import logger
from .models import NotificationType
from .users import find_user

_ses_client = None

# template id -> subject line
SUBJECTS = {
    NotificationType.NEW_BID: 'New bid on your project',
    NotificationType.NEW_PROJECT: 'New project awaiting review',
    NotificationType.BID_ACCEPTED: 'Your bid was accepted! 🎉',
    NotificationType.BID_REJECTED: 'Update on your bid',
    NotificationType.BID_APPROVED_ADMIN: 'Your bid was approved by admin',
    NotificationType.BID_REJECTED_ADMIN: 'Your bid was not approved',
    NotificationType.PROJECT_COMPLETED: 'Project completed',
    NotificationType.WORK_SUBMITTED: 'Work submitted for review',
    NotificationType.PAYMENT_RECEIVED: 'Payment Received! 💰',
    NotificationType.PAYMENT_RELEASED: 'Payment released',
    NotificationType.PAYMENT_PENDING: 'Payment pending for your project',
    NotificationType.WORK_CONFIRMED_ADMIN: 'Admin confirmed your work',
    NotificationType.WORK_CONFIRMED_OWNER: 'Client confirmed your work',
}


def get_ses_client():
    """Get or create SES client."""
    global _ses_client
    if _ses_client is None:
        _ses_client = boto3.client('ses', region_name=config.AWS_REGION)
    return _ses_client


def render(template_id: str, params: Dict[str, Any]) -> Dict[str, str]:
    """Subject and text body for a template."""
    subject = SUBJECTS.get(template_id, 'ProjectHub update')
    if params.get('projectTitle'):
        subject = f"{subject}: {params['projectTitle']}"

    greeting = f"Hi {params['name']},\n\n" if params.get('name') else ''
    body = (
        f"{greeting}"
        f"{params.get('message', '')}\n\n"
        f"Thank you for using ProjectHub!"
    )
    return {'subject': subject, 'body': body}


def send_email(to_address: Optional[str], template_id: str, params: Dict[str, Any]) -> bool:
    """
    Attempt to deliver one email.

    Args:
        to_address: Recipient email address
        template_id: Template (a NotificationType)
        params: Template parameters (message, projectTitle, name)

    Returns:
        True if SES accepted the message, False otherwise
    """
    if not to_address:
        logger.warning(f"No recipient address for {template_id} email, skipping")
        return False

    content = render(template_id, params)
    try:
        get_ses_client().send_email(
            Source=config.SES_SENDER,
            Destination={'ToAddresses': [to_address]},
            Message={
                'Subject': {'Data': content['subject']},
                'Body': {'Text': {'Data': content['body']}}
            }
        )
        logger.info(f"Sent {template_id} email to {to_address}")
        return True
    except Exception as e:
        logger.error(f"SES Error (non-critical): {e}")
        return False


def send_notification_email(notification: Dict[str, Any]) -> bool:
    """
    Email the recipient of a notification.
    Admin broadcasts (no recipientId) go to ADMIN_EMAIL when it is configured.
    """
    recipient_id = notification.get('recipientId')
    if recipient_id:
        user = find_user(recipient_id) or {}
        to_address, name = user.get('email'), user.get('name', '')
    else:
        to_address, name = config.ADMIN_EMAIL, 'Admin'

    return send_email(to_address, notification.get('type', ''), {
        'name': name,
        'message': notification.get('message', ''),
        'projectTitle': notification.get('projectTitle', '')
    })
