"""
Email dispatch for the notification ledger.
Triggered by the DynamoDB Stream on the Notifications table (NEW_IMAGE).
"""
from boto3.dynamodb.types import TypeDeserializer
from shared.logging import logger
from shared.mailer import send_notification_email

deserializer = TypeDeserializer()


def to_item(image: dict) -> dict:
    """Stream image (typed attribute values) to a plain item."""
    return {k: deserializer.deserialize(v) for k, v in image.items()}


def handler(event, context):
    """
    Email every newly written notification.
    Only INSERT records are handled; the `read` flag flip (MODIFY) is ignored.
    """
    records = event.get('Records', [])
    sent = 0
    for record in records:
        if record.get('eventName') != 'INSERT':
            continue
        image = record.get('dynamodb', {}).get('NewImage')
        if not image:
            continue

        notification = to_item(image)
        if send_notification_email(notification):
            sent += 1

    logger.info(f"Dispatched {sent} notification email(s) from {len(records)} record(s)")
    return {'processed': len(records), 'sent': sent}
