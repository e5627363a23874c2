import boto3
from shared.config import config
from shared.errors import ConflictError, ValidationError
from shared.logging import logger, log_event
from shared.models import UserRole
from shared.users import create_user

# Roles a user may pick at sign-up; admins are assigned by operators
SELF_SERVICE_ROLES = (UserRole.BUYER, UserRole.SELLER)

_cognito_client = None


def get_cognito_client():
    """Get or create Cognito Identity Provider client."""
    global _cognito_client
    if _cognito_client is None:
        _cognito_client = boto3.client('cognito-idp', region_name=config.AWS_REGION)
    return _cognito_client


def handler(event, context):
    """
    Cognito post-confirmation trigger.
    Creates the marketplace profile and adds the user to their role group.
    Cognito expects the event back unchanged.
    """
    log_event(event)

    attributes = event.get('request', {}).get('userAttributes', {})
    user_id = attributes.get('sub')
    email = attributes.get('email', '')
    name = attributes.get('name') or email.split('@')[0]
    role = attributes.get('custom:role', UserRole.BUYER)
    if role not in SELF_SERVICE_ROLES:
        role = UserRole.BUYER

    try:
        create_user(user_id, name, email, role)
    except ConflictError:
        logger.info(f"Profile for {user_id} already exists, skipping")
    except ValidationError as e:
        logger.error(f"Could not create profile for {user_id}: {e.message}")
        raise

    get_cognito_client().admin_add_user_to_group(
        UserPoolId=event['userPoolId'],
        Username=event['userName'],
        GroupName=role
    )
    logger.info(f"Added {user_id} to group {role}")

    return event
