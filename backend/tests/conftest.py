"""
Shared fixtures: an in-process DynamoDB (moto) with the real table schemas,
marketplace users and projects at each lifecycle stage.
"""
import os
import sys
import json

# Environment must be set before shared.config is imported
os.environ['AWS_REGION'] = 'us-east-1'
os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'
os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
os.environ['AWS_SECURITY_TOKEN'] = 'testing'
os.environ['AWS_SESSION_TOKEN'] = 'testing'
os.environ['MEDIA_BUCKET'] = ''
os.environ['RAZORPAY_KEY_ID'] = 'rzp_test_key'
os.environ['RAZORPAY_KEY_SECRET'] = 'test_key_secret'
os.environ['RAZORPAY_WEBHOOK_SECRET'] = 'test_webhook_secret'

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest
from moto import mock_aws

from shared import dynamo, gateway, mailer, s3_utils, schema
from shared.auth import Actor

COVER_LETTER = 'I have shipped several landing pages like this one and can start right away.'

PROJECT_DATA = {
    'title': 'Build a landing page',
    'description': 'A responsive landing page for our product launch.',
    'category': 'web-dev',
    'skills': ['react', 'css'],
    'budgetMin': 100,
    'budgetMax': 500,
    'deadline': '2026-12-31',
    'deliveryDays': 14
}


@pytest.fixture(autouse=True)
def aws():
    """Fresh mocked AWS account (all tables created) for every test."""
    with mock_aws():
        dynamo.reset_clients()
        gateway._razorpay_client = None
        mailer._ses_client = None
        s3_utils._s3_client = None
        schema.create_tables()
        yield
        dynamo.reset_clients()


def _member(user_id, name, role):
    from shared.users import create_user
    create_user(user_id, name, f"{user_id}@example.com", role)
    return Actor(user_id, [role], f"{user_id}@example.com")


@pytest.fixture
def admin():
    return _member('admin-1', 'Alice Admin', 'admin')


@pytest.fixture
def owner():
    return _member('owner-1', 'Olivia Owner', 'buyer')


@pytest.fixture
def seller():
    return _member('seller-1', 'Sam Seller', 'seller')


@pytest.fixture
def other_seller():
    return _member('seller-2', 'Sasha Seller', 'seller')


@pytest.fixture
def pending_project(owner):
    from shared.projects import create_project
    return create_project(owner, dict(PROJECT_DATA))


@pytest.fixture
def open_project(pending_project, admin):
    from shared.projects import review_project
    return review_project(pending_project['projectId'], admin, 'approve')


@pytest.fixture
def approved_bid(open_project, seller, admin):
    from shared.bids import place_bid, admin_review_bid
    bid = place_bid(open_project['projectId'], seller, {
        'amount': 300,
        'deliveryDays': 5,
        'coverLetter': COVER_LETTER
    })
    return admin_review_bid(bid['bidId'], admin, 'approve')


@pytest.fixture
def in_progress_project(approved_bid, owner):
    from shared.bids import owner_decide_bid
    from shared.projects import get_project
    owner_decide_bid(approved_bid['bidId'], owner, 'accept')
    return get_project(approved_bid['projectId'])


@pytest.fixture
def submitted_project(in_progress_project, seller):
    from shared.projects import submit_work
    return submit_work(in_progress_project['projectId'], seller)


@pytest.fixture
def completed_project(submitted_project, admin, owner):
    from shared.projects import admin_confirm, owner_confirm
    admin_confirm(submitted_project['projectId'], admin)
    return owner_confirm(submitted_project['projectId'], owner)


@pytest.fixture
def api_event():
    """Build an API Gateway proxy event for an actor (None for anonymous)."""
    def build(actor=None, body=None, path=None, query=None, headers=None):
        event = {
            'httpMethod': 'POST',
            'headers': headers or {},
            'pathParameters': path,
            'queryStringParameters': query,
            'body': json.dumps(body) if isinstance(body, dict) else body,
            'requestContext': {}
        }
        if actor:
            event['requestContext']['authorizer'] = {'claims': {
                'sub': actor.user_id,
                'email': actor.email,
                'cognito:groups': ','.join(actor.groups)
            }}
        return event
    return build


def notifications_of(notification_type):
    """Every ledger entry of one type."""
    from boto3.dynamodb.conditions import Attr
    from shared.config import config
    return dynamo.scan_all(config.NOTIFICATIONS_TABLE, filter_expression=Attr('type').eq(notification_type))


@pytest.fixture
def ledger():
    return notifications_of
