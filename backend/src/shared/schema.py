"""
DynamoDB table definitions.

Composite primary keys carry the uniqueness constraints:
(project, bidder) for Bids, (project, buyer) for Purchases,
(project, rater) for Ratings.
"""
from typing import Dict, Any, List
from .config import config
from .dynamo import get_dynamodb
from .logging import logger


def _index(name: str, hash_key: str, range_key: str = None) -> Dict[str, Any]:
    key_schema = [{'AttributeName': hash_key, 'KeyType': 'HASH'}]
    if range_key:
        key_schema.append({'AttributeName': range_key, 'KeyType': 'RANGE'})
    return {
        'IndexName': name,
        'KeySchema': key_schema,
        'Projection': {'ProjectionType': 'ALL'}
    }


def _attributes(*names: str) -> List[Dict[str, str]]:
    return [{'AttributeName': n, 'AttributeType': 'S'} for n in names]


def table_definitions() -> List[Dict[str, Any]]:
    """Table definitions in CreateTable form."""
    return [
        {
            'TableName': config.USERS_TABLE,
            'KeySchema': [{'AttributeName': 'userId', 'KeyType': 'HASH'}],
            'AttributeDefinitions': _attributes('userId'),
        },
        {
            'TableName': config.PROJECTS_TABLE,
            'KeySchema': [{'AttributeName': 'projectId', 'KeyType': 'HASH'}],
            'AttributeDefinitions': _attributes('projectId', 'sellerId', 'createdAt'),
            'GlobalSecondaryIndexes': [_index('bySeller', 'sellerId', 'createdAt')],
        },
        {
            'TableName': config.BIDS_TABLE,
            'KeySchema': [
                {'AttributeName': 'projectId', 'KeyType': 'HASH'},
                {'AttributeName': 'bidderId', 'KeyType': 'RANGE'},
            ],
            'AttributeDefinitions': _attributes('projectId', 'bidderId', 'bidId', 'createdAt'),
            'GlobalSecondaryIndexes': [
                _index('byBidId', 'bidId'),
                _index('byBidder', 'bidderId', 'createdAt'),
            ],
        },
        {
            'TableName': config.PURCHASES_TABLE,
            'KeySchema': [
                {'AttributeName': 'projectId', 'KeyType': 'HASH'},
                {'AttributeName': 'buyerId', 'KeyType': 'RANGE'},
            ],
            'AttributeDefinitions': _attributes('projectId', 'buyerId', 'createdAt'),
            'GlobalSecondaryIndexes': [_index('byBuyer', 'buyerId', 'createdAt')],
        },
        {
            'TableName': config.RATINGS_TABLE,
            'KeySchema': [
                {'AttributeName': 'projectId', 'KeyType': 'HASH'},
                {'AttributeName': 'raterId', 'KeyType': 'RANGE'},
            ],
            'AttributeDefinitions': _attributes('projectId', 'raterId', 'rateeId', 'createdAt'),
            'GlobalSecondaryIndexes': [_index('byRatee', 'rateeId', 'createdAt')],
        },
        {
            'TableName': config.NOTIFICATIONS_TABLE,
            'KeySchema': [{'AttributeName': 'notificationId', 'KeyType': 'HASH'}],
            'AttributeDefinitions': _attributes('notificationId', 'recipientId', 'createdAt'),
            # Sparse: admin broadcasts have no recipientId and are not indexed
            'GlobalSecondaryIndexes': [_index('byRecipient', 'recipientId', 'createdAt')],
            'StreamSpecification': {'StreamEnabled': True, 'StreamViewType': 'NEW_IMAGE'},
        },
        {
            'TableName': config.ALERTS_TABLE,
            'KeySchema': [
                {'AttributeName': 'userId', 'KeyType': 'HASH'},
                {'AttributeName': 'alertId', 'KeyType': 'RANGE'},
            ],
            'AttributeDefinitions': _attributes('userId', 'alertId'),
        },
    ]


def create_tables() -> None:
    """Create every table (on-demand billing) and wait until active."""
    dynamodb = get_dynamodb()
    existing = set(dynamodb.meta.client.list_tables().get('TableNames', []))

    for definition in table_definitions():
        if definition['TableName'] in existing:
            continue
        table = dynamodb.create_table(BillingMode='PAY_PER_REQUEST', **definition)
        table.wait_until_exists()
        logger.info(f"Created table {definition['TableName']}")
