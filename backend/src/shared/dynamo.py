"""
DynamoDB utility functions for item, query and transactional operations.

Writes that guard an invariant use ConditionExpressions. A failed condition is
reported to the caller (False / None) so the service layer can re-read and
classify it; any other ClientError propagates.
"""
import boto3
from typing import List, Dict, Any, Optional
from botocore.exceptions import ClientError
from .config import config
from .logging import logger

CONDITION_FAILED = 'ConditionalCheckFailedException'
TRANSACTION_CANCELED = 'TransactionCanceledException'

# Created lazily so a warm container reuses one resource
_dynamodb = None


def get_dynamodb():
    """Get or create the DynamoDB resource."""
    global _dynamodb
    if _dynamodb is None:
        _dynamodb = boto3.resource('dynamodb', region_name=config.AWS_REGION)
    return _dynamodb


def reset_clients() -> None:
    """Drop the cached resource (a new one is created on next use)."""
    global _dynamodb
    _dynamodb = None


def get_table(table_name: str):
    return get_dynamodb().Table(table_name)


def error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', '')


def get_item(table_name: str, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Get a single item (strongly consistent read)."""
    response = get_table(table_name).get_item(Key=key, ConsistentRead=True)
    return response.get('Item')


def put_item(
    table_name: str,
    item: Dict[str, Any],
    condition_expression: Optional[str] = None,
    expression_names: Optional[Dict[str, str]] = None,
    expression_values: Optional[Dict[str, Any]] = None
) -> bool:
    """
    Put an item, optionally guarded by a condition.

    Returns:
        True if written, False if the condition was not met
    """
    params = {'Item': item}
    if condition_expression:
        params['ConditionExpression'] = condition_expression
    if expression_names:
        params['ExpressionAttributeNames'] = expression_names
    if expression_values:
        params['ExpressionAttributeValues'] = expression_values

    try:
        get_table(table_name).put_item(**params)
        return True
    except ClientError as e:
        if error_code(e) == CONDITION_FAILED:
            return False
        logger.error(f"Error putting item into {table_name}: {e}")
        raise


def update_item(
    table_name: str,
    key: Dict[str, Any],
    update_expression: str,
    expression_values: Optional[Dict[str, Any]] = None,
    expression_names: Optional[Dict[str, str]] = None,
    condition_expression: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """
    Update an item and return its new attributes.

    Returns:
        The updated item, or None if the condition was not met
    """
    params = {
        'Key': key,
        'UpdateExpression': update_expression,
        'ReturnValues': 'ALL_NEW'
    }
    if expression_values:
        params['ExpressionAttributeValues'] = expression_values
    if expression_names:
        params['ExpressionAttributeNames'] = expression_names
    if condition_expression:
        params['ConditionExpression'] = condition_expression

    try:
        response = get_table(table_name).update_item(**params)
        return response.get('Attributes', {})
    except ClientError as e:
        if error_code(e) == CONDITION_FAILED:
            return None
        logger.error(f"Error updating item in {table_name}: {e}")
        raise


def delete_item(
    table_name: str,
    key: Dict[str, Any],
    condition_expression: Optional[str] = None,
    expression_names: Optional[Dict[str, str]] = None
) -> bool:
    """Delete an item. Returns False if the condition was not met."""
    params = {'Key': key}
    if condition_expression:
        params['ConditionExpression'] = condition_expression
    if expression_names:
        params['ExpressionAttributeNames'] = expression_names

    try:
        get_table(table_name).delete_item(**params)
        return True
    except ClientError as e:
        if error_code(e) == CONDITION_FAILED:
            return False
        raise


def query(
    table_name: str,
    key_condition: Any,
    index_name: Optional[str] = None,
    filter_expression: Optional[Any] = None,
    limit: Optional[int] = None,
    scan_forward: bool = True
) -> List[Dict[str, Any]]:
    """
    Query DynamoDB table or index.

    Args:
        table_name: Name of the DynamoDB table
        key_condition: Key condition expression
        index_name: Optional GSI name
        filter_expression: Optional filter expression
        limit: Max items to return (all pages are read when omitted)
        scan_forward: True for ascending, False for descending

    Returns:
        List of items matching the query
    """
    table = get_table(table_name)

    query_params = {
        'KeyConditionExpression': key_condition,
        'ScanIndexForward': scan_forward
    }
    if index_name:
        query_params['IndexName'] = index_name
    if filter_expression is not None:
        query_params['FilterExpression'] = filter_expression

    items = []
    while True:
        response = table.query(**query_params)
        items.extend(response.get('Items', []))
        if limit and len(items) >= limit:
            return items[:limit]
        last_key = response.get('LastEvaluatedKey')
        if not last_key:
            return items
        query_params['ExclusiveStartKey'] = last_key


def scan_all(table_name: str, filter_expression: Optional[Any] = None) -> List[Dict[str, Any]]:
    """Scan a whole table, following pagination."""
    table = get_table(table_name)

    scan_params = {}
    if filter_expression is not None:
        scan_params['FilterExpression'] = filter_expression

    items = []
    while True:
        response = table.scan(**scan_params)
        items.extend(response.get('Items', []))
        last_key = response.get('LastEvaluatedKey')
        if not last_key:
            return items
        scan_params['ExclusiveStartKey'] = last_key


def set_expression(fields: Dict[str, Any]):
    """
    Build `SET #f = :f, ...` for a dict of fields.

    Returns:
        (update_expression, expression_names, expression_values)
    """
    names = {f"#{k}": k for k in fields}
    values = {f":{k}": v for k, v in fields.items()}
    expression = 'SET ' + ', '.join(f"#{k} = :{k}" for k in fields)
    return expression, names, values


# =============================================================================
# TRANSACTIONS
# =============================================================================

def put_op(
    table_name: str,
    item: Dict[str, Any],
    condition: Optional[str] = None,
    names: Optional[Dict[str, str]] = None,
    values: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Build a Put entry for transact_write."""
    op = {'TableName': table_name, 'Item': item}
    if condition:
        op['ConditionExpression'] = condition
    if names:
        op['ExpressionAttributeNames'] = names
    if values:
        op['ExpressionAttributeValues'] = values
    return {'Put': op}


def update_op(
    table_name: str,
    key: Dict[str, Any],
    update_expression: str,
    values: Optional[Dict[str, Any]] = None,
    names: Optional[Dict[str, str]] = None,
    condition: Optional[str] = None
) -> Dict[str, Any]:
    """Build an Update entry for transact_write."""
    op = {
        'TableName': table_name,
        'Key': key,
        'UpdateExpression': update_expression
    }
    if values:
        op['ExpressionAttributeValues'] = values
    if names:
        op['ExpressionAttributeNames'] = names
    if condition:
        op['ConditionExpression'] = condition
    return {'Update': op}


def transact_write(operations: List[Dict[str, Any]]) -> bool:
    """
    Apply all operations atomically.

    The resource's client serializes plain Python values, so items and keys
    are passed the same way as for Table calls.

    Returns:
        True if committed, False if a condition cancelled the transaction
    """
    try:
        get_dynamodb().meta.client.transact_write_items(TransactItems=operations)
        return True
    except ClientError as e:
        if error_code(e) == TRANSACTION_CANCELED:
            reasons = e.response.get('CancellationReasons', [])
            logger.info(f"Transaction cancelled: {[r.get('Code') for r in reasons]}")
            return False
        logger.error(f"Transaction error: {e}")
        raise
