"""
Common utility functions for Lambda handlers.
"""
import json
import base64
import functools
import uuid
from datetime import datetime, timezone
from decimal import Decimal, DecimalException, InvalidOperation
from typing import Any, Dict, Optional
from boto3.dynamodb.types import DYNAMODB_CONTEXT
from .auth import get_actor
from .errors import MarketplaceError, ValidationError
from .logging import logger, log_event


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal types from DynamoDB."""

    def default(self, o):
        if isinstance(o, Decimal):
            # Convert to int if it's a whole number, otherwise float
            if o == o.to_integral_value():
                return int(o)
            return float(o)
        if isinstance(o, set):
            return sorted(o)
        return super().default(o)


def format_response(
    status_code: int,
    body: Any,
    headers: Dict[str, str] = None
) -> Dict[str, Any]:
    """
    Format a standard API Gateway response with CORS headers.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON serialized)
        headers: Additional headers to include

    Returns:
        API Gateway response dict
    """
    default_headers = {
        'Access-Control-Allow-Origin': '*',
        'Access-Control-Allow-Credentials': True,
        'Content-Type': 'application/json'
    }

    if headers:
        default_headers.update(headers)

    return {
        'statusCode': status_code,
        'headers': default_headers,
        'body': json.dumps(body, cls=DecimalEncoder)
    }


def error_response(error: MarketplaceError) -> Dict[str, Any]:
    """Map a marketplace error to its API Gateway response."""
    return format_response(error.status_code, error.to_dict())


def parse_body(event: dict) -> dict:
    """
    Safely parse JSON body from API Gateway event.

    Args:
        event: API Gateway Lambda proxy event

    Returns:
        Parsed body dict or empty dict if invalid
    """
    try:
        body = event.get('body') or '{}'
        if isinstance(body, str):
            if event.get('isBase64Encoded'):
                body = base64.b64decode(body).decode('utf-8')
            parsed = json.loads(body)
            return parsed if isinstance(parsed, dict) else {}
        return body or {}
    except (json.JSONDecodeError, TypeError, ValueError):
        return {}


def get_raw_body(event: dict) -> bytes:
    """Exact request body bytes (needed for webhook signatures)."""
    body = event.get('body') or ''
    if event.get('isBase64Encoded'):
        return base64.b64decode(body)
    return body.encode('utf-8')


def get_header(event: dict, name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    headers = event.get('headers') or {}
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value
    return None


def get_path_param(event: dict, param_name: str) -> str:
    """Extract path parameter from event."""
    try:
        return event['pathParameters'][param_name]
    except (KeyError, TypeError):
        return None


def get_query_param(event: dict, param_name: str, default: str = None) -> str:
    """Extract query string parameter from event."""
    try:
        params = event.get('queryStringParameters') or {}
        return params.get(param_name, default)
    except (KeyError, TypeError, AttributeError):
        return default


def api_handler(func=None, public: bool = False):
    """
    Wrap an API Gateway handler.

    Resolves the Cognito actor (401 when missing, unless `public`), passes it
    to the wrapped function as `handler(event, actor)`, and maps marketplace
    errors to their status codes. Unexpected errors are logged and returned
    as a bare 500.

    Usage:
        @api_handler
        def handler(event, actor): ...

        @api_handler(public=True)
        def handler(event, actor): ...   # actor may be None
    """
    def decorate(inner):
        @functools.wraps(inner)
        def wrapper(event, context):
            log_event(event)

            actor = get_actor(event)
            if not actor and not public:
                return format_response(401, {'error': 'Unauthorized', 'message': 'Authentication required'})

            try:
                return inner(event, actor)
            except MarketplaceError as e:
                logger.info(f"{inner.__module__}: {e.kind} - {e.message}")
                return error_response(e)
            except Exception as e:
                logger.exception(f"Error in {inner.__module__}: {e}")
                return format_response(500, {'message': 'Internal Server Error'})

        return wrapper

    if func is not None:
        return decorate(func)
    return decorate


# =============================================================================
# VALUES
# =============================================================================

def now_iso() -> str:
    """Current UTC time as ISO-8601 (sortable in DynamoDB)."""
    return datetime.now(timezone.utc).isoformat()


def parse_iso(value: str, field: str = 'timestamp') -> datetime:
    """Parse an ISO-8601 timestamp (a trailing Z is accepted) as aware UTC."""
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 timestamp")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Convert user input to Decimal for DynamoDB.

    Raises:
        ValidationError: if the value is missing, not a finite number, or
            outside what a DynamoDB number can hold (38 significant digits,
            magnitude between 1E-130 and 1E+126)
    """
    if value is None or value == '' or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{field} must be a number")
    if number.is_zero():
        return Decimal(0)
    try:
        # Same context boto3 serializes numbers with
        return DYNAMODB_CONTEXT.create_decimal(number)
    except DecimalException:
        raise ValidationError(f"{field} is out of range")


def to_positive_decimal(value: Any, field: str) -> Decimal:
    number = to_decimal(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be positive")
    return number


def to_positive_int(value: Any, field: str) -> int:
    number = to_positive_decimal(value, field)
    if number != number.to_integral_value():
        raise ValidationError(f"{field} must be a whole number")
    if number.adjusted() >= DYNAMODB_CONTEXT.prec:
        raise ValidationError(f"{field} is out of range")
    return int(number)


def to_string_list(value: Any) -> list:
    """Accept a list or a comma-separated string."""
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    if value:
        return [s.strip() for s in str(value).split(',') if s.strip()]
    return []


def format_amount(amount: Any, symbol: str) -> str:
    """Render an amount for notification messages, e.g. ₹12,500."""
    number = Decimal(str(amount))
    if number == number.to_integral_value():
        return f"{symbol}{int(number):,}"
    return f"{symbol}{number:,.2f}"
