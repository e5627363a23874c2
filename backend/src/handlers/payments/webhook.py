"""
Gateway webhook (server to server, no Cognito identity).
Authenticated by the X-Razorpay-Signature HMAC over the raw body.
"""
from shared.errors import MarketplaceError
from shared.logging import logger, log_event
from shared.settlement import webhook_capture
from shared.utils import error_response, format_response, get_header, get_raw_body

SIGNATURE_HEADER = 'X-Razorpay-Signature'


def handler(event, context):
    """
    Handler for Razorpay webhooks.
    POST /payments/webhook
    """
    log_event(event)
    try:
        result = webhook_capture(get_raw_body(event), get_header(event, SIGNATURE_HEADER))
        return format_response(200, result)
    except MarketplaceError as e:
        logger.warning(f"Webhook rejected: {e.message}")
        return error_response(e)
    except Exception as e:
        logger.exception(f"Webhook processing error: {e}")
        return format_response(500, {'message': 'Webhook processing error'})
