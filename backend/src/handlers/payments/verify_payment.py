from shared.settlement import verify_payment
from shared.utils import api_handler, format_response, parse_body


@api_handler
def handler(event, actor):
    """
    Handler called after checkout to verify the gateway signature.
    POST /payments/verify
    body: {projectId, razorpay_order_id, razorpay_payment_id, razorpay_signature}
    """
    body = parse_body(event)
    purchase = verify_payment(
        body.get('projectId'),
        body.get('razorpay_order_id'),
        body.get('razorpay_payment_id'),
        body.get('razorpay_signature'),
        actor
    )
    return format_response(200, {'message': 'Payment verified successfully', 'purchase': purchase})
