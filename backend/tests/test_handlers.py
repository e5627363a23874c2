"""
Tests for the Lambda handlers: auth, error mapping and the event triggers.
"""
import json
from unittest.mock import MagicMock, patch

from shared import gateway
from shared.config import config


def body_of(response):
    return json.loads(response['body'])


class TestApiHandler:
    """Tests for the API Gateway wrapper."""

    def test_missing_claims_is_401(self, api_event):
        from handlers.bids.place_bid import handler

        response = handler(api_event(body={'amount': 300}, path={'projectId': 'p1'}), None)

        assert response['statusCode'] == 401
        assert body_of(response)['error'] == 'Unauthorized'

    def test_errors_map_to_status(self, api_event, open_project, seller, owner):
        from handlers.bids.place_bid import handler

        missing = handler(api_event(seller, {'amount': 300}, {'projectId': open_project['projectId']}), None)
        assert missing['statusCode'] == 400
        assert body_of(missing)['error'] == 'Validation'

        unknown = handler(api_event(seller, {
            'amount': 300, 'deliveryDays': 5, 'coverLetter': 'x' * 60
        }, {'projectId': 'nope'}), None)
        assert unknown['statusCode'] == 404
        assert body_of(unknown) == {'error': 'NotFound', 'message': 'Project not found'}

    def test_forbidden_and_conflict(self, api_event, approved_bid, other_seller, owner, admin):
        from handlers.bids.decide_bid import handler
        from shared.bids import place_bid, admin_review_bid
        from conftest import COVER_LETTER

        forbidden = handler(api_event(other_seller, {'status': 'accepted'}, {'bidId': approved_bid['bidId']}), None)
        assert forbidden['statusCode'] == 403

        second = place_bid(approved_bid['projectId'], other_seller, {
            'amount': 250, 'deliveryDays': 4, 'coverLetter': COVER_LETTER
        })
        admin_review_bid(second['bidId'], admin, 'approve')

        accepted = handler(api_event(owner, {'status': 'accepted'}, {'bidId': approved_bid['bidId']}), None)
        assert accepted['statusCode'] == 200
        conflict = handler(api_event(owner, {'status': 'accepted'}, {'bidId': second['bidId']}), None)
        assert conflict['statusCode'] == 409
        assert body_of(conflict)['error'] == 'Conflict'

    def test_unexpected_error_is_bare_500(self, api_event, seller):
        from handlers.users.get_me import handler

        with patch('handlers.users.get_me.get_user', side_effect=RuntimeError('boom')):
            response = handler(api_event(seller), None)

        assert response['statusCode'] == 500
        assert body_of(response) == {'message': 'Internal Server Error'}

    def test_decimals_serialize_as_numbers(self, api_event, open_project, seller):
        from handlers.projects.get_project import handler

        response = handler(api_event(seller, path={'projectId': open_project['projectId']}), None)

        body = body_of(response)
        assert body['budget'] == {'min': 100, 'max': 500}
        assert body['seller']['name'] == 'Olivia Owner'
        assert response['headers']['Access-Control-Allow-Origin'] == '*'


class TestPublicRoutes:
    """Tests for routes that need no identity."""

    def test_listing_without_claims(self, api_event, open_project):
        from handlers.projects.list_projects import handler

        response = handler(api_event(query={'search': 'landing', 'limit': '5'}), None)

        assert response['statusCode'] == 200
        assert [p['projectId'] for p in body_of(response)] == [open_project['projectId']]
        assert response['headers']['Cache-Control'].startswith('no-cache')

    def test_invalid_limit(self, api_event):
        from handlers.projects.list_projects import handler

        assert handler(api_event(query={'limit': 'lots'}), None)['statusCode'] == 400

    def test_categories(self, api_event, open_project):
        from handlers.dashboard.list_categories import handler

        categories = body_of(handler(api_event(), None))
        assert {'id': 'web-dev', 'name': 'Web Development', 'icon': 'Globe', 'count': 1} in categories


class TestCreateProjectHandler:
    """Tests for attachment decoding."""

    def test_created(self, api_event, owner):
        from handlers.projects.create_project import handler
        from conftest import PROJECT_DATA

        response = handler(api_event(owner, dict(PROJECT_DATA)), None)

        assert response['statusCode'] == 201
        assert body_of(response)['status'] == 'pending'

    def test_large_budget_serializes(self, api_event, owner):
        from handlers.projects.create_project import handler
        from conftest import PROJECT_DATA

        response = handler(api_event(owner, dict(PROJECT_DATA, budgetMax='1e100')), None)

        assert response['statusCode'] == 201
        assert body_of(response)['budget']['max'] == 10 ** 100

    def test_bad_attachment_encoding(self, api_event, owner):
        from handlers.projects.create_project import handler
        from conftest import PROJECT_DATA

        body = dict(PROJECT_DATA, attachments=[{'filename': 'a.pdf', 'data': '***'}])
        assert handler(api_event(owner, body), None)['statusCode'] == 400

    def test_too_many_attachments(self, api_event, owner):
        from handlers.projects.create_project import handler
        from conftest import PROJECT_DATA

        body = dict(PROJECT_DATA, attachments=[{'filename': 'a.txt', 'data': 'YQ=='}] * 6)
        assert handler(api_event(owner, body), None)['statusCode'] == 400


class TestWebhookHandler:
    """Tests for the gateway webhook endpoint."""

    def test_signature_header(self, api_event, completed_project, approved_bid, owner):
        from handlers.payments.webhook import handler

        raw = json.dumps({
            'event': 'payment.captured',
            'payload': {'payment': {'entity': {
                'id': 'pay_9', 'order_id': 'order_9',
                'notes': {'projectId': completed_project['projectId'], 'bidId': approved_bid['bidId'],
                          'buyerId': owner.user_id}
            }}}
        })
        signature = gateway.sign(raw.encode('utf-8'), config.RAZORPAY_WEBHOOK_SECRET)

        response = handler(api_event(body=raw, headers={'x-razorpay-signature': signature}), None)

        assert response['statusCode'] == 200
        assert body_of(response) == {'status': 'ok', 'processed': True}

    def test_bad_signature_is_400(self, api_event):
        from handlers.payments.webhook import handler

        response = handler(api_event(body='{"event": "payment.captured"}',
                                     headers={'X-Razorpay-Signature': 'bad'}), None)

        assert response['statusCode'] == 400
        assert body_of(response)['error'] == 'Validation'


class TestVerifyPaymentHandler:
    """Tests for the checkout verification endpoint."""

    def test_verified(self, api_event, completed_project, owner):
        from handlers.payments.verify_payment import handler

        response = handler(api_event(owner, {
            'projectId': completed_project['projectId'],
            'razorpay_order_id': 'order_1',
            'razorpay_payment_id': 'pay_1',
            'razorpay_signature': gateway.sign(b'order_1|pay_1', config.RAZORPAY_KEY_SECRET)
        }), None)

        assert response['statusCode'] == 200
        assert body_of(response)['purchase']['paymentStatus'] == 'paid'

    def test_non_ascii_signature_is_400(self, api_event, completed_project, owner):
        from handlers.payments.verify_payment import handler

        response = handler(api_event(owner, {
            'projectId': completed_project['projectId'],
            'razorpay_order_id': 'order_1',
            'razorpay_payment_id': 'pay_1',
            'razorpay_signature': 'é' * 64
        }), None)

        assert response['statusCode'] == 400
        assert body_of(response)['error'] == 'Validation'

    def test_gateway_outage_is_502(self, api_event, completed_project, owner):
        from handlers.payments.create_order import handler

        client = MagicMock()
        client.order.create.side_effect = ConnectionError('timeout')
        with patch('shared.gateway.get_razorpay_client', return_value=client):
            response = handler(api_event(owner, {'projectId': completed_project['projectId']}), None)

        assert response['statusCode'] == 502
        assert body_of(response)['error'] == 'External'


class TestDispatchEmail:
    """Tests for the notification stream consumer."""

    @staticmethod
    def stream_record(event_name, image):
        return {'eventName': event_name, 'dynamodb': {'NewImage': image}}

    def test_sends_inserts_only(self):
        from handlers.notifications.dispatch_email import handler

        image = {
            'notificationId': {'S': 'n1'},
            'type': {'S': 'bid_accepted'},
            'message': {'S': 'Your bid was accepted'},
            'recipientId': {'S': 'seller-1'},
            'read': {'BOOL': False}
        }
        event = {'Records': [
            self.stream_record('INSERT', image),
            self.stream_record('MODIFY', dict(image, read={'BOOL': True})),
        ]}

        with patch('handlers.notifications.dispatch_email.send_notification_email', return_value=True) as send:
            result = handler(event, None)

        assert result == {'processed': 2, 'sent': 1}
        notification = send.call_args.args[0]
        assert notification['recipientId'] == 'seller-1'
        assert notification['read'] is False

    def test_recipient_lookup(self, seller):
        from shared.mailer import send_notification_email

        with patch('shared.mailer.send_email', return_value=True) as send:
            send_notification_email({'type': 'bid_accepted', 'recipientId': seller.user_id,
                                     'message': 'Accepted', 'projectTitle': 'Logo'})

        to_address, template_id, params = send.call_args.args
        assert to_address == 'seller-1@example.com'
        assert template_id == 'bid_accepted'
        assert params['name'] == 'Sam Seller'

    def test_ses_failure_is_not_raised(self):
        from shared import mailer

        client = MagicMock()
        client.send_email.side_effect = RuntimeError('throttled')
        with patch('shared.mailer.get_ses_client', return_value=client):
            assert mailer.send_email('someone@example.com', 'new_bid', {'message': 'hi'}) is False

    def test_broadcast_without_admin_address(self):
        from shared import mailer

        with patch.object(config, 'ADMIN_EMAIL', ''):
            assert mailer.send_notification_email({'type': 'new_project', 'message': 'x'}) is False


class TestPostConfirmation:
    """Tests for the Cognito sign-up trigger."""

    @staticmethod
    def cognito_event(sub, role):
        return {
            'userPoolId': 'us-east-1_pool',
            'userName': sub,
            'request': {'userAttributes': {
                'sub': sub, 'email': f'{sub}@example.com', 'name': 'New Person', 'custom:role': role
            }}
        }

    def test_creates_profile_and_group(self):
        from handlers.users import post_confirmation
        from shared.users import get_user

        cognito = MagicMock()
        with patch.object(post_confirmation, 'get_cognito_client', return_value=cognito):
            event = self.cognito_event('new-1', 'seller')
            assert post_confirmation.handler(event, None) is event

        assert get_user('new-1')['role'] == 'seller'
        cognito.admin_add_user_to_group.assert_called_once_with(
            UserPoolId='us-east-1_pool', Username='new-1', GroupName='seller'
        )

    def test_admin_cannot_be_self_assigned(self):
        from handlers.users import post_confirmation
        from shared.users import get_user

        with patch.object(post_confirmation, 'get_cognito_client', return_value=MagicMock()):
            post_confirmation.handler(self.cognito_event('new-2', 'admin'), None)

        assert get_user('new-2')['role'] == 'buyer'

    def test_replayed_trigger(self, seller):
        from handlers.users import post_confirmation

        cognito = MagicMock()
        with patch.object(post_confirmation, 'get_cognito_client', return_value=cognito):
            post_confirmation.handler(self.cognito_event(seller.user_id, 'seller'), None)

        cognito.admin_add_user_to_group.assert_called_once()


class TestNotificationHandlers:
    """Tests for the notification endpoints."""

    def test_mark_all_read(self, api_event, approved_bid, seller):
        from handlers.notifications.mark_all_read import handler

        response = handler(api_event(seller), None)
        assert body_of(response)['updated'] == 1

    def test_stats_require_sign_in(self, api_event, admin):
        from handlers.dashboard.get_stats import handler

        assert handler(api_event(), None)['statusCode'] == 401
        assert body_of(handler(api_event(admin), None))['completionRate'] == 0
