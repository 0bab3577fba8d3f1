"""
API tests for checkout, settlement, order history and coupon endpoints.
"""
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.orders.models import Order
from tests.factories import (
    AppliedCouponFactory,
    CartFactory,
    CartItemFactory,
    CouponFactory,
    OrderFactory,
    ProductFactory,
    StaffUserFactory,
    UserFactory,
)
from tests.fakes import build_confirmation

pytestmark = pytest.mark.django_db


@pytest.fixture
def api_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture
def settle_payload(shipping_address):
    return {
        'payment_confirmation': build_confirmation('pay_TEST0001'),
        'shipping_address': shipping_address,
        'coupon_codes': ['FLAT150'],
        'expected_total': '1030.00',
    }


class TestSettleOrderView:

    def test_new_order_created(self, api_client, customer_cart, provider, settle_payload):
        CouponFactory(code='FLAT150')
        provider.add_payment('pay_TEST0001', amount=103000)

        response = api_client.post('/api/orders/settle', settle_payload, format='json')

        assert response.status_code == 201
        body = response.json()
        assert body['code'] == 201
        assert body['data']['total'] == '1030.00'
        assert body['data']['applied_coupons'][0]['code'] == 'FLAT150'
        assert body['data']['payment_status'] == 'paid'

    def test_replay_returns_200_with_same_order(self, api_client, customer_cart, provider, settle_payload):
        CouponFactory(code='FLAT150')
        provider.add_payment('pay_TEST0001', amount=103000)

        first = api_client.post('/api/orders/settle', settle_payload, format='json')
        second = api_client.post('/api/orders/settle', settle_payload, format='json')

        assert first.status_code == 201
        assert second.status_code == 200
        assert first.json()['data']['order_number'] == second.json()['data']['order_number']
        assert Order.objects.count() == 1

    def test_forged_signature_gets_generic_402(self, api_client, customer_cart, provider, settle_payload):
        CouponFactory(code='FLAT150')
        provider.add_payment('pay_TEST0001', amount=103000)
        settle_payload['payment_confirmation']['provider_signature'] = '0' * 64

        response = api_client.post('/api/orders/settle', settle_payload, format='json')

        assert response.status_code == 402
        assert response.json()['msg'] == 'Payment could not be verified'
        assert response.json()['errors'] == {'kind': 'payment_unverified'}

    def test_replay_by_another_user_does_not_leak_order(self, api_client, customer_cart, provider, settle_payload):
        CouponFactory(code='FLAT150')
        provider.add_payment('pay_TEST0001', amount=103000)
        assert api_client.post('/api/orders/settle', settle_payload, format='json').status_code == 201

        other_client = APIClient()
        other_client.force_authenticate(user=UserFactory())
        forged = {
            'payment_confirmation': {
                'provider_order_id': 'x',
                'provider_payment_id': 'pay_TEST0001',
                'provider_signature': '0' * 64,
            },
            'shipping_address': settle_payload['shipping_address'],
        }

        for payload in (forged, settle_payload):
            response = other_client.post('/api/orders/settle', payload, format='json')

            assert response.status_code == 402
            assert response.json()['msg'] == 'Payment could not be verified'
            assert '9876543210' not in response.content.decode()
            assert 'MG Road' not in response.content.decode()
        assert Order.objects.count() == 1

    def test_replay_with_tampered_signature_is_402(self, api_client, customer_cart, provider, settle_payload):
        CouponFactory(code='FLAT150')
        provider.add_payment('pay_TEST0001', amount=103000)
        assert api_client.post('/api/orders/settle', settle_payload, format='json').status_code == 201
        settle_payload['payment_confirmation']['provider_signature'] = '0' * 64

        response = api_client.post('/api/orders/settle', settle_payload, format='json')

        assert response.status_code == 402
        assert 'data' not in response.json()

    def test_amount_mismatch_does_not_leak_figures(self, api_client, customer_cart, provider, settle_payload):
        CouponFactory(code='FLAT150')
        provider.add_payment('pay_TEST0001', amount=100000)

        response = api_client.post('/api/orders/settle', settle_payload, format='json')

        assert response.status_code == 402
        assert response.json()['msg'] == 'Payment could not be verified'
        assert '1030' not in response.content.decode()

    def test_out_of_stock_is_409(self, api_client, customer, provider, settle_payload):
        cart = CartFactory(user=customer)
        product = ProductFactory(in_stock=False)
        CartItemFactory(cart=cart, product=product)

        response = api_client.post('/api/orders/settle', settle_payload, format='json')

        assert response.status_code == 409
        assert response.json()['errors'] == {'kind': 'out_of_stock', 'product_id': product.pk}

    def test_coupon_rejection_is_400_with_reason(self, api_client, customer_cart, provider, settle_payload):
        response = api_client.post('/api/orders/settle', settle_payload, format='json')

        assert response.status_code == 400
        assert response.json()['errors']['reason'] == 'not_found'

    def test_empty_cart_is_400(self, api_client, customer, provider, settle_payload):
        response = api_client.post('/api/orders/settle', settle_payload, format='json')

        assert response.status_code == 400
        assert response.json()['errors']['kind'] == 'empty_cart'

    def test_short_street_is_validation_error(self, api_client, customer_cart, provider, settle_payload):
        settle_payload['shipping_address']['street'] = 'abc'

        response = api_client.post('/api/orders/settle', settle_payload, format='json')

        assert response.status_code == 400
        assert response.json()['errors']['kind'] == 'validation_error'

    def test_malformed_request_rejected(self, api_client, provider):
        response = api_client.post('/api/orders/settle', {'coupon_codes': []}, format='json')

        assert response.status_code == 400
        assert 'payment_confirmation' in response.json()['errors']


class TestCheckoutPreviewView:

    def test_preview_totals(self, api_client, customer_cart):
        CouponFactory(code='FLAT150')

        response = api_client.post('/api/orders/checkout/preview', {'coupon_codes': ['FLAT150']}, format='json')

        assert response.status_code == 200
        data = response.json()['data']
        assert data['subtotal'] == '1000.00'
        assert data['tax'] == '180.00'
        assert data['total_discount'] == '150.00'
        assert data['total'] == '1030.00'
        assert len(data['items']) == 1


class TestOrderHistoryViews:

    def test_list_only_own_orders(self, api_client, customer):
        OrderFactory(user=customer)
        OrderFactory(user=UserFactory())

        response = api_client.get('/api/orders/')

        assert response.status_code == 200
        assert response.json()['data']['page']['total'] == 1

    def test_detail(self, api_client, customer):
        order = OrderFactory(user=customer)

        response = api_client.get(f'/api/orders/{order.order_number}')

        assert response.status_code == 200
        assert response.json()['data']['order_number'] == order.order_number

    def test_detail_of_other_users_order_is_404(self, api_client):
        order = OrderFactory(user=UserFactory())

        response = api_client.get(f'/api/orders/{order.order_number}')

        assert response.status_code == 404

    def test_cancel_confirmed_order(self, api_client, customer):
        order = OrderFactory(user=customer, order_status='confirmed')

        response = api_client.post(f'/api/orders/{order.order_number}/cancel', {'reason': 'Ordered twice'}, format='json')

        assert response.status_code == 200
        order.refresh_from_db()
        assert order.order_status == 'cancelled'
        assert order.cancel_reason == 'Ordered twice'
        assert order.cancelled_at is not None

    def test_cannot_cancel_shipped_order(self, api_client, customer):
        order = OrderFactory(user=customer, order_status='shipped')

        response = api_client.post(f'/api/orders/{order.order_number}/cancel', {}, format='json')

        assert response.status_code == 400
        order.refresh_from_db()
        assert order.order_status == 'shipped'

    def test_requires_authentication(self):
        response = APIClient().get('/api/orders/')

        assert response.status_code == 401


class TestCouponViews:

    def test_validate_coupon(self, api_client):
        CouponFactory(code='FLAT150')

        response = api_client.post('/api/coupons/validate', {'code': 'flat150', 'order_amount': '1000.00'}, format='json')

        assert response.status_code == 200
        assert response.json()['data']['discount_amount'] == '150.00'

    def test_validate_below_minimum(self, api_client):
        CouponFactory(code='FLAT150', min_purchase_amount=Decimal('500.00'))

        response = api_client.post('/api/coupons/validate', {'code': 'FLAT150', 'order_amount': '100.00'}, format='json')

        assert response.status_code == 400
        assert response.json()['errors']['reason'] == 'min_purchase_not_met'

    def test_available_coupons(self, api_client):
        CouponFactory(code='FLAT150')

        response = api_client.get('/api/coupons/available')

        assert response.status_code == 200
        assert [c['code'] for c in response.json()['data']] == ['FLAT150']


class TestAdminCouponViews:

    @pytest.fixture
    def admin_client(self):
        client = APIClient()
        client.force_authenticate(user=StaffUserFactory())
        return client

    def test_non_staff_forbidden(self, api_client):
        response = api_client.get('/api/coupons/admin/')

        assert response.status_code == 403

    def test_create_coupon(self, admin_client):
        response = admin_client.post('/api/coupons/admin/', {
            'code': 'newyear',
            'name': 'New Year',
            'kind': 'percentage',
            'value': '10.00',
            'max_discount_amount': '200.00',
            'expiry_date': '2099-01-01T00:00:00Z',
            'usage_limit': 100,
        }, format='json')

        assert response.status_code == 201
        assert response.json()['data']['code'] == 'NEWYEAR'

    def test_create_percentage_without_cap_rejected(self, admin_client):
        response = admin_client.post('/api/coupons/admin/', {
            'code': 'NOCAP',
            'name': 'No cap',
            'kind': 'percentage',
            'value': '10.00',
            'expiry_date': '2099-01-01T00:00:00Z',
        }, format='json')

        assert response.status_code == 400

    def test_delete_refused_for_redeemed_coupon(self, admin_client):
        applied = AppliedCouponFactory()

        response = admin_client.delete(f'/api/coupons/admin/{applied.coupon.pk}')

        assert response.status_code == 400
        assert response.json()['errors']['kind'] == 'coupon_in_use'

    def test_toggle_and_stats(self, admin_client):
        coupon = CouponFactory(is_active=True)

        toggled = admin_client.post(f'/api/coupons/admin/{coupon.pk}/toggle')
        stats = admin_client.get(f'/api/coupons/admin/{coupon.pk}/stats')

        assert toggled.json()['data']['is_active'] is False
        assert stats.status_code == 200
        assert stats.json()['data']['usage']['total_orders'] == 0


class TestPaymentOrderViews:

    def test_payment_order_created_for_server_total(self, api_client, customer_cart, provider):
        CouponFactory(code='FLAT150')

        response = api_client.post('/api/orders/checkout/payment-order', {'coupon_codes': ['FLAT150']}, format='json')

        assert response.status_code == 201
        data = response.json()['data']
        assert data['amount'] == 103000
        assert data['currency'] == 'INR'
        assert data['total'] == '1030.00'
        assert data['key_id'] == 'rzp_test_key'
        provider_order, notes = type(provider).orders[0]
        assert data['provider_order_id'] == provider_order.order_id
        assert provider_order.amount == 103000
        assert notes['total'] == '1030.00'

    def test_payment_order_needs_a_cart(self, api_client, customer, provider):
        response = api_client.post('/api/orders/checkout/payment-order', {}, format='json')

        assert response.status_code == 400
        assert response.json()['errors'] == {'kind': 'empty_cart'}
        assert type(provider).orders == []

    def test_payment_status_shows_own_order(self, api_client, customer_cart, provider, settle_payload):
        CouponFactory(code='FLAT150')
        provider.add_payment('pay_TEST0001', amount=103000)
        settled = api_client.post('/api/orders/settle', settle_payload, format='json').json()['data']

        response = api_client.get('/api/orders/payments/pay_TEST0001/status')

        assert response.status_code == 200
        data = response.json()['data']
        assert data['status'] == 'captured'
        assert data['amount'] == '1030.00'
        assert data['order_number'] == settled['order_number']

    def test_payment_status_hides_other_users_order(self, provider):
        provider.add_payment('pay_TEST0001', amount=118000)
        OrderFactory(payment_confirmation_ref='pay_TEST0001')
        client = APIClient()
        client.force_authenticate(user=UserFactory())

        response = client.get('/api/orders/payments/pay_TEST0001/status')

        assert response.status_code == 200
        assert response.json()['data']['order_number'] is None


class TestAdminOrderViews:

    @pytest.fixture
    def admin_client(self):
        client = APIClient()
        client.force_authenticate(user=StaffUserFactory())
        return client

    def test_non_staff_forbidden(self, api_client):
        assert api_client.get('/api/orders/admin/').status_code == 403
        assert api_client.get('/api/orders/admin/stats').status_code == 403

    def test_list_all_orders_with_status_filter(self, admin_client):
        OrderFactory(order_status='confirmed')
        shipped = OrderFactory(order_status='shipped')

        response = admin_client.get('/api/orders/admin/', {'status': 'shipped'})

        assert response.status_code == 200
        orders = response.json()['data']['list']
        assert [order['order_number'] for order in orders] == [shipped.order_number]
        assert orders[0]['customer']['username'] == shipped.user.username

    def test_stats(self, admin_client):
        OrderFactory(order_status='confirmed')
        OrderFactory(order_status='confirmed')
        OrderFactory(order_status='cancelled')

        data = admin_client.get('/api/orders/admin/stats').json()['data']

        assert data['total_orders'] == 3
        assert Decimal(str(data['total_revenue'])) == Decimal('3540.00')
        breakdown = {row['status']: row['count'] for row in data['status_breakdown']}
        assert breakdown == {'cancelled': 1, 'confirmed': 2}

    def test_ship_then_deliver(self, admin_client):
        order = OrderFactory(order_status='confirmed')

        shipped = admin_client.put(f'/api/orders/admin/{order.order_number}/status',
                                   {'order_status': 'shipped', 'tracking_number': 'AWB123456'}, format='json')
        delivered = admin_client.put(f'/api/orders/admin/{order.order_number}/status',
                                     {'order_status': 'delivered'}, format='json')

        assert shipped.json()['data']['tracking_number'] == 'AWB123456'
        assert delivered.status_code == 200
        order.refresh_from_db()
        assert order.order_status == 'delivered'
        assert order.delivered_at is not None
        assert order.can_cancel is False

    def test_refund_payment(self, admin_client):
        order = OrderFactory(order_status='confirmed')

        response = admin_client.put(f'/api/orders/admin/{order.order_number}/status',
                                    {'order_status': 'cancelled', 'payment_status': 'refunded'}, format='json')

        assert response.status_code == 200
        order.refresh_from_db()
        assert order.payment_status == 'refunded'
        assert order.cancel_reason == 'Cancelled by staff'

    def test_cancelled_order_not_reopened(self, admin_client):
        order = OrderFactory(order_status='cancelled')

        response = admin_client.put(f'/api/orders/admin/{order.order_number}/status',
                                    {'order_status': 'processing'}, format='json')

        assert response.status_code == 400
        order.refresh_from_db()
        assert order.order_status == 'cancelled'

    def test_unknown_status_and_order(self, admin_client):
        order = OrderFactory()

        bad_status = admin_client.put(f'/api/orders/admin/{order.order_number}/status',
                                      {'order_status': 'lost'}, format='json')
        missing = admin_client.put('/api/orders/admin/ORD-NOPE/status', {'order_status': 'shipped'}, format='json')

        assert bad_status.status_code == 400
        assert missing.status_code == 404
