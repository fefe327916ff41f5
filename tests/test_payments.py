import pytest
import stripe

from homechef.errors import ServerError
from homechef.extensions import ORDERS, PAYMENTS
from homechef.payments import StripeGateway, to_minor_units


@pytest.fixture
def buyer(make_user):
    return make_user('u@x.com')


@pytest.fixture
def accepted_order(make_order):
    return make_order(orderStatus='accepted')


def _checkout(client, order):
    return client.post('/create-checkout-session', json={'orderId': str(order['_id'])})


def test_checkout_and_verify_settles_order_once(client, db, gateway, buyer, accepted_order, login):
    login('u@x.com')

    response = _checkout(client, accepted_order)
    assert response.status_code == 200
    assert response.get_json() == {'url': 'https://checkout.stripe.test/cs_test_1'}

    params = gateway.created[0]
    assert params['mode'] == 'payment'
    assert params['customer_email'] == 'u@x.com'
    assert params['metadata'] == {'orderId': str(accepted_order['_id'])}
    assert params['line_items'][0]['price_data']['unit_amount'] == 2000
    assert params['line_items'][0]['price_data']['currency'] == 'usd'
    assert params['success_url'].startswith('http://localhost:5175/dashbord/payment-success')

    gateway.mark_paid('cs_test_1')
    verified = client.get('/verify-payment/cs_test_1')
    assert verified.status_code == 200
    assert verified.get_json() == {'success': True, 'alreadyPaid': False}

    order = db[ORDERS].find_one({'_id': accepted_order['_id']})
    assert order['paymentStatus'] == 'paid'
    assert order['orderStatus'] == 'accepted'
    assert order['transactionId'] == 'pi_test_123'

    rows = list(db[PAYMENTS].find())
    assert len(rows) == 1
    assert rows[0]['orderId'] == str(accepted_order['_id'])
    assert rows[0]['userEmail'] == 'u@x.com'
    assert rows[0]['amount'] == 20


def test_verify_twice_writes_one_ledger_row(client, db, gateway, buyer, accepted_order, login):
    login('u@x.com')
    _checkout(client, accepted_order)
    gateway.mark_paid('cs_test_1')

    client.get('/verify-payment/cs_test_1')
    again = client.get('/verify-payment/cs_test_1')

    assert again.get_json() == {'success': True, 'alreadyPaid': True}
    assert db[PAYMENTS].count_documents({}) == 1


def test_verify_unpaid_session_changes_nothing(client, db, buyer, accepted_order, login):
    login('u@x.com')
    _checkout(client, accepted_order)

    response = client.get('/verify-payment/cs_test_1')
    assert response.get_json() == {'success': False, 'message': 'Not paid'}
    assert db[ORDERS].find_one({'_id': accepted_order['_id']})['paymentStatus'] == 'pending'
    assert db[PAYMENTS].count_documents({}) == 0


def test_verify_session_without_order_id(client, gateway, buyer, login):
    gateway.add_session('cs_orphan', payment_status='paid', amount_total=500)
    login('u@x.com')

    response = client.get('/verify-payment/cs_orphan')
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Missing orderId'


def test_verify_other_users_session_is_forbidden(client, db, gateway, make_user, accepted_order, login):
    make_user('v@x.com')
    gateway.add_session(
        'cs_other',
        payment_status='paid',
        amount_total=2000,
        metadata={'orderId': str(accepted_order['_id'])},
    )
    login('v@x.com')

    assert client.get('/verify-payment/cs_other').status_code == 403
    assert db[ORDERS].find_one({'_id': accepted_order['_id']})['paymentStatus'] == 'pending'


def test_checkout_requires_accepted_order(client, gateway, buyer, make_order, login):
    order = make_order()
    login('u@x.com')

    response = _checkout(client, order)
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Payment not allowed for this order'
    assert gateway.created == []


def test_checkout_rejects_paid_order(client, gateway, buyer, make_order, login):
    order = make_order(orderStatus='accepted', paymentStatus='paid')
    login('u@x.com')

    assert _checkout(client, order).status_code == 400
    assert gateway.created == []


def test_checkout_for_other_users_order_is_forbidden(client, make_user, accepted_order, login):
    make_user('v@x.com')
    login('v@x.com')
    assert _checkout(client, accepted_order).status_code == 403


def test_checkout_unknown_order(client, buyer, login):
    login('u@x.com')
    response = client.post('/create-checkout-session', json={'orderId': '64b7f0000000000000000000'})
    assert response.status_code == 404
    assert client.post('/create-checkout-session', json={}).status_code == 400


@pytest.mark.parametrize('total_price', [0, None, 'abc'])
def test_checkout_rejects_bad_amount(client, gateway, buyer, make_order, login, total_price):
    order = make_order(orderStatus='accepted', total_price=total_price)
    login('u@x.com')

    response = _checkout(client, order)
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Invalid order amount'
    assert gateway.created == []


def test_checkout_requires_session(client, accepted_order):
    assert _checkout(client, accepted_order).status_code == 401


def test_paid_order_cannot_be_reaccepted(client, db, make_user, make_order, login):
    make_user('admin@x.com', role='admin')
    order = make_order(orderStatus='pending', paymentStatus='paid')
    login('admin@x.com')

    assert client.patch(f"/orders/accept/{order['_id']}").status_code == 400
    assert db[ORDERS].find_one({'_id': order['_id']})['paymentStatus'] == 'paid'


def test_manual_payment(client, db, buyer, accepted_order, login):
    login('u@x.com')
    url = f"/orders/{accepted_order['_id']}/pay"

    response = client.post(url, json={'paymentInfo': {'transactionId': 'TXN-1'}})
    assert response.status_code == 200
    body = response.get_json()
    assert body['message'] == 'Payment successful'
    assert body['order']['paymentStatus'] == 'paid'
    assert body['order']['transactionId'] == 'TXN-1'

    again = client.post(url, json={})
    assert again.get_json()['message'] == 'Order already paid'
    assert db[PAYMENTS].count_documents({}) == 1


def test_manual_payment_requires_accepted_order(client, buyer, make_order, login):
    order = make_order()
    login('u@x.com')
    assert client.post(f"/orders/{order['_id']}/pay", json={}).status_code == 400


def test_payment_history(client, make_user, accepted_order, login):
    make_user('u@x.com')
    make_user('admin@x.com', role='admin')
    login('u@x.com')
    client.post(f"/orders/{accepted_order['_id']}/pay", json={})

    history = client.get('/payments/u@x.com').get_json()['data']
    assert [row['orderId'] for row in history] == [str(accepted_order['_id'])]
    assert client.get('/payments/v@x.com').status_code == 403
    assert client.get('/payments').status_code == 403

    login('admin@x.com')
    assert len(client.get('/payments').get_json()['data']) == 1


@pytest.mark.parametrize('amount, cents', [(20, 2000), (12.99, 1299), ('0.005', 1), (1.005, 101)])
def test_to_minor_units(amount, cents):
    assert to_minor_units(amount) == cents


def test_stripe_gateway_requires_key():
    with pytest.raises(ServerError) as exc:
        StripeGateway('').create_checkout_session(mode='payment')
    assert exc.value.message == 'Stripe not configured'


def test_stripe_gateway_passes_key(monkeypatch):
    calls = {}

    def fake_create(**params):
        calls.update(params)
        return {'id': 'cs_live_1', 'url': 'https://checkout.stripe.com/cs_live_1'}

    monkeypatch.setattr(stripe.checkout.Session, 'create', fake_create)

    session = StripeGateway('sk_test_x').create_checkout_session(mode='payment')
    assert session['url'] == 'https://checkout.stripe.com/cs_live_1'
    assert calls == {'api_key': 'sk_test_x', 'mode': 'payment'}


def test_stripe_gateway_wraps_errors(monkeypatch):
    def fake_retrieve(session_id, **params):
        raise stripe.StripeError('boom')

    monkeypatch.setattr(stripe.checkout.Session, 'retrieve', fake_retrieve)

    with pytest.raises(ServerError) as exc:
        StripeGateway('sk_test_x').retrieve_checkout_session('cs_1')
    assert exc.value.message == 'Stripe session error'
