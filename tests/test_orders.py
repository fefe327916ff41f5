import pytest

from homechef.extensions import ORDERS


@pytest.fixture
def chef(make_user):
    return make_user('chef@x.com', role='chef', chefId='chef-1234')


@pytest.fixture
def admin(make_user):
    return make_user('admin@x.com', role='admin')


@pytest.fixture
def buyer(make_user):
    return make_user('u@x.com')


def _status(db, order):
    stored = db[ORDERS].find_one({'_id': order['_id']})
    return stored['orderStatus'], stored['paymentStatus']


def test_create_order_forces_pending_states(client, db, buyer, login):
    login('u@x.com')
    response = client.post('/orders', json={
        'userEmail': 'U@x.com',
        'foodId': 'meal-1',
        'mealName': 'Greek Salad',
        'chefId': 'chef-1234',
        'price': '10',
        'quantity': 2,
        'orderStatus': 'delivered',
        'paymentStatus': 'paid',
    })

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['userEmail'] == 'u@x.com'
    assert data['totalPrice'] == 20
    assert data['orderStatus'] == 'pending'
    assert data['paymentStatus'] == 'pending'
    assert data['orderTime']
    assert db[ORDERS].count_documents({}) == 1


def test_create_order_requires_session(client):
    assert client.post('/orders', json={'totalPrice': 20}).status_code == 401


def test_create_order_for_other_user_is_forbidden(client, buyer, login):
    login('u@x.com')
    response = client.post('/orders', json={'userEmail': 'v@x.com', 'totalPrice': 20})
    assert response.status_code == 403


def test_create_order_validates_amount(client, buyer, login):
    login('u@x.com')
    assert client.post('/orders', json={'totalPrice': -1}).status_code == 400
    assert client.post('/orders', json={'totalPrice': 'abc'}).status_code == 400
    assert client.post('/orders', json={'mealName': 'no price'}).status_code == 400


def test_fraud_user_cannot_order(client, make_user, login):
    make_user('bad@x.com', status='fraud')
    login('bad@x.com')
    assert client.post('/orders', json={'totalPrice': 20}).status_code == 403


def test_unregistered_caller_cannot_order(client, login):
    login('ghost@x.com')
    assert client.post('/orders', json={'totalPrice': 20}).status_code == 403


def test_chef_accepts_and_delivers_own_order(client, db, chef, make_order, login):
    order = make_order()
    login('chef@x.com')

    response = client.patch(f"/orders/accept/{order['_id']}")
    assert response.status_code == 200
    assert _status(db, order) == ('accepted', 'pending')

    assert client.patch(f"/orders/deliver/{order['_id']}").status_code == 200
    assert _status(db, order) == ('delivered', 'pending')


def test_chef_cannot_touch_other_chefs_order(client, db, chef, make_order, login):
    order = make_order(chef_id='chef-9999')
    login('chef@x.com')

    assert client.patch(f"/orders/accept/{order['_id']}").status_code == 403
    assert _status(db, order) == ('pending', 'pending')


def test_buyer_cannot_change_order_status(client, buyer, make_order, login):
    order = make_order()
    login('u@x.com')

    assert client.patch(f"/orders/accept/{order['_id']}").status_code == 403
    assert client.patch(f"/orders/cancel/{order['_id']}").status_code == 403


def test_deliver_requires_accepted(client, db, admin, make_order, login):
    order = make_order()
    login('admin@x.com')

    response = client.patch(f"/orders/deliver/{order['_id']}")
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Cannot change order from pending to delivered'
    assert _status(db, order) == ('pending', 'pending')


def test_cancel_from_pending_and_accepted(client, db, admin, make_order, login):
    pending = make_order()
    accepted = make_order(orderStatus='accepted')
    login('admin@x.com')

    assert client.patch(f"/orders/cancel/{pending['_id']}").status_code == 200
    assert client.patch(f"/orders/cancel/{accepted['_id']}").status_code == 200
    assert _status(db, pending)[0] == 'cancelled'
    assert _status(db, accepted)[0] == 'cancelled'


def test_terminal_states_do_not_move(client, db, admin, make_order, login):
    cancelled = make_order(orderStatus='cancelled')
    delivered = make_order(orderStatus='delivered')
    login('admin@x.com')

    assert client.patch(f"/orders/accept/{cancelled['_id']}").status_code == 400
    assert client.patch(f"/orders/cancel/{delivered['_id']}").status_code == 400
    assert _status(db, cancelled)[0] == 'cancelled'
    assert _status(db, delivered)[0] == 'delivered'


def test_transition_on_missing_order(client, admin, login):
    login('admin@x.com')
    assert client.patch('/orders/accept/64b7f0000000000000000000').status_code == 404
    assert client.patch('/orders/accept/bogus').status_code == 400


def test_update_order_status_rejects_unknown_value(client, db, admin, make_order, login):
    order = make_order()
    login('admin@x.com')

    response = client.patch(f"/update-order-status/{order['_id']}", json={'orderStatus': 'shipped'})
    assert response.status_code == 400
    assert response.get_json() == {'success': False, 'message': 'Invalid order status'}
    assert _status(db, order) == ('pending', 'pending')


def test_update_order_status_applies_legal_transition(client, db, admin, make_order, login):
    order = make_order()
    login('admin@x.com')

    response = client.patch(f"/update-order-status/{order['_id']}", json={'orderStatus': 'accepted'})
    assert response.status_code == 200
    assert response.get_json()['message'] == 'Order accepted successfully'
    assert _status(db, order) == ('accepted', 'pending')

    back = client.patch(f"/update-order-status/{order['_id']}", json={'orderStatus': 'pending'})
    assert back.status_code == 400
    assert _status(db, order) == ('accepted', 'pending')


def test_update_order_status_is_admin_only(client, chef, make_order, login):
    order = make_order()
    login('chef@x.com')
    response = client.patch(f"/update-order-status/{order['_id']}", json={'orderStatus': 'accepted'})
    assert response.status_code == 403


def test_cancel_after_payment_keeps_paid(client, db, admin, make_order, login):
    order = make_order(orderStatus='accepted', paymentStatus='paid')
    login('admin@x.com')

    assert client.patch(f"/orders/cancel/{order['_id']}").status_code == 200
    assert _status(db, order) == ('cancelled', 'paid')


def test_orders_by_email_is_self_only(client, buyer, make_order, login):
    make_order(user_email='u@x.com')
    make_order(user_email='v@x.com')
    login('u@x.com')

    response = client.get('/orders/U@X.com')
    assert response.status_code == 200
    assert [o['userEmail'] for o in response.get_json()['data']] == ['u@x.com']

    assert client.get('/orders/v@x.com').status_code == 403


def test_my_orders_lists_own_orders(client, buyer, login):
    login('u@x.com')
    first = client.post('/orders', json={'totalPrice': 5}).get_json()['data']
    second = client.post('/orders', json={'totalPrice': 6}).get_json()['data']

    orders = client.get('/my-orders').get_json()['data']
    assert {o['_id'] for o in orders} == {first['_id'], second['_id']}


def test_chef_orders_scoped_to_own_chef_id(client, chef, make_order, login):
    make_order(chef_id='chef-1234')
    make_order(chef_id='chef-9999')
    login('chef@x.com')

    orders = client.get('/chef-orders/chef-1234').get_json()['data']
    assert [o['chefId'] for o in orders] == ['chef-1234']
    assert client.get('/chef-orders/chef-9999').status_code == 403


def test_user_chef_orders_follow_owned_meals(client, db, chef, make_order, login):
    db.meals.insert_one({'name': 'Soup', 'userEmail': 'chef@x.com', 'chefId': 'chef-1234'})
    make_order(chef_id='chef-1234')
    make_order(chef_id='chef-9999')
    login('chef@x.com')

    orders = client.get('/user-chef-orders/chef@x.com').get_json()['data']
    assert [o['chefId'] for o in orders] == ['chef-1234']


def test_admin_lists_all_orders(client, admin, make_order, login):
    make_order()
    make_order(user_email='v@x.com')
    login('admin@x.com')
    assert len(client.get('/orders').get_json()['data']) == 2
