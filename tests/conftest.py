import mongomock
import pytest

from homechef import create_app
from homechef.extensions import ORDERS, USERS
from homechef.helpers import utcnow


class FakeGateway:
    """In-memory stand-in for the Stripe Checkout API"""

    def __init__(self):
        self.sessions = {}
        self.created = []

    def create_checkout_session(self, **params):
        session_id = f'cs_test_{len(self.created) + 1}'
        self.created.append(params)
        self.sessions[session_id] = {
            'id': session_id,
            'url': f'https://checkout.stripe.test/{session_id}',
            'payment_status': 'unpaid',
            'payment_intent': None,
            'metadata': dict(params.get('metadata') or {}),
            'amount_total': params['line_items'][0]['price_data']['unit_amount'],
        }
        return dict(self.sessions[session_id])

    def retrieve_checkout_session(self, session_id):
        return dict(self.sessions[session_id])

    def mark_paid(self, session_id, payment_intent='pi_test_123'):
        self.sessions[session_id].update(payment_status='paid', payment_intent=payment_intent)

    def add_session(self, session_id, **fields):
        self.sessions[session_id] = dict({'id': session_id, 'metadata': {}}, **fields)


@pytest.fixture
def db():
    return mongomock.MongoClient().db


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(db, gateway):
    return create_app(
        {
            'TESTING': True,
            'APP_ENV': 'testing',
            'ACCESS_TOKEN_SECRET': 'test-secret',
            'FRONTEND_URL': 'http://localhost:5175',
        },
        db=db,
        payment_gateway=gateway,
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(db):
    def _make_user(email, role='user', **fields):
        doc = {'email': email.lower(), 'role': role, 'status': 'active'}
        doc.update(fields)
        doc['_id'] = db[USERS].insert_one(doc).inserted_id
        return doc
    return _make_user


@pytest.fixture
def login(client):
    def _login(email):
        response = client.post('/jwt', json={'email': email})
        assert response.status_code == 200
        return response
    return _login


@pytest.fixture
def make_order(db):
    def _make_order(user_email='u@x.com', chef_id='chef-1234', total_price=20, **fields):
        doc = {
            'userEmail': user_email,
            'chefId': chef_id,
            'foodId': 'meal-1',
            'mealName': 'Greek Salad',
            'quantity': 1,
            'totalPrice': total_price,
            'orderStatus': 'pending',
            'paymentStatus': 'pending',
            'orderTime': utcnow(),
        }
        doc.update(fields)
        doc['_id'] = db[ORDERS].insert_one(doc).inserted_id
        return doc
    return _make_order
