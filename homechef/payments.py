"""
Payment reconciliation against Stripe Checkout

1. ``create_checkout`` opens a hosted checkout session for an accepted,
   unpaid order and hands the redirect URL back to the buyer.
2. ``verify_payment`` is polled by the buyer after the redirect. Once Stripe
   reports the session as paid, the order is flipped to paid and one ledger
   row is written to ``payments``.

Settlement is idempotent: the flip only matches unpaid orders and the ledger
row is upserted by ``orderId`` (unique index), so re-verifying a paid order
never adds a second row.
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal

import stripe
from flask import Blueprint, current_app
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from .auth import authorize, current_email, protect, require_self
from .errors import Forbidden, InvalidInput, InvalidState, NotFound, ServerError
from .extensions import ORDERS, PAYMENTS, get_db, get_payment_gateway
from .helpers import json_response, normalize_email, object_id, parse_body, utcnow
from .schemas import CheckoutRequest, ManualPayment, PaymentRecord

logger = logging.getLogger(__name__)

payments_bp = Blueprint('payments', __name__)


def _to_plain(obj):
    """StripeObject -> plain dict, safe to store in MongoDB"""
    if hasattr(obj, 'to_dict'):
        return obj.to_dict()
    return dict(obj)


class StripeGateway:
    """Thin wrapper over the Stripe Checkout session API"""

    def __init__(self, secret_key):
        self.secret_key = secret_key

    def _require_key(self):
        if not self.secret_key:
            raise ServerError('Stripe not configured')

    def create_checkout_session(self, **params):
        self._require_key()
        try:
            session = stripe.checkout.Session.create(api_key=self.secret_key, **params)
        except stripe.StripeError as e:
            logger.error('❌ Stripe session create failed: %s', e)
            raise ServerError('Stripe session error')
        return _to_plain(session)

    def retrieve_checkout_session(self, session_id):
        self._require_key()
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.secret_key)
        except stripe.StripeError as e:
            logger.error('❌ Stripe session retrieve failed (%s): %s', session_id, e)
            raise ServerError('Stripe session error')
        return _to_plain(session)


def to_minor_units(amount):
    """Dollars to cents, rounding half up"""
    return int((Decimal(str(amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class PaymentService:

    def __init__(self, db, gateway, currency='usd', frontend_url=''):
        self.orders = db[ORDERS]
        self.payments = db[PAYMENTS]
        self.gateway = gateway
        self.currency = currency
        self.frontend_url = frontend_url.rstrip('/')

    @classmethod
    def from_app(cls):
        config = current_app.config
        return cls(
            get_db(),
            get_payment_gateway(),
            currency=config['PAYMENT_CURRENCY'],
            frontend_url=config['FRONTEND_URL'],
        )

    # ---------- checks ----------

    def _get_order(self, order_id):
        order = self.orders.find_one({'_id': object_id(order_id, 'order id')})
        if not order:
            raise NotFound('Order not found')
        return order

    def _check_owner(self, order, caller_email):
        if normalize_email(order.get('userEmail')) != normalize_email(caller_email):
            raise Forbidden('Forbidden')

    def _check_payable(self, order):
        if (order.get('orderStatus') != 'accepted'
                or (order.get('paymentStatus') or '').lower() != 'pending'):
            raise InvalidState('Payment not allowed for this order')

    def _amount(self, order):
        try:
            amount = float(order.get('totalPrice') or 0)
        except (TypeError, ValueError):
            raise InvalidInput('Invalid order amount')
        if not math.isfinite(amount) or amount <= 0:
            raise InvalidInput('Invalid order amount')
        return amount

    # ---------- operations ----------

    def create_checkout(self, order_id, caller_email):
        """Open a Stripe Checkout session for an order; returns the redirect URL"""
        order = self._get_order(order_id)
        self._check_owner(order, caller_email)
        self._check_payable(order)
        amount = self._amount(order)

        session = self.gateway.create_checkout_session(
            payment_method_types=['card'],
            mode='payment',
            customer_email=caller_email,
            line_items=[{
                'price_data': {
                    'currency': self.currency,
                    'product_data': {'name': order.get('mealName') or 'Food Order'},
                    'unit_amount': to_minor_units(amount),
                },
                'quantity': 1,
            }],
            metadata={'orderId': str(order['_id'])},
            success_url=f'{self.frontend_url}/dashbord/payment-success?session_id={{CHECKOUT_SESSION_ID}}',
            cancel_url=f'{self.frontend_url}/dashbord/payment-cancel',
        )

        logger.info('💳 Checkout session %s opened for order %s (%s %s)',
                    session.get('id'), order['_id'], amount, self.currency)
        return session['url']

    def verify_payment(self, session_id, caller_email):
        """Reconcile a checkout session; safe to call repeatedly"""
        session = self.gateway.retrieve_checkout_session(session_id)

        if session.get('payment_status') != 'paid':
            return {'success': False, 'message': 'Not paid'}

        order_id = (session.get('metadata') or {}).get('orderId')
        if not order_id:
            raise InvalidInput('Missing orderId')

        order = self._get_order(order_id)
        self._check_owner(order, caller_email)

        transaction_id = session.get('payment_intent') or session.get('id')
        if isinstance(transaction_id, dict):
            transaction_id = transaction_id.get('id')

        already_paid = self.settle(
            order,
            transaction_id=transaction_id,
            amount=(session.get('amount_total') or 0) / 100,
            payment_info=session,
            user_email=caller_email,
        )
        return {'success': True, 'alreadyPaid': already_paid}

    def pay_manually(self, order_id, caller_email, payment_info=None):
        """Record a payment confirmed outside Stripe Checkout"""
        order = self._get_order(order_id)
        self._check_owner(order, caller_email)

        if order.get('paymentStatus') == 'paid':
            return order, True

        self._check_payable(order)
        amount = self._amount(order)
        payment_info = payment_info or {}
        transaction_id = (payment_info.get('transactionId')
                          or f'TXN{int(utcnow().timestamp() * 1000)}')

        already_paid = self.settle(
            order,
            transaction_id=str(transaction_id),
            amount=amount,
            payment_info=payment_info,
            user_email=caller_email,
        )
        return self.orders.find_one({'_id': order['_id']}), already_paid

    def settle(self, order, transaction_id, amount, payment_info, user_email):
        """Flip the order to paid and make sure its ledger row exists

        Returns True when the order had already been paid.
        """
        flipped = self.orders.find_one_and_update(
            {'_id': order['_id'], 'paymentStatus': {'$ne': 'paid'}},
            {'$set': {
                'paymentStatus': 'paid',
                'paymentInfo': payment_info,
                'transactionId': transaction_id,
                'paidAt': utcnow(),
            }},
            return_document=ReturnDocument.AFTER,
        )

        record = PaymentRecord(
            orderId=str(order['_id']),
            userEmail=normalize_email(user_email),
            transactionId=transaction_id,
            amount=amount,
        )
        try:
            self.payments.update_one(
                {'orderId': record.orderId},
                {'$setOnInsert': record.model_dump(exclude={'orderId'})},
                upsert=True,
            )
        except DuplicateKeyError:
            logger.info('Ledger row for order %s written by a concurrent request', record.orderId)

        if flipped:
            logger.info('✅ Order %s paid (txn=%s, amount=%s)', order['_id'], transaction_id, amount)
        else:
            logger.info('Order %s was already paid; settlement skipped', order['_id'])
        return flipped is None

    def history(self, email):
        return list(self.payments.find({'userEmail': normalize_email(email)})
                    .sort([('createdAt', DESCENDING)]))

    def all(self):
        return list(self.payments.find().sort([('createdAt', DESCENDING)]))


# ==================== ROUTES ====================

@payments_bp.route('/create-checkout-session', methods=['POST'])
@protect
def create_checkout_session():
    """Start a Stripe Checkout for the caller's accepted order"""
    body = parse_body(CheckoutRequest)
    url = PaymentService.from_app().create_checkout(body.orderId, current_email())
    return json_response({'url': url})


@payments_bp.route('/verify-payment/<session_id>', methods=['GET'])
@protect
def verify_payment(session_id):
    result = PaymentService.from_app().verify_payment(session_id, current_email())
    return json_response(result)


@payments_bp.route('/orders/<order_id>/pay', methods=['POST'])
@protect
def pay_order(order_id):
    body = parse_body(ManualPayment)
    order, already_paid = PaymentService.from_app().pay_manually(
        order_id, current_email(), body.paymentInfo
    )
    return json_response({
        'success': True,
        'message': 'Order already paid' if already_paid else 'Payment successful',
        'order': order
    })


@payments_bp.route('/payments/<email>', methods=['GET'])
@protect
def get_payment_history(email):
    """Ledger rows of the caller"""
    require_self(current_email(), email)
    payments = PaymentService.from_app().history(email)
    return json_response({'success': True, 'data': payments})


@payments_bp.route('/payments', methods=['GET'])
@protect
@authorize('admin')
def list_payments():
    payments = PaymentService.from_app().all()
    return json_response({'success': True, 'data': payments})
