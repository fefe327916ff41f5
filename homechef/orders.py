"""
Order lifecycle

    pending --> accepted --> delivered
       \\           |
        +----------+--> cancelled

``paymentStatus`` runs on its own axis (pending -> paid) and is only ever
moved forward by the payment module. Each transition is a single conditional
update whose filter lists the legal source states, so two staff members
racing on the same order cannot both succeed.
"""

import logging

from flask import Blueprint, g
from pymongo import DESCENDING, ReturnDocument

from .auth import authorize, current_email, find_identity, protect, require_self
from .errors import Forbidden, InvalidInput, InvalidState, NotFound
from .extensions import MEALS, ORDERS, get_db
from .helpers import json_response, normalize_email, object_id, parse_body
from .schemas import ORDER_STATUSES, Order, OrderCreate, OrderStatusUpdate

logger = logging.getLogger(__name__)

orders_bp = Blueprint('orders', __name__)

# destination -> states it may be reached from
TRANSITIONS = {
    'accepted': ('pending',),
    'cancelled': ('pending', 'accepted'),
    'delivered': ('accepted',),
}

NEWEST_FIRST = [('orderTime', DESCENDING)]


class OrderService:

    def __init__(self, db):
        self.orders = db[ORDERS]

    def get(self, order_id):
        order = self.orders.find_one({'_id': object_id(order_id, 'order id')})
        if not order:
            raise NotFound('Order not found')
        return order

    def create(self, buyer, data):
        """Insert a new order for ``buyer`` in pending/pending"""
        if buyer.get('status') == 'fraud':
            raise Forbidden('Account is restricted from placing orders')

        buyer_email = buyer['email']
        if data.userEmail and normalize_email(data.userEmail) != buyer_email:
            raise Forbidden('Orders can only be placed for your own account')

        total_price = data.totalPrice
        if total_price is None:
            if data.price is None:
                raise InvalidInput('totalPrice or price is required')
            total_price = round(data.price * data.quantity, 2)

        order = Order(
            userEmail=buyer_email,
            chefId=data.chefId,
            foodId=data.foodId,
            mealName=data.mealName,
            price=data.price,
            quantity=data.quantity,
            chefName=data.chefName,
            userAddress=data.userAddress,
            totalPrice=total_price,
        )
        order_data = order.model_dump()
        result = self.orders.insert_one(order_data)
        order_data['_id'] = result.inserted_id

        logger.info('🧾 Order %s placed by %s (total=%s)', result.inserted_id, buyer_email, total_price)
        return order_data

    def check_staff(self, actor, order):
        """Admins may act on any order, chefs only on their own"""
        if actor.get('role') == 'admin':
            return
        if actor.get('role') == 'chef' and actor.get('chefId') and actor['chefId'] == order.get('chefId'):
            return
        raise Forbidden('Not authorized to update this order')

    def transition(self, order_id, status, actor):
        """Move an order to ``status`` if its current state allows it"""
        if status not in ORDER_STATUSES:
            raise InvalidInput('Invalid order status')

        order = self.get(order_id)
        self.check_staff(actor, order)

        sources = TRANSITIONS.get(status, ())
        query = {'_id': order['_id'], 'orderStatus': {'$in': list(sources)}}
        changes = {'orderStatus': status}

        if status == 'accepted':
            # Never touches a settled payment: paid orders are excluded.
            query['paymentStatus'] = {'$ne': 'paid'}
            changes['paymentStatus'] = 'pending'

        updated = self.orders.find_one_and_update(
            query,
            {'$set': changes},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            current = self.orders.find_one({'_id': order['_id']}, {'orderStatus': 1})
            if not current:
                raise NotFound('Order not found')
            raise InvalidState(
                f"Cannot change order from {current.get('orderStatus')} to {status}"
            )

        logger.info('📦 Order %s: %s -> %s by %s',
                    order['_id'], order.get('orderStatus'), status, actor.get('email'))
        return updated

    def for_buyer(self, email):
        return list(self.orders.find({'userEmail': normalize_email(email)}).sort(NEWEST_FIRST))

    def for_chef(self, chef_id):
        return list(self.orders.find({'chefId': chef_id}).sort(NEWEST_FIRST))

    def for_chef_ids(self, chef_ids):
        return list(self.orders.find({'chefId': {'$in': list(chef_ids)}}).sort(NEWEST_FIRST))

    def all(self):
        return list(self.orders.find().sort(NEWEST_FIRST))


# ==================== ROUTES ====================

@orders_bp.route('/orders', methods=['POST'])
@protect
def create_order():
    """Place an order as the signed-in buyer"""
    data = parse_body(OrderCreate)

    buyer = find_identity(current_email())
    if not buyer:
        raise Forbidden('Register before placing orders')

    order = OrderService(get_db()).create(buyer, data)

    return json_response({
        'success': True,
        'message': 'Order placed successfully!',
        'data': order
    }, 201)


@orders_bp.route('/orders', methods=['GET'])
@protect
@authorize('admin')
def list_orders():
    orders = OrderService(get_db()).all()
    return json_response({'success': True, 'data': orders})


@orders_bp.route('/orders/<user_email>', methods=['GET'])
@protect
def get_user_orders(user_email):
    """Orders of the caller, newest first"""
    require_self(current_email(), user_email)
    orders = OrderService(get_db()).for_buyer(user_email)
    return json_response({'success': True, 'data': orders})


@orders_bp.route('/my-orders', methods=['GET'])
@protect
def get_my_orders():
    orders = OrderService(get_db()).for_buyer(current_email())
    return json_response({'success': True, 'data': orders})


@orders_bp.route('/chef-orders/<chef_id>', methods=['GET'])
@protect
@authorize('chef', 'admin')
def get_chef_orders(chef_id):
    """Orders addressed to a chef"""
    if g.user['role'] == 'chef' and g.user.get('chefId') != chef_id:
        raise Forbidden('Forbidden access')
    orders = OrderService(get_db()).for_chef(chef_id)
    return json_response({'success': True, 'data': orders})


@orders_bp.route('/user-chef-orders/<email>', methods=['GET'])
@protect
def get_orders_for_my_meals(email):
    """Orders for every chefId used by the caller's meals"""
    require_self(current_email(), email)

    db = get_db()
    chef_ids = db[MEALS].distinct('chefId', {'userEmail': normalize_email(email)})
    if not chef_ids:
        return json_response({'success': True, 'data': []})

    orders = OrderService(db).for_chef_ids(chef_ids)
    return json_response({'success': True, 'data': orders})


def _transition_route(order_id, status):
    updated = OrderService(get_db()).transition(order_id, status, g.user)
    return json_response({
        'success': True,
        'message': f'Order {status} successfully',
        'data': updated
    })


@orders_bp.route('/orders/accept/<order_id>', methods=['PATCH'])
@protect
@authorize('chef', 'admin')
def accept_order(order_id):
    return _transition_route(order_id, 'accepted')


@orders_bp.route('/orders/cancel/<order_id>', methods=['PATCH'])
@protect
@authorize('chef', 'admin')
def cancel_order(order_id):
    return _transition_route(order_id, 'cancelled')


@orders_bp.route('/orders/deliver/<order_id>', methods=['PATCH'])
@protect
@authorize('chef', 'admin')
def deliver_order(order_id):
    return _transition_route(order_id, 'delivered')


@orders_bp.route('/update-order-status/<order_id>', methods=['PATCH'])
@protect
@authorize('admin')
def update_order_status(order_id):
    """Admin status change; destination must be a known order state"""
    body = parse_body(OrderStatusUpdate)
    if body.orderStatus not in ORDER_STATUSES:
        raise InvalidInput('Invalid order status')
    return _transition_route(order_id, body.orderStatus)
