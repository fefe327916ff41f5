"""
Public counters for the landing page
"""

from flask import Blueprint

from .errors import NotFound
from .extensions import FAVORITES, MEALS, ORDERS, REVIEWS, USERS, get_db
from .helpers import json_response, normalize_email

stats_bp = Blueprint('stats', __name__)


@stats_bp.route('/users/count', methods=['GET'])
def users_count():
    total_users = get_db()[USERS].count_documents({})
    return json_response({'success': True, 'totalUsers': total_users})


@stats_bp.route('/orders/delivered/count', methods=['GET'])
def delivered_orders_count():
    delivered = get_db()[ORDERS].count_documents(
        {'orderStatus': {'$regex': '^delivered$', '$options': 'i'}}
    )
    return json_response({'success': True, 'deliveredOrders': delivered})


@stats_bp.route('/orders/pending-payment/count', methods=['GET'])
def pending_payment_count():
    pending = get_db()[ORDERS].count_documents(
        {'paymentStatus': {'$regex': '^pending$', '$options': 'i'}}
    )
    return json_response({'success': True, 'pendingPayments': pending})


@stats_bp.route('/orders/paid/total', methods=['GET'])
def paid_total():
    """Sum of totalPrice over paid orders"""
    result = list(get_db()[ORDERS].aggregate([
        {'$match': {'paymentStatus': 'paid'}},
        {'$group': {
            '_id': None,
            'totalPaidAmount': {'$sum': '$totalPrice'},
            'totalOrders': {'$sum': 1},
        }},
    ]))
    if not result:
        return json_response({'totalPaidAmount': 0, 'totalOrders': 0})

    return json_response({
        'totalPaidAmount': result[0]['totalPaidAmount'],
        'totalOrders': result[0]['totalOrders'],
    })


@stats_bp.route('/api/stats', methods=['GET'])
def catalog_stats():
    db = get_db()
    return json_response({
        'success': True,
        'mealsCount': db[MEALS].count_documents({}),
        'reviewsCount': db[REVIEWS].count_documents({}),
        'favoritesCount': db[FAVORITES].count_documents({}),
    })


@stats_bp.route('/check-role/<email>', methods=['GET'])
def check_role(email):
    """Role lookup used by the front-end before a session exists"""
    user = get_db()[USERS].find_one({'email': normalize_email(email)}, {'email': 1, 'role': 1})
    if not user:
        raise NotFound('User not found')

    return json_response({
        'success': True,
        'email': user['email'],
        'role': (user.get('role') or 'user').lower(),
    })
