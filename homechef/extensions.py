"""
Long-lived process resources: the MongoDB connection and the payment gateway
"""

import logging

from flask import current_app
from flask_pymongo import PyMongo
from pymongo import ASCENDING

logger = logging.getLogger(__name__)

mongo = PyMongo()

# Collection names as deployed
USERS = 'user'
MEALS = 'meals'
REVIEWS = 'reviews'
FAVORITES = 'favorites'
ORDERS = 'order_collection'
PAYMENTS = 'payments'


def get_db():
    """Database handle opened once at startup and shared by every request"""
    return current_app.extensions['homechef.db']


def get_payment_gateway():
    return current_app.extensions['homechef.payment_gateway']


def ensure_indexes(db):
    """Create the unique indexes the services rely on for idempotency"""
    db[USERS].create_index([('email', ASCENDING)], unique=True)
    db[FAVORITES].create_index(
        [('userEmail', ASCENDING), ('mealId', ASCENDING)], unique=True
    )
    db[PAYMENTS].create_index([('orderId', ASCENDING)], unique=True)
    db[ORDERS].create_index([('userEmail', ASCENDING), ('orderTime', ASCENDING)])
    db[ORDERS].create_index([('chefId', ASCENDING)])
    db[REVIEWS].create_index([('foodId', ASCENDING)])
    logger.info('✅ MongoDB indexes ensured')
