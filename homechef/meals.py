"""
Meal catalog: public browsing, chef-owned writes
"""

import logging
import re

from flask import Blueprint, g, request
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from .auth import authorize, current_email, protect, require_self
from .errors import Forbidden, InvalidInput, NotFound
from .extensions import MEALS, get_db
from .helpers import json_response, normalize_email, object_id, parse_body, utcnow
from .schemas import MealCreate, MealUpdate

logger = logging.getLogger(__name__)

meals_bp = Blueprint('meals', __name__)

LATEST_LIMIT = 6
PRICE_SORT = {'asc': ASCENDING, 'desc': DESCENDING}


def _get_meal(meal_id):
    meal = get_db()[MEALS].find_one({'_id': object_id(meal_id, 'Meal ID')})
    if not meal:
        raise NotFound('Meal not found')
    return meal


def _check_owner(meal):
    if normalize_email(meal.get('userEmail')) != current_email():
        raise Forbidden('Not authorized to modify this meal')


@meals_bp.route('/meals', methods=['GET'])
def list_meals():
    """All meals, optionally filtered by status and sorted by price"""
    query = {}
    status = request.args.get('status')
    if status:
        query['status'] = {'$regex': f'^{re.escape(status)}$', '$options': 'i'}

    cursor = get_db()[MEALS].find(query)
    direction = PRICE_SORT.get(request.args.get('sort'))
    if direction is not None:
        cursor = cursor.sort([('price', direction)])

    return json_response({'success': True, 'data': list(cursor)})


@meals_bp.route('/meals/latest', methods=['GET'])
def latest_meals():
    meals = get_db()[MEALS].find().sort([('createdAt', DESCENDING)]).limit(LATEST_LIMIT)
    return json_response({'success': True, 'data': list(meals)})


@meals_bp.route('/meals/<meal_id>', methods=['GET'])
def get_meal(meal_id):
    return json_response({'success': True, 'data': _get_meal(meal_id)})


@meals_bp.route('/mealsd/<meal_id>', methods=['GET'])
def get_meal_details(meal_id):
    """Single meal, returned as the bare document"""
    return json_response(_get_meal(meal_id))


@meals_bp.route('/meals', methods=['POST'])
@protect
@authorize('chef')
def create_meal():
    """Create a meal owned by the calling chef"""
    body = parse_body(MealCreate)

    if g.user.get('status') == 'fraud':
        raise Forbidden('Account is restricted from adding meals')
    if not g.user.get('chefId'):
        raise InvalidInput('Chef id not assigned yet')

    meal_data = body.model_dump(exclude_none=True)
    meal_data.update({
        'userEmail': g.user['email'],
        'chefId': g.user['chefId'],
        'createdAt': utcnow(),
    })

    result = get_db()[MEALS].insert_one(meal_data)
    meal_data['_id'] = result.inserted_id
    logger.info('🍽️ Meal %s added by %s', result.inserted_id, g.user['email'])

    return json_response({
        'success': True,
        'message': 'Meal added successfully',
        'data': meal_data
    }, 201)


@meals_bp.route('/meals/<meal_id>', methods=['PUT'])
@protect
@authorize('chef')
def update_meal(meal_id):
    meal = _get_meal(meal_id)
    _check_owner(meal)
    body = parse_body(MealUpdate)

    update_data = body.model_dump(exclude_none=True)
    if not update_data:
        return json_response({'success': True, 'updatedMeal': meal})

    updated = get_db()[MEALS].find_one_and_update(
        {'_id': meal['_id']},
        {'$set': update_data},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFound('Meal not found')

    return json_response({'success': True, 'updatedMeal': updated})


@meals_bp.route('/meals/<meal_id>', methods=['DELETE'])
@protect
@authorize('chef')
def delete_meal(meal_id):
    meal = _get_meal(meal_id)
    _check_owner(meal)

    result = get_db()[MEALS].delete_one({'_id': meal['_id']})
    if result.deleted_count != 1:
        raise NotFound('Meal not found')

    return json_response({'success': True, 'message': 'Meal deleted successfully'})


@meals_bp.route('/user-meals/<email>', methods=['GET'])
@protect
def get_user_meals(email):
    """Meals owned by the caller"""
    require_self(current_email(), email)
    meals = list(get_db()[MEALS].find({'userEmail': normalize_email(email)}))
    return json_response({'success': True, 'data': meals})


@meals_bp.route('/chef-id/<email>', methods=['GET'])
@protect
def get_chef_id(email):
    require_self(current_email(), email)
    meal = get_db()[MEALS].find_one({'userEmail': normalize_email(email)})
    return json_response({'chefId': meal.get('chefId') if meal else None})
