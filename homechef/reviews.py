"""
Meal reviews
"""

from flask import Blueprint, request
from pymongo import DESCENDING

from .auth import current_email, protect, require_self
from .errors import Forbidden, InvalidInput, NotFound
from .extensions import REVIEWS, get_db
from .helpers import json_response, normalize_email, object_id, parse_body, utcnow
from .schemas import ReviewCreate, ReviewUpdate

reviews_bp = Blueprint('reviews', __name__)

LATEST_LIMIT = 6
NEWEST_FIRST = [('date', DESCENDING)]


def _get_own_review(review_id):
    review = get_db()[REVIEWS].find_one({'_id': object_id(review_id, 'review ID')})
    if not review:
        raise NotFound('Not found')
    if normalize_email(review.get('reviewerEmail')) != current_email():
        raise Forbidden('Forbidden')
    return review


def _reviews_for(food_id):
    return list(get_db()[REVIEWS].find({'foodId': food_id}).sort(NEWEST_FIRST))


@reviews_bp.route('/reviews/latest', methods=['GET'])
def latest_reviews():
    reviews = get_db()[REVIEWS].find().sort(NEWEST_FIRST).limit(LATEST_LIMIT)
    return json_response({'success': True, 'data': list(reviews)})


@reviews_bp.route('/reviews/<meal_id>', methods=['GET'])
def get_meal_reviews(meal_id):
    return json_response({'success': True, 'data': _reviews_for(meal_id)})


@reviews_bp.route('/reviews', methods=['GET'])
def get_reviews_by_food():
    """Reviews for ``?foodId=``, returned as a bare list"""
    food_id = request.args.get('foodId')
    if not food_id:
        raise InvalidInput('foodId required')
    return json_response(_reviews_for(food_id))


@reviews_bp.route('/reviews', methods=['POST'])
@protect
def create_review():
    body = parse_body(ReviewCreate)

    review = body.model_dump()
    review.update({
        'reviewerEmail': current_email(),
        'date': utcnow(),
    })

    result = get_db()[REVIEWS].insert_one(review)
    return json_response({'success': True, 'insertedId': result.inserted_id}, 201)


@reviews_bp.route('/reviews/<review_id>', methods=['PATCH'])
@protect
def update_review(review_id):
    review = _get_own_review(review_id)
    body = parse_body(ReviewUpdate)

    result = get_db()[REVIEWS].update_one(
        {'_id': review['_id']},
        {'$set': {'rating': body.rating, 'comment': body.comment, 'date': utcnow()}}
    )
    return json_response({
        'success': True,
        'matchedCount': result.matched_count,
        'modifiedCount': result.modified_count
    })


@reviews_bp.route('/reviews/<review_id>', methods=['DELETE'])
@protect
def delete_review(review_id):
    review = _get_own_review(review_id)
    result = get_db()[REVIEWS].delete_one({'_id': review['_id']})
    return json_response({'success': True, 'deletedCount': result.deleted_count})


@reviews_bp.route('/user-reviews/<email>', methods=['GET'])
@protect
def get_user_reviews(email):
    require_self(current_email(), email)
    reviews = get_db()[REVIEWS].find({'reviewerEmail': normalize_email(email)}).sort(NEWEST_FIRST)
    return json_response({'success': True, 'data': list(reviews)})


@reviews_bp.route('/my-reviews', methods=['GET'])
@protect
def get_my_reviews():
    reviews = get_db()[REVIEWS].find({'reviewerEmail': current_email()}).sort(NEWEST_FIRST)
    return json_response({'success': True, 'data': list(reviews)})
