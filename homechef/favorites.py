"""
Favorite meals, one entry per (user, meal)
"""

from flask import Blueprint
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from .auth import current_email, protect, require_self
from .errors import Forbidden, NotFound
from .extensions import FAVORITES, get_db
from .helpers import json_response, normalize_email, object_id, parse_body, utcnow
from .schemas import FavoriteCreate

favorites_bp = Blueprint('favorites', __name__)

NEWEST_FIRST = [('addedTime', DESCENDING)]
ALREADY_EXISTS = {'insertedId': None, 'message': 'Already in favorites'}


@favorites_bp.route('/favorites', methods=['POST'])
@protect
def add_favorite():
    """Add a meal to the caller's favorites; duplicates are reported, not inserted"""
    body = parse_body(FavoriteCreate)
    favorites = get_db()[FAVORITES]
    user_email = current_email()

    if favorites.find_one({'userEmail': user_email, 'mealId': body.mealId}):
        return json_response(ALREADY_EXISTS)

    favorite = body.model_dump()
    favorite.update({'userEmail': user_email, 'addedTime': utcnow()})

    try:
        result = favorites.insert_one(favorite)
    except DuplicateKeyError:
        # lost a race against an identical insert
        return json_response(ALREADY_EXISTS)

    return json_response({'insertedId': result.inserted_id})


@favorites_bp.route('/my-favorites', methods=['GET'])
@protect
def get_my_favorites():
    favorites = get_db()[FAVORITES].find({'userEmail': current_email()}).sort(NEWEST_FIRST)
    return json_response(list(favorites))


@favorites_bp.route('/favorites/<email>', methods=['GET'])
@protect
def get_user_favorites(email):
    require_self(current_email(), email)
    favorites = get_db()[FAVORITES].find({'userEmail': normalize_email(email)}).sort(NEWEST_FIRST)
    return json_response({'success': True, 'data': list(favorites)})


@favorites_bp.route('/favorites/<favorite_id>', methods=['DELETE'])
@protect
def delete_favorite(favorite_id):
    favorites = get_db()[FAVORITES]
    favorite = favorites.find_one({'_id': object_id(favorite_id, 'favorite ID')})
    if not favorite:
        raise NotFound('Not found')
    if normalize_email(favorite.get('userEmail')) != current_email():
        raise Forbidden('Forbidden')

    result = favorites.delete_one({'_id': favorite['_id']})
    return json_response({'success': True, 'deletedCount': result.deleted_count})
