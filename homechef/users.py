"""
Identity routes: registration, profiles, admin moderation and role requests
"""

import logging
import random

from flask import Blueprint, g
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from werkzeug.security import generate_password_hash

from .auth import authorize, current_email, protect, require_self
from .errors import NotFound, ServerError
from .extensions import USERS, get_db
from .helpers import json_response, normalize_email, object_id, parse_body
from .schemas import (
    Identity,
    ProfileUpdate,
    RoleRequestCreate,
    UserCreate,
    UserStatusUpdate,
)

logger = logging.getLogger(__name__)

users_bp = Blueprint('users', __name__)

PUBLIC_PROJECTION = {'password': 0}


class RoleRequestService:
    """Role upgrade workflow: no request -> pending -> approved/declined"""

    chef_id_attempts = 20

    def __init__(self, db):
        self.users = db[USERS]

    def submit(self, email, requested_role):
        """Record a pending request, replacing any earlier one"""
        updated = self.users.find_one_and_update(
            {'email': normalize_email(email)},
            {'$set': {'roleRequest': requested_role}},
            projection=PUBLIC_PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotFound('User not found')
        return updated

    def pending(self):
        return list(self.users.find({'roleRequest': {'$exists': True}}, PUBLIC_PROJECTION))

    def generate_chef_id(self):
        for _ in range(self.chef_id_attempts):
            chef_id = f'chef-{random.randint(1000, 9999)}'
            if not self.users.find_one({'chefId': chef_id}, {'_id': 1}):
                return chef_id
        raise ServerError('Could not allocate a chef id')

    def approve(self, user_id):
        """Apply the pending role in a single conditional update

        The filter pins the request and the chefId seen when reading, so a
        concurrent approval or decline makes this update miss instead of
        assigning a second chefId.
        """
        oid = object_id(user_id)
        user = self.users.find_one({'_id': oid})
        if not user or not user.get('roleRequest'):
            raise NotFound('No pending request')

        requested = user['roleRequest']
        query = {'_id': oid, 'roleRequest': requested}
        changes = {'role': requested}

        if requested == 'chef':
            if user.get('chefId'):
                query['chefId'] = user['chefId']
            else:
                query['chefId'] = None
                changes['chefId'] = self.generate_chef_id()

        updated = self.users.find_one_and_update(
            query,
            {'$set': changes, '$unset': {'roleRequest': ''}},
            projection=PUBLIC_PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotFound('No pending request')

        logger.info('✅ Role request approved: user=%s role=%s chefId=%s',
                    oid, requested, updated.get('chefId'))
        return updated

    def decline(self, user_id):
        updated = self.users.find_one_and_update(
            {'_id': object_id(user_id)},
            {'$unset': {'roleRequest': ''}},
            projection=PUBLIC_PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise NotFound('User not found')
        return updated


# ==================== REGISTRATION & PROFILE ====================

@users_bp.route('/users', methods=['POST'])
def register():
    """Register a user (role always starts as "user")"""
    body = parse_body(UserCreate)
    users = get_db()[USERS]

    existing = users.find_one({'email': body.email}, PUBLIC_PROJECTION)
    if existing:
        return json_response({
            'success': True,
            'message': 'User already exists',
            'data': existing
        })

    identity = Identity(
        name=body.name.strip() if body.name else None,
        email=body.email,
        photoURL=body.photoURL,
        address=body.address,
        password=generate_password_hash(body.password) if body.password else None,
    )
    user_data = identity.model_dump(exclude_none=True)

    try:
        result = users.insert_one(user_data)
    except DuplicateKeyError:
        existing = users.find_one({'email': body.email}, PUBLIC_PROJECTION)
        return json_response({
            'success': True,
            'message': 'User already exists',
            'data': existing
        })

    user_data.pop('password', None)
    user_data['_id'] = result.inserted_id
    logger.info('📝 User registered: %s', body.email)

    return json_response({'success': True, 'data': user_data}, 201)


@users_bp.route('/users', methods=['GET'])
@protect
@authorize('admin')
def list_users():
    """All users (admin only)"""
    users = list(get_db()[USERS].find({}, PUBLIC_PROJECTION))
    return json_response({'success': True, 'data': users})


@users_bp.route('/users/admins', methods=['GET'])
@protect
@authorize('admin')
def list_admins():
    admins = list(get_db()[USERS].find({'role': 'admin'}, PUBLIC_PROJECTION))
    return json_response({'success': True, 'data': admins})


@users_bp.route('/users/chefs', methods=['GET'])
def list_chefs():
    """Public chef directory"""
    chefs = list(get_db()[USERS].find({'role': 'chef'}, PUBLIC_PROJECTION))
    return json_response({'success': True, 'data': chefs})


@users_bp.route('/users/role/<email>', methods=['GET'])
@protect
def get_own_role(email):
    """Role, status and chefId of the caller"""
    require_self(current_email(), email)

    user = get_db()[USERS].find_one(
        {'email': normalize_email(email)},
        {'role': 1, 'status': 1, 'chefId': 1, 'email': 1, 'name': 1}
    )
    if not user:
        return json_response({'role': 'user', 'status': 'active', 'chefId': None}, 404)

    return json_response({
        'role': user.get('role') or 'user',
        'status': user.get('status') or 'active',
        'chefId': user.get('chefId'),
    })


@users_bp.route('/users/<email>', methods=['GET'])
@protect
def get_own_profile(email):
    require_self(current_email(), email)

    user = get_db()[USERS].find_one({'email': normalize_email(email)}, PUBLIC_PROJECTION)
    if not user:
        raise NotFound('User not found')

    return json_response({'success': True, 'data': user})


@users_bp.route('/users/<email>', methods=['PATCH'])
@protect
def update_own_profile(email):
    """Update name, photo or address of the caller"""
    require_self(current_email(), email)
    body = parse_body(ProfileUpdate)

    update_data = body.model_dump(exclude_none=True)
    if 'name' in update_data:
        update_data['name'] = update_data['name'].strip()

    users = get_db()[USERS]
    if update_data:
        updated = users.find_one_and_update(
            {'email': normalize_email(email)},
            {'$set': update_data},
            projection=PUBLIC_PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
    else:
        updated = users.find_one({'email': normalize_email(email)}, PUBLIC_PROJECTION)

    if not updated:
        raise NotFound('User not found')

    return json_response({'success': True, 'data': updated})


@users_bp.route('/users/<user_id>/status', methods=['PATCH'])
@protect
@authorize('admin')
def update_user_status(user_id):
    """Mark a user as fraud (or reinstate them)"""
    body = parse_body(UserStatusUpdate)

    updated = get_db()[USERS].find_one_and_update(
        {'_id': object_id(user_id)},
        {'$set': {'status': body.status}},
        projection=PUBLIC_PROJECTION,
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFound('User not found')

    logger.warning('🚩 User %s status set to %s by %s', user_id, body.status, g.user['email'])
    message = 'User marked as fraud' if body.status == 'fraud' else 'User status updated'
    return json_response({'success': True, 'message': message, 'data': updated})


# ==================== ROLE REQUESTS ====================

@users_bp.route('/role-request', methods=['POST'])
@protect
def submit_role_request():
    """Ask to become a chef or an admin"""
    body = parse_body(RoleRequestCreate)
    require_self(current_email(), body.email)

    updated = RoleRequestService(get_db()).submit(body.email, body.requestedRole)

    return json_response({
        'success': True,
        'message': 'Role request submitted',
        'data': updated
    })


@users_bp.route('/role-requests', methods=['GET'])
@protect
@authorize('admin')
def list_role_requests():
    requests = RoleRequestService(get_db()).pending()
    return json_response({'success': True, 'data': requests})


@users_bp.route('/role-requests/<user_id>/approve', methods=['PATCH'])
@protect
@authorize('admin')
def approve_role_request(user_id):
    updated = RoleRequestService(get_db()).approve(user_id)
    return json_response({
        'success': True,
        'message': 'Role updated successfully',
        'data': updated
    })


@users_bp.route('/role-requests/<user_id>/decline', methods=['PATCH'])
@protect
@authorize('admin')
def decline_role_request(user_id):
    updated = RoleRequestService(get_db()).decline(user_id)
    return json_response({
        'success': True,
        'message': 'Role request declined',
        'data': updated
    })
