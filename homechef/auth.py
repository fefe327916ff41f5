"""
Session tokens and authorization guards

A session is a signed JWT carrying the caller's email, delivered in an
HTTP-only cookie. Expiry is the only way a token stops working; logout just
tells the browser to drop the cookie.
"""

import logging
from datetime import timedelta
from functools import wraps

import jwt
from flask import Blueprint, current_app, g, request

from .config import is_production
from .errors import Forbidden, Unauthorized
from .extensions import USERS, get_db
from .helpers import json_response, normalize_email, parse_body, utcnow
from .schemas import SessionRequest

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

COOKIE_NAME = 'token'
ALGORITHM = 'HS256'


# ==================== TOKENS ====================

def issue_session(email, expires_in=None):
    """Sign a session token for ``email``"""
    if expires_in is None:
        expires_in = timedelta(days=current_app.config['JWT_EXPIRE_DAYS'])
    payload = {
        'email': normalize_email(email),
        'exp': utcnow() + expires_in,
    }
    return jwt.encode(payload, current_app.config['ACCESS_TOKEN_SECRET'], algorithm=ALGORITHM)


def verify_session(token):
    """Return the ``{email}`` claim of a valid token or raise Unauthorized"""
    if not token:
        raise Unauthorized('Unauthorized')
    try:
        payload = jwt.decode(
            token,
            current_app.config['ACCESS_TOKEN_SECRET'],
            algorithms=[ALGORITHM],
            options={'require': ['exp', 'email']},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized('Token has expired')
    except jwt.InvalidTokenError:
        raise Unauthorized('Invalid token')
    return {'email': normalize_email(payload['email'])}


def _cookie_options():
    if is_production(current_app.config):
        return {'httponly': True, 'secure': True, 'samesite': 'None'}
    return {'httponly': True, 'secure': False, 'samesite': 'Lax'}


# ==================== MIDDLEWARE ====================

def protect(f):
    """Require a valid session cookie; stores the claim on ``g.decoded``"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.decoded = verify_session(request.cookies.get(COOKIE_NAME))
        return f(*args, **kwargs)
    return decorated_function


def current_email():
    return g.decoded['email']


def find_identity(email):
    return get_db()[USERS].find_one({'email': normalize_email(email)})


def require_role(email, *roles):
    """Return the persisted identity of ``email`` if its role is one of ``roles``"""
    user = find_identity(email)
    if not user or user.get('role', 'user') not in roles:
        raise Forbidden('Forbidden access')
    return user


def require_self(session_email, path_email):
    """Self-service check: the session must belong to the addressed email"""
    if normalize_email(session_email) != normalize_email(path_email):
        raise Forbidden('Forbidden access')


def authorize(*roles):
    """Role authorization decorator; use below ``protect``"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            g.user = require_role(current_email(), *roles)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


# ==================== ROUTES ====================

@auth_bp.route('/jwt', methods=['POST'])
def create_session():
    """Issue a session cookie for an email"""
    body = parse_body(SessionRequest)
    token = issue_session(body.email)

    response, status = json_response({'success': True})
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=int(timedelta(days=current_app.config['JWT_EXPIRE_DAYS']).total_seconds()),
        **_cookie_options()
    )
    logger.info('🔐 Session issued for %s', body.email)
    return response, status


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Clear the session cookie"""
    response, status = json_response({'success': True})
    response.delete_cookie(COOKIE_NAME, **_cookie_options())
    return response, status
