"""
Shared request/response helpers
"""

import re
from datetime import datetime, timezone
from urllib.parse import unquote

from bson import ObjectId
from bson.errors import InvalidId
from flask import jsonify, request
from pydantic import ValidationError

from .errors import InvalidInput

EMAIL_PATTERN = re.compile(r'^[\w\.\+-]+@[\w\.-]+\.\w{2,}$')


def json_response(data, status=200):
    """Helper to create JSON response with proper ObjectId handling"""
    return jsonify(convert_objectid(data)), status


def convert_objectid(obj):
    """Recursively convert ObjectId to string in dicts/lists"""
    if isinstance(obj, ObjectId):
        return str(obj)
    elif isinstance(obj, dict):
        return {k: convert_objectid(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_objectid(item) for item in obj]
    elif isinstance(obj, datetime):
        return obj.isoformat()
    return obj


def utcnow():
    return datetime.now(timezone.utc)


def validate_email(email):
    """Validate email format"""
    return isinstance(email, str) and EMAIL_PATTERN.match(email) is not None


def normalize_email(email):
    """Lowercase and URL-decode an email taken from a path or body"""
    return unquote(email or '').strip().lower()


def object_id(value, label='id'):
    """Parse a path id into an ObjectId, failing with InvalidInput"""
    try:
        return ObjectId(str(value).strip())
    except (InvalidId, TypeError):
        raise InvalidInput(f'Invalid {label}')


def get_json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_body(model, data=None):
    """Validate the request body against a pydantic model"""
    payload = get_json_body() if data is None else data
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidInput(describe_validation_error(e))


def describe_validation_error(error):
    first = error.errors()[0]
    field = '.'.join(str(part) for part in first.get('loc', ())) or 'body'
    return f"{field}: {first.get('msg', 'invalid value')}"
