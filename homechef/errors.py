"""
API error hierarchy

Every failure a handler can report maps to one of these classes. The
application error handler turns them into ``{success: False, message}``
responses with the class status code.
"""


class ApiError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'success': False, 'message': self.message}


class Unauthorized(ApiError):
    status_code = 401
    default_message = 'Unauthorized'


class Forbidden(ApiError):
    status_code = 403
    default_message = 'Forbidden access'


class NotFound(ApiError):
    status_code = 404
    default_message = 'Not found'


class InvalidInput(ApiError):
    status_code = 400
    default_message = 'Invalid input'


class InvalidState(ApiError):
    status_code = 400
    default_message = 'Operation not allowed in the current state'


class ServerError(ApiError):
    status_code = 500
    default_message = 'Server error'
