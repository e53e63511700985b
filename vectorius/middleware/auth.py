"""
Authentication Middleware - decorators that resolve the caller's identity
"""
from functools import wraps

from flask_login import current_user

from vectorius.exceptions import AuthenticationException


def session_required(f):
    """Reject anonymous callers and hand the resolved identity to the view as ``identity``"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            raise AuthenticationException()
        kwargs["identity"] = current_user._get_current_object()
        return f(*args, **kwargs)
    return decorated_function
