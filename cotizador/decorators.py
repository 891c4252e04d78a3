"""View decorators."""
from functools import wraps

from flask import jsonify
from flask_login import current_user


def api_login_required(f):
    """Like login_required, but answers JSON endpoints with 401 instead of a login redirect."""
    @wraps(f)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'error': 'Inicia sesión para acceder a esta página.'}), 401
        return f(*args, **kwargs)
    return wrapped
