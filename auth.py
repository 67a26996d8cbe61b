import secrets
from functools import wraps

from flask import jsonify, request

import store


def request_payload():
    """The JSON body when it is an object, otherwise an empty dict."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def secret_matches(provided, stored):
    if not stored or not isinstance(provided, str):
        return False
    return secrets.compare_digest(provided.encode("utf-8"), stored.encode("utf-8"))


def vote_password_allows(provided, required):
    # No password configured means open terminals
    if not required:
        return True
    return secret_matches(provided, required)


def admin_authorized(allow_body=False):
    provided = request.headers.get("x-admin-code")
    if not provided and allow_body:
        provided = request_payload().get("admin_code")
    config = store.get_config()
    if config is None:
        return False
    return secret_matches(provided, config.admin_code)


# --- Decorators ---
def admin_code_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not admin_authorized():
            return jsonify(error="Unauthorized"), 401
        return f(*args, **kwargs)
    return decorated_function


def vote_password_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        required = store.get_vote_password()
        if not vote_password_allows(request.headers.get("x-vote-password"), required):
            return jsonify(error="Terminal not authorized"), 401
        return f(*args, **kwargs)
    return decorated_function
