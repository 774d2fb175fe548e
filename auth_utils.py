# auth_utils.py
from functools import wraps
from flask import jsonify
from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity, current_user
import logging

logging.basicConfig(level=logging.INFO)

ROLE_PERMISSIONS = {
    'owner': {'dashboard', 'master', 'transactions', 'reports', 'users', 'activity_log'},
    'admin': {'dashboard', 'master', 'transactions', 'reports', 'activity_log'},
    'staff': {'dashboard', 'transactions', 'reports'},
}

def has_permission(role, permission):
    return permission in ROLE_PERMISSIONS.get(role, set())

def permission_required(permission):
    """
    Protects a route with a JWT and checks that the user's current role grants `permission`.
    The role is read from the stored user, so role changes apply to tokens already issued.
    """
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            role = current_user.get("role")
            if not has_permission(role, permission):
                logging.warning(f"Access denied: user '{current_user.get('username')}' with role '{role}' lacks '{permission}'.")
                return jsonify({"message": "You do not have permission to access this resource."}), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator

def get_current_username():
    """Username from the JWT of the current request."""
    return get_jwt().get("username", "System")

def get_current_user_id():
    return get_jwt_identity()
