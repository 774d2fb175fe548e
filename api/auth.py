# api/auth.py
from flask import Blueprint, request, jsonify
import logging
from flask_jwt_extended import create_access_token, jwt_required

from auth_utils import ROLE_PERMISSIONS, get_current_user_id, get_current_username
from db.user_dal import (
    count_users, create_user, get_user_by_username, get_user_by_id, verify_password,
    record_login, record_logout, serialize_user
)

auth_bp = Blueprint(
    'auth_bp',
    __name__,
    url_prefix='/api/auth'
)

logging.basicConfig(level=logging.INFO)

@auth_bp.route('/bootstrap-status', methods=['GET'])
def bootstrap_status():
    """Tells the UI whether the owner account still has to be created."""
    try:
        return jsonify({"needsSetup": count_users() == 0}), 200
    except Exception as e:
        logging.error(f"Error reading bootstrap status: {e}")
        return jsonify({"message": "Failed to read bootstrap status"}), 500

@auth_bp.route('/setup-owner', methods=['POST'])
def setup_owner():
    """Creates the first account as owner. Only allowed while no user exists."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "Invalid JSON provided"}), 400
    if not data.get('username') or not data.get('password'):
        return jsonify({"message": "Username and password are required"}), 400

    try:
        if count_users() > 0:
            return jsonify({"message": "The owner account has already been set up."}), 409
        user_id = create_user(
            username=data['username'],
            password=data['password'],
            full_name=data.get('full_name'),
            role='owner',
            user=data['username']
        )
        logging.info(f"Owner account '{data['username']}' created with ID {user_id}")
        return jsonify({"message": "Owner account created successfully", "userId": str(user_id)}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error during owner setup: {e}")
        return jsonify({"message": "An error occurred during owner setup."}), 500

@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Login endpoint. On success, it returns a JWT with the role and username embedded.
    """
    data = request.get_json(silent=True)
    if not data or not data.get('username') or not data.get('password'):
        return jsonify({"message": "Username and password are required"}), 400

    username = data['username']
    password = data['password']

    try:
        user = get_user_by_username(username)
        if user and verify_password(user['password_hash'], password):
            if not user.get('is_active', True):
                return jsonify({"message": "User account is inactive"}), 403

            role = user.get('role', 'staff')
            access_token = create_access_token(
                identity=str(user['_id']),
                additional_claims={"role": role, "username": user['username']}
            )
            record_login(user['_id'], user['username'])

            logging.info(f"User '{username}' logged in successfully with role '{role}'.")
            return jsonify(
                access_token=access_token,
                user=serialize_user(user),
                permissions=sorted(ROLE_PERMISSIONS.get(role, set()))
            ), 200
        else:
            logging.warning(f"Invalid login attempt for username: {username}")
            return jsonify({"message": "Invalid username or password"}), 401

    except Exception as e:
        logging.error(f"Error during login for {username}: {e}")
        return jsonify({"message": "An error occurred during login"}), 500

@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    """Records the logout. The desktop shell triggers this before the window closes."""
    try:
        record_logout(get_current_user_id(), get_current_username())
        return jsonify({"message": "Logged out"}), 200
    except Exception as e:
        logging.error(f"Error during logout: {e}")
        return jsonify({"message": "An error occurred during logout"}), 500

@auth_bp.route('/profile', methods=['GET'])
@jwt_required()
def profile():
    """Fetches the profile information for the currently logged-in user."""
    user = get_user_by_id(get_current_user_id())
    if not user:
        return jsonify({"message": "User not found"}), 404

    role = user.get('role', 'staff')
    return jsonify({**serialize_user(user), "permissions": sorted(ROLE_PERMISSIONS.get(role, set()))}), 200
