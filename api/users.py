# api/users.py
from flask import Blueprint, request, jsonify
import logging
from bson import ObjectId

from auth_utils import permission_required, get_current_username, get_current_user_id
from db.user_dal import create_user, get_all_users, get_user_by_id, update_user, delete_user, serialize_user

users_bp = Blueprint(
    'users_bp',
    __name__,
    url_prefix='/api/users'
)

logging.basicConfig(level=logging.INFO)

@users_bp.route('', methods=['GET'])
@permission_required('users')
def handle_get_users():
    try:
        return jsonify({"data": [serialize_user(user) for user in get_all_users()]}), 200
    except Exception as e:
        logging.error(f"Error in handle_get_users: {e}")
        return jsonify({"message": "Failed to fetch users", "error": str(e)}), 500

@users_bp.route('', methods=['POST'])
@permission_required('users')
def handle_create_user():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400
    try:
        user_id = create_user(
            username=data.get('username'),
            password=data.get('password'),
            full_name=data.get('full_name'),
            role=data.get('role', 'staff'),
            user=get_current_username()
        )
        return jsonify({"message": "User created successfully", "data": serialize_user(get_user_by_id(user_id))}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_create_user: {e}")
        return jsonify({"message": "Failed to create user", "error": str(e)}), 500

@users_bp.route('/<user_id>', methods=['PUT'])
@permission_required('users')
def handle_update_user(user_id):
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400
    if not ObjectId.is_valid(user_id):
        return jsonify({"message": "Invalid user ID format"}), 400
    try:
        matched = update_user(user_id, data, user=get_current_username(), acting_user_id=get_current_user_id())
        if matched == 0:
            return jsonify({"message": "User not found"}), 404
        return jsonify({"message": "User updated successfully", "data": serialize_user(get_user_by_id(user_id))}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_update_user for ID {user_id}: {e}")
        return jsonify({"message": "Failed to update user", "error": str(e)}), 500

@users_bp.route('/<user_id>', methods=['DELETE'])
@permission_required('users')
def handle_delete_user(user_id):
    if not ObjectId.is_valid(user_id):
        return jsonify({"message": "Invalid user ID format"}), 400
    try:
        deleted = delete_user(user_id, user=get_current_username(), acting_user_id=get_current_user_id())
        if deleted == 0:
            return jsonify({"message": "User not found"}), 404
        return jsonify({"message": "User deleted successfully"}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_delete_user for ID {user_id}: {e}")
        return jsonify({"message": "Failed to delete user", "error": str(e)}), 500
