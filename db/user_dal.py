# db/user_dal.py
from bson.objectid import ObjectId
from datetime import datetime
import logging
import re
from werkzeug.security import generate_password_hash, check_password_hash

from .database import mongo
from .activity_log_dal import add_activity
from utils.helpers import to_bool

USER_COLLECTION = 'users'
ROLES = ('owner', 'admin', 'staff')
MIN_PASSWORD_LENGTH = 6

def _validate_role(role):
    if role not in ROLES:
        raise ValueError(f"Invalid role '{role}'. Must be one of: {', '.join(ROLES)}.")

def _validate_password(password):
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")

def serialize_user(user):
    """Strips the password hash before a user document leaves the API."""
    if not user:
        return None
    user = dict(user)
    user.pop('password_hash', None)
    user['_id'] = str(user['_id'])
    return user

def count_users():
    return mongo.db[USER_COLLECTION].count_documents({})

def create_user(username, password, full_name=None, role='staff', user="System"):
    """
    Creates a new user document with a hashed password.

    Raises:
        ValueError: If the username is taken, or the role/password is invalid.
    """
    try:
        username = (username or '').strip()
        if not username:
            raise ValueError("Username is required.")
        _validate_role(role)
        _validate_password(password)

        db = mongo.db
        if db[USER_COLLECTION].find_one({"username": {"$regex": f"^{re.escape(username)}$", "$options": "i"}}):
            raise ValueError(f"Username '{username}' already exists.")

        now = datetime.utcnow()
        new_user = {
            "username": username,
            "password_hash": generate_password_hash(password),
            "full_name": full_name or username,
            "role": role,
            "is_active": True,
            "last_login": None,
            "last_logout": None,
            "created_date": now,
            "updated_date": now,
            "updated_by": user,
        }

        result = db[USER_COLLECTION].insert_one(new_user)
        logging.info(f"User '{username}' created with ID: {result.inserted_id} and role '{role}'")
        add_activity("CREATE_USER", user, f"Created user: {username} ({role})", result.inserted_id, USER_COLLECTION)
        return result.inserted_id
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error creating user '{username}': {e}")
        raise

def get_user_by_username(username):
    try:
        return mongo.db[USER_COLLECTION].find_one({"username": username})
    except Exception as e:
        logging.error(f"Error fetching user by username '{username}': {e}")
        raise

def get_user_by_id(user_id):
    try:
        return mongo.db[USER_COLLECTION].find_one({"_id": ObjectId(user_id)})
    except Exception as e:
        logging.error(f"Error fetching user by ID {user_id}: {e}")
        raise

def get_active_user(user_id):
    """The user behind a token, or None when it no longer exists or was deactivated."""
    if not ObjectId.is_valid(user_id):
        return None
    user = mongo.db[USER_COLLECTION].find_one({"_id": ObjectId(user_id)})
    if not user or not user.get("is_active", True):
        return None
    return user

def verify_password(password_hash, password):
    """
    Verifies a password against a stored hash.
    """
    return check_password_hash(password_hash, password)

def get_all_users():
    try:
        return list(mongo.db[USER_COLLECTION].find({}).sort("username", 1))
    except Exception as e:
        logging.error(f"Error fetching users: {e}")
        raise

def _count_active_owners(exclude_id=None):
    query = {"role": "owner", "is_active": True}
    if exclude_id:
        query["_id"] = {"$ne": exclude_id}
    return mongo.db[USER_COLLECTION].count_documents(query)

def update_user(user_id, update_data, user="System", acting_user_id=None):
    """
    Updates full name, role, active flag and/or password of a user.

    Returns:
        int: The number of documents matched (0 or 1).
    """
    try:
        db = mongo.db
        user_oid = ObjectId(user_id)
        existing = db[USER_COLLECTION].find_one({"_id": user_oid})
        if not existing:
            return 0

        changes = {}
        if 'full_name' in update_data:
            changes['full_name'] = update_data['full_name']
        if 'role' in update_data:
            _validate_role(update_data['role'])
            changes['role'] = update_data['role']
        if 'is_active' in update_data:
            changes['is_active'] = to_bool(update_data['is_active'], 'is_active')
        if update_data.get('password'):
            _validate_password(update_data['password'])
            changes['password_hash'] = generate_password_hash(update_data['password'])

        is_self = acting_user_id is not None and str(acting_user_id) == str(user_oid)
        demoted = existing.get('role') == 'owner' and (
            changes.get('role', 'owner') != 'owner' or changes.get('is_active', True) is False
        )
        if demoted:
            if is_self:
                raise ValueError("You cannot demote or deactivate your own owner account.")
            if _count_active_owners(exclude_id=user_oid) == 0:
                raise ValueError("At least one active owner account must remain.")

        if not changes:
            return 1

        changes['updated_date'] = datetime.utcnow()
        changes['updated_by'] = user
        result = db[USER_COLLECTION].update_one({"_id": user_oid}, {"$set": changes})
        if result.matched_count > 0:
            logging.info(f"User {user_id} updated by {user}")
            add_activity("UPDATE_USER", user, f"Updated user: {existing['username']}", user_oid, USER_COLLECTION)
        return result.matched_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error updating user {user_id}: {e}")
        raise

def delete_user(user_id, user="System", acting_user_id=None):
    try:
        db = mongo.db
        user_oid = ObjectId(user_id)
        existing = db[USER_COLLECTION].find_one({"_id": user_oid})
        if not existing:
            return 0
        if acting_user_id is not None and str(acting_user_id) == str(user_oid):
            raise ValueError("You cannot delete your own account.")
        if existing.get('role') == 'owner' and existing.get('is_active', True) and _count_active_owners(exclude_id=user_oid) == 0:
            raise ValueError("At least one active owner account must remain.")

        result = db[USER_COLLECTION].delete_one({"_id": user_oid})
        if result.deleted_count > 0:
            logging.info(f"User {user_id} ('{existing['username']}') deleted by {user}")
            add_activity("DELETE_USER", user, f"Deleted user: {existing['username']}", user_oid, USER_COLLECTION)
        return result.deleted_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error deleting user {user_id}: {e}")
        raise

def record_login(user_id, username):
    mongo.db[USER_COLLECTION].update_one({"_id": ObjectId(user_id)}, {"$set": {"last_login": datetime.utcnow()}})
    add_activity("LOGIN", username, f"User {username} logged in", user_id, USER_COLLECTION)

def record_logout(user_id, username):
    mongo.db[USER_COLLECTION].update_one({"_id": ObjectId(user_id)}, {"$set": {"last_logout": datetime.utcnow()}})
    add_activity("LOGOUT", username, f"User {username} logged out", user_id, USER_COLLECTION)
