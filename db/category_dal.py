# db/category_dal.py
from bson.objectid import ObjectId
from datetime import datetime
import logging
import re

from .activity_log_dal import add_activity
from .counter_dal import next_master_code

CATEGORY_COLLECTION = 'categories'
ITEM_COLLECTION = 'items'
CATEGORY_CODE_PREFIX = 'CAT'
logging.basicConfig(level=logging.INFO)

def _exact(value):
    return {"$regex": f"^{re.escape(value)}$", "$options": "i"}

def create_category(db_conn, category_data, user="System"):
    """
    Creates a new category. A code is generated when none is given.
    Both code and name must be unique (case-insensitive).
    """
    try:
        name = (category_data.get('category_name') or '').strip()
        if not name:
            raise ValueError("category_name is required.")
        code = (category_data.get('category_code') or '').strip().upper()
        if not code:
            code = next_master_code(db_conn, CATEGORY_COLLECTION, 'category_code', CATEGORY_CODE_PREFIX)

        if db_conn[CATEGORY_COLLECTION].find_one({"category_code": _exact(code)}):
            raise ValueError(f"A category with the code '{code}' already exists.")
        if db_conn[CATEGORY_COLLECTION].find_one({"category_name": _exact(name)}):
            raise ValueError(f"A category with the name '{name}' already exists.")

        now = datetime.utcnow()
        category = {
            "category_code": code,
            "category_name": name,
            "created_date": now,
            "updated_date": now,
            "updated_by": user,
        }
        result = db_conn[CATEGORY_COLLECTION].insert_one(category)
        logging.info(f"Category '{name}' created with ID: {result.inserted_id}")
        add_activity("CREATE_CATEGORY", user, f"Created category: {code} - {name}", result.inserted_id, CATEGORY_COLLECTION)
        return result.inserted_id
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error creating category: {e}")
        raise

def get_category_by_id(db_conn, category_id):
    return db_conn[CATEGORY_COLLECTION].find_one({"_id": ObjectId(category_id)})

def get_category_by_code(db_conn, category_code):
    return db_conn[CATEGORY_COLLECTION].find_one({"category_code": category_code})

def get_all_categories(db_conn, page=1, limit=-1, search=None):
    try:
        query = {}
        if search:
            regex_query = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"category_code": regex_query}, {"category_name": regex_query}]

        skip = (page - 1) * limit if limit > 0 else 0
        cursor = db_conn[CATEGORY_COLLECTION].find(query).sort("category_name", 1).skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)
        return list(cursor), db_conn[CATEGORY_COLLECTION].count_documents(query)
    except Exception as e:
        logging.error(f"Error fetching categories: {e}")
        raise

def update_category(db_conn, category_id, update_data, user="System"):
    """
    Renames a category. The code is immutable since items reference it.
    """
    try:
        category_oid = ObjectId(category_id)
        name = (update_data.get('category_name') or '').strip()
        if not name:
            raise ValueError("category_name is required.")
        if db_conn[CATEGORY_COLLECTION].find_one({"_id": {"$ne": category_oid}, "category_name": _exact(name)}):
            raise ValueError(f"Another category with the name '{name}' already exists.")

        result = db_conn[CATEGORY_COLLECTION].update_one(
            {"_id": category_oid},
            {"$set": {"category_name": name, "updated_date": datetime.utcnow(), "updated_by": user}}
        )
        if result.matched_count > 0:
            logging.info(f"Category {category_id} updated by {user}")
            add_activity("UPDATE_CATEGORY", user, f"Updated category: {name}", category_oid, CATEGORY_COLLECTION)
        return result.matched_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error updating category {category_id}: {e}")
        raise

def delete_category_by_id(db_conn, category_id, user="System"):
    try:
        category_oid = ObjectId(category_id)
        category = db_conn[CATEGORY_COLLECTION].find_one({"_id": category_oid})
        if not category:
            return 0
        if db_conn[ITEM_COLLECTION].find_one({"category_code": category['category_code']}):
            raise ValueError("Cannot delete a category that is still used by items.")

        result = db_conn[CATEGORY_COLLECTION].delete_one({"_id": category_oid})
        if result.deleted_count > 0:
            logging.info(f"Category {category_id} deleted by {user}")
            add_activity("DELETE_CATEGORY", user, f"Deleted category: {category['category_code']} - {category['category_name']}", category_oid, CATEGORY_COLLECTION)
        return result.deleted_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error deleting category {category_id}: {e}")
        raise
