# db/supplier_dal.py
from bson.objectid import ObjectId
from datetime import datetime
import logging
import re

from .activity_log_dal import add_activity
from .counter_dal import next_master_code

SUPPLIER_COLLECTION = 'suppliers'
TRANSACTION_COLLECTION = 'stock_transactions'
SUPPLIER_CODE_PREFIX = 'SUP'
SUPPLIER_FIELDS = ('supplier_name', 'address', 'phone', 'email')
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

logging.basicConfig(level=logging.INFO)

def _clean_supplier_fields(data):
    cleaned = {field: (data.get(field) or '').strip() for field in SUPPLIER_FIELDS if field in data}
    if cleaned.get('email') and not EMAIL_PATTERN.match(cleaned['email']):
        raise ValueError(f"Invalid email address: '{cleaned['email']}'.")
    return cleaned

def create_supplier(db_conn, supplier_data, user="System"):
    """
    Creates a new supplier document in the database.

    Args:
        supplier_data (dict): supplier_code (optional), supplier_name, address, phone, email.
        user (str): The username of the user performing the action.

    Returns:
        ObjectId: The ObjectId of the newly inserted supplier document.
    """
    try:
        fields = _clean_supplier_fields(supplier_data)
        if not fields.get('supplier_name'):
            raise ValueError("supplier_name is required.")
        code = (supplier_data.get('supplier_code') or '').strip().upper()
        if not code:
            code = next_master_code(db_conn, SUPPLIER_COLLECTION, 'supplier_code', SUPPLIER_CODE_PREFIX)
        if db_conn[SUPPLIER_COLLECTION].find_one({"supplier_code": code}):
            raise ValueError(f"A supplier with the code '{code}' already exists.")

        now = datetime.utcnow()
        supplier = {
            "supplier_code": code,
            "address": "",
            "phone": "",
            "email": "",
            **fields,
            "created_date": now,
            "updated_date": now,
            "updated_by": user,
        }
        result = db_conn[SUPPLIER_COLLECTION].insert_one(supplier)
        logging.info(f"Supplier created with ID: {result.inserted_id} by {user}")
        add_activity("CREATE_SUPPLIER", user, f"Created supplier: {code} - {supplier['supplier_name']}", result.inserted_id, SUPPLIER_COLLECTION)
        return result.inserted_id
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error creating supplier: {e}")
        raise

def get_supplier_by_id(db_conn, supplier_id):
    try:
        return db_conn[SUPPLIER_COLLECTION].find_one({"_id": ObjectId(supplier_id)})
    except Exception as e:
        logging.error(f"Error fetching supplier by ID {supplier_id}: {e}")
        raise

def get_supplier_by_code(db_conn, supplier_code):
    return db_conn[SUPPLIER_COLLECTION].find_one({"supplier_code": supplier_code})

def get_all_suppliers(db_conn, page=1, limit=25, search=None):
    """
    Fetches a paginated list of suppliers, optionally filtered by a search term.

    Returns:
        tuple: A list of supplier documents and the total count of matching documents.
    """
    try:
        query = {}
        if search:
            regex_query = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [
                {"supplier_code": regex_query},
                {"supplier_name": regex_query},
                {"phone": regex_query},
                {"email": regex_query},
            ]
        skip = (page - 1) * limit if limit > 0 else 0
        cursor = db_conn[SUPPLIER_COLLECTION].find(query).sort("supplier_name", 1).skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)
        return list(cursor), db_conn[SUPPLIER_COLLECTION].count_documents(query)
    except Exception as e:
        logging.error(f"Error fetching all suppliers: {e}")
        raise

def update_supplier(db_conn, supplier_id, update_data, user="System"):
    """
    Updates an existing supplier. The supplier code cannot change.

    Returns:
        int: The number of documents matched (0 or 1).
    """
    try:
        fields = _clean_supplier_fields(update_data)
        if 'supplier_name' in fields and not fields['supplier_name']:
            raise ValueError("supplier_name cannot be empty.")

        result = db_conn[SUPPLIER_COLLECTION].update_one(
            {"_id": ObjectId(supplier_id)},
            {"$set": {**fields, "updated_date": datetime.utcnow(), "updated_by": user}}
        )
        if result.matched_count > 0:
            logging.info(f"Supplier {supplier_id} updated by {user}")
            add_activity("UPDATE_SUPPLIER", user, f"Updated supplier ID: {supplier_id}", supplier_id, SUPPLIER_COLLECTION)
        return result.matched_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error updating supplier {supplier_id}: {e}")
        raise

def delete_supplier_by_id(db_conn, supplier_id, user="System"):
    try:
        supplier_oid = ObjectId(supplier_id)
        supplier = db_conn[SUPPLIER_COLLECTION].find_one({"_id": supplier_oid})
        if not supplier:
            return 0
        if db_conn[TRANSACTION_COLLECTION].find_one({"supplier_code": supplier['supplier_code']}):
            raise ValueError("Cannot delete a supplier with recorded purchases.")

        result = db_conn[SUPPLIER_COLLECTION].delete_one({"_id": supplier_oid})
        if result.deleted_count > 0:
            logging.info(f"Supplier {supplier_id} deleted.")
            add_activity("DELETE_SUPPLIER", user, f"Deleted supplier: {supplier['supplier_code']} - {supplier['supplier_name']}", supplier_oid, SUPPLIER_COLLECTION)
        return result.deleted_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error deleting supplier {supplier_id}: {e}")
        raise
