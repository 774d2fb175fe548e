# db/customer_dal.py
from bson.objectid import ObjectId
from datetime import datetime
import logging
import re

from .activity_log_dal import add_activity
from .area_dal import get_area_by_code
from .counter_dal import next_master_code

CUSTOMER_COLLECTION = 'customers'
TRANSACTION_COLLECTION = 'stock_transactions'
CUSTOMER_CODE_PREFIX = 'CST'
CUSTOMER_FIELDS = ('customer_name', 'address', 'phone', 'contact_person', 'area_code')
logging.basicConfig(level=logging.INFO)

def _clean_customer_fields(db_conn, data):
    cleaned = {field: (data.get(field) or '').strip() for field in CUSTOMER_FIELDS if field in data}
    if cleaned.get('area_code'):
        cleaned['area_code'] = cleaned['area_code'].upper()
        if not get_area_by_code(db_conn, cleaned['area_code']):
            raise ValueError(f"Area '{cleaned['area_code']}' does not exist.")
    return cleaned

def create_customer(db_conn, customer_data, user="System"):
    """
    Creates a new customer. The customer code is generated (CST###) when not supplied
    and the area, when given, must exist.
    """
    try:
        fields = _clean_customer_fields(db_conn, customer_data)
        if not fields.get('customer_name'):
            raise ValueError("customer_name is required.")

        code = (customer_data.get('customer_code') or '').strip().upper()
        if not code:
            code = next_master_code(db_conn, CUSTOMER_COLLECTION, 'customer_code', CUSTOMER_CODE_PREFIX)
        if db_conn[CUSTOMER_COLLECTION].find_one({"customer_code": code}):
            raise ValueError(f"A customer with the code '{code}' already exists.")

        now = datetime.utcnow()
        customer = {
            "customer_code": code,
            "address": "",
            "phone": "",
            "contact_person": "",
            "area_code": "",
            **fields,
            "created_date": now,
            "updated_date": now,
            "updated_by": user,
        }
        result = db_conn[CUSTOMER_COLLECTION].insert_one(customer)
        logging.info(f"Customer '{customer['customer_name']}' created with ID: {result.inserted_id}")
        add_activity("CREATE_CUSTOMER", user, f"Created customer: {code} - {customer['customer_name']}", result.inserted_id, CUSTOMER_COLLECTION)
        return result.inserted_id
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error creating customer: {e}")
        raise

def get_customer_by_id(db_conn, customer_id):
    try:
        return db_conn[CUSTOMER_COLLECTION].find_one({"_id": ObjectId(customer_id)})
    except Exception as e:
        logging.error(f"Error fetching customer by ID {customer_id}: {e}")
        raise

def get_customer_by_code(db_conn, customer_code):
    return db_conn[CUSTOMER_COLLECTION].find_one({"customer_code": customer_code})

def get_all_customers(db_conn, page=1, limit=25, search=None, area_code=None):
    try:
        query = {}
        if search:
            regex_query = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [
                {"customer_code": regex_query},
                {"customer_name": regex_query},
                {"contact_person": regex_query},
                {"phone": regex_query},
            ]
        if area_code:
            query["area_code"] = area_code.upper()

        skip = (page - 1) * limit if limit > 0 else 0
        cursor = db_conn[CUSTOMER_COLLECTION].find(query).sort("customer_name", 1).skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)
        return list(cursor), db_conn[CUSTOMER_COLLECTION].count_documents(query)
    except Exception as e:
        logging.error(f"Error fetching customers: {e}")
        raise

def update_customer(db_conn, customer_id, update_data, user="System"):
    try:
        fields = _clean_customer_fields(db_conn, update_data)
        if 'customer_name' in fields and not fields['customer_name']:
            raise ValueError("customer_name cannot be empty.")

        customer_oid = ObjectId(customer_id)
        result = db_conn[CUSTOMER_COLLECTION].update_one(
            {"_id": customer_oid},
            {"$set": {**fields, "updated_date": datetime.utcnow(), "updated_by": user}}
        )
        if result.matched_count > 0:
            logging.info(f"Customer {customer_id} updated by {user}")
            add_activity("UPDATE_CUSTOMER", user, f"Updated customer ID: {customer_id}", customer_oid, CUSTOMER_COLLECTION)
        return result.matched_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error updating customer {customer_id}: {e}")
        raise

def delete_customer_by_id(db_conn, customer_id, user="System"):
    try:
        customer_oid = ObjectId(customer_id)
        customer = db_conn[CUSTOMER_COLLECTION].find_one({"_id": customer_oid})
        if not customer:
            return 0
        if db_conn[TRANSACTION_COLLECTION].find_one({"customer_code": customer['customer_code']}):
            raise ValueError("Cannot delete a customer with recorded transactions.")

        result = db_conn[CUSTOMER_COLLECTION].delete_one({"_id": customer_oid})
        if result.deleted_count > 0:
            logging.info(f"Customer {customer_id} deleted by {user}")
            add_activity("DELETE_CUSTOMER", user, f"Deleted customer: {customer['customer_code']} - {customer['customer_name']}", customer_oid, CUSTOMER_COLLECTION)
        return result.deleted_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error deleting customer {customer_id}: {e}")
        raise
