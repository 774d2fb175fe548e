# db/area_dal.py
from bson.objectid import ObjectId
from datetime import datetime
import logging
import re

from .activity_log_dal import add_activity
from .counter_dal import next_master_code

AREA_COLLECTION = 'areas'
CUSTOMER_COLLECTION = 'customers'
AREA_CODE_PREFIX = 'AREA'
logging.basicConfig(level=logging.INFO)

def create_area(db_conn, area_data, user="System"):
    """ Creates a sales area. Codes are stored upper-case. """
    try:
        name = (area_data.get('area_name') or '').strip()
        if not name:
            raise ValueError("area_name is required.")
        code = (area_data.get('area_code') or '').strip().upper()
        if not code:
            code = next_master_code(db_conn, AREA_COLLECTION, 'area_code', AREA_CODE_PREFIX)

        if db_conn[AREA_COLLECTION].find_one({"area_code": code}):
            raise ValueError(f"An area with the code '{code}' already exists.")
        if db_conn[AREA_COLLECTION].find_one({"area_name": {"$regex": f"^{re.escape(name)}$", "$options": "i"}}):
            raise ValueError(f"An area with the name '{name}' already exists.")

        now = datetime.utcnow()
        result = db_conn[AREA_COLLECTION].insert_one({
            "area_code": code,
            "area_name": name,
            "created_date": now,
            "updated_date": now,
            "updated_by": user,
        })
        logging.info(f"Area '{code}' created with ID: {result.inserted_id}")
        add_activity("CREATE_AREA", user, f"Created area: {code} - {name}", result.inserted_id, AREA_COLLECTION)
        return result.inserted_id
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error creating area: {e}")
        raise

def get_area_by_id(db_conn, area_id):
    return db_conn[AREA_COLLECTION].find_one({"_id": ObjectId(area_id)})

def get_area_by_code(db_conn, area_code):
    return db_conn[AREA_COLLECTION].find_one({"area_code": (area_code or '').upper()})

def get_all_areas(db_conn, page=1, limit=-1, search=None):
    try:
        query = {}
        if search:
            regex_query = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"area_code": regex_query}, {"area_name": regex_query}]
        skip = (page - 1) * limit if limit > 0 else 0
        cursor = db_conn[AREA_COLLECTION].find(query).sort("area_code", 1).skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)
        return list(cursor), db_conn[AREA_COLLECTION].count_documents(query)
    except Exception as e:
        logging.error(f"Error fetching areas: {e}")
        raise

def update_area(db_conn, area_id, update_data, user="System"):
    try:
        area_oid = ObjectId(area_id)
        name = (update_data.get('area_name') or '').strip()
        if not name:
            raise ValueError("area_name is required.")
        duplicate = db_conn[AREA_COLLECTION].find_one({
            "_id": {"$ne": area_oid},
            "area_name": {"$regex": f"^{re.escape(name)}$", "$options": "i"}
        })
        if duplicate:
            raise ValueError(f"Another area with the name '{name}' already exists.")

        result = db_conn[AREA_COLLECTION].update_one(
            {"_id": area_oid},
            {"$set": {"area_name": name, "updated_date": datetime.utcnow(), "updated_by": user}}
        )
        if result.matched_count > 0:
            add_activity("UPDATE_AREA", user, f"Updated area: {name}", area_oid, AREA_COLLECTION)
        return result.matched_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error updating area {area_id}: {e}")
        raise

def delete_area_by_id(db_conn, area_id, user="System"):
    try:
        area_oid = ObjectId(area_id)
        area = db_conn[AREA_COLLECTION].find_one({"_id": area_oid})
        if not area:
            return 0
        if db_conn[CUSTOMER_COLLECTION].find_one({"area_code": area['area_code']}):
            raise ValueError("Cannot delete an area that still has customers.")
        result = db_conn[AREA_COLLECTION].delete_one({"_id": area_oid})
        if result.deleted_count > 0:
            logging.info(f"Area {area['area_code']} deleted by {user}")
            add_activity("DELETE_AREA", user, f"Deleted area: {area['area_code']} - {area['area_name']}", area_oid, AREA_COLLECTION)
        return result.deleted_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error deleting area {area_id}: {e}")
        raise
