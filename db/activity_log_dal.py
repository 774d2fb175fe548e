# db/activity_log_dal.py
from datetime import datetime, timedelta
import logging
import re
from bson import ObjectId

from .database import mongo

ACTIVITY_LOG_COLLECTION = 'activity_log'

def add_activity(action_type, user, details, document_id=None, collection_name=None):
    """
    Adds an entry to the activity log.

    Args:
        action_type (str): Type of action (e.g., "CREATE_ITEM", "LOGIN").
        user (str): User performing the action.
        details (str): A descriptive string of the action.
        document_id (ObjectId or str, optional): The ID of the document affected.
        collection_name (str, optional): The name of the collection affected.
    """
    try:
        db = mongo.db
        log_entry = {
            "timestamp": datetime.utcnow(),
            "action_type": action_type,
            "user": user,
            "details": details,
        }
        if document_id:
            log_entry["document_id"] = ObjectId(document_id) if not isinstance(document_id, ObjectId) else document_id
        if collection_name:
            log_entry["collection_name"] = collection_name

        result = db[ACTIVITY_LOG_COLLECTION].insert_one(log_entry)
        logging.info(f"Activity logged: {action_type} by {user}. Log ID: {result.inserted_id}")
        return result.inserted_id
    except Exception as e:
        # Not re-raised: the calling operation has already been committed.
        logging.error(f"Error logging activity: {e}")

def get_activities(db_conn, page=1, limit=50, user=None, action_type=None, search=None, start_date=None, end_date=None):
    """
    Fetches activity log entries, newest first.

    Args:
        start_date, end_date (date, optional): Inclusive range on the entry's timestamp.

    Returns:
        tuple: (list of entries, total count of matching entries)
    """
    try:
        query = {}
        if user:
            query["user"] = user
        if action_type:
            query["action_type"] = action_type
        if search:
            query["details"] = {"$regex": re.escape(search), "$options": "i"}
        if start_date or end_date:
            query["timestamp"] = {}
            if start_date:
                query["timestamp"]["$gte"] = datetime.combine(start_date, datetime.min.time())
            if end_date:
                query["timestamp"]["$lt"] = datetime.combine(end_date + timedelta(days=1), datetime.min.time())

        skip = (page - 1) * limit if limit > 0 else 0
        cursor = db_conn[ACTIVITY_LOG_COLLECTION].find(query).sort("timestamp", -1).skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)
        entries = list(cursor)
        total = db_conn[ACTIVITY_LOG_COLLECTION].count_documents(query)
        return entries, total
    except Exception as e:
        logging.error(f"Error fetching activity log: {e}")
        raise
