# db/item_dal.py
from bson.objectid import ObjectId
from datetime import datetime, timedelta
import logging
import re
from pymongo import ReturnDocument

from .activity_log_dal import add_activity
from .category_dal import get_category_by_code
from utils.helpers import to_number

ITEM_COLLECTION = 'items'
MOVEMENT_COLLECTION = 'stock_movements'
UNITS = ('pcs', 'box', 'kg', 'liter')
EDITABLE_FIELDS = ('item_name', 'category_code', 'unit', 'min_stock', 'purchase_price', 'sale_price')
logging.basicConfig(level=logging.INFO)

def _clean_item_fields(db_conn, data):
    """Validates the editable item fields present in `data` and normalizes their types."""
    cleaned = {}
    if 'item_name' in data:
        cleaned['item_name'] = (data.get('item_name') or '').strip()
        if not cleaned['item_name']:
            raise ValueError("item_name is required.")
    if 'category_code' in data:
        category_code = (data.get('category_code') or '').strip().upper()
        if not category_code or not get_category_by_code(db_conn, category_code):
            raise ValueError(f"Category '{category_code}' does not exist.")
        cleaned['category_code'] = category_code
    if 'unit' in data:
        unit = (data.get('unit') or '').strip().lower()
        if unit not in UNITS:
            raise ValueError(f"Invalid unit '{unit}'. Must be one of: {', '.join(UNITS)}.")
        cleaned['unit'] = unit
    if 'min_stock' in data:
        cleaned['min_stock'] = to_number(data.get('min_stock'), 'min_stock', minimum=0)
    if 'purchase_price' in data:
        cleaned['purchase_price'] = to_number(data.get('purchase_price'), 'purchase_price', minimum=0)
    if 'sale_price' in data:
        cleaned['sale_price'] = to_number(data.get('sale_price'), 'sale_price', minimum=0)
    return cleaned

def create_item(db_conn, item_data, user="System"):
    """
    Creates a new spare part. An optional `opening_stock` is booked as the first IN movement.
    """
    try:
        item_code = (item_data.get('item_code') or '').strip().upper()
        if not item_code:
            raise ValueError("item_code is required to create an item.")
        missing = [field for field in EDITABLE_FIELDS if field not in item_data]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        existing_item = db_conn[ITEM_COLLECTION].find_one({
            "item_code": {"$regex": f"^{re.escape(item_code)}$", "$options": "i"}
        })
        if existing_item:
            raise ValueError(f"An item with the code '{item_code}' already exists.")

        fields = _clean_item_fields(db_conn, item_data)
        opening_stock = to_number(item_data.get('opening_stock'), 'opening_stock', minimum=0, default=0)

        now = datetime.utcnow()
        item = {
            "item_code": item_code,
            **fields,
            "stock": 0,
            "created_date": now,
            "updated_date": now,
            "updated_by": user,
        }
        result = db_conn[ITEM_COLLECTION].insert_one(item)
        inserted_id = result.inserted_id
        logging.info(f"Item '{item_code}' created with ID: {inserted_id}")
        add_activity("CREATE_ITEM", user, f"Created item: {item_code} - {fields['item_name']}", inserted_id, ITEM_COLLECTION)

        if opening_stock > 0:
            apply_stock_movement(
                db_conn, item_code, opening_stock, movement_type='IN', reference_no=None,
                reference_type='OPENING', movement_date=datetime.combine(now.date(), datetime.min.time()), user=user, notes='Opening stock'
            )
        return inserted_id
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error creating item: {e}")
        raise

def get_item_by_id(db_conn, item_id):
    try:
        return db_conn[ITEM_COLLECTION].find_one({"_id": ObjectId(item_id)})
    except Exception as e:
        logging.error(f"Error fetching item by ID {item_id}: {e}")
        raise

def get_item_by_code(db_conn, item_code):
    return db_conn[ITEM_COLLECTION].find_one({"item_code": item_code})

def get_all_items(db_conn, page=1, limit=25, filters=None):
    try:
        query = filters if filters else {}
        skip = (page - 1) * limit if limit > 0 else 0
        items_cursor = db_conn[ITEM_COLLECTION].find(query).sort("item_code", 1).skip(skip)
        if limit > 0:
            items_cursor = items_cursor.limit(limit)
        item_list = list(items_cursor)
        total_items = db_conn[ITEM_COLLECTION].count_documents(query)
        return item_list, total_items
    except Exception as e:
        logging.error(f"Error fetching all items: {e}")
        raise

def build_item_filters(search=None, category_code=None):
    filters = {}
    if search:
        regex_query = {"$regex": re.escape(search), "$options": "i"}
        filters["$or"] = [{"item_code": regex_query}, {"item_name": regex_query}]
    if category_code:
        filters["category_code"] = category_code.upper()
    return filters

def update_item(db_conn, item_id, update_data, user="System"):
    """
    Updates an item's descriptive fields. item_code and stock are not editable here;
    stock only changes through stock movements.
    """
    try:
        original_id_obj = ObjectId(item_id)
        item = db_conn[ITEM_COLLECTION].find_one({"_id": original_id_obj})
        if not item:
            return 0
        if 'item_code' in update_data and (update_data['item_code'] or '').strip().upper() != item['item_code']:
            raise ValueError("item_code cannot be changed.")
        if 'stock' in update_data and update_data['stock'] != item.get('stock'):
            raise ValueError("Stock can only be changed through stock transactions.")

        fields = _clean_item_fields(db_conn, {k: v for k, v in update_data.items() if k in EDITABLE_FIELDS})
        update_payload = {"$set": {**fields, "updated_date": datetime.utcnow(), "updated_by": user}}
        result = db_conn[ITEM_COLLECTION].update_one({"_id": original_id_obj}, update_payload)

        if result.matched_count > 0:
            logging.info(f"Item {item_id} updated by {user}")
            add_activity("UPDATE_ITEM", user, f"Updated item: {item['item_code']}", original_id_obj, ITEM_COLLECTION)
        return result.matched_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error updating item {item_id}: {e}")
        raise

def delete_item_by_id(db_conn, item_id, user="System"):
    try:
        original_id_obj = ObjectId(item_id)
        item_to_delete = db_conn[ITEM_COLLECTION].find_one({"_id": original_id_obj})
        if not item_to_delete:
            return 0

        if db_conn[MOVEMENT_COLLECTION].find_one({"item_code": item_to_delete['item_code']}):
            raise ValueError("Cannot delete item with existing stock movements.")

        result = db_conn[ITEM_COLLECTION].delete_one({"_id": original_id_obj})
        if result.deleted_count > 0:
            logging.info(f"Item {item_id} ('{item_to_delete['item_code']}') deleted by {user}.")
            add_activity("DELETE_ITEM", user, f"Deleted item: {item_to_delete['item_code']} - {item_to_delete.get('item_name', 'N/A')}", original_id_obj, ITEM_COLLECTION)
        return result.deleted_count
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error deleting item {item_id}: {e}")
        raise

def _record_movement(db_conn, item_code, stock_before, quantity_change, movement_type, reference_no,
                     reference_type, movement_date, user, notes, now):
    movement = {
        "item_code": item_code,
        "movement_type": movement_type,
        "quantity": quantity_change,
        "stock_before": stock_before,
        "stock_after": stock_before + quantity_change,
        "reference_no": reference_no,
        "reference_type": reference_type,
        "movement_date": movement_date,
        "recorded_by": user,
        "notes": notes,
        "created_date": now,
    }
    result = db_conn[MOVEMENT_COLLECTION].insert_one(movement)
    logging.info(f"Stock movement {result.inserted_id} ({movement_type} {quantity_change}) recorded for item {item_code}.")
    return movement

def apply_stock_movement(db_conn, item_code, quantity_change, movement_type, reference_no, reference_type,
                         movement_date, user="System", notes=""):
    """
    Changes an item's stock by `quantity_change` and records the movement on the stock card.

    Decreases are applied with a guarded update, so stock never goes below zero.

    Returns:
        dict: The inserted movement document.
    Raises:
        ValueError: If the item does not exist or the stock is insufficient.
    """
    try:
        now = datetime.utcnow()
        query = {"item_code": item_code}
        if quantity_change < 0:
            query["stock"] = {"$gte": -quantity_change}

        before = db_conn[ITEM_COLLECTION].find_one_and_update(
            query,
            {"$inc": {"stock": quantity_change}, "$set": {"updated_date": now, "updated_by": user}},
            return_document=ReturnDocument.BEFORE
        )
        if not before:
            item = get_item_by_code(db_conn, item_code)
            if not item:
                raise ValueError(f"Item '{item_code}' not found.")
            raise ValueError(
                f"Insufficient stock for item '{item.get('item_name', item_code)}'. "
                f"Available: {item.get('stock', 0)}, Requested: {-quantity_change}"
            )

        return _record_movement(
            db_conn, item_code, before.get('stock', 0), quantity_change, movement_type,
            reference_no, reference_type, movement_date, user, notes, now
        )
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error applying stock movement for item {item_code}: {e}")
        raise

def set_stock_level(db_conn, item_code, new_stock, movement_type, reference_no, reference_type,
                    movement_date, user="System", notes=""):
    """
    Sets an item's stock to `new_stock` in a single update and records the difference
    against the stock held at that moment.

    Returns:
        tuple: (stock before the update, movement document or None when nothing changed)
    Raises:
        ValueError: If the item does not exist.
    """
    try:
        now = datetime.utcnow()
        before = db_conn[ITEM_COLLECTION].find_one_and_update(
            {"item_code": item_code},
            {"$set": {"stock": new_stock, "updated_date": now, "updated_by": user}},
            return_document=ReturnDocument.BEFORE
        )
        if not before:
            raise ValueError(f"Item '{item_code}' not found.")

        stock_before = before.get('stock', 0)
        difference = new_stock - stock_before
        if difference == 0:
            return stock_before, None
        movement = _record_movement(
            db_conn, item_code, stock_before, difference, movement_type,
            reference_no, reference_type, movement_date, user, notes, now
        )
        return stock_before, movement
    except ValueError:
        raise
    except Exception as e:
        logging.error(f"Error setting stock level for item {item_code}: {e}")
        raise

def get_movements_for_item(db_conn, item_code, start_date=None, end_date=None):
    """ Fetches the stock movements of an item in chronological order, optionally within a date range. """
    try:
        query = {"item_code": item_code}
        if start_date or end_date:
            query["movement_date"] = {}
            if start_date:
                query["movement_date"]["$gte"] = datetime.combine(start_date, datetime.min.time())
            if end_date:
                query["movement_date"]["$lt"] = datetime.combine(end_date + timedelta(days=1), datetime.min.time())
        cursor = db_conn[MOVEMENT_COLLECTION].find(query).sort([("movement_date", 1), ("created_date", 1)])
        return list(cursor)
    except Exception as e:
        logging.error(f"Error fetching movements for item {item_code}: {e}")
        raise
