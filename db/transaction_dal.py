# db/transaction_dal.py
"""
Shared storage for stock transaction documents (purchases, sales, stock opname
and customer claims) and the helpers the per-kind DAL modules build on.
"""
from bson.objectid import ObjectId
from datetime import datetime, timedelta
import logging
import re

from .item_dal import ITEM_COLLECTION, MOVEMENT_COLLECTION, get_item_by_code
from utils.helpers import to_number
from utils.transaction_number import parse_reference_date

TRANSACTION_COLLECTION = 'stock_transactions'

PURCHASE = 'PURCHASE'
SALE = 'SALE'
STOCK_OPNAME = 'STOCK_OPNAME'
CUSTOMER_CLAIM = 'CUSTOMER_CLAIM'
TRANSACTION_TYPES = (PURCHASE, SALE, STOCK_OPNAME, CUSTOMER_CLAIM)

logging.basicConfig(level=logging.INFO)

def to_transaction_date(reference_date):
    """The stored transaction date: midnight of the reference date (today when missing)."""
    return datetime.combine(parse_reference_date(reference_date), datetime.min.time())

def require_lines(transaction_data):
    lines = transaction_data.get('lines')
    if not isinstance(lines, list) or not lines:
        raise ValueError("At least one line is required.")
    for line in lines:
        if not isinstance(line, dict):
            raise ValueError("Each line must be an object.")
    return lines

def load_line_item(db_conn, line, index):
    item_code = (line.get('item_code') or '').strip().upper()
    if not item_code:
        raise ValueError(f"Line {index}: item_code is required.")
    item = get_item_by_code(db_conn, item_code)
    if not item:
        raise ValueError(f"Line {index}: item '{item_code}' not found.")
    return item

def line_quantity(line, index):
    quantity = to_number(line.get('quantity'), f"Line {index}: quantity")
    if quantity <= 0:
        raise ValueError(f"Line {index}: quantity must be greater than 0.")
    return quantity

def revert_movements(db_conn, movements):
    """
    Undoes stock movements applied for a document that could not be completed.
    """
    for movement in reversed(movements):
        db_conn[ITEM_COLLECTION].update_one(
            {"item_code": movement['item_code']},
            {"$inc": {"stock": -movement['quantity']}}
        )
        db_conn[MOVEMENT_COLLECTION].delete_one({"_id": movement['_id']})
    if movements:
        logging.warning(f"Reverted {len(movements)} stock movement(s) for {movements[0].get('reference_no')}")

def insert_transaction(db_conn, document, user):
    now = datetime.utcnow()
    document.update({
        "recorded_by": user,
        "created_date": now,
        "updated_date": now,
        "updated_by": user,
    })
    result = db_conn[TRANSACTION_COLLECTION].insert_one(document)
    logging.info(f"{document['transaction_type']} {document['transaction_no']} recorded with ID: {result.inserted_id}")
    return result.inserted_id

def get_transaction_by_id(db_conn, transaction_id, transaction_type=None):
    query = {"_id": ObjectId(transaction_id)}
    if transaction_type:
        query["transaction_type"] = transaction_type
    return db_conn[TRANSACTION_COLLECTION].find_one(query)

def get_transaction_by_number(db_conn, transaction_no):
    return db_conn[TRANSACTION_COLLECTION].find_one({"transaction_no": transaction_no})

def build_transaction_query(transaction_type=None, start_date=None, end_date=None, search=None,
                            supplier_code=None, customer_code=None, status=None):
    query = {}
    if transaction_type:
        if isinstance(transaction_type, (list, tuple)):
            query["transaction_type"] = {"$in": list(transaction_type)}
        else:
            query["transaction_type"] = transaction_type
    if start_date or end_date:
        query["transaction_date"] = {}
        if start_date:
            query["transaction_date"]["$gte"] = datetime.combine(start_date, datetime.min.time())
        if end_date:
            query["transaction_date"]["$lt"] = datetime.combine(end_date + timedelta(days=1), datetime.min.time())
    if search:
        regex_query = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"transaction_no": regex_query}, {"notes": regex_query}, {"lines.item_code": regex_query}]
    if supplier_code:
        query["supplier_code"] = supplier_code
    if customer_code:
        query["customer_code"] = customer_code
    if status:
        query["status"] = status
    return query

def get_transactions(db_conn, page=1, limit=25, **filters):
    """
    Fetches transactions newest first.

    Returns:
        tuple: (list of transaction documents, total count)
    """
    try:
        query = build_transaction_query(**filters)
        skip = (page - 1) * limit if limit > 0 else 0
        cursor = db_conn[TRANSACTION_COLLECTION].find(query).sort(
            [("transaction_date", -1), ("created_date", -1)]
        ).skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)
        return list(cursor), db_conn[TRANSACTION_COLLECTION].count_documents(query)
    except Exception as e:
        logging.error(f"Error fetching transactions: {e}")
        raise
