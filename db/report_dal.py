# db/report_dal.py
from datetime import date, datetime, timedelta
import logging

from .item_dal import ITEM_COLLECTION, MOVEMENT_COLLECTION, get_item_by_code, get_movements_for_item, build_item_filters
from .transaction_dal import TRANSACTION_COLLECTION, PURCHASE, SALE, STOCK_OPNAME, CUSTOMER_CLAIM

ACTIVITY_TYPES = {
    PURCHASE: 'in',
    SALE: 'out',
    STOCK_OPNAME: 'opname',
    CUSTOMER_CLAIM: 'claim',
}
CHART_DAYS = 7
TOP_ITEMS_LIMIT = 5
RECENT_ACTIVITY_LIMIT = 5

logging.basicConfig(level=logging.INFO)

def _start_of(day):
    return datetime.combine(day, datetime.min.time())

def _month_range(day):
    start = day.replace(day=1)
    next_start = (start + timedelta(days=32)).replace(day=1)
    return start, next_start

def percent_change(current, previous):
    """Change from `previous` to `current` in percent, rounded to one decimal."""
    if not previous:
        return 100.0 if current else 0.0
    return round((current - previous) / previous * 100, 1)

def is_low_stock(item):
    return item.get('stock', 0) <= item.get('min_stock', 0)

def get_stock_report(db_conn, search=None, category_code=None):
    """ Every item with its stock value (stock * purchase price) and a low-stock flag. """
    try:
        filters = build_item_filters(search, category_code)
        items = list(db_conn[ITEM_COLLECTION].find(filters).sort("item_code", 1))
        for item in items:
            item['stock_value'] = item.get('stock', 0) * item.get('purchase_price', 0)
            item['is_low'] = is_low_stock(item)
        summary = {
            "total_items": len(items),
            "total_stock": sum(item.get('stock', 0) for item in items),
            "total_value": sum(item['stock_value'] for item in items),
            "low_stock_items": sum(1 for item in items if item['is_low']),
        }
        return items, summary
    except Exception as e:
        logging.error(f"Error building stock report: {e}")
        raise

def get_stock_alerts(db_conn):
    """ Items at or below their minimum stock, emptiest first. """
    try:
        items = [item for item in db_conn[ITEM_COLLECTION].find({}) if is_low_stock(item)]
        for item in items:
            item['shortage'] = item.get('min_stock', 0) - item.get('stock', 0)
        return sorted(items, key=lambda item: (item.get('stock', 0), item['item_code']))
    except Exception as e:
        logging.error(f"Error building stock alerts: {e}")
        raise

def get_stock_card(db_conn, item_code, start_date=None, end_date=None):
    """
    The movements of one item within a date range, with the opening balance
    carried in from earlier movements.

    Returns:
        dict or None: None when the item does not exist.
    """
    try:
        item = get_item_by_code(db_conn, item_code)
        if not item:
            return None

        opening_balance = 0
        if start_date:
            earlier = db_conn[MOVEMENT_COLLECTION].find({
                "item_code": item_code,
                "movement_date": {"$lt": _start_of(start_date)}
            })
            opening_balance = sum(movement.get('quantity', 0) for movement in earlier)

        movements = get_movements_for_item(db_conn, item_code, start_date, end_date)
        balance = opening_balance
        entries = []
        for movement in movements:
            quantity = movement.get('quantity', 0)
            balance += quantity
            entries.append({
                "_id": movement['_id'],
                "date": movement.get('movement_date'),
                "movement_type": movement.get('movement_type'),
                "reference_no": movement.get('reference_no'),
                "reference_type": movement.get('reference_type'),
                "in": quantity if quantity > 0 else 0,
                "out": -quantity if quantity < 0 else 0,
                "balance": balance,
                "recorded_by": movement.get('recorded_by'),
                "notes": movement.get('notes', ''),
            })

        return {
            "item": item,
            "opening_balance": opening_balance,
            "total_in": sum(entry['in'] for entry in entries),
            "total_out": sum(entry['out'] for entry in entries),
            "closing_balance": balance,
            "movements": entries,
        }
    except Exception as e:
        logging.error(f"Error building stock card for {item_code}: {e}")
        raise

def _sum_movements(db_conn, movement_type, start, end):
    pipeline = [
        {"$match": {
            "movement_type": movement_type,
            "movement_date": {"$gte": _start_of(start), "$lt": _start_of(end)}
        }},
        {"$group": {"_id": None, "total": {"$sum": "$quantity"}}}
    ]
    result = list(db_conn[MOVEMENT_COLLECTION].aggregate(pipeline))
    return abs(result[0]['total']) if result else 0

def _count_transactions(db_conn, start, end):
    return db_conn[TRANSACTION_COLLECTION].count_documents({
        "transaction_date": {"$gte": _start_of(start), "$lt": _start_of(end)}
    })

def _daily_chart(db_conn, today):
    first_day = today - timedelta(days=CHART_DAYS - 1)
    buckets = {first_day + timedelta(days=offset): {"in": 0, "out": 0} for offset in range(CHART_DAYS)}
    movements = db_conn[MOVEMENT_COLLECTION].find({
        "movement_type": {"$in": ["IN", "OUT"]},
        "movement_date": {"$gte": _start_of(first_day), "$lt": _start_of(today + timedelta(days=1))}
    })
    for movement in movements:
        bucket = buckets.get(movement['movement_date'].date())
        if bucket is None:
            continue
        if movement['movement_type'] == 'IN':
            bucket['in'] += movement.get('quantity', 0)
        else:
            bucket['out'] += -movement.get('quantity', 0)
    return [
        {"date": day.strftime('%Y-%m-%d'), "in": values['in'], "out": values['out']}
        for day, values in sorted(buckets.items())
    ]

def _top_items(db_conn, start, end):
    pipeline = [
        {"$match": {
            "reference_type": SALE,
            "movement_date": {"$gte": _start_of(start), "$lt": _start_of(end)}
        }},
        {"$group": {"_id": "$item_code", "total": {"$sum": "$quantity"}}},
        {"$sort": {"total": 1}},
        {"$limit": TOP_ITEMS_LIMIT}
    ]
    top_items = []
    for row in db_conn[MOVEMENT_COLLECTION].aggregate(pipeline):
        item = get_item_by_code(db_conn, row['_id']) or {}
        top_items.append({
            "item_code": row['_id'],
            "item_name": item.get('item_name', row['_id']),
            "quantity": abs(row['total']),
        })
    return top_items

def _recent_activity(db_conn):
    cursor = db_conn[TRANSACTION_COLLECTION].find({}).sort("created_date", -1).limit(RECENT_ACTIVITY_LIMIT)
    activity = []
    for transaction in cursor:
        party = transaction.get('supplier_name') or transaction.get('customer_name') or ''
        activity.append({
            "type": ACTIVITY_TYPES.get(transaction['transaction_type'], 'other'),
            "transaction_no": transaction['transaction_no'],
            "description": f"{transaction['transaction_no']} {party}".strip(),
            "time": transaction.get('created_date'),
        })
    return activity

def get_dashboard_summary(db_conn, today=None):
    """
    Figures for the dashboard: today's stock in/out, low stock count, a 7 day chart,
    this month against last month, best sellers and the latest transactions.
    """
    try:
        today = today or date.today()
        tomorrow = today + timedelta(days=1)
        month_start, next_month_start = _month_range(today)
        previous_month_start, _ = _month_range(month_start - timedelta(days=1))

        stock_in = _sum_movements(db_conn, 'IN', month_start, next_month_start)
        stock_in_previous = _sum_movements(db_conn, 'IN', previous_month_start, month_start)
        stock_out = _sum_movements(db_conn, 'OUT', month_start, next_month_start)
        stock_out_previous = _sum_movements(db_conn, 'OUT', previous_month_start, month_start)
        transactions = _count_transactions(db_conn, month_start, next_month_start)
        transactions_previous = _count_transactions(db_conn, previous_month_start, month_start)

        return {
            "stats": {
                "totalSKU": db_conn[ITEM_COLLECTION].count_documents({}),
                "stockInToday": _sum_movements(db_conn, 'IN', today, tomorrow),
                "stockOutToday": _sum_movements(db_conn, 'OUT', today, tomorrow),
                "stockAlertCount": len(get_stock_alerts(db_conn)),
            },
            "chart": _daily_chart(db_conn, today),
            "comparison": {
                "stockIn": {"value": stock_in, "percent": percent_change(stock_in, stock_in_previous)},
                "stockOut": {"value": stock_out, "percent": percent_change(stock_out, stock_out_previous)},
                "totalTransactions": {"value": transactions, "percent": percent_change(transactions, transactions_previous)},
            },
            "topItems": _top_items(db_conn, month_start, next_month_start),
            "recentActivity": _recent_activity(db_conn),
        }
    except Exception as e:
        logging.error(f"Error building dashboard summary: {e}")
        raise
