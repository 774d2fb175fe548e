# db/sale_dal.py
import logging

from .activity_log_dal import add_activity
from .customer_dal import get_customer_by_code
from .item_dal import apply_stock_movement
from .transaction_dal import (
    SALE, TRANSACTION_COLLECTION, to_transaction_date, require_lines, load_line_item,
    line_quantity, revert_movements, insert_transaction
)
from utils.helpers import calculate_subtotal, format_currency, to_number
from utils.transaction_number import SALE_PREFIX

logging.basicConfig(level=logging.INFO)

def create_sale(db_conn, sale_data, numbers, user="System"):
    """
    Records outgoing stock sold to a customer (or a walk-in buyer when no customer_code is given).

    Each line: item_code, quantity, price (defaults to the item's sale price) and an
    optional discount percentage. The whole sale is refused when any item lacks stock.
    """
    transaction_date = to_transaction_date(sale_data.get('date'))
    customer = None
    customer_code = (sale_data.get('customer_code') or '').strip()
    if customer_code:
        customer = get_customer_by_code(db_conn, customer_code)
        if not customer:
            raise ValueError(f"Customer '{customer_code}' not found.")

    lines = []
    requested = {}
    items = {}
    for index, line in enumerate(require_lines(sale_data), start=1):
        item = load_line_item(db_conn, line, index)
        quantity = line_quantity(line, index)
        price = to_number(line.get('price'), f"Line {index}: price", minimum=0, default=item.get('sale_price', 0))
        discount = to_number(line.get('discount'), f"Line {index}: discount", minimum=0, default=0)
        if discount > 100:
            raise ValueError(f"Line {index}: discount cannot exceed 100%.")
        items[item['item_code']] = item
        requested[item['item_code']] = requested.get(item['item_code'], 0) + quantity
        lines.append({
            "item_code": item['item_code'],
            "item_name": item.get('item_name'),
            "unit": item.get('unit'),
            "quantity": quantity,
            "price": price,
            "discount": discount,
            "subtotal": calculate_subtotal(quantity, price, discount),
        })

    insufficient = [
        f"{items[code].get('item_name', code)} (Requested: {quantity}, Available: {items[code].get('stock', 0)})"
        for code, quantity in requested.items()
        if quantity > items[code].get('stock', 0)
    ]
    if insufficient:
        raise ValueError("Insufficient stock for: " + ", ".join(insufficient))

    transaction_no = numbers.generate(SALE_PREFIX, transaction_date)
    applied = []
    try:
        for line in lines:
            applied.append(apply_stock_movement(
                db_conn, line['item_code'], -line['quantity'], movement_type='OUT',
                reference_no=transaction_no, reference_type=SALE,
                movement_date=transaction_date, user=user
            ))

        document = {
            "transaction_no": transaction_no,
            "transaction_type": SALE,
            "transaction_date": transaction_date,
            "customer_code": customer_code or None,
            "customer_name": customer.get('customer_name') if customer else (sale_data.get('customer_name') or 'Walk-in'),
            "notes": sale_data.get('notes', ''),
            "lines": lines,
            "total_quantity": sum(line['quantity'] for line in lines),
            "grand_total": sum(line['subtotal'] for line in lines),
            "status": "COMPLETED",
        }
        inserted_id = insert_transaction(db_conn, document, user)
    except Exception as e:
        logging.error(f"Error recording sale {transaction_no}: {e}")
        revert_movements(db_conn, applied)
        raise

    add_activity(
        "CREATE_SALE", user,
        f"Stock out {transaction_no} to {document['customer_name']}: {len(lines)} item(s), {format_currency(document['grand_total'])}",
        inserted_id, TRANSACTION_COLLECTION
    )
    return document
