# db/purchase_dal.py
import logging

from .activity_log_dal import add_activity
from .item_dal import apply_stock_movement
from .supplier_dal import get_supplier_by_code
from .transaction_dal import (
    PURCHASE, TRANSACTION_COLLECTION, to_transaction_date, require_lines, load_line_item,
    line_quantity, revert_movements, insert_transaction
)
from utils.helpers import calculate_subtotal, format_currency, to_number
from utils.transaction_number import PURCHASE_PREFIX

logging.basicConfig(level=logging.INFO)

def create_purchase(db_conn, purchase_data, numbers, user="System"):
    """
    Records incoming stock from a supplier.

    Args:
        purchase_data (dict): supplier_code, date (YYYY-MM-DD, defaults to today), notes,
            lines [{item_code, quantity, price}]. A missing price uses the item's purchase price.
        numbers: The transaction number generator of the application.

    Returns:
        dict: The stored purchase document.
    """
    transaction_date = to_transaction_date(purchase_data.get('date'))
    supplier_code = (purchase_data.get('supplier_code') or '').strip()
    if not supplier_code:
        raise ValueError("supplier_code is required.")
    supplier = get_supplier_by_code(db_conn, supplier_code)
    if not supplier:
        raise ValueError(f"Supplier '{supplier_code}' not found.")

    lines = []
    for index, line in enumerate(require_lines(purchase_data), start=1):
        item = load_line_item(db_conn, line, index)
        quantity = line_quantity(line, index)
        price = to_number(line.get('price'), f"Line {index}: price", minimum=0, default=item.get('purchase_price', 0))
        lines.append({
            "item_code": item['item_code'],
            "item_name": item.get('item_name'),
            "unit": item.get('unit'),
            "quantity": quantity,
            "price": price,
            "subtotal": calculate_subtotal(quantity, price),
        })

    transaction_no = numbers.generate(PURCHASE_PREFIX, transaction_date)
    applied = []
    try:
        for line in lines:
            applied.append(apply_stock_movement(
                db_conn, line['item_code'], line['quantity'], movement_type='IN',
                reference_no=transaction_no, reference_type=PURCHASE,
                movement_date=transaction_date, user=user
            ))

        document = {
            "transaction_no": transaction_no,
            "transaction_type": PURCHASE,
            "transaction_date": transaction_date,
            "supplier_code": supplier_code,
            "supplier_name": supplier.get('supplier_name'),
            "invoice_no": (purchase_data.get('invoice_no') or '').strip(),
            "notes": purchase_data.get('notes', ''),
            "lines": lines,
            "total_quantity": sum(line['quantity'] for line in lines),
            "grand_total": sum(line['subtotal'] for line in lines),
            "status": "COMPLETED",
        }
        inserted_id = insert_transaction(db_conn, document, user)
    except Exception as e:
        logging.error(f"Error recording purchase {transaction_no}: {e}")
        revert_movements(db_conn, applied)
        raise

    add_activity(
        "CREATE_PURCHASE", user,
        f"Stock in {transaction_no} from {supplier.get('supplier_name')}: {len(lines)} item(s), {format_currency(document['grand_total'])}",
        inserted_id, TRANSACTION_COLLECTION
    )
    return document
