# db/stock_opname_dal.py
import logging

from .activity_log_dal import add_activity
from .item_dal import set_stock_level
from .transaction_dal import (
    STOCK_OPNAME, TRANSACTION_COLLECTION, to_transaction_date, require_lines, load_line_item,
    revert_movements, insert_transaction
)
from utils.helpers import to_number
from utils.transaction_number import STOCK_OPNAME_PREFIX

logging.basicConfig(level=logging.INFO)

def create_stock_opname(db_conn, opname_data, numbers, user="System"):
    """
    Records a physical stock count. Every counted item's stock is set to the physical
    count; system_stock and difference are taken at the moment of that update.
    """
    transaction_date = to_transaction_date(opname_data.get('date'))

    lines = []
    seen = set()
    for index, line in enumerate(require_lines(opname_data), start=1):
        item = load_line_item(db_conn, line, index)
        if item['item_code'] in seen:
            raise ValueError(f"Line {index}: item '{item['item_code']}' is counted twice.")
        seen.add(item['item_code'])
        lines.append({
            "item_code": item['item_code'],
            "item_name": item.get('item_name'),
            "unit": item.get('unit'),
            "physical_stock": to_number(line.get('physical_stock'), f"Line {index}: physical_stock", minimum=0),
            "notes": line.get('notes', ''),
        })

    transaction_no = numbers.generate(STOCK_OPNAME_PREFIX, transaction_date)
    applied = []
    try:
        for line in lines:
            system_stock, movement = set_stock_level(
                db_conn, line['item_code'], line['physical_stock'], movement_type='ADJUST',
                reference_no=transaction_no, reference_type=STOCK_OPNAME,
                movement_date=transaction_date, user=user, notes=line['notes']
            )
            line['system_stock'] = system_stock
            line['difference'] = line['physical_stock'] - system_stock
            if movement:
                applied.append(movement)

        document = {
            "transaction_no": transaction_no,
            "transaction_type": STOCK_OPNAME,
            "transaction_date": transaction_date,
            "notes": opname_data.get('notes', ''),
            "lines": lines,
            "adjusted_items": len(applied),
            "total_difference": sum(line['difference'] for line in lines),
            "status": "COMPLETED",
        }
        inserted_id = insert_transaction(db_conn, document, user)
    except Exception as e:
        logging.error(f"Error recording stock opname {transaction_no}: {e}")
        revert_movements(db_conn, applied)
        raise

    add_activity(
        "CREATE_STOCK_OPNAME", user,
        f"Stock opname {transaction_no}: {len(lines)} item(s) counted, {len(applied)} adjusted",
        inserted_id, TRANSACTION_COLLECTION
    )
    return document
