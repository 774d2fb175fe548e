# db/customer_claim_dal.py
from bson.objectid import ObjectId
from datetime import datetime
import logging

from .activity_log_dal import add_activity
from .customer_dal import get_customer_by_code
from .item_dal import apply_stock_movement
from .transaction_dal import (
    CUSTOMER_CLAIM, TRANSACTION_COLLECTION, to_transaction_date, require_lines, load_line_item,
    line_quantity, revert_movements, insert_transaction
)
from utils.transaction_number import CUSTOMER_CLAIM_PREFIX

CLAIM_PENDING = 'PENDING'
CLAIM_APPROVED = 'APPROVED'
CLAIM_REJECTED = 'REJECTED'
CLAIM_STATUSES = (CLAIM_PENDING, CLAIM_APPROVED, CLAIM_REJECTED)

logging.basicConfig(level=logging.INFO)

def create_customer_claim(db_conn, claim_data, numbers, user="System"):
    """
    Registers a customer's claim on parts they bought. The claim starts as PENDING
    and does not touch stock until it is approved.
    """
    transaction_date = to_transaction_date(claim_data.get('date'))
    customer_code = (claim_data.get('customer_code') or '').strip()
    if not customer_code:
        raise ValueError("customer_code is required.")
    customer = get_customer_by_code(db_conn, customer_code)
    if not customer:
        raise ValueError(f"Customer '{customer_code}' not found.")

    lines = []
    for index, line in enumerate(require_lines(claim_data), start=1):
        item = load_line_item(db_conn, line, index)
        reason = (line.get('reason') or '').strip()
        if not reason:
            raise ValueError(f"Line {index}: reason is required.")
        lines.append({
            "item_code": item['item_code'],
            "item_name": item.get('item_name'),
            "unit": item.get('unit'),
            "quantity": line_quantity(line, index),
            "reason": reason,
        })

    transaction_no = numbers.generate(CUSTOMER_CLAIM_PREFIX, transaction_date)
    document = {
        "transaction_no": transaction_no,
        "transaction_type": CUSTOMER_CLAIM,
        "transaction_date": transaction_date,
        "customer_code": customer_code,
        "customer_name": customer.get('customer_name'),
        "sale_no": (claim_data.get('sale_no') or '').strip() or None,
        "notes": claim_data.get('notes', ''),
        "lines": lines,
        "total_quantity": sum(line['quantity'] for line in lines),
        "status": CLAIM_PENDING,
    }
    inserted_id = insert_transaction(db_conn, document, user)
    add_activity(
        "CREATE_CUSTOMER_CLAIM", user,
        f"Customer claim {transaction_no} from {customer.get('customer_name')}: {len(lines)} item(s)",
        inserted_id, TRANSACTION_COLLECTION
    )
    return document

def update_claim_status(db_conn, claim_id, status, user="System", resolution_notes=""):
    """
    Resolves a pending claim. Approving a claim issues the replacement parts,
    which leave stock under the claim's number.

    Returns:
        dict or None: The updated claim, or None when it does not exist.
    """
    if status not in (CLAIM_APPROVED, CLAIM_REJECTED):
        raise ValueError(f"Invalid status '{status}'. Must be {CLAIM_APPROVED} or {CLAIM_REJECTED}.")

    claim_oid = ObjectId(claim_id)
    claim = db_conn[TRANSACTION_COLLECTION].find_one({"_id": claim_oid, "transaction_type": CUSTOMER_CLAIM})
    if not claim:
        return None
    if claim.get('status') != CLAIM_PENDING:
        raise ValueError(f"Claim {claim['transaction_no']} is already {claim.get('status')}.")

    now = datetime.utcnow()
    applied = []
    try:
        if status == CLAIM_APPROVED:
            for line in claim['lines']:
                applied.append(apply_stock_movement(
                    db_conn, line['item_code'], -line['quantity'], movement_type='OUT',
                    reference_no=claim['transaction_no'], reference_type=CUSTOMER_CLAIM,
                    movement_date=datetime.combine(now.date(), datetime.min.time()), user=user,
                    notes='Claim replacement'
                ))

        result = db_conn[TRANSACTION_COLLECTION].update_one(
            {"_id": claim_oid, "status": CLAIM_PENDING},
            {"$set": {
                "status": status,
                "resolution_notes": resolution_notes,
                "resolved_by": user,
                "resolved_date": now,
                "updated_date": now,
                "updated_by": user,
            }}
        )
        if result.modified_count == 0:
            raise ValueError(f"Claim {claim['transaction_no']} was resolved by someone else.")
    except Exception as e:
        logging.error(f"Error resolving claim {claim['transaction_no']}: {e}")
        revert_movements(db_conn, applied)
        raise

    logging.info(f"Claim {claim['transaction_no']} set to {status} by {user}")
    add_activity(
        f"{status}_CUSTOMER_CLAIM", user,
        f"Customer claim {claim['transaction_no']} {status.lower()}",
        claim_oid, TRANSACTION_COLLECTION
    )
    return db_conn[TRANSACTION_COLLECTION].find_one({"_id": claim_oid})
