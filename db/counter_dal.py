# db/counter_dal.py
from datetime import datetime
import logging
import re
from pymongo import ReturnDocument

from utils.transaction_number import TransactionNumberGenerator

COUNTER_COLLECTION = 'transaction_counters'
logging.basicConfig(level=logging.INFO)

def increment_counter(db_conn, prefix, datepart):
    """
    Atomically advances the counter for (prefix, datepart) and returns the new value.
    The counter document is created with value 1 on first use.
    """
    try:
        counter = db_conn[COUNTER_COLLECTION].find_one_and_update(
            {"_id": f"{prefix}|{datepart}"},
            {
                "$inc": {"sequence": 1},
                "$set": {"updated_date": datetime.utcnow()},
                "$setOnInsert": {"prefix": prefix, "datepart": datepart},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return int(counter["sequence"])
    except Exception as e:
        logging.error(f"Error incrementing counter {prefix}|{datepart}: {e}")
        raise

def get_counters(db_conn, prefix=None):
    """ Lists the stored counters, optionally for a single prefix. """
    query = {"prefix": prefix} if prefix else {}
    return list(db_conn[COUNTER_COLLECTION].find(query).sort("_id", 1))


class MongoTransactionNumberGenerator(TransactionNumberGenerator):
    """
    Same contract as TransactionNumberGenerator, but the counters live in
    MongoDB so numbers stay unique across restarts.

    `db_provider` is a callable returning the database handle to use for
    each allocation (e.g. db.database.get_db).
    """

    def __init__(self, db_provider):
        super().__init__()
        self._db_provider = db_provider

    def next_sequence(self, prefix, datepart):
        return increment_counter(self._db_provider(), prefix, datepart)


def create_transaction_number_generator(backend, db_provider=None):
    if backend == 'memory':
        return TransactionNumberGenerator()
    if backend == 'mongodb':
        if db_provider is None:
            raise ValueError("A database provider is required for the 'mongodb' backend.")
        return MongoTransactionNumberGenerator(db_provider)
    raise ValueError(f"Unknown transaction number backend: {backend!r}")

def next_master_code(db_conn, collection_name, field, prefix, width=3):
    """
    Returns the next free code like 'CAT001' for a master data collection:
    one above the highest numeric code already stored with that prefix.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for doc in db_conn[collection_name].find({field: {"$regex": f"^{re.escape(prefix)}\\d+$"}}, {field: 1}):
        match = pattern.match(doc.get(field, ''))
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1:0{width}d}"
