# utils/transaction_number.py
"""
Sequential document numbers for stock transactions.

A number has the form ``<PREFIX>-<DATEPART>-<SEQ>``:

    PO-260106-0001      purchase, short date (YYMMDD)
    SO-20260106-0001    stock opname, full date (YYYYMMDD)

The sequence is kept per (prefix, datepart) pair, starts at 1 and is
zero-padded to 4 digits (it simply widens after 9999).
"""
from datetime import date, datetime
import logging
import threading

from flask import current_app

PURCHASE_PREFIX = "PO"
SALE_PREFIX = "SL"
STOCK_OPNAME_PREFIX = "SO"
CUSTOMER_CLAIM_PREFIX = "CL"

# Matched exactly (case-sensitive); any other prefix gets the 8-digit date.
SHORT_DATE_PREFIXES = frozenset({PURCHASE_PREFIX, SALE_PREFIX})

SEQUENCE_WIDTH = 4

logging.basicConfig(level=logging.INFO)

def parse_reference_date(reference_date):
    """
    Resolves the reference date of a transaction.

    A missing value (None or an empty string) means today. Anything else
    must be a date/datetime or a 'YYYY-MM-DD' string, otherwise a
    ValueError is raised.
    """
    if reference_date is None or (isinstance(reference_date, str) and not reference_date.strip()):
        return date.today()
    if isinstance(reference_date, datetime):
        return reference_date.date()
    if isinstance(reference_date, date):
        return reference_date
    if not isinstance(reference_date, str):
        raise ValueError(f"Invalid reference date: {reference_date!r}. Expected YYYY-MM-DD.")
    try:
        return datetime.strptime(reference_date.strip(), '%Y-%m-%d').date()
    except ValueError:
        raise ValueError(f"Invalid reference date: {reference_date!r}. Expected YYYY-MM-DD.")

def format_datepart(prefix, ref_date):
    if prefix in SHORT_DATE_PREFIXES:
        return ref_date.strftime('%y%m%d')
    return ref_date.strftime('%Y%m%d')

def format_transaction_number(prefix, datepart, sequence):
    return f"{prefix}-{datepart}-{sequence:0{SEQUENCE_WIDTH}d}"


class TransactionNumberGenerator:
    """
    Allocates transaction numbers from in-process counters.

    The whole counter map is guarded by a single lock so concurrent
    requests for the same key never see the same value or skip one.
    Counters are lost when the process exits.
    """

    def __init__(self):
        self._counters = {}
        self._lock = threading.Lock()

    def next_sequence(self, prefix, datepart):
        key = (prefix, datepart)
        with self._lock:
            sequence = self._counters.get(key, 0) + 1
            self._counters[key] = sequence
        return sequence

    def generate(self, prefix, reference_date=None):
        if not isinstance(prefix, str):
            raise ValueError("prefix must be a string.")
        ref_date = parse_reference_date(reference_date)
        datepart = format_datepart(prefix, ref_date)
        sequence = self.next_sequence(prefix, datepart)
        return format_transaction_number(prefix, datepart, sequence)


def get_transaction_number_generator():
    """Returns the generator registered on the current Flask application."""
    return current_app.extensions['transaction_numbers']
