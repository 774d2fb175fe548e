# api/transaction_numbers.py
from flask import Blueprint, request, jsonify
import logging

from auth_utils import permission_required
from db.counter_dal import get_counters
from db.database import get_db
from utils.transaction_number import get_transaction_number_generator

transaction_numbers_bp = Blueprint(
    'transaction_numbers_bp',
    __name__,
    url_prefix='/api/transaction-numbers'
)

logging.basicConfig(level=logging.INFO)

@transaction_numbers_bp.route('', methods=['POST'])
@permission_required('transactions')
def handle_allocate_number():
    """
    Allocates the next number for {"prefix": "PO", "date": "2026-01-06"}.
    Each call consumes a number.
    """
    data = request.get_json(silent=True)
    if not data or not data.get('prefix'):
        return jsonify({"message": "Missing required field: prefix"}), 400
    try:
        number = get_transaction_number_generator().generate(data['prefix'], data.get('date'))
        return jsonify({"transactionNumber": number}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error allocating transaction number: {e}")
        return jsonify({"message": "Failed to allocate transaction number", "error": str(e)}), 500

@transaction_numbers_bp.route('/counters', methods=['GET'])
@permission_required('activity_log')
def handle_get_counters():
    """ Stored counters (MongoDB backend only), optionally for one `prefix`. """
    try:
        return jsonify({"data": get_counters(get_db(), request.args.get('prefix'))}), 200
    except Exception as e:
        logging.error(f"Error fetching transaction counters: {e}")
        return jsonify({"message": "Failed to fetch counters", "error": str(e)}), 500
