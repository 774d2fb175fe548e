# api/purchases.py
from flask import Blueprint, request, jsonify
import logging
from bson import ObjectId

from auth_utils import permission_required, get_current_username
from db.database import get_db
from db.purchase_dal import create_purchase
from db.transaction_dal import PURCHASE, get_transaction_by_id, get_transactions
from utils.request_args import parse_pagination, parse_date_arg, paginated_response
from utils.transaction_number import get_transaction_number_generator

purchases_bp = Blueprint(
    'purchases_bp',
    __name__,
    url_prefix='/api/purchases'
)

logging.basicConfig(level=logging.INFO)

@purchases_bp.route('', methods=['POST'])
@permission_required('transactions')
def handle_create_purchase():
    """ Records incoming stock. The purchase number (PO-YYMMDD-####) is assigned here. """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400
    try:
        purchase = create_purchase(get_db(), data, get_transaction_number_generator(), user=get_current_username())
        return jsonify({"message": "Purchase recorded successfully", "data": purchase}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_create_purchase: {e}")
        return jsonify({"message": "Failed to record purchase", "error": str(e)}), 500

@purchases_bp.route('', methods=['GET'])
@permission_required('transactions')
def handle_get_purchases():
    try:
        page, limit = parse_pagination(request.args)
        purchases, total = get_transactions(
            get_db(), page, limit,
            transaction_type=PURCHASE,
            start_date=parse_date_arg(request.args, 'start_date'),
            end_date=parse_date_arg(request.args, 'end_date'),
            search=request.args.get('search'),
            supplier_code=request.args.get('supplier')
        )
        return jsonify(paginated_response(purchases, total, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_get_purchases: {e}")
        return jsonify({"message": "Failed to fetch purchases", "error": str(e)}), 500

@purchases_bp.route('/<purchase_id>', methods=['GET'])
@permission_required('transactions')
def handle_get_purchase(purchase_id):
    if not ObjectId.is_valid(purchase_id):
        return jsonify({"message": "Invalid purchase ID format"}), 400
    purchase = get_transaction_by_id(get_db(), purchase_id, PURCHASE)
    if not purchase:
        return jsonify({"message": "Purchase not found"}), 404
    return jsonify(purchase), 200
