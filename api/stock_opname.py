# api/stock_opname.py
from flask import Blueprint, request, jsonify
import logging
from bson import ObjectId

from auth_utils import permission_required, get_current_username
from db.database import get_db
from db.stock_opname_dal import create_stock_opname
from db.transaction_dal import STOCK_OPNAME, get_transaction_by_id, get_transactions
from utils.request_args import parse_pagination, parse_date_arg, paginated_response
from utils.transaction_number import get_transaction_number_generator

stock_opname_bp = Blueprint(
    'stock_opname_bp',
    __name__,
    url_prefix='/api/stock-opname'
)

logging.basicConfig(level=logging.INFO)

@stock_opname_bp.route('', methods=['POST'])
@permission_required('transactions')
def handle_create_stock_opname():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400
    try:
        opname = create_stock_opname(get_db(), data, get_transaction_number_generator(), user=get_current_username())
        return jsonify({"message": "Stock opname recorded successfully", "data": opname}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_create_stock_opname: {e}")
        return jsonify({"message": "Failed to record stock opname", "error": str(e)}), 500

@stock_opname_bp.route('', methods=['GET'])
@permission_required('transactions')
def handle_get_stock_opnames():
    try:
        page, limit = parse_pagination(request.args)
        opnames, total = get_transactions(
            get_db(), page, limit,
            transaction_type=STOCK_OPNAME,
            start_date=parse_date_arg(request.args, 'start_date'),
            end_date=parse_date_arg(request.args, 'end_date'),
            search=request.args.get('search')
        )
        return jsonify(paginated_response(opnames, total, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_get_stock_opnames: {e}")
        return jsonify({"message": "Failed to fetch stock opname records", "error": str(e)}), 500

@stock_opname_bp.route('/<opname_id>', methods=['GET'])
@permission_required('transactions')
def handle_get_stock_opname(opname_id):
    if not ObjectId.is_valid(opname_id):
        return jsonify({"message": "Invalid stock opname ID format"}), 400
    opname = get_transaction_by_id(get_db(), opname_id, STOCK_OPNAME)
    if not opname:
        return jsonify({"message": "Stock opname not found"}), 404
    return jsonify(opname), 200
