# api/sales.py
from flask import Blueprint, request, jsonify
import logging
from bson import ObjectId

from auth_utils import permission_required, get_current_username
from db.database import get_db
from db.sale_dal import create_sale
from db.transaction_dal import SALE, get_transaction_by_id, get_transactions
from utils.request_args import parse_pagination, parse_date_arg, paginated_response
from utils.transaction_number import get_transaction_number_generator

sales_bp = Blueprint(
    'sales_bp',
    __name__,
    url_prefix='/api/sales'
)

logging.basicConfig(level=logging.INFO)

@sales_bp.route('', methods=['POST'])
@permission_required('transactions')
def handle_create_sale():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400
    try:
        sale = create_sale(get_db(), data, get_transaction_number_generator(), user=get_current_username())
        return jsonify({"message": "Sale recorded successfully", "data": sale}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_create_sale: {e}")
        return jsonify({"message": "Failed to record sale", "error": str(e)}), 500

@sales_bp.route('', methods=['GET'])
@permission_required('transactions')
def handle_get_sales():
    try:
        page, limit = parse_pagination(request.args)
        sales, total = get_transactions(
            get_db(), page, limit,
            transaction_type=SALE,
            start_date=parse_date_arg(request.args, 'start_date'),
            end_date=parse_date_arg(request.args, 'end_date'),
            search=request.args.get('search'),
            customer_code=request.args.get('customer')
        )
        return jsonify(paginated_response(sales, total, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_get_sales: {e}")
        return jsonify({"message": "Failed to fetch sales", "error": str(e)}), 500

@sales_bp.route('/<sale_id>', methods=['GET'])
@permission_required('transactions')
def handle_get_sale(sale_id):
    if not ObjectId.is_valid(sale_id):
        return jsonify({"message": "Invalid sale ID format"}), 400
    sale = get_transaction_by_id(get_db(), sale_id, SALE)
    if not sale:
        return jsonify({"message": "Sale not found"}), 404
    return jsonify(sale), 200
