# api/customer_claims.py
from flask import Blueprint, request, jsonify
import logging
from bson import ObjectId

from auth_utils import permission_required, get_current_username
from db.customer_claim_dal import create_customer_claim, update_claim_status
from db.database import get_db
from db.transaction_dal import CUSTOMER_CLAIM, get_transaction_by_id, get_transactions
from utils.request_args import parse_pagination, parse_date_arg, paginated_response
from utils.transaction_number import get_transaction_number_generator

customer_claims_bp = Blueprint(
    'customer_claims_bp',
    __name__,
    url_prefix='/api/customer-claims'
)

logging.basicConfig(level=logging.INFO)

@customer_claims_bp.route('', methods=['POST'])
@permission_required('transactions')
def handle_create_claim():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400
    try:
        claim = create_customer_claim(get_db(), data, get_transaction_number_generator(), user=get_current_username())
        return jsonify({"message": "Customer claim recorded successfully", "data": claim}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_create_claim: {e}")
        return jsonify({"message": "Failed to record customer claim", "error": str(e)}), 500

@customer_claims_bp.route('', methods=['GET'])
@permission_required('transactions')
def handle_get_claims():
    """ Lists claims; `status` narrows to PENDING, APPROVED or REJECTED. """
    try:
        page, limit = parse_pagination(request.args)
        claims, total = get_transactions(
            get_db(), page, limit,
            transaction_type=CUSTOMER_CLAIM,
            start_date=parse_date_arg(request.args, 'start_date'),
            end_date=parse_date_arg(request.args, 'end_date'),
            search=request.args.get('search'),
            customer_code=request.args.get('customer'),
            status=request.args.get('status')
        )
        return jsonify(paginated_response(claims, total, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_get_claims: {e}")
        return jsonify({"message": "Failed to fetch customer claims", "error": str(e)}), 500

@customer_claims_bp.route('/<claim_id>', methods=['GET'])
@permission_required('transactions')
def handle_get_claim(claim_id):
    if not ObjectId.is_valid(claim_id):
        return jsonify({"message": "Invalid claim ID format"}), 400
    claim = get_transaction_by_id(get_db(), claim_id, CUSTOMER_CLAIM)
    if not claim:
        return jsonify({"message": "Customer claim not found"}), 404
    return jsonify(claim), 200

@customer_claims_bp.route('/<claim_id>/status', methods=['PUT'])
@permission_required('transactions')
def handle_update_claim_status(claim_id):
    data = request.get_json(silent=True)
    if not data or not data.get('status'):
        return jsonify({"message": "Missing required field: status"}), 400
    if not ObjectId.is_valid(claim_id):
        return jsonify({"message": "Invalid claim ID format"}), 400
    try:
        claim = update_claim_status(
            get_db(), claim_id, data['status'],
            user=get_current_username(),
            resolution_notes=data.get('resolution_notes', '')
        )
        if not claim:
            return jsonify({"message": "Customer claim not found"}), 404
        return jsonify({"message": f"Customer claim {claim['status'].lower()}", "data": claim}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_update_claim_status for ID {claim_id}: {e}")
        return jsonify({"message": "Failed to update customer claim", "error": str(e)}), 500
