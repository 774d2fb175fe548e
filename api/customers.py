# api/customers.py
from flask import Blueprint, request, jsonify
import logging
from bson import ObjectId

from auth_utils import permission_required, get_current_username
from db.customer_dal import (
    create_customer,
    get_customer_by_id,
    get_all_customers,
    update_customer,
    delete_customer_by_id
)
from db.database import get_db
from utils.request_args import parse_pagination, paginated_response

customers_bp = Blueprint(
    'customers_bp',
    __name__,
    url_prefix='/api/customers'
)

logging.basicConfig(level=logging.INFO)

@customers_bp.route('', methods=['POST'])
@permission_required('master')
def handle_create_customer():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No input data provided"}), 400
    if not data.get('customer_name'):
        return jsonify({"message": "Missing required field: customer_name"}), 400
    try:
        db = get_db()
        customer_id = create_customer(db, data, user=get_current_username())
        return jsonify({"message": "Customer created successfully", "data": get_customer_by_id(db, customer_id)}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_create_customer: {e}")
        return jsonify({"message": "Failed to create customer", "error": str(e)}), 500

@customers_bp.route('', methods=['GET'])
@permission_required('dashboard')
def handle_get_customers():
    """ Fetches customers with pagination, search and an optional `area` filter. """
    try:
        page, limit = parse_pagination(request.args)
        customers, total = get_all_customers(
            get_db(), page, limit,
            search=request.args.get("search"),
            area_code=request.args.get("area")
        )
        return jsonify(paginated_response(customers, total, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_get_customers: {e}")
        return jsonify({"message": "Failed to fetch customers", "error": str(e)}), 500

@customers_bp.route('/<customer_id>', methods=['GET'])
@permission_required('dashboard')
def handle_get_customer(customer_id):
    if not ObjectId.is_valid(customer_id):
        return jsonify({"message": "Invalid customer ID format"}), 400
    try:
        customer = get_customer_by_id(get_db(), customer_id)
        if not customer:
            return jsonify({"message": "Customer not found"}), 404
        return jsonify(customer), 200
    except Exception as e:
        logging.error(f"Error in handle_get_customer for ID {customer_id}: {e}")
        return jsonify({"message": "Failed to fetch customer", "error": str(e)}), 500

@customers_bp.route('/<customer_id>', methods=['PUT'])
@permission_required('master')
def handle_update_customer(customer_id):
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No input data provided"}), 400
    if not ObjectId.is_valid(customer_id):
        return jsonify({"message": "Invalid customer ID format"}), 400
    try:
        db = get_db()
        if update_customer(db, customer_id, data, user=get_current_username()) == 0:
            return jsonify({"message": "Customer not found"}), 404
        return jsonify({"message": "Customer updated successfully", "data": get_customer_by_id(db, customer_id)}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_update_customer for ID {customer_id}: {e}")
        return jsonify({"message": "Failed to update customer", "error": str(e)}), 500

@customers_bp.route('/<customer_id>', methods=['DELETE'])
@permission_required('master')
def handle_delete_customer(customer_id):
    if not ObjectId.is_valid(customer_id):
        return jsonify({"message": "Invalid customer ID format"}), 400
    try:
        if delete_customer_by_id(get_db(), customer_id, user=get_current_username()) == 0:
            return jsonify({"message": "Customer not found"}), 404
        return jsonify({"message": "Customer deleted successfully"}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_delete_customer for ID {customer_id}: {e}")
        return jsonify({"message": "Failed to delete customer", "error": str(e)}), 500
