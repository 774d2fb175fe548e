# api/suppliers.py
from flask import Blueprint, request, jsonify
import logging
from bson import ObjectId

from auth_utils import permission_required, get_current_username
from db.supplier_dal import (
    create_supplier,
    get_supplier_by_id,
    get_all_suppliers,
    update_supplier,
    delete_supplier_by_id
)
from db.database import get_db
from utils.request_args import parse_pagination, paginated_response

suppliers_bp = Blueprint(
    'suppliers_bp',
    __name__,
    url_prefix='/api/suppliers'
)

logging.basicConfig(level=logging.INFO)

@suppliers_bp.route('', methods=['POST'])
@permission_required('master')
def handle_create_supplier():
    """Handles POST requests to create a new supplier."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No input data provided"}), 400
    if not data.get('supplier_name'):
        return jsonify({"message": "Missing required field: supplier_name"}), 400

    try:
        db = get_db()
        supplier_id = create_supplier(db, data, user=get_current_username())
        return jsonify({"message": "Supplier created successfully", "data": get_supplier_by_id(db, supplier_id)}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_create_supplier: {e}")
        return jsonify({"message": "Failed to create supplier"}), 500

@suppliers_bp.route('/<supplier_id>', methods=['GET'])
@permission_required('dashboard')
def handle_get_supplier(supplier_id):
    """Handles GET requests to fetch a single supplier by ID."""
    try:
        if not ObjectId.is_valid(supplier_id):
            return jsonify({"message": "Invalid supplier ID format"}), 400

        supplier = get_supplier_by_id(get_db(), supplier_id)
        if supplier:
            return jsonify(supplier), 200
        else:
            return jsonify({"message": "Supplier not found"}), 404
    except Exception as e:
        logging.error(f"Error in handle_get_supplier for ID {supplier_id}: {e}")
        return jsonify({"message": "Failed to fetch supplier"}), 500

@suppliers_bp.route('', methods=['GET'])
@permission_required('dashboard')
def handle_get_all_suppliers():
    """Handles GET requests to fetch all suppliers with pagination and search."""
    try:
        page, limit = parse_pagination(request.args)
        supplier_list, total_items = get_all_suppliers(get_db(), page, limit, request.args.get("search"))
        return jsonify(paginated_response(supplier_list, total_items, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_get_all_suppliers: {e}")
        return jsonify({"message": "Failed to fetch suppliers"}), 500

@suppliers_bp.route('/<supplier_id>', methods=['PUT'])
@permission_required('master')
def handle_update_supplier(supplier_id):
    """Handles PUT requests to update an existing supplier."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No input data provided"}), 400
    if not ObjectId.is_valid(supplier_id):
        return jsonify({"message": "Invalid supplier ID format"}), 400

    try:
        db = get_db()
        matched_count = update_supplier(db, supplier_id, data, user=get_current_username())
        if matched_count == 0:
            return jsonify({"message": "Supplier not found"}), 404
        return jsonify({"message": "Supplier updated successfully", "data": get_supplier_by_id(db, supplier_id)}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_update_supplier for ID {supplier_id}: {e}")
        return jsonify({"message": "Failed to update supplier"}), 500

@suppliers_bp.route('/<supplier_id>', methods=['DELETE'])
@permission_required('master')
def handle_delete_supplier(supplier_id):
    """Handles DELETE requests to remove a supplier."""
    try:
        if not ObjectId.is_valid(supplier_id):
            return jsonify({"message": "Invalid supplier ID format"}), 400

        deleted_count = delete_supplier_by_id(get_db(), supplier_id, user=get_current_username())
        if deleted_count == 0:
            return jsonify({"message": "Supplier not found"}), 404
        return jsonify({"message": "Supplier deleted successfully"}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_delete_supplier for ID {supplier_id}: {e}")
        return jsonify({"message": "Failed to delete supplier"}), 500
