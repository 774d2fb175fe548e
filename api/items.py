# api/items.py
from flask import Blueprint, request, jsonify
import logging
from bson import ObjectId

from auth_utils import permission_required, get_current_username
from db.item_dal import (
    create_item,
    get_item_by_id,
    get_all_items,
    build_item_filters,
    update_item,
    delete_item_by_id,
    get_movements_for_item
)
from db.database import get_db
from utils.request_args import parse_pagination, parse_date_arg, paginated_response

items_bp = Blueprint(
    'items_bp',
    __name__,
    url_prefix='/api/items'
)

logging.basicConfig(level=logging.INFO)

@items_bp.route('', methods=['POST'])
@permission_required('master')
def handle_create_item():
    """ Handles POST requests to create a new spare part. """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400

    required_fields = ['item_code', 'item_name', 'category_code', 'unit']
    missing_fields = [field for field in required_fields if not data.get(field)]
    if missing_fields:
        return jsonify({"message": f"Missing required fields: {', '.join(missing_fields)}"}), 400

    try:
        db = get_db()
        item_id = create_item(db, data, user=get_current_username())
        return jsonify({"message": "Item created successfully", "data": get_item_by_id(db, item_id)}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_create_item: {e}")
        return jsonify({"message": "Failed to create item", "error": str(e)}), 500

@items_bp.route('/<item_id>', methods=['PUT'])
@permission_required('master')
def handle_update_item(item_id):
    """ Handles PUT requests to update an existing item. """
    data = request.get_json(silent=True)
    if not data: return jsonify({"message": "No JSON data provided"}), 400
    if not ObjectId.is_valid(item_id): return jsonify({"message": "Invalid item ID format"}), 400

    try:
        db = get_db()
        matched_count = update_item(db, item_id, data, user=get_current_username())
        if matched_count == 0: return jsonify({"message": "Item not found"}), 404
        return jsonify({"message": "Item updated successfully", "data": get_item_by_id(db, item_id)}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_update_item for ID {item_id}: {e}")
        return jsonify({"message": "Failed to update item", "error": str(e)}), 500

@items_bp.route('/<item_id>', methods=['GET'])
@permission_required('dashboard')
def handle_get_item(item_id):
    if not ObjectId.is_valid(item_id): return jsonify({"message": "Invalid item ID format"}), 400
    try:
        item = get_item_by_id(get_db(), item_id)
        if item:
            return jsonify(item), 200
        else:
            return jsonify({"message": "Item not found"}), 404
    except Exception as e:
        logging.error(f"Error in handle_get_item for ID {item_id}: {e}")
        return jsonify({"message": "Failed to fetch item", "error": str(e)}), 500

@items_bp.route('', methods=['GET'])
@permission_required('dashboard')
def handle_get_all_items():
    """ Handles GET requests to fetch items with pagination, search and a `category` filter. """
    try:
        page, limit = parse_pagination(request.args)
        filters = build_item_filters(request.args.get("search"), request.args.get("category"))
        item_list, total_items = get_all_items(get_db(), page, limit, filters)
        return jsonify(paginated_response(item_list, total_items, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_get_all_items: {e}")
        return jsonify({"message": "Failed to fetch items", "error": str(e)}), 500

@items_bp.route('/<item_id>', methods=['DELETE'])
@permission_required('master')
def handle_delete_item(item_id):
    if not ObjectId.is_valid(item_id): return jsonify({"message": "Invalid item ID format"}), 400
    try:
        deleted_count = delete_item_by_id(get_db(), item_id, user=get_current_username())
        if deleted_count == 0: return jsonify({"message": "Item not found"}), 404
        return jsonify({"message": "Item deleted successfully"}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_delete_item for ID {item_id}: {e}")
        return jsonify({"message": "Failed to delete item", "error": str(e)}), 500

@items_bp.route('/<item_id>/stock-movements', methods=['GET'])
@permission_required('reports')
def handle_get_stock_movements(item_id):
    """ Fetches the stock movements of a specific item, optionally between `start_date` and `end_date`. """
    if not ObjectId.is_valid(item_id): return jsonify({"message": "Invalid item ID format"}), 400
    try:
        db = get_db()
        item = get_item_by_id(db, item_id)
        if not item:
            return jsonify({"message": "Item not found"}), 404
        movements = get_movements_for_item(
            db, item['item_code'],
            parse_date_arg(request.args, 'start_date'),
            parse_date_arg(request.args, 'end_date')
        )
        return jsonify({"data": movements}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error fetching stock movements for item {item_id}: {e}")
        return jsonify({"message": "Failed to fetch stock movements", "error": str(e)}), 500
