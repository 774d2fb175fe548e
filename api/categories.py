# api/categories.py
from flask import Blueprint, request, jsonify
import logging
from bson import ObjectId

from auth_utils import permission_required, get_current_username
from db.category_dal import (
    create_category,
    get_category_by_id,
    get_all_categories,
    update_category,
    delete_category_by_id
)
from db.database import get_db
from utils.request_args import parse_pagination, paginated_response

categories_bp = Blueprint(
    'categories_bp',
    __name__,
    url_prefix='/api/categories'
)

logging.basicConfig(level=logging.INFO)

@categories_bp.route('', methods=['GET'])
@permission_required('dashboard')
def handle_get_categories():
    """ Lists categories. Without a `limit` every category is returned (dropdowns use this). """
    try:
        page, limit = parse_pagination(request.args, default_limit=-1)
        categories, total = get_all_categories(get_db(), page, limit, request.args.get("search"))
        return jsonify(paginated_response(categories, total, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_get_categories: {e}")
        return jsonify({"message": "Failed to fetch categories", "error": str(e)}), 500

@categories_bp.route('/<category_id>', methods=['GET'])
@permission_required('dashboard')
def handle_get_category(category_id):
    if not ObjectId.is_valid(category_id):
        return jsonify({"message": "Invalid category ID format"}), 400
    category = get_category_by_id(get_db(), category_id)
    if not category:
        return jsonify({"message": "Category not found"}), 404
    return jsonify(category), 200

@categories_bp.route('', methods=['POST'])
@permission_required('master')
def handle_create_category():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400
    try:
        db = get_db()
        category_id = create_category(db, data, user=get_current_username())
        return jsonify({"message": "Category created successfully", "data": get_category_by_id(db, category_id)}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_create_category: {e}")
        return jsonify({"message": "Failed to create category", "error": str(e)}), 500

@categories_bp.route('/<category_id>', methods=['PUT'])
@permission_required('master')
def handle_update_category(category_id):
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400
    if not ObjectId.is_valid(category_id):
        return jsonify({"message": "Invalid category ID format"}), 400
    try:
        db = get_db()
        if update_category(db, category_id, data, user=get_current_username()) == 0:
            return jsonify({"message": "Category not found"}), 404
        return jsonify({"message": "Category updated successfully", "data": get_category_by_id(db, category_id)}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_update_category for ID {category_id}: {e}")
        return jsonify({"message": "Failed to update category", "error": str(e)}), 500

@categories_bp.route('/<category_id>', methods=['DELETE'])
@permission_required('master')
def handle_delete_category(category_id):
    if not ObjectId.is_valid(category_id):
        return jsonify({"message": "Invalid category ID format"}), 400
    try:
        if delete_category_by_id(get_db(), category_id, user=get_current_username()) == 0:
            return jsonify({"message": "Category not found"}), 404
        return jsonify({"message": "Category deleted successfully"}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_delete_category for ID {category_id}: {e}")
        return jsonify({"message": "Failed to delete category", "error": str(e)}), 500
