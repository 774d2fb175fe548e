# api/areas.py
from flask import Blueprint, request, jsonify
import logging
from bson import ObjectId

from auth_utils import permission_required, get_current_username
from db.area_dal import create_area, get_area_by_id, get_all_areas, update_area, delete_area_by_id
from db.database import get_db
from utils.request_args import parse_pagination, paginated_response

areas_bp = Blueprint(
    'areas_bp',
    __name__,
    url_prefix='/api/areas'
)

logging.basicConfig(level=logging.INFO)

@areas_bp.route('', methods=['GET'])
@permission_required('dashboard')
def handle_get_areas():
    try:
        page, limit = parse_pagination(request.args, default_limit=-1)
        areas, total = get_all_areas(get_db(), page, limit, request.args.get("search"))
        return jsonify(paginated_response(areas, total, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_get_areas: {e}")
        return jsonify({"message": "Failed to fetch areas", "error": str(e)}), 500

@areas_bp.route('/<area_id>', methods=['GET'])
@permission_required('dashboard')
def handle_get_area(area_id):
    if not ObjectId.is_valid(area_id):
        return jsonify({"message": "Invalid area ID format"}), 400
    area = get_area_by_id(get_db(), area_id)
    if not area:
        return jsonify({"message": "Area not found"}), 404
    return jsonify(area), 200

@areas_bp.route('', methods=['POST'])
@permission_required('master')
def handle_create_area():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400
    try:
        db = get_db()
        area_id = create_area(db, data, user=get_current_username())
        return jsonify({"message": "Area created successfully", "data": get_area_by_id(db, area_id)}), 201
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_create_area: {e}")
        return jsonify({"message": "Failed to create area", "error": str(e)}), 500

@areas_bp.route('/<area_id>', methods=['PUT'])
@permission_required('master')
def handle_update_area(area_id):
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"message": "No JSON data provided"}), 400
    if not ObjectId.is_valid(area_id):
        return jsonify({"message": "Invalid area ID format"}), 400
    try:
        db = get_db()
        if update_area(db, area_id, data, user=get_current_username()) == 0:
            return jsonify({"message": "Area not found"}), 404
        return jsonify({"message": "Area updated successfully", "data": get_area_by_id(db, area_id)}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_update_area for ID {area_id}: {e}")
        return jsonify({"message": "Failed to update area", "error": str(e)}), 500

@areas_bp.route('/<area_id>', methods=['DELETE'])
@permission_required('master')
def handle_delete_area(area_id):
    if not ObjectId.is_valid(area_id):
        return jsonify({"message": "Invalid area ID format"}), 400
    try:
        if delete_area_by_id(get_db(), area_id, user=get_current_username()) == 0:
            return jsonify({"message": "Area not found"}), 404
        return jsonify({"message": "Area deleted successfully"}), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 409
    except Exception as e:
        logging.error(f"Error in handle_delete_area for ID {area_id}: {e}")
        return jsonify({"message": "Failed to delete area", "error": str(e)}), 500
