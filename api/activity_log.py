# api/activity_log.py
from flask import Blueprint, request, jsonify
import logging

from auth_utils import permission_required
from db.activity_log_dal import get_activities
from db.database import get_db
from utils.request_args import parse_pagination, parse_date_arg, paginated_response

activity_log_bp = Blueprint(
    'activity_log_bp',
    __name__,
    url_prefix='/api/activity-log'
)

logging.basicConfig(level=logging.INFO)

@activity_log_bp.route('', methods=['GET'])
@permission_required('activity_log')
def handle_get_activity_log():
    try:
        page, limit = parse_pagination(request.args, default_limit=50)
        entries, total = get_activities(
            get_db(), page, limit,
            user=request.args.get('user'),
            action_type=request.args.get('action'),
            search=request.args.get('search'),
            start_date=parse_date_arg(request.args, 'start_date'),
            end_date=parse_date_arg(request.args, 'end_date')
        )
        return jsonify(paginated_response(entries, total, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_get_activity_log: {e}")
        return jsonify({"message": "Failed to fetch activity log", "error": str(e)}), 500
