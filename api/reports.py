# api/reports.py
from flask import Blueprint, request, jsonify
import logging

from auth_utils import permission_required
from db.database import get_db
from db.report_dal import get_stock_report, get_stock_alerts, get_stock_card, get_dashboard_summary
from db.transaction_dal import TRANSACTION_TYPES, get_transactions, get_transaction_by_number
from utils.request_args import parse_pagination, parse_date_arg, paginated_response

reports_bp = Blueprint(
    'reports_bp',
    __name__,
    url_prefix='/api/reports'
)

logging.basicConfig(level=logging.INFO)

@reports_bp.route('/dashboard-summary', methods=['GET'])
@permission_required('dashboard')
def handle_dashboard_summary():
    try:
        return jsonify(get_dashboard_summary(get_db())), 200
    except Exception as e:
        logging.error(f"Error in handle_dashboard_summary: {e}")
        return jsonify({"message": "Failed to build dashboard summary", "error": str(e)}), 500

@reports_bp.route('/stock', methods=['GET'])
@permission_required('reports')
def handle_stock_report():
    try:
        items, summary = get_stock_report(get_db(), request.args.get('search'), request.args.get('category'))
        return jsonify({"data": items, "summary": summary}), 200
    except Exception as e:
        logging.error(f"Error in handle_stock_report: {e}")
        return jsonify({"message": "Failed to build stock report", "error": str(e)}), 500

@reports_bp.route('/stock-alert', methods=['GET'])
@permission_required('reports')
def handle_stock_alert():
    try:
        alerts = get_stock_alerts(get_db())
        return jsonify({"data": alerts, "total": len(alerts)}), 200
    except Exception as e:
        logging.error(f"Error in handle_stock_alert: {e}")
        return jsonify({"message": "Failed to build stock alert", "error": str(e)}), 500

@reports_bp.route('/stock-card/<item_code>', methods=['GET'])
@permission_required('reports')
def handle_stock_card(item_code):
    try:
        card = get_stock_card(
            get_db(), item_code,
            parse_date_arg(request.args, 'start_date'),
            parse_date_arg(request.args, 'end_date')
        )
        if card is None:
            return jsonify({"message": "Item not found"}), 404
        return jsonify(card), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_stock_card for {item_code}: {e}")
        return jsonify({"message": "Failed to build stock card", "error": str(e)}), 500

@reports_bp.route('/transactions', methods=['GET'])
@permission_required('reports')
def handle_transaction_history():
    """ Transaction history across all kinds; `type` takes a comma separated list. """
    try:
        page, limit = parse_pagination(request.args)
        transaction_type = None
        if request.args.get('type'):
            transaction_type = [value.strip().upper() for value in request.args['type'].split(',') if value.strip()]
            unknown = [value for value in transaction_type if value not in TRANSACTION_TYPES]
            if unknown:
                return jsonify({"message": f"Unknown transaction type: {', '.join(unknown)}"}), 400
        transactions, total = get_transactions(
            get_db(), page, limit,
            transaction_type=transaction_type,
            start_date=parse_date_arg(request.args, 'start_date'),
            end_date=parse_date_arg(request.args, 'end_date'),
            search=request.args.get('search')
        )
        return jsonify(paginated_response(transactions, total, page, limit)), 200
    except ValueError as ve:
        return jsonify({"message": str(ve)}), 400
    except Exception as e:
        logging.error(f"Error in handle_transaction_history: {e}")
        return jsonify({"message": "Failed to fetch transaction history", "error": str(e)}), 500

@reports_bp.route('/transactions/<transaction_no>', methods=['GET'])
@permission_required('reports')
def handle_get_transaction_by_number(transaction_no):
    transaction = get_transaction_by_number(get_db(), transaction_no)
    if not transaction:
        return jsonify({"message": "Transaction not found"}), 404
    return jsonify(transaction), 200
