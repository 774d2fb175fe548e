# app.py
import logging
import socket
from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from config import config
from db.counter_dal import create_transaction_number_generator
from db.database import init_db, get_db
from db.user_dal import get_active_user
from utils.json_encoder import MongoJSONProvider

# Import Blueprints
from api.auth import auth_bp
from api.users import users_bp
from api.categories import categories_bp
from api.areas import areas_bp
from api.suppliers import suppliers_bp
from api.customers import customers_bp
from api.items import items_bp
from api.purchases import purchases_bp
from api.sales import sales_bp
from api.stock_opname import stock_opname_bp
from api.customer_claims import customer_claims_bp
from api.reports import reports_bp
from api.activity_log import activity_log_bp
from api.transaction_numbers import transaction_numbers_bp


def create_app(test_config=None):
    """
    Application factory to create and configure the Flask app.
    """
    app = Flask(__name__)
    app.config.from_object(config)
    if test_config:
        app.config.update(test_config)

    frontend_urls = [url.strip() for url in app.config['FRONTEND_URLS'].split(',') if url.strip()]
    app.logger.info(f"Allowed CORS origins: {frontend_urls}")
    CORS(
        app,
        origins=frontend_urls,
        supports_credentials=True
    )

    init_db(app)
    app.json = MongoJSONProvider(app)
    jwt = JWTManager(app)

    # Tokens of deleted or deactivated users stop working immediately.
    @jwt.user_lookup_loader
    def load_active_user(_jwt_header, jwt_data):
        return get_active_user(jwt_data["sub"])

    @jwt.user_lookup_error_loader
    def inactive_user_response(_jwt_header, jwt_data):
        return jsonify({"message": "User account is inactive or no longer exists"}), 401

    # One generator per application; handlers reach it through app.extensions.
    app.extensions['transaction_numbers'] = create_transaction_number_generator(
        app.config.get('TRANSACTION_NUMBER_BACKEND', 'mongodb'), db_provider=get_db
    )

    # Register Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(areas_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(stock_opname_bp)
    app.register_blueprint(customer_claims_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(activity_log_bp)
    app.register_blueprint(transaction_numbers_bp)

    # --- Error Handlers for JSON API ---
    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Not Found", "message": "The requested URL was not found on the server."}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"error": "Method Not Allowed", "message": "The method is not allowed for the requested URL."}), 405

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal Server Error: {error}")
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred."}), 500

    @app.route("/")
    @app.route("/api/health")
    def index():
        return jsonify({"status": "ok", "message": "STOIR inventory API"})

    return app


def find_available_port(host, start_port, attempts):
    """
    Returns the first port in [start_port, start_port + attempts] that can be bound on `host`.

    Raises:
        OSError: If every port in the range is taken.
    """
    last_error = None
    for port in range(start_port, start_port + attempts + 1):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((host, port))
                return port
            except OSError as e:
                last_error = e
    raise OSError(f"No free port between {start_port} and {start_port + attempts}: {last_error}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    host = app.config['API_HOST']
    port = find_available_port(host, app.config['API_PORT'], app.config['PORT_FALLBACK_ATTEMPTS'])
    app.logger.info(f"Starting STOIR API on http://{host}:{port}/api")
    app.run(host=host, port=port, debug=app.config.get('DEBUG', False))
