import mongomock
import pytest
from flask_jwt_extended import create_access_token

from app import create_app
from db.area_dal import create_area
from db.category_dal import create_category
from db.customer_dal import create_customer
from db.database import mongo
from db.item_dal import create_item
from db.supplier_dal import create_supplier
from db.user_dal import create_user

TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test-secret-key",
    "JWT_SECRET_KEY": "test-jwt-secret-key-that-is-long-enough-for-hs256",
    "MONGO_URI": "mongodb://localhost:27017/stoir_test",
    "TRANSACTION_NUMBER_BACKEND": "mongodb",
}


@pytest.fixture
def db(monkeypatch):
    """An in-memory MongoDB standing in for `mongo.db`."""
    database = mongomock.MongoClient()["stoir_test"]
    monkeypatch.setattr(mongo, "db", database)
    return database


@pytest.fixture
def app(db, monkeypatch):
    flask_app = create_app(TEST_CONFIG)
    # init_app replaced the handle with a real (lazy) client; point it back at the mock.
    monkeypatch.setattr(mongo, "db", db)
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_headers(app):
    """Creates a user with the given role and returns Authorization headers for it."""
    def _make(role="owner", username=None):
        username = username or f"{role}_user"
        with app.app_context():
            user_id = create_user(username, "secret123", role=role)
            token = create_access_token(
                identity=str(user_id),
                additional_claims={"role": role, "username": username}
            )
        return {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture
def owner_headers(make_headers):
    return make_headers("owner")


@pytest.fixture
def admin_headers(make_headers):
    return make_headers("admin")


@pytest.fixture
def staff_headers(make_headers):
    return make_headers("staff")


@pytest.fixture
def master_data(db):
    """One category, area, supplier, customer and two items (one with opening stock)."""
    create_category(db, {"category_name": "Engine"})
    create_area(db, {"area_name": "Local"})
    create_supplier(db, {"supplier_name": "PT Sumber Part", "email": "sales@sumberpart.co.id"})
    create_customer(db, {"customer_name": "Bengkel Jaya", "area_code": "AREA001"})
    create_item(db, {
        "item_code": "BRK-001", "item_name": "Brake Pad", "category_code": "CAT001", "unit": "pcs",
        "min_stock": 5, "purchase_price": 50000, "sale_price": 75000, "opening_stock": 20,
    })
    create_item(db, {
        "item_code": "OIL-001", "item_name": "Engine Oil 1L", "category_code": "CAT001", "unit": "liter",
        "min_stock": 10, "purchase_price": 40000, "sale_price": 55000,
    })
    return db


@pytest.fixture
def test_config(db):
    return dict(TEST_CONFIG)
