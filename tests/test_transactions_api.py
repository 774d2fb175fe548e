from datetime import date

import pytest


@pytest.fixture
def headers(staff_headers):
    return staff_headers


def stock_of(db, item_code):
    return db["items"].find_one({"item_code": item_code})["stock"]


def test_purchase_adds_stock_and_gets_a_number(client, headers, master_data):
    response = client.post("/api/purchases", json={
        "supplier_code": "SUP001",
        "date": "2026-01-06",
        "lines": [{"item_code": "OIL-001", "quantity": 12, "price": 38000}],
    }, headers=headers)
    assert response.status_code == 201
    purchase = response.get_json()["data"]
    assert purchase["transaction_no"] == "PO-260106-0001"
    assert purchase["grand_total"] == 456000
    assert purchase["supplier_name"] == "PT Sumber Part"
    assert stock_of(master_data, "OIL-001") == 12

    second = client.post("/api/purchases", json={
        "supplier_code": "SUP001",
        "date": "2026-01-06",
        "lines": [{"item_code": "OIL-001", "quantity": 1}],
    }, headers=headers).get_json()["data"]
    assert second["transaction_no"] == "PO-260106-0002"
    assert second["lines"][0]["price"] == 40000


def test_purchase_without_date_uses_today(client, headers, master_data):
    purchase = client.post("/api/purchases", json={
        "supplier_code": "SUP001",
        "lines": [{"item_code": "OIL-001", "quantity": 1}],
    }, headers=headers).get_json()["data"]
    assert purchase["transaction_no"] == f"PO-{date.today().strftime('%y%m%d')}-0001"


def test_purchase_with_invalid_date_is_rejected(client, headers, master_data):
    response = client.post("/api/purchases", json={
        "supplier_code": "SUP001",
        "date": "06/01/2026",
        "lines": [{"item_code": "OIL-001", "quantity": 1}],
    }, headers=headers)
    assert response.status_code == 400
    assert stock_of(master_data, "OIL-001") == 0


def test_purchase_validation(client, headers, master_data):
    no_supplier = client.post("/api/purchases", json={"lines": [{"item_code": "OIL-001", "quantity": 1}]}, headers=headers)
    assert no_supplier.status_code == 400

    no_lines = client.post("/api/purchases", json={"supplier_code": "SUP001", "lines": []}, headers=headers)
    assert no_lines.status_code == 400

    bad_quantity = client.post("/api/purchases", json={
        "supplier_code": "SUP001", "lines": [{"item_code": "OIL-001", "quantity": 0}],
    }, headers=headers)
    assert bad_quantity.status_code == 400
    assert "quantity must be greater than 0" in bad_quantity.get_json()["message"]


def test_sale_reduces_stock(client, headers, master_data):
    response = client.post("/api/sales", json={
        "customer_code": "CST001",
        "date": "2026-01-06",
        "lines": [{"item_code": "BRK-001", "quantity": 4, "discount": 10}],
    }, headers=headers)
    assert response.status_code == 201
    sale = response.get_json()["data"]
    assert sale["transaction_no"] == "SL-260106-0001"
    assert sale["customer_name"] == "Bengkel Jaya"
    assert sale["grand_total"] == pytest.approx(270000)
    assert stock_of(master_data, "BRK-001") == 16

    movement = master_data["stock_movements"].find_one({"reference_no": "SL-260106-0001"})
    assert movement["movement_type"] == "OUT"
    assert movement["quantity"] == -4
    assert movement["stock_before"] == 20


def test_walk_in_sale(client, headers, master_data):
    sale = client.post("/api/sales", json={
        "lines": [{"item_code": "BRK-001", "quantity": 1}],
    }, headers=headers).get_json()["data"]
    assert sale["customer_code"] is None
    assert sale["customer_name"] == "Walk-in"


def test_sale_with_insufficient_stock_is_refused(client, headers, master_data):
    response = client.post("/api/sales", json={
        "date": "2026-01-06",
        "lines": [
            {"item_code": "BRK-001", "quantity": 15},
            {"item_code": "BRK-001", "quantity": 10},
        ],
    }, headers=headers)
    assert response.status_code == 400
    assert "Insufficient stock" in response.get_json()["message"]
    assert stock_of(master_data, "BRK-001") == 20

    # A refused sale does not use up a number.
    sale = client.post("/api/sales", json={
        "date": "2026-01-06", "lines": [{"item_code": "BRK-001", "quantity": 1}],
    }, headers=headers).get_json()["data"]
    assert sale["transaction_no"] == "SL-260106-0001"


def test_sale_discount_over_100_is_rejected(client, headers, master_data):
    response = client.post("/api/sales", json={
        "lines": [{"item_code": "BRK-001", "quantity": 1, "discount": 150}],
    }, headers=headers)
    assert response.status_code == 400


def test_stock_opname_adjusts_to_physical_count(client, headers, master_data):
    response = client.post("/api/stock-opname", json={
        "date": "2026-01-06",
        "lines": [
            {"item_code": "BRK-001", "physical_stock": 18, "notes": "2 damaged"},
            {"item_code": "OIL-001", "physical_stock": 0},
        ],
    }, headers=headers)
    assert response.status_code == 201
    opname = response.get_json()["data"]
    assert opname["transaction_no"] == "SO-20260106-0001"
    assert opname["adjusted_items"] == 1
    assert opname["lines"][0]["difference"] == -2
    assert stock_of(master_data, "BRK-001") == 18
    assert master_data["stock_movements"].count_documents({"reference_no": "SO-20260106-0001"}) == 1


def test_stock_opname_rejects_duplicate_items(client, headers, master_data):
    response = client.post("/api/stock-opname", json={
        "lines": [
            {"item_code": "BRK-001", "physical_stock": 18},
            {"item_code": "BRK-001", "physical_stock": 17},
        ],
    }, headers=headers)
    assert response.status_code == 400
    assert "counted twice" in response.get_json()["message"]


def create_claim(client, headers, **overrides):
    payload = {
        "customer_code": "CST001",
        "date": "2026-01-06",
        "lines": [{"item_code": "BRK-001", "quantity": 2, "reason": "Squeaks after install"}],
    }
    payload.update(overrides)
    return client.post("/api/customer-claims", json=payload, headers=headers)


def test_claim_starts_pending_without_moving_stock(client, headers, master_data):
    response = create_claim(client, headers)
    assert response.status_code == 201
    claim = response.get_json()["data"]
    assert claim["transaction_no"] == "CL-20260106-0001"
    assert claim["status"] == "PENDING"
    assert stock_of(master_data, "BRK-001") == 20


def test_claim_requires_customer_and_reason(client, headers, master_data):
    assert create_claim(client, headers, customer_code="").status_code == 400
    no_reason = create_claim(client, headers, lines=[{"item_code": "BRK-001", "quantity": 1}])
    assert no_reason.status_code == 400


def test_approved_claim_issues_replacement_stock(client, headers, master_data):
    claim = create_claim(client, headers).get_json()["data"]
    response = client.put(
        f"/api/customer-claims/{claim['_id']}/status",
        json={"status": "APPROVED", "resolution_notes": "Replaced"}, headers=headers
    )
    assert response.status_code == 200
    resolved = response.get_json()["data"]
    assert resolved["status"] == "APPROVED"
    assert resolved["resolved_by"] == "staff_user"
    assert stock_of(master_data, "BRK-001") == 18

    again = client.put(f"/api/customer-claims/{claim['_id']}/status", json={"status": "REJECTED"}, headers=headers)
    assert again.status_code == 409
    assert stock_of(master_data, "BRK-001") == 18


def test_rejected_claim_keeps_stock(client, headers, master_data):
    claim = create_claim(client, headers).get_json()["data"]
    response = client.put(f"/api/customer-claims/{claim['_id']}/status", json={"status": "REJECTED"}, headers=headers)
    assert response.status_code == 200
    assert stock_of(master_data, "BRK-001") == 20


def test_claim_approval_fails_without_stock(client, headers, master_data):
    claim = create_claim(client, headers, lines=[
        {"item_code": "BRK-001", "quantity": 2, "reason": "Cracked"},
        {"item_code": "OIL-001", "quantity": 1, "reason": "Leaking"},
    ]).get_json()["data"]
    response = client.put(f"/api/customer-claims/{claim['_id']}/status", json={"status": "APPROVED"}, headers=headers)
    assert response.status_code == 409
    assert stock_of(master_data, "BRK-001") == 20
    assert master_data["stock_transactions"].find_one({"transaction_no": claim["transaction_no"]})["status"] == "PENDING"


def test_claim_status_must_be_a_resolution(client, headers, master_data):
    claim = create_claim(client, headers).get_json()["data"]
    response = client.put(f"/api/customer-claims/{claim['_id']}/status", json={"status": "PENDING"}, headers=headers)
    assert response.status_code == 409


def test_list_and_fetch_transactions(client, headers, master_data):
    client.post("/api/purchases", json={
        "supplier_code": "SUP001", "date": "2026-01-05", "lines": [{"item_code": "OIL-001", "quantity": 3}],
    }, headers=headers)
    created = client.post("/api/purchases", json={
        "supplier_code": "SUP001", "date": "2026-01-06", "lines": [{"item_code": "OIL-001", "quantity": 5}],
    }, headers=headers).get_json()["data"]

    listing = client.get("/api/purchases", headers=headers).get_json()
    assert listing["total"] == 2
    assert listing["data"][0]["transaction_no"] == "PO-260106-0001"

    in_range = client.get("/api/purchases?start_date=2026-01-06&end_date=2026-01-06", headers=headers).get_json()
    assert [purchase["transaction_no"] for purchase in in_range["data"]] == ["PO-260106-0001"]

    fetched = client.get(f"/api/purchases/{created['_id']}", headers=headers)
    assert fetched.status_code == 200
    assert fetched.get_json()["total_quantity"] == 5

    # A purchase id is not a sale.
    assert client.get(f"/api/sales/{created['_id']}", headers=headers).status_code == 404


def test_supplier_with_purchases_cannot_be_deleted(client, headers, admin_headers, master_data):
    client.post("/api/purchases", json={
        "supplier_code": "SUP001", "lines": [{"item_code": "OIL-001", "quantity": 1}],
    }, headers=headers)
    supplier = master_data["suppliers"].find_one({"supplier_code": "SUP001"})
    assert client.delete(f"/api/suppliers/{supplier['_id']}", headers=admin_headers).status_code == 409


def test_allocate_transaction_number(client, headers):
    first = client.post("/api/transaction-numbers", json={"prefix": "SO", "date": "2026-01-06"}, headers=headers)
    second = client.post("/api/transaction-numbers", json={"prefix": "SO", "date": "2026-01-06"}, headers=headers)
    assert first.status_code == 201
    assert first.get_json() == {"transactionNumber": "SO-20260106-0001"}
    assert second.get_json() == {"transactionNumber": "SO-20260106-0002"}


def test_allocate_transaction_number_validation(client, headers):
    assert client.post("/api/transaction-numbers", json={"date": "2026-01-06"}, headers=headers).status_code == 400
    bad_date = client.post("/api/transaction-numbers", json={"prefix": "PO", "date": "yesterday"}, headers=headers)
    assert bad_date.status_code == 400


def test_counters_listing(client, headers, admin_headers):
    client.post("/api/transaction-numbers", json={"prefix": "PO", "date": "2026-01-06"}, headers=headers)
    assert client.get("/api/transaction-numbers/counters", headers=headers).status_code == 403
    counters = client.get("/api/transaction-numbers/counters?prefix=PO", headers=admin_headers).get_json()["data"]
    assert counters[0]["_id"] == "PO|260106"
    assert counters[0]["sequence"] == 1


@pytest.mark.parametrize("quantity", ["nan", "inf", "-inf"])
def test_purchase_rejects_non_finite_quantity(client, headers, master_data, quantity):
    response = client.post("/api/purchases", json={
        "supplier_code": "SUP001", "date": "2026-01-06",
        "lines": [{"item_code": "BRK-001", "quantity": quantity}],
    }, headers=headers)
    assert response.status_code == 400
    assert stock_of(master_data, "BRK-001") == 20
    assert master_data["stock_transactions"].count_documents({}) == 0


def test_sale_rejects_non_finite_price_and_discount(client, headers, master_data):
    bad_price = client.post("/api/sales", json={
        "lines": [{"item_code": "BRK-001", "quantity": 1, "price": "nan"}],
    }, headers=headers)
    bad_discount = client.post("/api/sales", json={
        "lines": [{"item_code": "BRK-001", "quantity": 1, "discount": "nan"}],
    }, headers=headers)
    assert bad_price.status_code == 400
    assert bad_discount.status_code == 400
    assert stock_of(master_data, "BRK-001") == 20


def test_stock_opname_rejects_infinite_count(client, headers, master_data):
    response = client.post("/api/stock-opname", json={
        "lines": [{"item_code": "BRK-001", "physical_stock": "inf"}],
    }, headers=headers)
    assert response.status_code == 400
    assert stock_of(master_data, "BRK-001") == 20


def test_stock_opname_sets_count_despite_concurrent_sale(master_data, monkeypatch):
    import db.stock_opname_dal as stock_opname_dal
    from db.item_dal import apply_stock_movement, set_stock_level
    from utils.transaction_number import TransactionNumberGenerator

    def sale_lands_first(db_conn, item_code, *args, **kwargs):
        # Another cashier sells 3 after the count was validated but before it is applied.
        apply_stock_movement(db_conn, item_code, -3, movement_type='OUT', reference_no='SL-260106-0001',
                             reference_type='SALE', movement_date=None)
        return set_stock_level(db_conn, item_code, *args, **kwargs)

    monkeypatch.setattr(stock_opname_dal, "set_stock_level", sale_lands_first)
    opname = stock_opname_dal.create_stock_opname(master_data, {
        "date": "2026-01-06", "lines": [{"item_code": "BRK-001", "physical_stock": 15}],
    }, TransactionNumberGenerator())

    assert stock_of(master_data, "BRK-001") == 15
    assert opname["lines"][0]["system_stock"] == 17
    assert opname["lines"][0]["difference"] == -2
    movement = master_data["stock_movements"].find_one({"reference_no": opname["transaction_no"]})
    assert movement["quantity"] == -2
    assert movement["stock_before"] == 17
    assert movement["stock_after"] == 15


def test_item_codes_in_lines_are_case_insensitive(client, headers, master_data):
    response = client.post("/api/sales", json={
        "date": "2026-01-06", "lines": [{"item_code": " brk-001 ", "quantity": 2}],
    }, headers=headers)
    assert response.status_code == 201
    assert response.get_json()["data"]["lines"][0]["item_code"] == "BRK-001"
    assert stock_of(master_data, "BRK-001") == 18


def test_customer_with_transactions_cannot_be_deleted(client, headers, admin_headers, master_data):
    client.post("/api/sales", json={
        "customer_code": "CST001", "lines": [{"item_code": "BRK-001", "quantity": 1}],
    }, headers=headers)
    customer = master_data["customers"].find_one({"customer_code": "CST001"})
    response = client.delete(f"/api/customers/{customer['_id']}", headers=admin_headers)
    assert response.status_code == 409
    assert "recorded transactions" in response.get_json()["message"]
    assert master_data["customers"].count_documents({"customer_code": "CST001"}) == 1
