import pytest

from db.user_dal import create_user, update_user


def login(client, username, password="secret123"):
    return client.post("/api/auth/login", json={"username": username, "password": password})


def test_bootstrap_creates_a_single_owner(client):
    assert client.get("/api/auth/bootstrap-status").get_json() == {"needsSetup": True}

    created = client.post("/api/auth/setup-owner", json={"username": "boss", "password": "secret123"})
    assert created.status_code == 201
    assert client.get("/api/auth/bootstrap-status").get_json() == {"needsSetup": False}

    again = client.post("/api/auth/setup-owner", json={"username": "boss2", "password": "secret123"})
    assert again.status_code == 409


def test_setup_owner_enforces_password_length(client):
    response = client.post("/api/auth/setup-owner", json={"username": "boss", "password": "123"})
    assert response.status_code == 400


def test_login_returns_token_and_permissions(client, db):
    create_user("kasir", "secret123", role="staff")
    response = login(client, "kasir")
    assert response.status_code == 200
    body = response.get_json()
    assert body["access_token"]
    assert body["user"]["username"] == "kasir"
    assert "password_hash" not in body["user"]
    assert body["permissions"] == ["dashboard", "reports", "transactions"]
    assert db["users"].find_one({"username": "kasir"})["last_login"] is not None
    assert db["activity_log"].count_documents({"action_type": "LOGIN"}) == 1

    profile = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert profile.status_code == 200
    assert profile.get_json()["role"] == "staff"


@pytest.mark.parametrize("username,password", [("kasir", "wrong-password"), ("nobody", "secret123")])
def test_login_with_bad_credentials(client, db, username, password):
    create_user("kasir", "secret123", role="staff")
    assert login(client, username, password).status_code == 401


def test_inactive_user_cannot_login(client, db):
    user_id = create_user("kasir", "secret123", role="staff")
    update_user(user_id, {"is_active": False})
    assert login(client, "kasir").status_code == 403


def test_logout_is_recorded(client, db):
    create_user("kasir", "secret123", role="staff")
    token = login(client, "kasir").get_json()["access_token"]
    response = client.post("/api/auth/logout", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert db["users"].find_one({"username": "kasir"})["last_logout"] is not None
    assert db["activity_log"].count_documents({"action_type": "LOGOUT"}) == 1


def test_only_owner_manages_users(client, admin_headers):
    response = client.get("/api/users", headers=admin_headers)
    assert response.status_code == 403


def test_owner_creates_updates_and_deletes_users(client, owner_headers):
    created = client.post("/api/users", json={
        "username": "gudang", "password": "secret123", "full_name": "Staf Gudang", "role": "staff",
    }, headers=owner_headers)
    assert created.status_code == 201
    user = created.get_json()["data"]

    duplicate = client.post("/api/users", json={"username": "GUDANG", "password": "secret123"}, headers=owner_headers)
    assert duplicate.status_code == 400

    promoted = client.put(f"/api/users/{user['_id']}", json={"role": "admin"}, headers=owner_headers)
    assert promoted.get_json()["data"]["role"] == "admin"

    bad_role = client.put(f"/api/users/{user['_id']}", json={"role": "manager"}, headers=owner_headers)
    assert bad_role.status_code == 400

    assert client.delete(f"/api/users/{user['_id']}", headers=owner_headers).status_code == 200
    usernames = [entry["username"] for entry in client.get("/api/users", headers=owner_headers).get_json()["data"]]
    assert usernames == ["owner_user"]


def test_owner_cannot_remove_own_account(client, db, owner_headers):
    owner = db["users"].find_one({"username": "owner_user"})
    demote = client.put(f"/api/users/{owner['_id']}", json={"role": "staff"}, headers=owner_headers)
    assert demote.status_code == 400
    assert client.delete(f"/api/users/{owner['_id']}", headers=owner_headers).status_code == 409


def test_last_active_owner_must_remain(db):
    owner_id = create_user("boss", "secret123", role="owner")
    with pytest.raises(ValueError, match="At least one active owner"):
        update_user(owner_id, {"is_active": False})
    create_user("boss2", "secret123", role="owner")
    assert update_user(owner_id, {"is_active": False}) == 1


def test_activity_log_listing(client, admin_headers, staff_headers):
    client.post("/api/categories", json={"category_name": "Engine"}, headers=admin_headers)
    client.post("/api/categories", json={"category_name": "Brake"}, headers=admin_headers)

    assert client.get("/api/activity-log", headers=staff_headers).status_code == 403

    body = client.get("/api/activity-log?action=CREATE_CATEGORY", headers=admin_headers).get_json()
    assert body["total"] == 2
    assert body["data"][0]["user"] == "admin_user"

    searched = client.get("/api/activity-log?search=brake", headers=admin_headers).get_json()
    assert searched["total"] == 1
    assert client.get("/api/activity-log?start_date=oops", headers=admin_headers).status_code == 400


def test_deactivated_user_token_stops_working(client, db, staff_headers):
    assert client.get("/api/items", headers=staff_headers).status_code == 200
    db["users"].update_one({"username": "staff_user"}, {"$set": {"is_active": False}})
    response = client.get("/api/items", headers=staff_headers)
    assert response.status_code == 401
    assert client.get("/api/auth/profile", headers=staff_headers).status_code == 401


def test_deleted_user_token_stops_working(client, owner_headers, staff_headers, db):
    staff = db["users"].find_one({"username": "staff_user"})
    assert client.delete(f"/api/users/{staff['_id']}", headers=owner_headers).status_code == 200
    assert client.get("/api/items", headers=staff_headers).status_code == 401


def test_demotion_applies_to_existing_token(client, owner_headers, admin_headers, db):
    assert client.post("/api/categories", json={"category_name": "Engine"}, headers=admin_headers).status_code == 201
    admin = db["users"].find_one({"username": "admin_user"})
    client.put(f"/api/users/{admin['_id']}", json={"role": "staff"}, headers=owner_headers)
    response = client.post("/api/categories", json={"category_name": "Brake"}, headers=admin_headers)
    assert response.status_code == 403


def test_is_active_accepts_string_flags(client, owner_headers, staff_headers, db):
    staff = db["users"].find_one({"username": "staff_user"})
    response = client.put(f"/api/users/{staff['_id']}", json={"is_active": "false"}, headers=owner_headers)
    assert response.status_code == 200
    assert db["users"].find_one({"_id": staff["_id"]})["is_active"] is False

    invalid = client.put(f"/api/users/{staff['_id']}", json={"is_active": "maybe"}, headers=owner_headers)
    assert invalid.status_code == 400
