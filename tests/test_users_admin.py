# tests/test_users_admin.py
import pytest

from portal.core import rbac
from portal.core.models import User
from portal.core.status import AccountStatus
from scripts.migrate import run as migrate_run
from scripts.seed import run as seed_run


def _login(client, username, password) -> dict:
    r = client.post("/api/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def admin(client):
    migrate_run()
    seed_run()
    return _login(client, "admin", "admin123")


@pytest.fixture
def member(client, outbox, configure):
    configure(registration_needs_activation=False)
    r = client.post("/api/signup", json={"username": "alice", "email": "alice@example.com", "password": "secret1"})
    assert r.status_code == 201
    return r.json()


def test_seed_creates_the_creator(client, db):
    migrate_run()
    seed_run()
    seed_run()  # 重复执行只更新
    users = db.query(User).all()
    assert [u.username for u in users] == ["admin"]
    assert users[0].status == AccountStatus.ACTIVE


def test_member_cannot_manage_users(client, member):
    headers = _login(client, "alice", "secret1")
    assert client.get("/api/users", headers=headers).status_code == 403


def test_list_users_with_labels_and_roles(client, admin, member):
    r = client.get("/api/users", headers=admin)
    assert r.status_code == 200
    rows = {row["username"]: row for row in r.json()}
    assert rows["admin"]["role"] == rbac.THE_CREATOR
    assert rows["alice"]["role"] == rbac.MEMBER
    assert rows["alice"]["status_name"] == "Active"

    r = client.get("/api/users", headers=admin, params={"status": AccountStatus.INACTIVE})
    assert r.json() == []


def test_status_choices(client, admin):
    r = client.get("/api/users/statuses", headers=admin)
    assert r.json() == [
        {"value": 10, "label": "Active"},
        {"value": 1, "label": "Inactive"},
        {"value": 0, "label": "Deleted"},
    ]


def test_soft_delete_keeps_row_and_blocks_login(client, db, admin, member):
    r = client.patch(f"/api/users/{member['id']}/status", headers=admin, json={"status": AccountStatus.DELETED})
    assert r.status_code == 200, r.text
    assert r.json()["status_name"] == "Deleted"

    assert db.get(User, member["id"]) is not None
    r = client.post("/api/login", json={"username": "alice", "password": "secret1"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Incorrect username or password."

    # Deleted → Inactive 不允许
    r = client.patch(f"/api/users/{member['id']}/status", headers=admin, json={"status": AccountStatus.INACTIVE})
    assert r.status_code == 422

    r = client.patch(f"/api/users/{member['id']}/status", headers=admin, json={"status": AccountStatus.ACTIVE})
    assert r.status_code == 200


def test_status_change_guards(client, admin, member):
    r = client.patch(f"/api/users/{member['id']}/status", headers=admin, json={"status": 7})
    assert r.status_code == 422
    assert client.patch("/api/users/9999/status", headers=admin, json={"status": 0}).status_code == 404

    me = client.get("/api/me", headers=admin).json()
    r = client.patch(f"/api/users/{me['id']}/status", headers=admin, json={"status": 0})
    assert r.status_code == 400


def test_admin_creates_account(client, admin):
    body = {"username": "editor1", "email": "editor1@example.com", "password": "secret1",
            "status": AccountStatus.ACTIVE, "item_name": rbac.EDITOR}
    r = client.post("/api/users", headers=admin, json=body)
    assert r.status_code == 201, r.text
    assert r.json()["role"] == rbac.EDITOR

    r = client.post("/api/users", headers=admin, json={**body, "username": "x", "status": None,
                                                         "item_name": "wizard"})
    assert r.status_code == 422
    errors = r.json()["detail"]["errors"]
    assert errors["status"] == ["Status cannot be blank."]
    assert errors["item_name"] == ["Role is invalid."]
    assert errors["username"] == ["Username should contain at least 2 characters."]
    assert errors["email"] == ["This email address has already been taken."]
