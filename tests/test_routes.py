"""
Tests for the Flask REST layer, using Flask's test client.
"""

import pytest

from clinic_access.api.app import create_app
from clinic_access.rbac import AccessControl
from clinic_access.seed import load_demo_data


# ── Helpers / Fixtures ───────────────────────────────────────────────

@pytest.fixture
def access():
    return load_demo_data(AccessControl())


@pytest.fixture
def client(access):
    app = create_app(access)
    app.testing = True
    return app.test_client()


# ── Tests: info ──────────────────────────────────────────────────────

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "healthy"
    assert body["counts"] == {"roles": 4, "groups": 3, "users": 4}


def test_catalog(client):
    body = client.get("/api/catalog").get_json()
    assert body["verbs"] == ["read", "create", "write", "delete"]
    assert "postmortem" in body["modules"]


def test_unknown_endpoint(client):
    assert client.get("/api/nope").status_code == 404


# ── Tests: roles ─────────────────────────────────────────────────────

def test_list_roles_includes_staff_count(client):
    roles = client.get("/api/roles").get_json()["roles"]
    by_id = {r["id"]: r for r in roles}
    assert by_id["1"]["staff_count"] == 1
    assert by_id["1"]["group_id"] == "clinical"


def test_create_role_and_set_permissions(client):
    resp = client.post("/api/roles", json={
        "title": "Surgeon", "department": "Surgery",
        "permissions": {"hospitalization": ["read"]},
    })
    assert resp.status_code == 201
    role_id = resp.get_json()["id"]

    resp = client.put(f"/api/roles/{role_id}/permissions",
                      json={"permissions": {"records": {"read": True, "write": True}}})
    assert resp.status_code == 200
    assert resp.get_json()["permissions"] == {"records": ["read", "write"]}


def test_create_role_invalid_catalog_key(client):
    resp = client.post("/api/roles", json={"title": "X", "permissions": {"billing": ["read"]}})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid catalog key"


def test_create_role_requires_json(client):
    resp = client.post("/api/roles", data="title=X")
    assert resp.status_code == 400


def test_patch_role_group_id_rejected(client):
    resp = client.patch("/api/roles/2", json={"group_id": "administration"})
    assert resp.status_code == 400
    assert client.get("/api/roles/2").get_json()["group_id"] == "clinical"


def test_get_missing_role(client):
    resp = client.get("/api/roles/nope")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Role not found"


def test_delete_role_cascades(client):
    assert client.delete("/api/roles/2").get_json()["deleted"] is True
    assert client.get("/api/groups/clinical").get_json()["role_ids"] == ["1"]
    assert client.delete("/api/roles/2").get_json()["deleted"] is False


# ── Tests: groups ────────────────────────────────────────────────────

def test_save_group_moves_role(client):
    resp = client.put("/api/groups/administration", json={"role_ids": ["3", "2"]})
    assert resp.status_code == 200
    assert resp.get_json()["role_ids"] == ["3", "2"]
    assert client.get("/api/groups/clinical").get_json()["role_ids"] == ["1"]
    assert client.get("/api/roles/2").get_json()["group_id"] == "administration"


def test_create_group(client):
    resp = client.post("/api/groups", json={"name": "Surgery", "role_ids": ["1"]})
    assert resp.status_code == 201
    group = resp.get_json()
    assert group["role_ids"] == ["1"]
    assert client.get("/api/groups/clinical").get_json()["role_ids"] == ["2"]

    resp = client.post("/api/groups", json={"id": "clinical", "name": "Again"})
    assert resp.status_code == 409


def test_rename_group_keeps_its_roles(client):
    resp = client.put("/api/groups/clinical", json={"name": "Clinical team"})
    assert resp.status_code == 200
    group = resp.get_json()
    assert group["name"] == "Clinical team"
    assert group["role_ids"] == ["1", "2"]
    assert client.get("/api/roles/1").get_json()["group_id"] == "clinical"


def test_deleted_group_id_is_not_reused(client):
    assert client.delete("/api/groups/front-office").get_json()["deleted"] is True
    resp = client.post("/api/groups", json={"id": "front-office", "name": "New", "role_ids": ["3"]})
    assert resp.status_code == 409
    perms = client.get("/api/users/4/permissions").get_json()["permissions"]
    assert "staff" not in perms


def test_group_body_with_object_ids(client):
    resp = client.put("/api/groups/clinical", json={"role_ids": [{"id": "1"}]})
    assert resp.status_code == 400
    resp = client.put("/api/groups/clinical/members", json={"user_ids": [{"id": "1"}]})
    assert resp.status_code == 400


def test_group_permissions_and_members(client):
    perms = client.get("/api/groups/front-office/permissions").get_json()["permissions"]
    assert perms["appointments"] == ["read", "create", "write", "delete"]

    resp = client.put("/api/groups/front-office/members", json={"user_ids": ["1", "4"]})
    assert sorted(resp.get_json()["user_ids"]) == ["1", "4"]
    assert client.get("/api/users/1").get_json()["group_ids"] == ["clinical", "front-office"]


def test_delete_group_leaves_roles(client):
    assert client.delete("/api/groups/clinical").get_json()["deleted"] is True
    assert client.get("/api/roles/1").get_json()["group_id"] is None
    dangling = client.get("/api/reports/dangling").get_json()
    assert dangling["row_count"] == 2


# ── Tests: users ─────────────────────────────────────────────────────

def test_user_crud_and_permissions(client):
    resp = client.post("/api/users", json={
        "name": "Alex Vet", "email": "alex@vetcare.com",
        "role_id": "1", "group_ids": ["front-office"],
    })
    assert resp.status_code == 201
    user_id = resp.get_json()["id"]

    perms = client.get(f"/api/users/{user_id}/permissions").get_json()["permissions"]
    assert perms["patients"] == ["read", "create", "write", "delete"]
    assert perms["appointments"] == ["read", "create", "write", "delete"]

    resp = client.patch(f"/api/users/{user_id}", json={"status": "inactive"})
    assert resp.get_json()["status"] == "inactive"
    assert client.delete(f"/api/users/{user_id}").get_json()["deleted"] is True
    assert client.get(f"/api/users/{user_id}").status_code == 404


def test_create_user_unknown_role(client):
    resp = client.post("/api/users", json={"name": "X", "role_id": "nope"})
    assert resp.status_code == 404


def test_list_users_filters(client):
    users = client.get("/api/users?search=chen").get_json()["users"]
    assert [u["id"] for u in users] == ["2"]
    users = client.get("/api/users?group_id=clinical").get_json()["users"]
    assert [u["id"] for u in users] == ["1", "2"]


# ── Tests: reports ───────────────────────────────────────────────────

def test_access_review_report(client):
    body = client.get("/api/reports/access-review").get_json()
    assert body["row_count"] == 4
    rows = {r["user_id"]: r for r in body["data"]}
    assert rows["4"]["appointments"] == "rcwd"
    assert rows["4"]["role"] == "Receptionist"
