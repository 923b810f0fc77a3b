"""
Unit tests for demo data, fixtures and the fixture generator.
"""

import json

from clinic_access.rbac import AccessControl
from clinic_access.seed import (
    DEMO_ROLES,
    demo_fixture,
    dump_fixture,
    generate_fixture,
    load_demo_data,
    load_fixture,
)


# ── Tests: demo data ─────────────────────────────────────────────────

def test_demo_data_loads_consistent_state():
    access = load_demo_data(AccessControl())
    assert len(access.list_roles()) == len(DEMO_ROLES)
    assert access.get_group("clinical").role_ids == ["1", "2"]
    assert access.get_role("2").group_id == "clinical"
    assert access.get_role("4").group_id == "front-office"
    assert access.dangling_references() == []


def test_demo_receptionist_permissions():
    access = load_demo_data(AccessControl())
    perms = access.compute_effective_user_permissions("4")
    assert perms.get("appointments", "delete")
    assert not perms.get("labs", "read")


# ── Tests: fixtures ──────────────────────────────────────────────────

def test_load_fixture_from_file_ignores_stored_back_references(tmp_path):
    fixture = demo_fixture()
    fixture = json.loads(json.dumps(fixture))
    fixture["roles"][0]["group_id"] = "front-office"   # stale, must be ignored
    path = tmp_path / "fixture.json"
    path.write_text(json.dumps(fixture))

    access = load_fixture(AccessControl(), path)
    assert access.get_role("1").group_id == "clinical"


def test_load_fixture_drops_unresolved_references():
    fixture = {
        "roles": [{"id": "r1", "title": "Vet", "permissions": {"patients": ["read"]}}],
        "groups": [{"id": "g1", "name": "Clinical", "role_ids": ["r1", "gone"]}],
        "users": [{"id": "u1", "name": "Sam", "role_id": "gone", "group_ids": ["g1", "old"]}],
    }
    access = load_fixture(AccessControl(), fixture)
    assert access.get_group("g1").role_ids == ["r1"]
    user = access.get_user("u1")
    assert user.role_id is None
    assert user.group_ids == ["g1"]


def test_dump_fixture_writes_json(tmp_path):
    access = load_demo_data(AccessControl())
    access.delete_group("administration")
    path = tmp_path / "out.json"
    data = dump_fixture(access, path)
    on_disk = json.loads(path.read_text())
    assert on_disk == data
    assert {g["id"] for g in on_disk["groups"]} == {"clinical", "front-office"}

    reloaded = load_fixture(AccessControl(), path)
    assert reloaded.get_user("3").group_ids == []
    assert reloaded.get_role("3").group_id is None


# ── Tests: generate_fixture ──────────────────────────────────────────

def test_generate_fixture_is_reproducible_and_loadable():
    first = generate_fixture(10, seed=42)
    second = generate_fixture(10, seed=42)
    assert first == second
    assert len(first["users"]) == 10

    access = load_fixture(AccessControl(), first)
    assert len(access.list_users()) == 10
    assert access.dangling_references() == []
    for user in access.list_users():
        assert user.role_id is not None
        assert user.group_ids
