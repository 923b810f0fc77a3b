"""
Unit tests for permission aggregation over the stores.
"""

import itertools

from clinic_access.aggregator import (
    aggregate_group_permissions,
    compute_effective_user_permissions,
    dangling_references,
)
from clinic_access.catalog import MODULES, VERBS
from clinic_access.matrix import PermissionMatrix
from clinic_access.models import Role, User, UserGroup
from clinic_access.stores import GroupStore, RoleStore, UserStore


# ── Helpers ──────────────────────────────────────────────────────────

def make_stores():
    roles, groups = RoleStore(), GroupStore()
    roles.put(Role(id="vet", title="Vet",
                   matrix=PermissionMatrix({"patients": ["read", "write"]})))
    roles.put(Role(id="tech", title="Tech",
                   matrix=PermissionMatrix({"patients": ["read"], "labs": ["create"]})))
    roles.put(Role(id="clerk", title="Clerk",
                   matrix=PermissionMatrix({"appointments": ["read", "create"]})))
    return roles, groups


# ── Tests: aggregate_group_permissions ───────────────────────────────

def test_group_aggregate_is_union_of_member_roles():
    roles, _ = make_stores()
    clinical = UserGroup(id="clinical", name="Clinical", role_ids=["vet", "tech"])
    result = aggregate_group_permissions(clinical, roles)
    assert result.granted() == {"patients": ["read", "write"], "labs": ["create"]}


def test_group_aggregate_cell_true_iff_some_member_grants_it():
    roles, _ = make_stores()
    for size in range(len(roles) + 1):
        for members in itertools.combinations(["vet", "tech", "clerk"], size):
            group = UserGroup(id="g", name="G", role_ids=list(members))
            result = aggregate_group_permissions(group, roles)
            for m, v in itertools.product(MODULES, VERBS):
                expected = any(roles.get(r).matrix.get(m, v) for r in members)
                assert result.get(m, v) == expected


def test_group_aggregate_skips_deleted_roles():
    roles, _ = make_stores()
    ghost = UserGroup(id="ghost", name="Ghost", role_ids=["X999"])
    assert aggregate_group_permissions(ghost, roles) == PermissionMatrix.empty()

    mixed = UserGroup(id="mixed", name="Mixed", role_ids=["X999", "clerk"])
    assert aggregate_group_permissions(mixed, roles).granted() == {
        "appointments": ["read", "create"],
    }


def test_group_aggregate_reflects_role_edits_immediately():
    roles, _ = make_stores()
    group = UserGroup(id="g", name="G", role_ids=["tech"])
    assert not aggregate_group_permissions(group, roles).get("labs", "delete")
    roles.get("tech").matrix.set("labs", "delete", True)
    assert aggregate_group_permissions(group, roles).get("labs", "delete")


# ── Tests: compute_effective_user_permissions ────────────────────────

def test_user_gets_direct_role_plus_group_grants():
    roles, groups = make_stores()
    groups.put(UserGroup(id="clinical", name="Clinical", role_ids=["tech"]))
    user = User(id="u1", name="U", role_id="vet", group_ids=["clinical"])
    result = compute_effective_user_permissions(user, roles, groups)
    assert result.granted() == {"patients": ["read", "write"], "labs": ["create"]}


def test_user_with_nothing_has_empty_permissions():
    roles, groups = make_stores()
    user = User(id="u1", name="U")
    assert compute_effective_user_permissions(user, roles, groups).is_empty()


def test_user_dangling_references_contribute_nothing():
    roles, groups = make_stores()
    groups.put(UserGroup(id="front", name="Front", role_ids=["clerk"]))
    user = User(id="u1", name="U", role_id="deleted-role",
                group_ids=["deleted-group", "front"])
    result = compute_effective_user_permissions(user, roles, groups)
    assert result.granted() == {"appointments": ["read", "create"]}


# ── Tests: dangling_references ───────────────────────────────────────

def test_dangling_references_lists_every_stale_link():
    roles, groups = make_stores()
    users = UserStore()
    groups.put(UserGroup(id="ghost", name="Ghost", role_ids=["X999", "vet"]))
    users.put(User(id="u1", name="U", role_id="gone", group_ids=["ghost", "old"]))
    found = dangling_references(roles, groups, users)
    assert {(d["source_id"], d["target_kind"], d["target_id"]) for d in found} == {
        ("ghost", "role", "X999"),
        ("u1", "role", "gone"),
        ("u1", "group", "old"),
    }
