"""
Access reports – pandas views over roles, users and their derived permissions.
"""

from typing import List

import pandas as pd

from clinic_access.aggregator import compute_effective_user_permissions
from clinic_access.catalog import MODULES, VERBS
from clinic_access.matrix import PermissionMatrix
from clinic_access.rbac import AccessControl
from clinic_access.stores import GroupStore, RoleStore


# ── Matrix views ─────────────────────────────────────────────────────

def permission_frame(matrix: PermissionMatrix) -> pd.DataFrame:
    """Module × Verb boolean grid, indexed by module name."""
    return pd.DataFrame(
        [[matrix.get(m, v) for v in VERBS] for m in MODULES],
        index=pd.Index([m.value for m in MODULES], name="module"),
        columns=[v.value for v in VERBS],
    )


def _verb_string(matrix: PermissionMatrix, module) -> str:
    """Compact cell text such as ``"rcw-"`` (read, create, write, no delete)."""
    return "".join(v.value[0] if matrix.get(module, v) else "-" for v in VERBS)


# ── Access review ────────────────────────────────────────────────────

def access_review(access: AccessControl) -> pd.DataFrame:
    """
    One row per user with direct role, groups and effective permissions.

    Module columns hold a four-letter verb string (read/create/write/delete,
    ``-`` when denied). A stale role id stays in ``role_id`` with an empty
    ``role``; stale groups are left out of ``groups``. Neither adds grants.
    """
    state = access.snapshot()
    roles, groups = RoleStore(), GroupStore()
    for role in state["roles"]:
        roles.put(role)
    for group in state["groups"]:
        groups.put(group)

    rows: List[dict] = []
    for user in state["users"]:
        effective = compute_effective_user_permissions(user, roles, groups)
        role = roles.get(user.role_id)
        row = {
            "user_id": user.id,
            "name": user.name,
            "status": user.status,
            "role_id": user.role_id,
            "role": role.title if role else None,
            "groups": ", ".join(groups.get(g).name for g in user.group_ids if g in groups),
            "grant_count": effective.grant_count(),
        }
        for module in MODULES:
            row[module.value] = _verb_string(effective, module)
        rows.append(row)

    columns = ["user_id", "name", "status", "role_id", "role", "groups", "grant_count"]
    columns += [m.value for m in MODULES]
    return pd.DataFrame(rows, columns=columns)


def role_summary(access: AccessControl) -> pd.DataFrame:
    """Roles with their owning group, staff count and number of grants."""
    groups = {g.id: g.name for g in access.list_groups()}
    rows = [
        {
            "role_id": role.id,
            "title": role.title,
            "department": role.department,
            "group": groups.get(role.group_id),
            "staff_count": access.role_staff_count(role.id),
            "grant_count": role.matrix.grant_count(),
        }
        for role in access.list_roles()
    ]
    return pd.DataFrame(
        rows,
        columns=["role_id", "title", "department", "group", "staff_count", "grant_count"],
    )


def dangling_frame(access: AccessControl) -> pd.DataFrame:
    return pd.DataFrame(
        access.dangling_references(),
        columns=["source_kind", "source_id", "target_kind", "target_id"],
    )
