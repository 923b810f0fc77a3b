"""
Permission aggregation – derive group and user permissions from roles.

Both functions are pure: they read the stores, build a fresh matrix and
cache nothing, so a role edit shows up on the very next read. Ids that no
longer resolve contribute nothing.
"""

import logging
from typing import Dict, List

from clinic_access.matrix import PermissionMatrix
from clinic_access.models import User, UserGroup
from clinic_access.stores import GroupStore, RoleStore, UserStore

log = logging.getLogger(__name__)


def aggregate_group_permissions(group: UserGroup, role_store: RoleStore) -> PermissionMatrix:
    """OR together the matrices of the group's live member roles."""
    result = PermissionMatrix.empty()
    for role_id in group.role_ids:
        role = role_store.get(role_id)
        if role is None:
            log.debug("Group %s lists missing role %s; skipped.", group.id, role_id)
            continue
        result = result.union(role.matrix)
    return result


def compute_effective_user_permissions(
    user: User,
    role_store: RoleStore,
    group_store: GroupStore,
) -> PermissionMatrix:
    """Union of the user's direct role and every group the user belongs to."""
    result = PermissionMatrix.empty()

    role = role_store.get(user.role_id)
    if role is not None:
        result = result.union(role.matrix)
    elif user.role_id is not None:
        log.debug("User %s holds missing role %s; skipped.", user.id, user.role_id)

    for group_id in user.group_ids:
        group = group_store.get(group_id)
        if group is None:
            log.debug("User %s lists missing group %s; skipped.", user.id, group_id)
            continue
        result = result.union(aggregate_group_permissions(group, role_store))
    return result


def dangling_references(
    role_store: RoleStore,
    group_store: GroupStore,
    user_store: UserStore,
) -> List[Dict[str, str]]:
    """
    List the stale references the model tolerates.

    Each entry is ``{"source_kind", "source_id", "target_kind", "target_id"}``.
    """
    found = []
    for group in group_store:
        for role_id in group.role_ids:
            if role_id not in role_store:
                found.append({
                    "source_kind": "group", "source_id": group.id,
                    "target_kind": "role", "target_id": role_id,
                })
    for user in user_store:
        if user.role_id is not None and user.role_id not in role_store:
            found.append({
                "source_kind": "user", "source_id": user.id,
                "target_kind": "role", "target_id": user.role_id,
            })
        for group_id in user.group_ids:
            if group_id not in group_store:
                found.append({
                    "source_kind": "user", "source_id": user.id,
                    "target_kind": "group", "target_id": group_id,
                })
    return found
