"""
Role-Based Access Control – the consistency-enforcing service over the
role, group and user stores.

AccessControl owns the three stores and a single lock. Every mutation runs
entirely under the lock and validates its input before touching any store,
so a rejected write leaves the state unchanged and a cascade is never
observed half-applied. Reads take the same lock and hand back copies.
"""

import logging
import secrets
import threading
from typing import Dict, Iterable, List, Optional

from clinic_access import aggregator, catalog
from clinic_access.catalog import ModuleKey, VerbKey, parse_module, parse_verb
from clinic_access.config import DEFAULT_GROUP_COLOR, USER_STATUSES
from clinic_access.errors import AlreadyExists, InvalidEntity, NotFound
from clinic_access.matrix import MatrixLike, PermissionMatrix, coerce_matrix
from clinic_access.models import (
    ROLE_PATCH_FIELDS,
    USER_PATCH_FIELDS,
    Role,
    User,
    UserGroup,
)
from clinic_access.stores import GroupStore, RoleStore, UserStore, _Store

log = logging.getLogger(__name__)


def _require_text(value, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidEntity(f"{field_name} must be a non-empty string.")
    return value.strip()


def _optional_text(value, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidEntity(f"{field_name} must be a string.")
    return value.strip()


def _unique(ids: Optional[Iterable[str]]) -> List[str]:
    """De-duplicate while keeping first-seen order. Every id must be a string."""
    if ids is None:
        return []
    if isinstance(ids, str):
        raise InvalidEntity("Expected a list of ids, got a single string.")
    if not isinstance(ids, (list, tuple, set, frozenset)):
        raise InvalidEntity("Expected a list of ids.")
    seen = []
    for entity_id in ids:
        if not isinstance(entity_id, str):
            raise InvalidEntity(f"Ids must be strings, got {type(entity_id).__name__}.")
        if entity_id not in seen:
            seen.append(entity_id)
    return seen


def _new_id(prefix: str, store: _Store) -> str:
    while True:
        candidate = f"{prefix}_{secrets.token_hex(4)}"
        if candidate not in store and not store.is_retired(candidate):
            return candidate


class AccessControl:
    """Roles, groups and users with derived permissions."""

    def __init__(self):
        self.role_store = RoleStore()
        self.group_store = GroupStore()
        self.user_store = UserStore()
        self._lock = threading.RLock()

    # ── Queries ──────────────────────────────────────────────────────

    def catalog(self) -> Dict[str, List[str]]:
        return catalog.describe()

    def list_roles(self) -> List[Role]:
        with self._lock:
            return [r.copy() for r in self.role_store]

    def list_groups(self) -> List[UserGroup]:
        with self._lock:
            return [g.copy() for g in self.group_store]

    def list_users(
        self,
        role_id: Optional[str] = None,
        group_id: Optional[str] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[User]:
        """
        List users, optionally filtered.

        *search* matches name, email or the title of the user's role,
        case-insensitively.
        """
        if status is not None and status not in USER_STATUSES:
            raise InvalidEntity(f"Unknown status '{status}'.")
        needle = search.strip().lower() if search else ""

        with self._lock:
            result = []
            for user in self.user_store:
                if role_id is not None and user.role_id != role_id:
                    continue
                if group_id is not None and group_id not in user.group_ids:
                    continue
                if status is not None and user.status != status:
                    continue
                if needle:
                    role = self.role_store.get(user.role_id)
                    haystack = [user.name, user.email, role.title if role else ""]
                    if not any(needle in h.lower() for h in haystack):
                        continue
                result.append(user.copy())
            return result

    def snapshot(self) -> Dict[str, list]:
        """Copies of every role, group and user, taken in one critical section."""
        with self._lock:
            return {
                "roles": [r.copy() for r in self.role_store],
                "groups": [g.copy() for g in self.group_store],
                "users": [u.copy() for u in self.user_store],
            }

    def get_role(self, role_id: str) -> Role:
        with self._lock:
            return self._role(role_id).copy()

    def get_group(self, group_id: str) -> UserGroup:
        with self._lock:
            return self._group(group_id).copy()

    def get_user(self, user_id: str) -> User:
        with self._lock:
            return self._user(user_id).copy()

    def role_staff_count(self, role_id: str) -> int:
        """Number of users whose direct role is *role_id*."""
        with self._lock:
            return sum(1 for u in self.user_store if u.role_id == role_id)

    def aggregate_group_permissions(self, group_id: str) -> PermissionMatrix:
        with self._lock:
            return aggregator.aggregate_group_permissions(
                self._group(group_id), self.role_store
            )

    def compute_effective_user_permissions(self, user_id: str) -> PermissionMatrix:
        with self._lock:
            return aggregator.compute_effective_user_permissions(
                self._user(user_id), self.role_store, self.group_store
            )

    def has_permission(self, user_id: str, module: ModuleKey, verb: VerbKey) -> bool:
        """Look up one cell of the user's effective permissions."""
        module, verb = parse_module(module), parse_verb(verb)
        return self.compute_effective_user_permissions(user_id).get(module, verb)

    def dangling_references(self) -> List[Dict[str, str]]:
        with self._lock:
            return aggregator.dangling_references(
                self.role_store, self.group_store, self.user_store
            )

    # ── Roles ────────────────────────────────────────────────────────

    def create_role(
        self,
        title: str,
        department: str = "",
        description: str = "",
        salary_range: str = "",
        matrix: MatrixLike = None,
        role_id: Optional[str] = None,
    ) -> Role:
        role = Role(
            id="",
            title=_require_text(title, "title"),
            department=_optional_text(department, "department"),
            description=_optional_text(description, "description"),
            salary_range=_optional_text(salary_range, "salary_range"),
            matrix=coerce_matrix(matrix),
        )
        with self._lock:
            role.id = self._claim_id(role_id, "role", self.role_store)
            self.role_store.put(role)
            log.info("Created role %s (%s).", role.id, role.title)
            return role.copy()

    def update_role(self, role_id: str, /, **patch) -> Role:
        """
        Replace descriptive fields and/or the matrix of a role.

        Group membership is never patched here; it changes only through
        save_group, delete_group and delete_role.
        """
        if "group_id" in patch:
            raise InvalidEntity("group_id cannot be patched; use save_group.")
        unknown = set(patch) - ROLE_PATCH_FIELDS
        if unknown:
            raise InvalidEntity(f"Unknown role field(s): {', '.join(sorted(unknown))}.")

        values = {}
        for key, value in patch.items():
            if key == "title":
                values[key] = _require_text(value, "title")
            elif key == "matrix":
                values[key] = coerce_matrix(value)
            else:
                values[key] = _optional_text(value, key)

        with self._lock:
            role = self._role(role_id)
            for key, value in values.items():
                setattr(role, key, value)
            log.info("Updated role %s (%s).", role.id, ", ".join(sorted(values)) or "no fields")
            return role.copy()

    def set_role_permissions(self, role_id: str, matrix: MatrixLike) -> Role:
        new_matrix = coerce_matrix(matrix)
        with self._lock:
            role = self._role(role_id)
            role.matrix = new_matrix
            log.info("Replaced permissions of role %s (%d grants).", role.id, new_matrix.grant_count())
            return role.copy()

    def delete_role(self, role_id: str) -> bool:
        """Delete a role and detach it from its group. Users keep a dangling id."""
        with self._lock:
            if role_id not in self.role_store:
                log.debug("delete_role: %s does not exist.", role_id)
                return False
            for owner in self.group_store.owners_of(role_id):
                owner.role_ids.remove(role_id)
            self.role_store.remove(role_id)
        log.info("Deleted role %s.", role_id)
        return True

    # ── Groups ───────────────────────────────────────────────────────

    def save_group(
        self,
        group_id: Optional[str] = None,
        role_ids: Optional[Iterable[str]] = None,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
        member_user_ids: Optional[Iterable[str]] = None,
        create_only: bool = False,
    ) -> UserGroup:
        """
        Create or update a group and make *role_ids* its exact role set.

        A requested role currently owned by another group is taken from it.
        Roles that drop out of this group lose their back-reference. Role
        ids that do not exist are skipped. *member_user_ids*, when given,
        are added to the group's users (never removed).

        *role_ids* of None keeps the group's current roles. With
        *create_only* an existing *group_id* raises AlreadyExists.
        """
        if group_id is not None:
            group_id = _require_text(group_id, "id")
        requested = None if role_ids is None else _unique(role_ids)
        members = _unique(member_user_ids)
        header = {}
        if name is not None:
            header["name"] = _require_text(name, "name")
        if description is not None:
            header["description"] = _optional_text(description, "description")
        if color is not None:
            header["color"] = _optional_text(color, "color")

        with self._lock:
            group = self.group_store.get(group_id)
            if group is not None and create_only:
                raise AlreadyExists(self.group_store.kind, group_id)
            if group is None:
                if "name" not in header:
                    raise InvalidEntity("A new group needs a name.")
                group = UserGroup(
                    id=self._claim_id(group_id, "group", self.group_store),
                    name=header["name"],
                    color=DEFAULT_GROUP_COLOR,
                )
                log.info("Creating group %s (%s).", group.id, group.name)
            if requested is None:
                requested = list(group.role_ids)

            live = [rid for rid in requested if rid in self.role_store]
            skipped = [rid for rid in requested if rid not in self.role_store]
            if skipped:
                log.warning("save_group %s: skipped unknown role(s) %s.", group.id, skipped)

            # Phase one: detach requested roles from any other owner.
            for role_id in live:
                for owner in self.group_store.owners_of(role_id):
                    if owner.id != group.id:
                        owner.role_ids.remove(role_id)
                        log.info("Role %s moved from group %s to %s.", role_id, owner.id, group.id)

            # Phase two: attach to the target and fix back-references.
            previous = group.role_ids
            group.role_ids = live
            for role_id in previous:
                role = self.role_store.get(role_id)
                if role is not None and role_id not in live and role.group_id == group.id:
                    role.group_id = None
            for role_id in live:
                self.role_store.get(role_id).group_id = group.id

            for key, value in header.items():
                setattr(group, key, value)
            self.group_store.put(group)

            for user_id in members:
                user = self.user_store.get(user_id)
                if user is None:
                    log.debug("save_group %s: unknown member %s skipped.", group.id, user_id)
                elif group.id not in user.group_ids:
                    user.group_ids.append(group.id)

            log.info("Saved group %s with roles %s.", group.id, live)
            return group.copy()

    def delete_group(self, group_id: str) -> bool:
        """Delete a group; its roles survive ungrouped. Users keep a dangling id."""
        with self._lock:
            if group_id not in self.group_store:
                log.debug("delete_group: %s does not exist.", group_id)
                return False
            for role in self.role_store:
                if role.group_id == group_id:
                    role.group_id = None
            self.group_store.remove(group_id)
        log.info("Deleted group %s.", group_id)
        return True

    def update_group_members(self, group_id: str, user_ids: Iterable[str]) -> List[str]:
        """
        Make *user_ids* exactly the users belonging to the group.

        Returns the ids of the resulting members. Roles are not touched.
        """
        wanted = set(_unique(user_ids))
        with self._lock:
            self._group(group_id)
            unknown = wanted - {u.id for u in self.user_store}
            if unknown:
                log.debug("update_group_members %s: unknown user(s) %s skipped.", group_id, sorted(unknown))

            members = []
            for user in self.user_store:
                if user.id in wanted:
                    if group_id not in user.group_ids:
                        user.group_ids.append(group_id)
                    members.append(user.id)
                elif group_id in user.group_ids:
                    user.group_ids.remove(group_id)
            log.info("Group %s now has %d member(s).", group_id, len(members))
            return members

    # ── Users ────────────────────────────────────────────────────────

    def create_user(
        self,
        name: str,
        email: str = "",
        phone: str = "",
        department: str = "",
        status: str = "active",
        start_date: Optional[str] = None,
        schedule: str = "",
        role_id: Optional[str] = None,
        group_ids: Iterable[str] = (),
        user_id: Optional[str] = None,
    ) -> User:
        user = User(id="", name=_require_text(name, "name"))
        values = self._user_values({
            "email": email, "phone": phone, "department": department,
            "status": status, "start_date": start_date, "schedule": schedule,
            "role_id": role_id, "group_ids": group_ids,
        })
        with self._lock:
            self._check_assignments(values)
            user.id = self._claim_id(user_id, "user", self.user_store)
            for key, value in values.items():
                setattr(user, key, value)
            self.user_store.put(user)
            log.info("Created user %s (%s).", user.id, user.name)
            return user.copy()

    def update_user(self, user_id: str, /, **patch) -> User:
        unknown = set(patch) - USER_PATCH_FIELDS
        if unknown:
            raise InvalidEntity(f"Unknown user field(s): {', '.join(sorted(unknown))}.")
        values = self._user_values(patch)
        with self._lock:
            user = self._user(user_id)
            self._check_assignments(values)
            for key, value in values.items():
                setattr(user, key, value)
            log.info("Updated user %s (%s).", user.id, ", ".join(sorted(values)) or "no fields")
            return user.copy()

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            if self.user_store.remove(user_id) is None:
                log.debug("delete_user: %s does not exist.", user_id)
                return False
        log.info("Deleted user %s.", user_id)
        return True

    # ── Internals ────────────────────────────────────────────────────

    def _role(self, role_id: str) -> Role:
        role = self.role_store.get(role_id)
        if role is None:
            raise NotFound("Role", role_id)
        return role

    def _group(self, group_id: str) -> UserGroup:
        group = self.group_store.get(group_id)
        if group is None:
            raise NotFound("Group", group_id)
        return group

    def _user(self, user_id: str) -> User:
        user = self.user_store.get(user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user

    def _claim_id(self, requested: Optional[str], prefix: str, store: _Store) -> str:
        if requested is None:
            return _new_id(prefix, store)
        entity_id = _require_text(requested, "id")
        if entity_id in store:
            raise AlreadyExists(store.kind, entity_id)
        if store.is_retired(entity_id):
            raise AlreadyExists(store.kind, entity_id, retired=True)
        return entity_id

    @staticmethod
    def _user_values(patch: Dict) -> Dict:
        values = {}
        for key, value in patch.items():
            if key == "name":
                values[key] = _require_text(value, "name")
            elif key == "status":
                if not isinstance(value, str) or value not in USER_STATUSES:
                    raise InvalidEntity(f"Unknown status '{value}'.")
                values[key] = value
            elif key == "role_id":
                if value is not None and not isinstance(value, str):
                    raise InvalidEntity("role_id must be a string.")
                values[key] = value or None
            elif key == "group_ids":
                values[key] = _unique(value)
            elif key == "start_date":
                values[key] = value or None
            else:
                values[key] = _optional_text(value, key)
        return values

    def _check_assignments(self, values: Dict) -> None:
        role_id = values.get("role_id")
        if role_id is not None and role_id not in self.role_store:
            raise NotFound("Role", role_id)
        for group_id in values.get("group_ids", ()):
            if group_id not in self.group_store:
                raise NotFound("Group", group_id)
