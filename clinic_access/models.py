"""
Domain dataclasses used across the application.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from clinic_access.matrix import PermissionMatrix


@dataclass
class Role:
    """A named bundle of permissions, owned by at most one group."""
    id: str
    title: str
    department: str = ""
    description: str = ""
    salary_range: str = ""
    matrix: PermissionMatrix = field(default_factory=PermissionMatrix.empty)
    group_id: Optional[str] = None   # back-reference, maintained by AccessControl

    def copy(self) -> "Role":
        return replace(self, matrix=self.matrix.copy())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "department": self.department,
            "description": self.description,
            "salary_range": self.salary_range,
            "permissions": self.matrix.granted(),
            "group_id": self.group_id,
        }


@dataclass
class UserGroup:
    """A collection of roles; its permissions are always derived."""
    id: str
    name: str
    description: str = ""
    color: str = ""
    role_ids: List[str] = field(default_factory=list)

    def copy(self) -> "UserGroup":
        return replace(self, role_ids=list(self.role_ids))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "role_ids": list(self.role_ids),
        }


@dataclass
class User:
    """A staff member with one direct role and any number of groups."""
    id: str
    name: str
    email: str = ""
    phone: str = ""
    department: str = ""
    status: str = "active"           # "active" or "inactive"
    start_date: Optional[str] = None # ISO date
    schedule: str = ""
    role_id: Optional[str] = None
    group_ids: List[str] = field(default_factory=list)

    def copy(self) -> "User":
        return replace(self, group_ids=list(self.group_ids))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "department": self.department,
            "status": self.status,
            "start_date": self.start_date,
            "schedule": self.schedule,
            "role_id": self.role_id,
            "group_ids": list(self.group_ids),
        }


# Fields a caller may patch through update_role / update_user.
ROLE_PATCH_FIELDS = {"title", "department", "description", "salary_range", "matrix"}
USER_PATCH_FIELDS = {
    "name", "email", "phone", "department", "status",
    "start_date", "schedule", "role_id", "group_ids",
}
