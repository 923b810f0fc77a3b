"""
Seeding – the clinic's demo roles, groups and staff, JSON fixtures, and a
Faker-based fixture generator.

Everything is loaded through the public AccessControl operations, so the
group/role back-references come out consistent no matter what the fixture
says about them.
"""

import json
import logging
import random
from pathlib import Path
from typing import Any, Dict, Optional, Union

from faker import Faker

from clinic_access.config import DEPARTMENTS
from clinic_access.rbac import AccessControl

log = logging.getLogger(__name__)

# ── Demo data ────────────────────────────────────────────────────────

DEMO_ROLES = [
    {
        "id": "1",
        "title": "Senior Veterinarian",
        "department": "Clinical",
        "description": "Lead veterinarian with full clinical authority",
        "salary_range": "$80,000 - $120,000",
        "permissions": {
            "patients": ["read", "create", "write", "delete"],
            "appointments": ["read", "create", "write"],
            "records": ["read", "create", "write", "delete"],
            "labs": ["read", "create", "write"],
            "postmortem": ["read", "create", "write"],
            "hospitalization": ["read", "create", "write", "delete"],
            "treatments": ["read", "create", "write", "delete"],
            "inventory": ["read"],
            "staff": ["read"],
            "reports": ["read"],
        },
    },
    {
        "id": "2",
        "title": "Veterinary Technician",
        "department": "Clinical",
        "description": "Licensed technician providing veterinary support",
        "salary_range": "$35,000 - $50,000",
        "permissions": {
            "patients": ["read"],
            "records": ["read"],
            "labs": ["read", "create", "write"],
            "hospitalization": ["read", "write"],
            "treatments": ["read", "write"],
            "inventory": ["read", "write"],
        },
    },
    {
        "id": "3",
        "title": "Practice Manager",
        "department": "Administration",
        "description": "Oversees practice operations and staff management",
        "salary_range": "$45,000 - $65,000",
        "permissions": {
            "appointments": ["read", "create", "write", "delete"],
            "inventory": ["read", "create", "write", "delete"],
            "staff": ["read", "create", "write", "delete"],
            "users": ["read", "create", "write", "delete"],
            "reports": ["read", "create", "write", "delete"],
        },
    },
    {
        "id": "4",
        "title": "Receptionist",
        "department": "Front Office",
        "description": "Front desk operations and customer service",
        "salary_range": "$25,000 - $35,000",
        "permissions": {
            "patients": ["read", "create", "write"],
            "appointments": ["read", "create", "write", "delete"],
        },
    },
]

DEMO_GROUPS = [
    {"id": "clinical", "name": "Clinical", "color": "#16a34a",
     "description": "Veterinarians and technicians", "role_ids": ["1", "2"]},
    {"id": "administration", "name": "Administration", "color": "#2563eb",
     "description": "Practice management", "role_ids": ["3"]},
    {"id": "front-office", "name": "Front Office", "color": "#d97706",
     "description": "Reception and billing desk", "role_ids": ["4"]},
]

DEMO_USERS = [
    {"id": "1", "name": "Dr. Sarah Johnson", "email": "sarah.johnson@vetcare.com",
     "phone": "(555) 123-4567", "department": "Clinical", "status": "active",
     "start_date": "2022-01-15", "schedule": "Monday-Friday, 8:00 AM - 6:00 PM",
     "role_id": "1", "group_ids": ["clinical"]},
    {"id": "2", "name": "Michael Chen", "email": "michael.chen@vetcare.com",
     "phone": "(555) 234-5678", "department": "Clinical", "status": "active",
     "start_date": "2023-03-20", "schedule": "Tuesday-Saturday, 9:00 AM - 5:00 PM",
     "role_id": "2", "group_ids": ["clinical"]},
    {"id": "3", "name": "Emma Rodriguez", "email": "emma.rodriguez@vetcare.com",
     "phone": "(555) 345-6789", "department": "Administration", "status": "active",
     "start_date": "2021-11-08", "schedule": "Monday-Friday, 7:00 AM - 4:00 PM",
     "role_id": "3", "group_ids": ["administration"]},
    {"id": "4", "name": "David Kim", "email": "david.kim@vetcare.com",
     "phone": "(555) 456-7890", "department": "Front Office", "status": "active",
     "start_date": "2023-06-12", "schedule": "Wednesday-Sunday, 10:00 AM - 6:00 PM",
     "role_id": "4", "group_ids": ["front-office"]},
]

SCHEDULES = [
    "Monday-Friday, 8:00 AM - 6:00 PM",
    "Tuesday-Saturday, 9:00 AM - 5:00 PM",
    "Wednesday-Sunday, 10:00 AM - 6:00 PM",
    "Weekends, 8:00 AM - 8:00 PM",
]


def demo_fixture() -> Dict[str, Any]:
    return {"roles": DEMO_ROLES, "groups": DEMO_GROUPS, "users": DEMO_USERS}


def load_demo_data(access: AccessControl) -> AccessControl:
    """Seed the clinic's default roles, groups and staff."""
    return load_fixture(access, demo_fixture())


# ── Fixtures ─────────────────────────────────────────────────────────

def load_fixture(access: AccessControl, source: Union[str, Path, Dict[str, Any]]) -> AccessControl:
    """
    Load roles, then groups, then users from a fixture dict or JSON file.

    References that do not resolve inside the fixture are dropped with a
    warning, since a stale reference carries no permissions anyway.
    """
    data = source if isinstance(source, dict) else json.loads(Path(source).read_text())

    for raw in data.get("roles", []):
        access.create_role(
            title=raw["title"],
            department=raw.get("department", ""),
            description=raw.get("description", ""),
            salary_range=raw.get("salary_range", ""),
            matrix=raw.get("permissions"),
            role_id=raw.get("id"),
        )

    role_ids = {r.id for r in access.list_roles()}
    for raw in data.get("groups", []):
        requested = raw.get("role_ids", [])
        stale = [rid for rid in requested if rid not in role_ids]
        if stale:
            log.warning("Fixture group %s: dropping unknown role(s) %s.", raw.get("id"), stale)
        access.save_group(
            raw.get("id"),
            [rid for rid in requested if rid in role_ids],
            name=raw["name"],
            description=raw.get("description", ""),
            color=raw.get("color"),
        )

    group_ids = {g.id for g in access.list_groups()}
    for raw in data.get("users", []):
        role_id = raw.get("role_id")
        if role_id is not None and role_id not in role_ids:
            log.warning("Fixture user %s: dropping unknown role %s.", raw.get("id"), role_id)
            role_id = None
        groups = [gid for gid in raw.get("group_ids", []) if gid in group_ids]
        if len(groups) != len(raw.get("group_ids", [])):
            log.warning("Fixture user %s: dropping unknown group(s).", raw.get("id"))
        access.create_user(
            name=raw["name"],
            email=raw.get("email", ""),
            phone=raw.get("phone", ""),
            department=raw.get("department", ""),
            status=raw.get("status", "active"),
            start_date=raw.get("start_date"),
            schedule=raw.get("schedule", ""),
            role_id=role_id,
            group_ids=groups,
            user_id=raw.get("id"),
        )

    log.info(
        "Loaded fixture: %d roles, %d groups, %d users.",
        len(data.get("roles", [])), len(data.get("groups", [])), len(data.get("users", [])),
    )
    return access


def dump_fixture(access: AccessControl, path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Serialise the current state; write it as JSON when *path* is given."""
    state = access.snapshot()
    data = {kind: [e.to_dict() for e in entities] for kind, entities in state.items()}
    if path is not None:
        Path(path).write_text(json.dumps(data, indent=2))
    return data


def generate_fixture(n_users: int = 25, seed: Optional[int] = None) -> Dict[str, Any]:
    """Demo roles and groups plus *n_users* randomly generated staff."""
    rng = random.Random(seed)
    fake = Faker()
    if seed is not None:
        fake.seed_instance(seed)

    roles_by_department = {}
    for role in DEMO_ROLES:
        roles_by_department.setdefault(role["department"], []).append(role["id"])
    group_for_department = {g["name"]: g["id"] for g in DEMO_GROUPS}

    users = []
    for i in range(n_users):
        department = rng.choice([d for d in DEPARTMENTS if d in roles_by_department])
        group_ids = [group_for_department[department]]
        if rng.random() < 0.2:
            extra = rng.choice(DEMO_GROUPS)["id"]
            if extra not in group_ids:
                group_ids.append(extra)
        users.append({
            "id": f"u{i + 1:03d}",
            "name": fake.name(),
            "email": fake.email(),
            "phone": fake.phone_number(),
            "department": department,
            "status": "active" if rng.random() < 0.9 else "inactive",
            "start_date": fake.date_between(start_date="-5y", end_date="today").isoformat(),
            "schedule": rng.choice(SCHEDULES),
            "role_id": rng.choice(roles_by_department[department]),
            "group_ids": group_ids,
        })

    return {"roles": DEMO_ROLES, "groups": DEMO_GROUPS, "users": users}
