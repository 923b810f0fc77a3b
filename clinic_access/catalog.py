"""
The fixed catalog of clinic modules and permission verbs.
"""

from enum import Enum
from typing import Dict, List, Union

from clinic_access.errors import InvalidCatalogKey


class Module(str, Enum):
    PATIENTS = "patients"
    APPOINTMENTS = "appointments"
    RECORDS = "records"
    LABS = "labs"
    POSTMORTEM = "postmortem"
    HOSPITALIZATION = "hospitalization"
    TREATMENTS = "treatments"
    INVENTORY = "inventory"
    STAFF = "staff"
    USERS = "users"
    REPORTS = "reports"


class Verb(str, Enum):
    READ = "read"
    CREATE = "create"
    WRITE = "write"
    DELETE = "delete"


MODULES = tuple(Module)
VERBS = tuple(Verb)

ModuleKey = Union[Module, str]
VerbKey = Union[Verb, str]


def parse_module(key: ModuleKey) -> Module:
    """Return the Module for *key*, or raise InvalidCatalogKey."""
    if isinstance(key, Module):
        return key
    try:
        return Module(str(key).strip().lower())
    except ValueError:
        raise InvalidCatalogKey("module", key) from None


def parse_verb(key: VerbKey) -> Verb:
    """Return the Verb for *key*, or raise InvalidCatalogKey."""
    if isinstance(key, Verb):
        return key
    try:
        return Verb(str(key).strip().lower())
    except ValueError:
        raise InvalidCatalogKey("verb", key) from None


def describe() -> Dict[str, List[str]]:
    """Catalog as plain strings, for API consumers."""
    return {
        "modules": [m.value for m in MODULES],
        "verbs": [v.value for v in VERBS],
    }
