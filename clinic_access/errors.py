"""
Error taxonomy for the access-control core.

Dangling references (a group listing a deleted role, a user pointing at a
deleted group) are not errors and have no class here.
"""


class AccessControlError(Exception):
    """Base class for every error raised by the access-control core."""


class InvalidCatalogKey(AccessControlError, ValueError):
    """A module or verb outside the fixed catalog."""

    def __init__(self, kind: str, key):
        self.kind = kind
        self.key = key
        super().__init__(f"Unknown {kind} '{key}'.")


class InvalidEntity(AccessControlError, ValueError):
    """A structurally invalid write (blank title, unknown field, ...)."""


class NotFound(AccessControlError, LookupError):
    """A direct single-entity operation addressed a missing id."""

    def __init__(self, kind: str, entity_id):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} '{entity_id}' not found.")


class AlreadyExists(InvalidEntity):
    """An explicit id that is taken, or was retired by a delete."""

    def __init__(self, kind: str, entity_id, retired: bool = False):
        self.kind = kind
        self.entity_id = entity_id
        self.retired = retired
        if retired:
            super().__init__(f"{kind} id '{entity_id}' belonged to a deleted {kind.lower()} and cannot be reused.")
        else:
            super().__init__(f"{kind} id '{entity_id}' already exists.")
