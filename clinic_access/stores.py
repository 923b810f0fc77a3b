"""
In-memory stores for roles, groups and users.

Stores only hold entities. They do not know about each other and never
cascade; keeping references consistent is AccessControl's job.
"""

from typing import Dict, Generic, Iterator, List, Optional, Set, TypeVar

from clinic_access.models import Role, User, UserGroup

T = TypeVar("T")


class _Store(Generic[T]):
    kind = "entity"

    def __init__(self):
        self._items: Dict[str, T] = {}
        self._retired: Set[str] = set()

    def get(self, entity_id: Optional[str]) -> Optional[T]:
        """Return the live entity, or None for a missing / empty id."""
        if entity_id is None:
            return None
        return self._items.get(entity_id)

    def put(self, entity: T) -> None:
        self._items[entity.id] = entity

    def remove(self, entity_id: str) -> Optional[T]:
        """Drop an entity. Its id is retired and never handed out again."""
        entity = self._items.pop(entity_id, None)
        if entity is not None:
            self._retired.add(entity_id)
        return entity

    def is_retired(self, entity_id: str) -> bool:
        return entity_id in self._retired

    def all(self) -> List[T]:
        return list(self._items.values())

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._items

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)


class RoleStore(_Store[Role]):
    kind = "Role"


class GroupStore(_Store[UserGroup]):
    kind = "Group"

    def owners_of(self, role_id: str) -> List[UserGroup]:
        """Groups whose role_ids list *role_id* (at most one when consistent)."""
        return [g for g in self._items.values() if role_id in g.role_ids]


class UserStore(_Store[User]):
    kind = "User"
