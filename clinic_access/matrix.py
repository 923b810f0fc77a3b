"""
PermissionMatrix – the Module × Verb grid of granted capabilities.

Every module of the catalog is always present, so the shape is fixed and a
lookup can never miss. Union builds a new matrix; the toggles mutate the
instance they are called on.
"""

from typing import Dict, Iterable, List, Mapping, Set, Union

from clinic_access.catalog import (
    MODULES,
    VERBS,
    Module,
    ModuleKey,
    Verb,
    VerbKey,
    parse_module,
    parse_verb,
)
from clinic_access.errors import InvalidCatalogKey


class PermissionMatrix:
    __slots__ = ("_cells",)

    def __init__(self, cells: Mapping[Module, Iterable[Verb]] = None):
        self._cells: Dict[Module, Set[Verb]] = {m: set() for m in MODULES}
        if cells:
            for module, verbs in cells.items():
                self._cells[parse_module(module)] = {parse_verb(v) for v in verbs}

    # ── Constructors ─────────────────────────────────────────────────

    @classmethod
    def empty(cls) -> "PermissionMatrix":
        return cls()

    @classmethod
    def full(cls) -> "PermissionMatrix":
        return cls({m: VERBS for m in MODULES})

    @classmethod
    def from_dict(cls, data: Mapping) -> "PermissionMatrix":
        """
        Build a matrix from ``{module: [verbs]}`` or ``{module: {verb: bool}}``.

        Unknown module or verb keys raise InvalidCatalogKey; nothing is
        partially built.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidCatalogKey("matrix", type(data).__name__)
        matrix = cls()
        for module_key, verbs in data.items():
            module = parse_module(module_key)
            if isinstance(verbs, Mapping):
                granted = set()
                for v, on in verbs.items():
                    verb = parse_verb(v)
                    if not isinstance(on, bool):
                        raise InvalidCatalogKey("grant flag", on)
                    if on:
                        granted.add(verb)
            elif isinstance(verbs, (list, tuple, set, frozenset)):
                granted = {parse_verb(v) for v in verbs}
            else:
                raise InvalidCatalogKey("verb list", verbs)
            matrix._cells[module] = granted
        return matrix

    # ── Cell access ──────────────────────────────────────────────────

    def get(self, module: ModuleKey, verb: VerbKey) -> bool:
        return parse_verb(verb) in self._cells[parse_module(module)]

    def set(self, module: ModuleKey, verb: VerbKey, value: bool) -> None:
        module, verb = parse_module(module), parse_verb(verb)
        if value:
            self._cells[module].add(verb)
        else:
            self._cells[module].discard(verb)

    def set_module(self, module: ModuleKey, value: bool) -> None:
        """Module-level "select all" toggle."""
        module = parse_module(module)
        self._cells[module] = set(VERBS) if value else set()

    def set_verb_across_modules(self, verb: VerbKey, value: bool) -> None:
        """Column "select all" toggle: one verb on every module."""
        verb = parse_verb(verb)
        for verbs in self._cells.values():
            if value:
                verbs.add(verb)
            else:
                verbs.discard(verb)

    def verbs(self, module: ModuleKey) -> List[Verb]:
        module = parse_module(module)
        return [v for v in VERBS if v in self._cells[module]]

    # ── Algebra ──────────────────────────────────────────────────────

    def union(self, other: "PermissionMatrix") -> "PermissionMatrix":
        """Cell-wise OR; neither operand is modified."""
        merged = PermissionMatrix()
        for module in MODULES:
            merged._cells[module] = self._cells[module] | other._cells[module]
        return merged

    __or__ = union

    def copy(self) -> "PermissionMatrix":
        return self.union(PermissionMatrix())

    def is_empty(self) -> bool:
        return not any(self._cells.values())

    def grant_count(self) -> int:
        return sum(len(v) for v in self._cells.values())

    # ── Serialisation ────────────────────────────────────────────────

    def granted(self) -> Dict[str, List[str]]:
        """Modules with at least one grant, as ``{module: [verbs]}``."""
        return {
            module.value: [v.value for v in self.verbs(module)]
            for module in MODULES
            if self._cells[module]
        }

    def to_dict(self) -> Dict[str, List[str]]:
        """Every module, granted verbs in catalog order."""
        return {module.value: [v.value for v in self.verbs(module)] for module in MODULES}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PermissionMatrix):
            return NotImplemented
        return self._cells == other._cells

    __hash__ = None

    def __repr__(self) -> str:
        return f"PermissionMatrix({self.granted()!r})"


MatrixLike = Union[PermissionMatrix, Mapping, None]


def coerce_matrix(value: MatrixLike) -> PermissionMatrix:
    """Accept a matrix or its dict form; always return a private copy."""
    if isinstance(value, PermissionMatrix):
        return value.copy()
    return PermissionMatrix.from_dict(value)
