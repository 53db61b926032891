"""Two-level navigation tree built from the flat ``ReadNavigation`` result sets."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ips_api.catalogs import FormIdOverrides

NavRow = Mapping[str, Any]

OBJ_NO = "ObjNo"
CODE = "Code"
PARENT_OBJ_NO = "ParentObjNo"
FORM_ID = "FormID"
IS_ACTIVE = "IsActive"


def as_int(value: Any) -> Optional[int]:
    """Coerce a numeric identifier or flag to ``int``; ``None`` if it is not a whole number."""
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


def id_key(value: Any) -> str:
    """Bucket key for an identifier, so ``3003721`` and ``"3003721"`` agree."""
    number = as_int(value)
    if number is not None and not isinstance(value, bool):
        return str(number)
    return str(value)


class NavigationTree:
    """Read-only navigation structure: modules plus children grouped by parent."""

    def __init__(
        self,
        modules: Iterable[NavRow],
        children_by_parent: Mapping[str, Iterable[NavRow]],
        erm_parent_id: Optional[int] = None,
    ):
        self._modules: Tuple[NavRow, ...] = tuple(modules)
        self._active: Tuple[NavRow, ...] = tuple(
            module for module in self._modules if as_int(module.get(IS_ACTIVE)) == 1
        )
        self._children = MappingProxyType(
            {key: tuple(bucket) for key, bucket in children_by_parent.items()}
        )
        self.erm_parent_id = erm_parent_id

    @classmethod
    def empty(cls, erm_parent_id: Optional[int] = None) -> "NavigationTree":
        return cls((), {}, erm_parent_id)

    @property
    def children_by_parent(self) -> Mapping[str, Tuple[NavRow, ...]]:
        return self._children

    def all_modules(self) -> List[NavRow]:
        return list(self._modules)

    def active_modules(self) -> List[NavRow]:
        """Modules whose ``IsActive`` is numerically 1, in source order."""
        return list(self._active)

    def children_of(self, parent_id: Any) -> List[NavRow]:
        return list(self._children.get(id_key(parent_id), ()))

    def erm_children(self) -> List[NavRow]:
        if self.erm_parent_id is None:
            return []
        return self.children_of(self.erm_parent_id)

    def is_empty(self) -> bool:
        return not self._modules and not self._children

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modules": [dict(module) for module in self._modules],
            "activeModules": [dict(module) for module in self._active],
            "childrenByParent": {
                key: [dict(child) for child in bucket] for key, bucket in self._children.items()
            },
        }


def synthesize(
    modules: Optional[Iterable[NavRow]],
    children: Optional[Iterable[NavRow]],
    *,
    erm_parent_id: int,
    overrides: FormIdOverrides,
) -> NavigationTree:
    """Group ``children`` under their parents and reconcile the ERM subtree.

    Children of ``erm_parent_id`` are deduplicated on ``ObjNo`` (first row
    wins) and get their ``FormID`` from ``overrides``, or ``None`` when their
    code has no override. Those rows are copied before the rewrite. All other
    children are placed in their bucket untouched.
    """
    children_by_parent: Dict[str, List[NavRow]] = {}
    seen: Set[str] = set()

    for child in children or ():
        if as_int(child.get(PARENT_OBJ_NO)) == erm_parent_id:
            obj_key = id_key(child.get(OBJ_NO))
            if obj_key in seen:
                continue
            seen.add(obj_key)

            override = overrides.lookup(child.get(CODE))
            child = dict(child)
            child[FORM_ID] = str(override) if override is not None else None

        children_by_parent.setdefault(id_key(child.get(PARENT_OBJ_NO)), []).append(child)

    return NavigationTree(modules or (), children_by_parent, erm_parent_id)
