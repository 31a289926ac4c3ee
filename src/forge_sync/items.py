from __future__ import annotations

import copy
import dataclasses
import logging
import secrets
import time
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .config import BinderConfig

logger = logging.getLogger(__name__)


_MISSING = object()


def item_field(item: Any, name: str, default: Any = None) -> Any:
    """Read a field from a mapping-style or attribute-style item."""
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def item_type_tag(item: Any) -> Optional[str]:
    """Return the item's type tag as an upper-case string, or None.

    Mappings use the ``type`` key; objects use ``type`` or ``item_type``.
    Enum tags are read through their value.
    """
    if item is None:
        return None
    tag = item_field(item, "type", _MISSING)
    if tag is _MISSING or tag is None:
        tag = item_field(item, "item_type", None)
    if isinstance(tag, Enum):
        tag = tag.value
    if tag is None:
        return None
    return str(tag).upper()


def is_equipment(item: Any, config: BinderConfig) -> bool:
    if item is None or isinstance(item, (str, bytes, int, float, bool)):
        return False
    return config.is_equipment_type(item_type_tag(item))


def durable_uid(item: Any) -> Optional[str]:
    """Return the item's ``uid``, then ``id``; None when neither is set."""
    for name in ("uid", "id"):
        value = item_field(item, name, None)
        if value not in (None, ""):
            return str(value)
    return None


def generate_temp_uid() -> str:
    return f"temp_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


class UidRegistry:
    """Resolves item identities for one binder.

    Items without a durable id get a generated one that stays stable for the
    same object while the registry lives. The registry keeps a reference to
    each such item so ``id()`` values cannot be recycled under it.
    """

    def __init__(self) -> None:
        self._generated: Dict[int, Tuple[Any, str]] = {}

    def __len__(self) -> int:
        return len(self._generated)

    def uid_for(self, item: Any) -> str:
        uid = durable_uid(item)
        if uid is not None:
            return uid
        entry = self._generated.get(id(item))
        if entry is not None and entry[0] is item:
            return entry[1]
        uid = generate_temp_uid()
        self._generated[id(item)] = (item, uid)
        logger.debug("Generated temporary uid %s for item without uid/id", uid)
        return uid

    def clear(self) -> None:
        self._generated.clear()


def clone_item(item: Any) -> Any:
    return copy.deepcopy(item)


def _fields_of(value: Any) -> Optional[Dict[str, Any]]:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if hasattr(value, "__dict__") and not isinstance(value, (type, Enum)):
        return dict(vars(value))
    return None


def items_equal(a: Any, b: Any) -> bool:
    """Recursive structural equality.

    Mappings compare by keys and values, lists/tuples element-wise, objects and
    dataclasses by their fields, everything else with ``==``. Like a JSON
    round-trip, ``1 == 1.0`` and a tuple equals a list with the same elements.
    """
    if a is b:
        return True
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(items_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(items_equal(x, y) for x, y in zip(a, b))
    fa, fb = _fields_of(a), _fields_of(b)
    if fa is not None and fb is not None:
        return type(a) is type(b) and items_equal(fa, fb)
    if fa is not None or fb is not None:
        return False
    try:
        return bool(a == b)
    except Exception:
        logger.debug("Equality check failed for %r and %r", a, b, exc_info=True)
        return False


__all__ = [
    "UidRegistry",
    "clone_item",
    "durable_uid",
    "generate_temp_uid",
    "is_equipment",
    "item_field",
    "item_type_tag",
    "items_equal",
]
