from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple, Union


class Channel(Enum):
    """Subscription channels offered by the binder."""

    EQUIPMENT = "equipment"
    INVENTORY = "inventory"
    ALL = "all"


class ChangeKind(Enum):
    EQUIPMENT = "equipment"
    INVENTORY = "inventory"
    REFRESH = "refresh"


class DiffKind(Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


class ItemSource(Enum):
    EQUIPPED = "equipped"
    INVENTORY = "inventory"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class InventoryDiff:
    """One tracked inventory delta.

    ``item`` is the current snapshot (the last-seen one for REMOVED);
    ``old_item`` is only set for MODIFIED.
    """

    kind: DiffKind
    uid: str
    item: Any
    index: int
    old_item: Any = None

    @property
    def new_item(self) -> Any:
        return self.item


@dataclass(frozen=True)
class EquipmentChange:
    slot: str
    old_value: Any
    new_value: Any
    changed: bool = True
    timestamp: int = field(default_factory=_now_ms)

    kind = ChangeKind.EQUIPMENT


@dataclass(frozen=True)
class InventoryChange:
    operation: str
    diffs: Tuple[InventoryDiff, ...]
    detail: Any = None
    timestamp: int = field(default_factory=_now_ms)

    kind = ChangeKind.INVENTORY

    def of_kind(self, kind: DiffKind) -> Tuple[InventoryDiff, ...]:
        return tuple(d for d in self.diffs if d.kind is kind)


@dataclass(frozen=True)
class RefreshChange:
    """Every delta found by a forced re-scan, bundled into one event."""

    equipment: Tuple[EquipmentChange, ...]
    diffs: Tuple[InventoryDiff, ...]
    timestamp: int = field(default_factory=_now_ms)

    kind = ChangeKind.REFRESH

    @property
    def empty(self) -> bool:
        return not self.equipment and not self.diffs


ChangeEvent = Union[EquipmentChange, InventoryChange, RefreshChange]


@dataclass(frozen=True)
class TrackedItem:
    uid: str
    item: Any
    source: ItemSource
    slot: Optional[str] = None
    index: Optional[int] = None


__all__ = [
    "Channel",
    "ChangeEvent",
    "ChangeKind",
    "DiffKind",
    "EquipmentChange",
    "InventoryChange",
    "InventoryDiff",
    "ItemSource",
    "RefreshChange",
    "TrackedItem",
]
