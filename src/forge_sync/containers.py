from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, MutableMapping, MutableSequence, Sequence
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Tuple

from .exceptions import UnknownSlotError

logger = logging.getLogger(__name__)


SlotWriteHook = Callable[[str, Any, Any], None]
InventoryHook = Callable[[str, Dict[str, Any]], None]


class ObservedEquipment(MutableMapping):
    """Equipment map restricted to the configured slots that reports every slot write.

    Reads behave like the dict it wraps: an unequipped slot is simply absent,
    so ``in``, ``len``, ``pop(slot, default)`` and ``setdefault`` keep their
    dict meaning. Writes to a slot outside the configured set raise
    UnknownSlotError. Assigning or deleting a slot stores the change first and
    then calls the hook with ``(slot, old_value, new_value)``.
    """

    def __init__(
        self,
        slots: Iterable[str],
        initial: Optional[Mapping[str, Any]] = None,
        on_write: Optional[SlotWriteHook] = None,
    ) -> None:
        self._allowed: Tuple[str, ...] = tuple(slots)
        self._items: Dict[str, Any] = {}
        for slot, value in (initial or {}).items():
            self._check_slot(slot)
            self._items[slot] = value
        self._on_write = on_write

    # ------------------------ Hook control ------------------------
    @property
    def attached(self) -> bool:
        return self._on_write is not None

    def detach(self) -> None:
        """Stop reporting writes; the map keeps working as a plain container."""
        self._on_write = None
        logger.debug("Equipment map detached")

    def _check_slot(self, slot: Any) -> None:
        if slot not in self._allowed:
            raise UnknownSlotError(slot)

    def _report(self, slot: str, old: Any, new: Any) -> None:
        if self._on_write is not None:
            self._on_write(slot, old, new)

    # ------------------------ Mapping protocol ------------------------
    def __getitem__(self, slot: str) -> Any:
        self._check_slot(slot)
        return self._items[slot]

    def __setitem__(self, slot: str, value: Any) -> None:
        self._check_slot(slot)
        old = self._items.get(slot)
        self._items[slot] = value
        self._report(slot, old, value)

    def __delitem__(self, slot: str) -> None:
        self._check_slot(slot)
        old = self._items.pop(slot)
        self._report(slot, old, None)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, slot: object) -> bool:
        return slot in self._items

    def __repr__(self) -> str:
        return f"ObservedEquipment({self._items!r})"

    @property
    def slots(self) -> List[str]:
        return list(self._allowed)

    def equipped(self) -> Dict[str, Any]:
        return {slot: value for slot, value in self._items.items() if value is not None}

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._items)


class ObservedInventory(MutableSequence):
    """Inventory list that reports each mutating call once.

    Every mutator applies the underlying list operation and then calls the hook
    with ``(operation, detail)``. Mutators built on other mutators (``extend``,
    ``+=``) still report a single call: only the outermost one reaches the hook.
    Reads return plain values; slicing returns a plain list.
    """

    def __init__(self, initial: Optional[Iterable[Any]] = None, on_change: Optional[InventoryHook] = None) -> None:
        self._items: List[Any] = list(initial or [])
        self._on_change = on_change
        self._depth = 0

    # ------------------------ Hook control ------------------------
    @property
    def attached(self) -> bool:
        return self._on_change is not None

    def detach(self) -> None:
        """Stop reporting mutations; the list keeps working as a plain container."""
        self._on_change = None
        logger.debug("Inventory list detached (%d items)", len(self._items))

    @contextmanager
    def _mutating(self, operation: str) -> Iterator[Dict[str, Any]]:
        detail: Dict[str, Any] = {}
        self._depth += 1
        try:
            yield detail
        finally:
            self._depth -= 1
        if self._depth == 0 and self._on_change is not None:
            self._on_change(operation, detail)

    # ------------------------ Sequence protocol ------------------------
    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._items))

    def __contains__(self, value: object) -> bool:
        return value in self._items

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ObservedInventory):
            return self._items == other._items
        if isinstance(other, Sequence) and not isinstance(other, (str, bytes)):
            return self._items == list(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ObservedInventory({self._items!r})"

    def to_list(self) -> List[Any]:
        return list(self._items)

    # ------------------------ Mutators ------------------------
    def __setitem__(self, index, value) -> None:
        with self._mutating("set") as detail:
            old = self._items[index]
            if isinstance(index, slice):
                value = list(value)
            self._items[index] = value
            detail.update(index=index, old_value=old, new_value=value)

    def __delitem__(self, index) -> None:
        with self._mutating("delete") as detail:
            removed = self._items[index]
            del self._items[index]
            detail.update(index=index, removed=removed)

    def insert(self, index: int, value: Any) -> None:
        with self._mutating("insert") as detail:
            self._items.insert(index, value)
            detail.update(index=index, items=[value])

    def append(self, value: Any) -> None:
        with self._mutating("append") as detail:
            self._items.append(value)
            detail.update(items=[value])

    def extend(self, values: Iterable[Any]) -> None:
        with self._mutating("extend") as detail:
            values = list(values)
            self._items.extend(values)
            detail.update(items=values)

    def __iadd__(self, values: Iterable[Any]) -> "ObservedInventory":
        self.extend(values)
        return self

    def pop(self, index: int = -1) -> Any:
        with self._mutating("pop") as detail:
            item = self._items.pop(index)
            detail.update(index=index, removed=item)
        return item

    def popleft(self) -> Any:
        """Remove and return the first item."""
        with self._mutating("popleft") as detail:
            item = self._items.pop(0)
            detail.update(index=0, removed=item)
        return item

    def prepend(self, *values: Any) -> int:
        """Insert ``values`` at the front, keeping their order; returns the new length."""
        with self._mutating("prepend") as detail:
            self._items[0:0] = values
            detail.update(items=list(values))
        return len(self._items)

    def splice(self, start: int, delete_count: Optional[int] = None, *values: Any) -> List[Any]:
        """Remove ``delete_count`` items at ``start`` and insert ``values`` there.

        Negative ``start`` counts from the end; out-of-range values are clamped.
        ``delete_count=None`` removes everything from ``start`` onward.
        Returns the removed items.
        """
        size = len(self._items)
        if start < 0:
            start = max(size + start, 0)
        start = min(start, size)
        if delete_count is None:
            delete_count = size - start
        delete_count = max(0, min(delete_count, size - start))
        with self._mutating("splice") as detail:
            deleted = self._items[start:start + delete_count]
            self._items[start:start + delete_count] = values
            detail.update(start=start, delete_count=delete_count, items=list(values), deleted=deleted)
        return deleted

    def remove(self, value: Any) -> None:
        with self._mutating("remove") as detail:
            self._items.remove(value)
            detail.update(removed=value)

    def clear(self) -> None:
        with self._mutating("clear") as detail:
            removed = self._items[:]
            self._items.clear()
            detail.update(removed=removed)

    def reverse(self) -> None:
        with self._mutating("reverse"):
            self._items.reverse()

    def sort(self, *, key: Optional[Callable[[Any], Any]] = None, reverse: bool = False) -> None:
        with self._mutating("sort"):
            self._items.sort(key=key, reverse=reverse)


__all__ = ["ObservedEquipment", "ObservedInventory"]
