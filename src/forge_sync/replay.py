"""Scripted mutation replay.

A replay script is a YAML list of steps (or a mapping with a ``steps`` list).
Each step names an ``op`` and its arguments::

    steps:
      - {op: equip, slot: WEAPON, item: {uid: w1, type: WEAPON, name: Sword}}
      - {op: extend, items: [{uid: a1, type: ARMOR}, {uid: p1, type: CONSUMABLE}]}
      - {op: splice, start: 0, delete_count: 1}
      - {op: refresh}

Steps mutate the bound player record exactly as game code would, so the
binder sees them through its observed containers.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List

import yaml

from .binder import InventoryBinder
from .events import ChangeEvent, EquipmentChange, InventoryChange, RefreshChange
from .exceptions import ReplayError

logger = logging.getLogger(__name__)


Step = Dict[str, Any]


def load_script(path: Path) -> List[Step]:
    try:
        with path.open("r", encoding="utf-8") as f:
            doc = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ReplayError(f"Failed to read replay script {path}: {exc}") from exc
    if isinstance(doc, dict):
        doc = doc.get("steps")
    if not isinstance(doc, list):
        raise ReplayError(f"Replay script must be a list of steps: {path}")
    for n, step in enumerate(doc, start=1):
        if not isinstance(step, dict) or "op" not in step:
            raise ReplayError(f"Step {n} must be a mapping with an 'op' key")
    return doc


def _require(step: Step, key: str) -> Any:
    if key not in step:
        raise ReplayError(f"Step '{step['op']}' is missing '{key}'")
    return step[key]


def _op_equip(player: Any, binder: InventoryBinder, step: Step) -> None:
    player.equipment[_require(step, "slot")] = _require(step, "item")


def _op_unequip(player: Any, binder: InventoryBinder, step: Step) -> None:
    del player.equipment[_require(step, "slot")]


def _op_append(player: Any, binder: InventoryBinder, step: Step) -> None:
    player.inventory.append(_require(step, "item"))


def _op_extend(player: Any, binder: InventoryBinder, step: Step) -> None:
    player.inventory.extend(_require(step, "items"))


def _op_pop(player: Any, binder: InventoryBinder, step: Step) -> None:
    player.inventory.pop(int(step.get("index", -1)))


def _op_popleft(player: Any, binder: InventoryBinder, step: Step) -> None:
    player.inventory.popleft()


def _op_prepend(player: Any, binder: InventoryBinder, step: Step) -> None:
    player.inventory.prepend(*_require(step, "items"))


def _op_insert(player: Any, binder: InventoryBinder, step: Step) -> None:
    player.inventory.insert(int(_require(step, "index")), _require(step, "item"))


def _op_splice(player: Any, binder: InventoryBinder, step: Step) -> None:
    delete_count = step.get("delete_count")
    player.inventory.splice(
        int(_require(step, "start")),
        None if delete_count is None else int(delete_count),
        *step.get("items", []),
    )


def _op_set(player: Any, binder: InventoryBinder, step: Step) -> None:
    player.inventory[int(_require(step, "index"))] = _require(step, "item")


def _op_refresh(player: Any, binder: InventoryBinder, step: Step) -> None:
    binder.refresh()


OPERATIONS: Dict[str, Callable[[Any, InventoryBinder, Step], None]] = {
    "equip": _op_equip,
    "unequip": _op_unequip,
    "append": _op_append,
    "extend": _op_extend,
    "pop": _op_pop,
    "popleft": _op_popleft,
    "prepend": _op_prepend,
    "insert": _op_insert,
    "splice": _op_splice,
    "set": _op_set,
    "refresh": _op_refresh,
}


def apply_step(player: Any, binder: InventoryBinder, step: Step) -> None:
    op = step.get("op")
    handler = OPERATIONS.get(op)
    if handler is None:
        raise ReplayError(f"Unknown replay op: {op!r}")
    try:
        handler(player, binder, step)
    except (IndexError, KeyError, TypeError, ValueError) as exc:
        if isinstance(exc, ReplayError):
            raise
        raise ReplayError(f"Step '{op}' failed: {exc}") from exc


def replay(player: Any, binder: InventoryBinder, steps: List[Step]) -> List[ChangeEvent]:
    """Apply ``steps`` to an initialized binder's player; return the events emitted."""
    events: List[ChangeEvent] = []
    unsubscribe = binder.on("all", events.append)
    try:
        for n, step in enumerate(steps, start=1):
            logger.debug("Replay step %d: %s", n, step.get("op"))
            apply_step(player, binder, step)
    finally:
        unsubscribe()
    logger.info("Replayed %d steps; %d events", len(steps), len(events))
    return events


def _item_label(item: Any) -> str:
    if isinstance(item, dict):
        return str(item.get("uid") or item.get("id") or item.get("name") or "?")
    return "-" if item is None else repr(item)


def format_event(event: ChangeEvent) -> str:
    if isinstance(event, EquipmentChange):
        return f"equipment {event.slot}: {_item_label(event.old_value)} -> {_item_label(event.new_value)}"
    if isinstance(event, InventoryChange):
        parts = " ".join(f"{d.kind.value}:{d.uid}@{d.index}" for d in event.diffs)
        return f"inventory {event.operation}: {parts}"
    if isinstance(event, RefreshChange):
        slots = " ".join(c.slot for c in event.equipment) or "-"
        parts = " ".join(f"{d.kind.value}:{d.uid}@{d.index}" for d in event.diffs) or "-"
        return f"refresh slots={slots} inventory={parts}"
    return repr(event)


__all__ = ["OPERATIONS", "apply_step", "format_event", "load_script", "replay"]
