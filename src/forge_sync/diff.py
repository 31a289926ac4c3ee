from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .config import BinderConfig
from .events import DiffKind, EquipmentChange, InventoryDiff
from .items import UidRegistry, clone_item, is_equipment, items_equal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotEntry:
    uid: str
    item: Any
    slot: str


@dataclass(frozen=True)
class InventoryEntry:
    uid: str
    item: Any
    index: int


EquipmentSnapshot = Dict[str, SlotEntry]
InventorySnapshot = Dict[str, InventoryEntry]


def snapshot_slot(slot: str, value: Any, config: BinderConfig, uids: UidRegistry) -> Optional[SlotEntry]:
    if not is_equipment(value, config):
        return None
    return SlotEntry(uid=uids.uid_for(value), item=clone_item(value), slot=slot)


def snapshot_equipment(equipment: Mapping[str, Any], config: BinderConfig, uids: UidRegistry) -> EquipmentSnapshot:
    snapshot: EquipmentSnapshot = {}
    for slot in config.slots:
        entry = snapshot_slot(slot, equipment.get(slot), config, uids)
        if entry is not None:
            snapshot[slot] = entry
    return snapshot


def snapshot_inventory(inventory: Iterable[Any], config: BinderConfig, uids: UidRegistry) -> InventorySnapshot:
    """Map uid -> (clone, index) for every equip-type inventory entry.

    Two entries sharing a uid collapse into one; the later index wins.
    """
    snapshot: InventorySnapshot = {}
    for index, item in enumerate(inventory):
        if not is_equipment(item, config):
            continue
        uid = uids.uid_for(item)
        if uid in snapshot:
            logger.debug("uid collision for %s at indexes %d and %d", uid, snapshot[uid].index, index)
        snapshot[uid] = InventoryEntry(uid=uid, item=clone_item(item), index=index)
    return snapshot


def diff_inventory(old: InventorySnapshot, new: InventorySnapshot) -> List[InventoryDiff]:
    """Added and modified entries in new-map order, then removed entries in old-map order.

    Items in the diffs are copies, so subscribers cannot alter the snapshots.
    """
    diffs: List[InventoryDiff] = []
    for uid, entry in new.items():
        previous = old.get(uid)
        if previous is None:
            diffs.append(InventoryDiff(DiffKind.ADDED, uid, clone_item(entry.item), entry.index))
        elif not items_equal(previous.item, entry.item):
            diffs.append(
                InventoryDiff(
                    DiffKind.MODIFIED, uid, clone_item(entry.item), entry.index, old_item=clone_item(previous.item)
                )
            )
    for uid, entry in old.items():
        if uid not in new:
            diffs.append(InventoryDiff(DiffKind.REMOVED, uid, clone_item(entry.item), entry.index))
    return diffs


def slot_entries_differ(before: Optional[SlotEntry], after: Optional[SlotEntry]) -> bool:
    if before is None and after is None:
        return False
    if before is None or after is None:
        return True
    return before.uid != after.uid or not items_equal(before.item, after.item)


def diff_equipment(old: EquipmentSnapshot, new: EquipmentSnapshot, slots: Iterable[str]) -> List[EquipmentChange]:
    """Per-slot changes between two equipment snapshots (used by a forced re-scan)."""
    changes: List[EquipmentChange] = []
    for slot in slots:
        before, after = old.get(slot), new.get(slot)
        if not slot_entries_differ(before, after):
            continue
        changes.append(
            EquipmentChange(
                slot=slot,
                old_value=clone_item(before.item) if before else None,
                new_value=clone_item(after.item) if after else None,
            )
        )
    return changes


__all__ = [
    "EquipmentSnapshot",
    "InventoryEntry",
    "InventorySnapshot",
    "SlotEntry",
    "diff_equipment",
    "diff_inventory",
    "slot_entries_differ",
    "snapshot_equipment",
    "snapshot_inventory",
    "snapshot_slot",
]
