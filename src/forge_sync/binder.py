from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping, MutableMapping, MutableSequence
from enum import Enum, auto
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Tuple, Union

from .config import DEFAULT_CONFIG, BinderConfig
from .containers import ObservedEquipment, ObservedInventory
from .diff import (
    EquipmentSnapshot,
    InventorySnapshot,
    diff_equipment,
    diff_inventory,
    slot_entries_differ,
    snapshot_equipment,
    snapshot_inventory,
    snapshot_slot,
)
from .events import (
    Channel,
    ChangeEvent,
    EquipmentChange,
    InventoryChange,
    ItemSource,
    RefreshChange,
    TrackedItem,
)
from .exceptions import BinderInitError, BinderStateError, UnknownChannelError
from .items import UidRegistry, clone_item

logger = logging.getLogger(__name__)


Callback = Callable[[ChangeEvent], Any]
Unsubscribe = Callable[[], None]


class BinderState(Enum):
    UNINITIALIZED = auto()
    INITIALIZED = auto()
    DESTROYED = auto()


def _noop() -> None:
    return None


class InventoryBinder:
    """Keeps a player's equipment slots and backpack observable.

    ``initialize()`` snapshots both structures and swaps them on the player
    record for observed containers. From then on every slot write and every
    inventory mutation is diffed against the snapshot, the snapshot is updated,
    and subscribers are notified synchronously before the mutating call
    returns. A subscriber may mutate the structures again; that mutation is
    handled as its own top-level change.

    Subscribers that raise are logged and skipped. ``destroy()`` is terminal.
    """

    def __init__(self, player: Any, config: Optional[BinderConfig] = None) -> None:
        if player is None:
            raise BinderInitError("InventoryBinder requires a player record")
        self.player = player
        self.config = config or DEFAULT_CONFIG
        self._state = BinderState.UNINITIALIZED
        self._equipment: Optional[ObservedEquipment] = None
        self._inventory: Optional[ObservedInventory] = None
        self._equipment_cache: EquipmentSnapshot = {}
        self._inventory_cache: InventorySnapshot = {}
        self._uids = UidRegistry()
        self._subscribers: Dict[Channel, List[Callback]] = {channel: [] for channel in Channel}
        self._history: Deque[ChangeEvent] = deque(maxlen=self.config.history_size)
        logger.debug("InventoryBinder created for %r", player)

    # ------------------------ Lifecycle ------------------------
    @property
    def state(self) -> BinderState:
        return self._state

    @property
    def initialized(self) -> bool:
        return self._state is BinderState.INITIALIZED

    @property
    def destroyed(self) -> bool:
        return self._state is BinderState.DESTROYED

    def initialize(self) -> None:
        """Take the baseline snapshot and start observing the player's structures.

        Raises BinderInitError when either structure is missing or malformed.
        A second call only logs a warning.
        """
        if self._state is BinderState.INITIALIZED:
            logger.warning("InventoryBinder already initialized; ignoring initialize()")
            return
        if self._state is BinderState.DESTROYED:
            raise BinderStateError("InventoryBinder has been destroyed and cannot be re-initialized")

        equipment = self._validated_equipment(self._read_structure("equipment"))
        inventory = self._validated_inventory(self._read_structure("inventory"))
        self._install_equipment(equipment)
        self._install_inventory(inventory)

        self._equipment_cache = snapshot_equipment(self._equipment, self.config, self._uids)
        self._inventory_cache = snapshot_inventory(self._inventory, self.config, self._uids)
        self._state = BinderState.INITIALIZED
        logger.info(
            "InventoryBinder initialized: %d equipped, %d tracked in inventory",
            len(self._equipment_cache),
            len(self._inventory_cache),
        )

    def destroy(self) -> None:
        """Stop observing, drop caches and subscribers. Safe to call repeatedly."""
        if self._state is BinderState.DESTROYED:
            return
        if self._equipment is not None:
            self._equipment.detach()
        if self._inventory is not None:
            self._inventory.detach()
        for handlers in self._subscribers.values():
            handlers.clear()
        self._equipment_cache.clear()
        self._inventory_cache.clear()
        self._history.clear()
        self._uids.clear()
        self._state = BinderState.DESTROYED
        logger.info("InventoryBinder destroyed")

    # ------------------------ Player record access ------------------------
    def _read_structure(self, name: str) -> Any:
        if isinstance(self.player, Mapping):
            return self.player.get(name)
        return getattr(self.player, name, None)

    def _write_structure(self, name: str, value: Any) -> None:
        if isinstance(self.player, MutableMapping):
            self.player[name] = value
        else:
            setattr(self.player, name, value)

    def _validated_equipment(self, equipment: Any) -> MutableMapping:
        if equipment is None:
            raise BinderInitError("player record has no equipment map")
        if not isinstance(equipment, MutableMapping):
            raise BinderInitError(f"player equipment must be a mutable mapping, got {type(equipment).__name__}")
        unknown = [slot for slot in equipment if not self.config.is_slot(slot)]
        if unknown:
            raise BinderInitError(f"player equipment has unknown slots: {unknown}")
        return equipment

    def _validated_inventory(self, inventory: Any) -> MutableSequence:
        if inventory is None:
            raise BinderInitError("player record has no inventory list")
        if not isinstance(inventory, MutableSequence):
            raise BinderInitError(f"player inventory must be a mutable sequence, got {type(inventory).__name__}")
        return inventory

    def _install_equipment(self, source: MutableMapping) -> None:
        if isinstance(source, ObservedEquipment):
            source.detach()
        self._equipment = ObservedEquipment(self.config.slots, dict(source.items()), on_write=self._on_slot_write)
        self._write_structure("equipment", self._equipment)

    def _install_inventory(self, source: MutableSequence) -> None:
        if isinstance(source, ObservedInventory):
            source.detach()
        self._inventory = ObservedInventory(list(source), on_change=self._on_inventory_change)
        self._write_structure("inventory", self._inventory)

    def _adopt_replaced_structures(self) -> None:
        """Observe structures the host swapped on the player record behind our back."""
        equipment = self._read_structure("equipment")
        if equipment is not self._equipment:
            logger.info("Player equipment map was replaced; re-attaching")
            equipment = self._validated_equipment(equipment)
            if self._equipment is not None:
                self._equipment.detach()
            self._install_equipment(equipment)
        inventory = self._read_structure("inventory")
        if inventory is not self._inventory:
            logger.info("Player inventory was replaced; re-attaching")
            inventory = self._validated_inventory(inventory)
            if self._inventory is not None:
                self._inventory.detach()
            self._install_inventory(inventory)

    # ------------------------ Diff passes ------------------------
    def _on_slot_write(self, slot: str, old_value: Any, new_value: Any) -> None:
        if self._state is not BinderState.INITIALIZED:
            return
        previous = self._equipment_cache.get(slot)
        entry = snapshot_slot(slot, new_value, self.config, self._uids)
        if entry is None:
            self._equipment_cache.pop(slot, None)
        else:
            self._equipment_cache[slot] = entry
        event = EquipmentChange(
            slot=slot,
            old_value=old_value,
            new_value=new_value,
            changed=slot_entries_differ(previous, entry),
        )
        if self.config.log_changes:
            logger.debug("Equipment change in %s (changed=%s)", slot, event.changed)
        self._dispatch(event, (Channel.EQUIPMENT,))

    def _on_inventory_change(self, operation: str, detail: Dict[str, Any]) -> None:
        if self._state is not BinderState.INITIALIZED:
            return
        previous = self._inventory_cache
        self._inventory_cache = snapshot_inventory(self._inventory, self.config, self._uids)
        diffs = diff_inventory(previous, self._inventory_cache)
        if not diffs:
            if self.config.log_changes:
                logger.debug("Inventory %s produced no tracked changes", operation)
            return
        event = InventoryChange(operation=operation, diffs=tuple(diffs), detail=detail)
        if self.config.log_changes:
            logger.debug(
                "Inventory %s: %s",
                operation,
                ", ".join(f"{d.kind.value}:{d.uid}" for d in diffs),
            )
        self._dispatch(event, (Channel.INVENTORY,))

    def refresh(self) -> Optional[RefreshChange]:
        """Re-scan both structures and emit one RefreshChange with every delta found.

        Picks up structures the host replaced outright and items changed in
        place. Returns the emitted event, or None once destroyed.
        """
        if self._state is BinderState.UNINITIALIZED:
            raise BinderStateError("InventoryBinder.refresh() called before initialize()")
        if self._state is BinderState.DESTROYED:
            logger.debug("refresh() ignored on destroyed InventoryBinder")
            return None

        self._adopt_replaced_structures()
        equipment = snapshot_equipment(self._equipment, self.config, self._uids)
        inventory = snapshot_inventory(self._inventory, self.config, self._uids)
        slot_changes = diff_equipment(self._equipment_cache, equipment, self.config.slots)
        diffs = diff_inventory(self._inventory_cache, inventory)
        self._equipment_cache = equipment
        self._inventory_cache = inventory

        event = RefreshChange(equipment=tuple(slot_changes), diffs=tuple(diffs))
        channels: List[Channel] = []
        if slot_changes:
            channels.append(Channel.EQUIPMENT)
        if diffs:
            channels.append(Channel.INVENTORY)
        logger.info("InventoryBinder refreshed: %d slot changes, %d inventory diffs", len(slot_changes), len(diffs))
        self._dispatch(event, channels)
        return event

    # ------------------------ Subscriptions ------------------------
    @staticmethod
    def _channel(channel: Union[Channel, str]) -> Channel:
        if isinstance(channel, Channel):
            return channel
        try:
            return Channel(channel)
        except ValueError:
            raise UnknownChannelError(f"Unknown channel: {channel!r}") from None

    def on(self, channel: Union[Channel, str], callback: Callback) -> Unsubscribe:
        """Register ``callback`` on a channel; returns a function that unregisters it.

        A callback registered on several channels is called once per event.
        Registering it twice on the same channel gets it called twice, and each
        returned unsubscribe removes one registration.
        """
        channel = self._channel(channel)
        if not callable(callback):
            raise TypeError("callback must be callable")
        if self._state is BinderState.DESTROYED:
            logger.debug("Subscription to %s ignored on destroyed InventoryBinder", channel.value)
            return _noop
        handlers = self._subscribers[channel]
        handlers.append(callback)

        def unsubscribe() -> None:
            if callback in handlers:
                handlers.remove(callback)

        return unsubscribe

    def subscriber_count(self, channel: Union[Channel, str, None] = None) -> int:
        if channel is None:
            return sum(len(handlers) for handlers in self._subscribers.values())
        return len(self._subscribers[self._channel(channel)])

    def _dispatch(self, event: ChangeEvent, channels: Iterable[Channel]) -> None:
        self._history.append(event)
        notified: List[Callback] = []
        for channel in (*channels, Channel.ALL):
            handlers = list(self._subscribers[channel])
            for callback in handlers:
                # A subscriber may destroy the binder mid-dispatch.
                if self._state is not BinderState.INITIALIZED:
                    return
                if callback in notified:
                    continue
                try:
                    callback(event)
                except Exception:
                    logger.exception("InventoryBinder subscriber %r failed on channel '%s'", callback, channel.value)
            notified.extend(handlers)

    @property
    def history(self) -> Tuple[ChangeEvent, ...]:
        """Most recently dispatched events, oldest first."""
        return tuple(self._history)

    # ------------------------ Read accessors ------------------------
    def get_equipped_items(self) -> List[TrackedItem]:
        return [
            TrackedItem(uid=entry.uid, item=clone_item(entry.item), source=ItemSource.EQUIPPED, slot=slot)
            for slot, entry in sorted(self._equipment_cache.items(), key=lambda kv: self._slot_order(kv[0]))
        ]

    def get_inventory_equipment(self) -> List[TrackedItem]:
        return [
            TrackedItem(uid=entry.uid, item=clone_item(entry.item), source=ItemSource.INVENTORY, index=entry.index)
            for entry in sorted(self._inventory_cache.values(), key=lambda e: e.index)
        ]

    def get_all_equipment(self) -> List[TrackedItem]:
        """Equipped items (slot order) followed by inventory equipment (index order)."""
        return self.get_equipped_items() + self.get_inventory_equipment()

    def _slot_order(self, slot: str) -> int:
        return self.config.slots.index(slot)

    def __repr__(self) -> str:
        return (
            f"InventoryBinder(state={self._state.name}, equipped={len(self._equipment_cache)}, "
            f"inventory={len(self._inventory_cache)})"
        )


__all__ = ["BinderState", "InventoryBinder"]
