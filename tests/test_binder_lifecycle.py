from types import SimpleNamespace

import pytest

from forge_sync.binder import BinderState, InventoryBinder
from forge_sync.containers import ObservedEquipment, ObservedInventory
from forge_sync.exceptions import BinderInitError, BinderStateError
from forge_sync.player import PlayerRecord


def _item(item_type="WEAPON", uid="w1", **fields):
    item = {"uid": uid, "type": item_type, "name": f"Test {item_type}", "enhanceLevel": 0}
    item.update(fields)
    return item


def test_constructor_requires_player():
    with pytest.raises(BinderInitError):
        InventoryBinder(None)


@pytest.mark.parametrize(
    "player",
    [
        SimpleNamespace(inventory=[]),
        SimpleNamespace(equipment={}),
        SimpleNamespace(equipment=[], inventory=[]),
        SimpleNamespace(equipment={}, inventory=("tuple",)),
        SimpleNamespace(equipment={"TAIL": None}, inventory=[]),
        {"equipment": {}},
    ],
)
def test_initialize_fails_fast_on_malformed_player(player):
    binder = InventoryBinder(player)
    with pytest.raises(BinderInitError):
        binder.initialize()
    assert binder.state is BinderState.UNINITIALIZED


def test_initialize_takes_baseline_and_installs_observed_containers():
    sword = _item()
    armor = _item("ARMOR", "a1")
    player = PlayerRecord(equipment={"WEAPON": sword}, inventory=[armor, {"id": "p", "type": "CONSUMABLE"}])
    binder = InventoryBinder(player)
    binder.initialize()

    assert binder.initialized
    assert isinstance(player.equipment, ObservedEquipment)
    assert isinstance(player.inventory, ObservedInventory)
    assert player.equipment["WEAPON"] is sword
    assert player.inventory[0] is armor
    assert [t.uid for t in binder.get_all_equipment()] == ["w1", "a1"]


def test_dict_player_records_are_supported():
    player = {"equipment": {}, "inventory": []}
    binder = InventoryBinder(player)
    binder.initialize()
    events = []
    binder.on("all", events.append)

    player["inventory"].append(_item())
    assert len(events) == 1
    assert isinstance(player["inventory"], ObservedInventory)


def test_double_initialize_warns_and_keeps_state(caplog, player):
    binder = InventoryBinder(player)
    binder.initialize()
    events = []
    binder.on("inventory", events.append)
    player.inventory.append(_item())
    inventory = player.inventory

    with caplog.at_level("WARNING", logger="forge_sync.binder"):
        binder.initialize()

    assert "already initialized" in caplog.text
    assert player.inventory is inventory
    assert len(binder.get_inventory_equipment()) == 1
    player.inventory.append(_item("ARMOR", "a1"))
    assert len(events) == 2


def test_destroy_is_terminal_and_idempotent(player):
    binder = InventoryBinder(player)
    binder.initialize()
    events = []
    binder.on("all", events.append)
    player.inventory.append(_item())

    binder.destroy()
    binder.destroy()

    assert binder.destroyed
    assert binder.get_all_equipment() == []
    assert binder.subscriber_count() == 0
    assert binder.history == ()
    with pytest.raises(BinderStateError):
        binder.initialize()
    assert binder.refresh() is None


def test_mutations_after_destroy_are_silent(player):
    binder = InventoryBinder(player)
    binder.initialize()
    calls = []
    binder.on("all", calls.append)
    binder.destroy()

    player.equipment["WEAPON"] = _item()
    del player.equipment["WEAPON"]
    player.inventory.append(_item())
    player.inventory.extend([_item("ARMOR", "a1")])
    player.inventory.pop()
    player.inventory[0] = _item("HELM", "h1")
    player.inventory.splice(0, 1)

    assert calls == []
    assert len(player.inventory) == 0


def test_subscribing_after_destroy_is_a_noop(player):
    binder = InventoryBinder(player)
    binder.initialize()
    binder.destroy()
    unsubscribe = binder.on("all", lambda event: None)
    unsubscribe()
    assert binder.subscriber_count() == 0


def test_refresh_before_initialize_raises(player):
    with pytest.raises(BinderStateError):
        InventoryBinder(player).refresh()


def test_rebinding_a_player_detaches_previous_containers(player):
    first = InventoryBinder(player)
    first.initialize()
    first_events = []
    first.on("all", first_events.append)
    first.destroy()

    second = InventoryBinder(player)
    second.initialize()
    second_events = []
    second.on("all", second_events.append)

    player.inventory.append(_item())
    assert first_events == []
    assert len(second_events) == 1


def test_repr_mentions_state(binder):
    assert "INITIALIZED" in repr(binder)
