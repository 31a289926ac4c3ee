from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from forge_sync.__main__ import main
from forge_sync.binder import InventoryBinder
from forge_sync.events import EquipmentChange, InventoryChange, RefreshChange
from forge_sync.exceptions import ReplayError
from forge_sync.player import PlayerRecord, load_player
from forge_sync.replay import apply_step, format_event, load_script, replay


def _write(path: Path, text: str) -> Path:
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


@pytest.fixture
def player_file(tmp_path: Path) -> Path:
    data = {
        "name": "smith",
        "equipment": {"WEAPON": {"uid": "w1", "type": "WEAPON", "enhanceLevel": 2}},
        "inventory": [{"uid": "a1", "type": "ARMOR"}, {"id": "p1", "type": "CONSUMABLE"}],
    }
    path = tmp_path / "player.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def script_file(tmp_path: Path) -> Path:
    return _write(
        tmp_path / "script.yaml",
        """
        steps:
          - {op: unequip, slot: WEAPON}
          - {op: append, item: {uid: w1, type: WEAPON, enhanceLevel: 2}}
          - {op: extend, items: [{uid: h1, type: HELM}, {uid: p2, type: CONSUMABLE}]}
          - {op: set, index: 0, item: {uid: a1, type: ARMOR, enhanceLevel: 1}}
          - {op: splice, start: 1, delete_count: 1}  # drops the potion: no event
          - {op: popleft}
          - {op: refresh}
        """,
    )


def test_load_player(player_file: Path):
    player = load_player(player_file)
    assert player.name == "smith"
    assert player.equipment["WEAPON"]["uid"] == "w1"
    assert len(player.inventory) == 2


def test_load_player_rejects_bad_files(tmp_path: Path):
    with pytest.raises(ReplayError):
        load_player(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ReplayError):
        load_player(bad)
    wrong = tmp_path / "wrong.json"
    wrong.write_text(json.dumps({"inventory": {"a": 1}}), encoding="utf-8")
    with pytest.raises(ReplayError):
        load_player(wrong)


def test_replay_emits_expected_events(player_file: Path, script_file: Path):
    player = load_player(player_file)
    binder = InventoryBinder(player)
    binder.initialize()

    events = replay(player, binder, load_script(script_file))

    assert [type(e) for e in events] == [
        EquipmentChange,
        InventoryChange,
        InventoryChange,
        InventoryChange,
        InventoryChange,
        RefreshChange,
    ]
    assert [e.operation for e in events if isinstance(e, InventoryChange)] == [
        "append", "extend", "set", "popleft",
    ]
    assert events[-1].empty
    assert binder.subscriber_count() == 0
    assert [t.uid for t in binder.get_inventory_equipment()] == ["w1", "h1"]
    binder.destroy()


def test_script_validation(tmp_path: Path):
    with pytest.raises(ReplayError):
        load_script(_write(tmp_path / "a.yaml", "steps: 3\n"))
    with pytest.raises(ReplayError):
        load_script(_write(tmp_path / "b.yaml", "- {slot: WEAPON}\n"))
    assert load_script(_write(tmp_path / "c.yaml", "- {op: refresh}\n")) == [{"op": "refresh"}]


def test_bad_steps_raise_replay_error(player: PlayerRecord, binder: InventoryBinder):
    with pytest.raises(ReplayError):
        apply_step(player, binder, {"op": "dance"})
    with pytest.raises(ReplayError):
        apply_step(player, binder, {"op": "equip", "slot": "TAIL", "item": {}})
    with pytest.raises(ReplayError):
        apply_step(player, binder, {"op": "pop"})
    with pytest.raises(ReplayError):
        apply_step(player, binder, {"op": "append"})


def test_format_event():
    change = EquipmentChange(slot="WEAPON", old_value=None, new_value={"uid": "w1"})
    assert format_event(change) == "equipment WEAPON: - -> w1"


def test_cli_replay_prints_events(player_file: Path, script_file: Path, capsys: pytest.CaptureFixture[str]):
    assert main(["replay", str(player_file), str(script_file)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "equipment WEAPON: w1 -> -"
    assert out[1] == "inventory append: added:w1@2"
    assert out[-2].startswith("refresh")
    assert out[-1] == "0 equipped, 2 in inventory"


def test_cli_reports_invalid_input(tmp_path: Path, script_file: Path):
    assert main(["replay", str(tmp_path / "nope.json"), str(script_file)]) == 2


def test_cli_honours_config_file(tmp_path: Path, player_file: Path, script_file: Path):
    config = _write(tmp_path / "binder.toml", 'slots = ["ARMOR"]\n')
    # the player has a WEAPON slot that this configuration does not know
    assert main(["--config", str(config), "replay", str(player_file), str(script_file)]) == 2
