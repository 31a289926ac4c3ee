from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, MutableSequence

from .exceptions import ReplayError

logger = logging.getLogger(__name__)


@dataclass
class PlayerRecord:
    """Minimal player record: an equipment map and an inventory list.

    Any object (or dict) exposing ``equipment`` and ``inventory`` can be bound;
    this is the shape the CLI loads from JSON.
    """

    name: str = "player"
    equipment: MutableMapping[str, Any] = field(default_factory=dict)
    inventory: MutableSequence[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerRecord":
        equipment = data.get("equipment") or {}
        inventory = data.get("inventory") or []
        if not isinstance(equipment, dict):
            raise ReplayError("player 'equipment' must be an object")
        if not isinstance(inventory, list):
            raise ReplayError("player 'inventory' must be an array")
        return cls(name=str(data.get("name", "player")), equipment=dict(equipment), inventory=list(inventory))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "equipment": {slot: item for slot, item in self.equipment.items() if item is not None},
            "inventory": list(self.inventory),
        }


def load_player(path: Path) -> PlayerRecord:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ReplayError(f"Failed to read player file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ReplayError(f"Player file must contain a JSON object: {path}")
    player = PlayerRecord.from_dict(data)
    logger.debug("Loaded player %s: %d equipped, %d inventory entries", player.name, len(player.equipment), len(player.inventory))
    return player


__all__ = ["PlayerRecord", "load_player"]
