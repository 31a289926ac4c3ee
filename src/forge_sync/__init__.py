"""
forge_sync package root.

Reactive change detection for a player's equipment slots and backpack:
``InventoryBinder`` observes both structures and reports structured
change events to subscribers (renderers, autosave, achievement trackers).
"""

from .binder import BinderState, InventoryBinder
from .config import BinderConfig
from .events import (
    Channel,
    ChangeKind,
    DiffKind,
    EquipmentChange,
    InventoryChange,
    InventoryDiff,
    ItemSource,
    RefreshChange,
    TrackedItem,
)
from .exceptions import (
    BinderInitError,
    BinderStateError,
    ConfigError,
    ForgeSyncError,
    ReplayError,
    UnknownChannelError,
    UnknownSlotError,
)
from .player import PlayerRecord

__version__ = "0.1.0"

__all__ = [
    "BinderConfig",
    "BinderInitError",
    "BinderState",
    "BinderStateError",
    "Channel",
    "ChangeKind",
    "ConfigError",
    "DiffKind",
    "EquipmentChange",
    "ForgeSyncError",
    "InventoryBinder",
    "InventoryChange",
    "InventoryDiff",
    "ItemSource",
    "PlayerRecord",
    "RefreshChange",
    "ReplayError",
    "TrackedItem",
    "UnknownChannelError",
    "UnknownSlotError",
    "__version__",
]
