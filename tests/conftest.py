import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from forge_sync.binder import InventoryBinder  # noqa: E402
from forge_sync.player import PlayerRecord  # noqa: E402


@pytest.fixture
def player() -> PlayerRecord:
    return PlayerRecord(name="tester")


@pytest.fixture
def binder(player: PlayerRecord):
    b = InventoryBinder(player)
    b.initialize()
    yield b
    b.destroy()


@pytest.fixture
def recorder(binder: InventoryBinder):
    """Every dispatched event, per channel."""
    seen = {"equipment": [], "inventory": [], "all": []}
    for channel, events in seen.items():
        binder.on(channel, events.append)
    return seen
