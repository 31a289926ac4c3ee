from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .binder import InventoryBinder
from .config import BinderConfig
from .exceptions import ForgeSyncError
from .player import load_player
from .replay import format_event, load_script, replay


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )


def _run_replay(args: argparse.Namespace) -> int:
    config = BinderConfig.from_sources(file_path=args.config)
    player = load_player(Path(args.player))
    steps = load_script(Path(args.script))
    binder = InventoryBinder(player, config)
    binder.initialize()
    try:
        events = replay(player, binder, steps)
        for event in events:
            print(format_event(event))
        print(f"{len(binder.get_equipped_items())} equipped, {len(binder.get_inventory_equipment())} in inventory")
    finally:
        binder.destroy()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="forge-sync",
        description="Inventory/equipment change detection - replay tool",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None, help="Binder config file (.toml or .yaml)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")
    sub = parser.add_subparsers(dest="command", required=True)
    rp = sub.add_parser("replay", help="Apply a YAML mutation script to a JSON player record and print events")
    rp.add_argument("player", help="Player record JSON file")
    rp.add_argument("script", help="Replay script YAML file")

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    try:
        return _run_replay(args)
    except ForgeSyncError as exc:
        logging.getLogger(__name__).error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
