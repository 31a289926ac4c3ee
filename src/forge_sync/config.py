from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


DEFAULT_SLOTS: Tuple[str, ...] = ("WEAPON", "ARMOR", "HELM", "BOOTS", "RING", "AMULET", "ACCESSORY")
DEFAULT_EXCLUDED_TYPES: Tuple[str, ...] = ("CONSUMABLE", "CURRENCY")

ENV_PREFIX = "FORGE_SYNC_"
ENV_CONFIG_FILE = "FORGE_SYNC_CONFIG"

_READ_ERRORS: Tuple[type, ...] = (OSError, yaml.YAMLError, tomllib.TOMLDecodeError)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    v = str(value).strip().lower()
    if v in {"1", "true", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _as_names(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(v).strip() for v in value if str(v).strip())


class BinderConfig(BaseModel):
    """Runtime configuration for an InventoryBinder.

    Sources, lowest to highest precedence: defaults < config file < environment.
    The file may be TOML or YAML; top-level keys or a ``[binder]`` section are read.
    """

    model_config = ConfigDict(frozen=True)

    slots: Tuple[str, ...] = Field(DEFAULT_SLOTS, description="Named equipment slots")
    equipment_types: Tuple[str, ...] = Field(DEFAULT_SLOTS, description="Type tags eligible for tracking")
    excluded_types: Tuple[str, ...] = Field(DEFAULT_EXCLUDED_TYPES, description="Type tags never tracked")
    history_size: int = Field(50, ge=0, description="Number of dispatched events kept in memory")
    log_changes: bool = Field(True, description="Emit DEBUG records for every detected change")

    @field_validator("slots", "equipment_types", "excluded_types", mode="before")
    @classmethod
    def normalize_names(cls, v: Any) -> Tuple[str, ...]:
        names = tuple(n.upper() for n in _as_names(v))
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate names in {names}")
        return names

    @field_validator("slots")
    @classmethod
    def ensure_slots_not_empty(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if not v:
            raise ValueError("at least one equipment slot is required")
        return v

    # ------------------------ Loading & Overrides ------------------------
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BinderConfig":
        allowed = set(cls.model_fields)
        filtered = {k: v for k, v in data.items() if k in allowed}
        unknown = sorted(set(data) - allowed)
        if unknown:
            logger.warning("Ignoring unknown binder config keys: %s", unknown)
        try:
            return cls(**filtered)
        except ValidationError as exc:
            raise ConfigError(f"Invalid binder configuration: {exc}") from exc

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        env = os.environ if env is None else env
        mapping = {
            "SLOTS": ("slots", _as_names),
            "EQUIPMENT_TYPES": ("equipment_types", _as_names),
            "EXCLUDED_TYPES": ("excluded_types", _as_names),
            "HISTORY_SIZE": ("history_size", int),
            "LOG_CHANGES": ("log_changes", _as_bool),
        }
        out: Dict[str, Any] = {}
        for suffix, (field_name, caster) in mapping.items():
            env_key = ENV_PREFIX + suffix
            if env.get(env_key, "") == "":
                continue
            try:
                out[field_name] = caster(env[env_key])
            except ValueError as exc:
                raise ConfigError(f"Invalid env for {env_key}={env[env_key]!r}: {exc}") from exc
        return out

    @classmethod
    def from_file(cls, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ConfigError(f"Binder config file not found: {path}")
        suffix = path.suffix.lower()
        try:
            if suffix == ".toml":
                with path.open("rb") as f:
                    doc = tomllib.load(f)
            elif suffix in (".yaml", ".yml"):
                with path.open("r", encoding="utf-8") as f:
                    doc = yaml.safe_load(f) or {}
            else:
                raise ConfigError(f"Unsupported config file type: {path}")
        except _READ_ERRORS as exc:
            raise ConfigError(f"Failed to read binder config {path}: {exc}") from exc
        if not isinstance(doc, dict):
            raise ConfigError(f"Binder config must be a mapping: {path}")
        flat = {k: v for k, v in doc.items() if not isinstance(v, dict)}
        if isinstance(doc.get("binder"), dict):
            flat.update(doc["binder"])
        logger.debug("Loaded binder config from %s: %s", path, flat)
        return flat

    @classmethod
    def from_sources(
        cls,
        *,
        env: Optional[Dict[str, str]] = None,
        file_path: Optional[Path | str] = None,
    ) -> "BinderConfig":
        env = os.environ if env is None else env
        data: Dict[str, Any] = {}
        if file_path is None and env.get(ENV_CONFIG_FILE):
            file_path = env[ENV_CONFIG_FILE]
        if file_path is not None:
            data.update(cls.from_file(Path(file_path).expanduser().resolve()))
        data.update(cls.from_env(env))
        return cls.from_dict(data)

    # ------------------------ Queries ------------------------
    def is_slot(self, name: Any) -> bool:
        return isinstance(name, str) and name in self.slots

    def is_equipment_type(self, tag: Optional[str]) -> bool:
        if tag is None or tag in self.excluded_types:
            return False
        return tag in self.equipment_types


DEFAULT_CONFIG = BinderConfig()

__all__ = [
    "BinderConfig",
    "DEFAULT_CONFIG",
    "DEFAULT_SLOTS",
    "DEFAULT_EXCLUDED_TYPES",
]
