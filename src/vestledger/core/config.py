"""
vestledger Configuration

A deployment chooses its deposit limit, first-installment timestamp and
activation mode. Values come from, in order of precedence:
- Explicit keyword overrides
- A YAML deployment file
- VESTLEDGER_* environment variables
- Built-in defaults
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .constants import DEFAULT_DEPOSIT_LIMIT, DEFAULT_SCHEDULE_START, TOKEN_DECIMALS
from .units import to_base_units
from .vesting.schedule import ActivationMode

logger = logging.getLogger(__name__)

ENV_PREFIX = "VESTLEDGER_"

_KNOWN_KEYS = (
    "deposit_limit",
    "deposit_tokens",
    "schedule_start",
    "activation_mode",
    "token_decimals",
)


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _parse_int(name: str, raw: Any) -> int:
    if isinstance(raw, bool):
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    try:
        return int(str(raw).replace("_", "").strip())
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _parse_mode(raw: Any) -> ActivationMode:
    if isinstance(raw, ActivationMode):
        return raw
    try:
        return ActivationMode(str(raw).strip().lower())
    except ValueError as exc:
        choices = ", ".join(m.value for m in ActivationMode)
        raise ConfigurationError(
            f"activation_mode must be one of: {choices} (got {raw!r})"
        ) from exc


@dataclass(frozen=True)
class VestingConfig:
    """Validated per-deployment vesting parameters."""

    deposit_limit: int = DEFAULT_DEPOSIT_LIMIT
    schedule_start: int = DEFAULT_SCHEDULE_START
    activation_mode: ActivationMode = ActivationMode.EAGER
    token_decimals: int = TOKEN_DECIMALS

    def __post_init__(self) -> None:
        if self.deposit_limit <= 0:
            raise ConfigurationError("deposit_limit must be positive")
        if self.schedule_start < 0:
            raise ConfigurationError("schedule_start must be a non-negative timestamp")
        if not 0 <= self.token_decimals <= 18:
            raise ConfigurationError("token_decimals must be between 0 and 18")

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "VestingConfig":
        """
        Build from a plain mapping.

        deposit_limit is in base units; deposit_tokens (whole tokens) may be
        given instead and is converted using token_decimals.
        """
        kwargs: Dict[str, Any] = {}
        if "token_decimals" in data:
            kwargs["token_decimals"] = _parse_int("token_decimals", data["token_decimals"])
        if "deposit_limit" in data and "deposit_tokens" in data:
            raise ConfigurationError("Specify deposit_limit or deposit_tokens, not both")
        if "deposit_limit" in data:
            kwargs["deposit_limit"] = _parse_int("deposit_limit", data["deposit_limit"])
        elif "deposit_tokens" in data:
            try:
                kwargs["deposit_limit"] = to_base_units(
                    data["deposit_tokens"], kwargs.get("token_decimals", TOKEN_DECIMALS)
                )
            except (ValueError, ArithmeticError) as exc:
                raise ConfigurationError(f"Invalid deposit_tokens: {exc}") from exc
        if "schedule_start" in data:
            kwargs["schedule_start"] = _parse_int("schedule_start", data["schedule_start"])
        if "activation_mode" in data:
            kwargs["activation_mode"] = _parse_mode(data["activation_mode"])

        unknown = set(data) - set(_KNOWN_KEYS)
        if unknown:
            logger.warning(
                "Ignoring unknown vesting config keys: %s",
                ", ".join(sorted(unknown)),
                extra={"event": "config.unknown_keys"},
            )
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "VestingConfig":
        """Read VESTLEDGER_DEPOSIT_LIMIT, VESTLEDGER_SCHEDULE_START, VESTLEDGER_ACTIVATION_MODE."""
        return cls.from_mapping(_env_mapping(environ))

    @classmethod
    def from_yaml(cls, path: Path | str) -> "VestingConfig":
        """Load a deployment file; settings may sit at top level or under a 'vesting' key."""
        return cls.from_mapping(_yaml_mapping(path))

    @classmethod
    def load(
        cls,
        path: Path | str | None = None,
        environ: Optional[Dict[str, str]] = None,
        **overrides: Any,
    ) -> "VestingConfig":
        """Layer environment, optional YAML file and explicit overrides."""
        merged: Dict[str, Any] = {}
        layers = [_env_mapping(environ)]
        if path is not None:
            layers.append(_yaml_mapping(path))
        layers.append({k: v for k, v in overrides.items() if v is not None})
        for layer in layers:
            # A later layer's deposit amount replaces either spelling from earlier ones
            if "deposit_limit" in layer or "deposit_tokens" in layer:
                merged.pop("deposit_limit", None)
                merged.pop("deposit_tokens", None)
            merged.update(layer)
        return cls.from_mapping(merged)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["activation_mode"] = self.activation_mode.value
        return data


def _env_mapping(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    data: Dict[str, Any] = {}
    for key in _KNOWN_KEYS:
        value = env.get(f"{ENV_PREFIX}{key.upper()}", "").strip()
        if value:
            data[key] = value
    return data


def _yaml_mapping(path: Path | str) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    section = data.get("vesting", data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"'vesting' section in {path} must be a mapping")
    logger.info("Loaded vesting config", extra={"event": "config.loaded", "path": str(path)})
    return dict(section)
