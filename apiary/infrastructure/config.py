"""
Configuration Module

Architectural Intent:
- Typed settings for apiary, read once at startup from apiary.json
- Every section has defaults, so a missing or broken file still yields a
  usable configuration
- APIARY_<SECTION>_<KEY> environment variables override the file;
  CLI flags are applied on top by the presentation layer

Design Decisions:
- Sections are frozen dataclasses nested in ApiaryConfig
- Values are coerced to the type of the field's default, since environment
  variables only ever carry strings
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional
import json
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "apiary.json"


@dataclass(frozen=True)
class HiveConfig:
    """Where the hive lives."""
    path: str = "hive.nix"


@dataclass(frozen=True)
class ApplyConfig:
    """Defaults for `apiary apply`."""
    goal: str = "switch"
    parallel: int = 10
    gzip: bool = True
    substitutes: bool = True


@dataclass(frozen=True)
class SSHConfig:
    connect_timeout: int = 30


@dataclass(frozen=True)
class ReportConfig:
    fail_on_skipped: bool = False


@dataclass(frozen=True)
class TelemetryConfig:
    """OTLP export; disabled while endpoint is empty."""
    endpoint: str = ""
    insecure: bool = False
    service_name: str = "apiary"


@dataclass(frozen=True)
class ApiaryConfig:
    hive: HiveConfig = field(default_factory=HiveConfig)
    apply: ApplyConfig = field(default_factory=ApplyConfig)
    ssh: SSHConfig = field(default_factory=SSHConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    log_level: str = "INFO"


_SECTIONS: dict[str, type] = {
    "hive": HiveConfig,
    "apply": ApplyConfig,
    "ssh": SSHConfig,
    "report": ReportConfig,
    "telemetry": TelemetryConfig,
}

_TRUTHY = ("true", "1", "yes", "on")


def _coerce(value: Any, default: Any) -> Any:
    if not isinstance(value, str):
        return value
    # bool before int: bool is an int subclass
    if isinstance(default, bool):
        return value.strip().lower() in _TRUTHY
    if isinstance(default, int):
        return int(value)
    return value


def _read_file(path: Path) -> dict[str, Any]:
    """Raw JSON object from path, or {} if it is missing or unusable."""
    try:
        raw = json.loads(path.read_text())
    except FileNotFoundError:
        logger.debug("No config file at %s, using defaults", path)
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}
    if not isinstance(raw, dict):
        logger.warning("Ignoring config file %s: top level is not an object", path)
        return {}
    return raw


def _apply_env(data: dict[str, Any], prefix: str) -> dict[str, Any]:
    """Fold APIARY_<SECTION>_<KEY> (and APIARY_LOG_LEVEL) into data.

    Sections are matched against the known section names, so keys that
    contain underscores (APIARY_SSH_CONNECT_TIMEOUT) resolve correctly.
    """
    marker = f"{prefix}_"
    for key, value in os.environ.items():
        if not key.startswith(marker):
            continue
        name = key[len(marker):].lower()
        if name == "log_level":
            data["log_level"] = value
            continue
        section, _, option = name.partition("_")
        if section not in _SECTIONS or not option:
            logger.debug("Ignoring unknown setting %s", key)
            continue
        if not isinstance(data.get(section), dict):
            data[section] = {}
        data[section][option] = value
    return data


def _section(cls: type, values: Any) -> Any:
    if not isinstance(values, dict):
        return cls()
    defaults = cls()
    kwargs = {}
    for f in fields(cls):
        if f.name in values:
            kwargs[f.name] = _coerce(values[f.name], getattr(defaults, f.name))
    return cls(**kwargs)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "APIARY",
) -> ApiaryConfig:
    """Load configuration.

    Precedence, highest first: environment variables, the config file,
    built-in defaults. Unknown keys are ignored.

    Args:
        path: JSON config file. Defaults to ./apiary.json.
        env_prefix: Prefix of overriding environment variables.
    """
    data = _read_file(Path(path or DEFAULT_CONFIG_FILE))
    data = _apply_env(data, env_prefix)

    sections = {name: _section(cls, data.get(name)) for name, cls in _SECTIONS.items()}
    return ApiaryConfig(
        **sections,
        log_level=str(data.get("log_level", "INFO")).upper(),
    )
