"""YAML configuration loader and validator."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from gwaihir.core.errors import ConfigError

DEFAULT_CONFIG = Path("/etc/gwaihir/gwaihir.yaml")
DEFAULT_PORT = 8080
DEFAULT_LOG_FORMAT = "text"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_WOL_TIMEOUT = 2.0

LOG_LEVELS = ("debug", "info", "warning", "warn", "error")
LOG_FORMATS = ("text", "json")


@dataclass
class LogSettings:
    format: str = DEFAULT_LOG_FORMAT
    level: str = DEFAULT_LOG_LEVEL


@dataclass
class Settings:
    """Typed view of a loaded configuration."""

    port: int = DEFAULT_PORT
    log: LogSettings = field(default_factory=LogSettings)
    api_key: str = ""
    wol_timeout: Optional[float] = DEFAULT_WOL_TIMEOUT
    health_check_enabled: bool = True
    metrics_enabled: bool = True
    # Raw machine records; validated by the registry builder, not here.
    machines: list[dict[str, Any]] = field(default_factory=list)


def load_config(path: Path) -> Optional[dict[str, Any]]:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML config file

    Returns:
        Parsed configuration dictionary, or None if file is empty

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    with open(path) as f:
        result: Optional[dict[str, Any]] = yaml.safe_load(f)
        return result


def _section(parent: dict[str, Any], key: str, dotted: str) -> dict[str, Any]:
    """Return parent[key] as a mapping, treating a missing or null value as empty."""
    value = parent.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{dotted}: must be a mapping, got {value!r}")
    return value


def apply_defaults(config: dict[str, Any]) -> dict[str, Any]:
    """
    Fill in missing server, wol and observability settings in place.

    Raises:
        ConfigError: If a section is present but is not a mapping
    """
    server = _section(config, "server", "server")
    if server.get("port") is None:
        server["port"] = DEFAULT_PORT
    log = _section(server, "log", "server.log")
    if not log.get("format"):
        log["format"] = DEFAULT_LOG_FORMAT
    if not log.get("level"):
        log["level"] = DEFAULT_LOG_LEVEL
    server["log"] = log
    config["server"] = server

    config["authentication"] = _section(config, "authentication", "authentication")
    config["authentication"].setdefault("api_key", "")

    wol = _section(config, "wol", "wol")
    wol.setdefault("timeout_seconds", DEFAULT_WOL_TIMEOUT)
    config["wol"] = wol

    observability = _section(config, "observability", "observability")
    for section in ("health_check", "metrics"):
        entry = _section(observability, section, f"observability.{section}")
        if entry.get("enabled") is None:
            entry["enabled"] = True
        observability[section] = entry
    config["observability"] = observability

    if config.get("machines") is None:
        config["machines"] = []
    return config


def apply_env_overrides(
    config: dict[str, Any], environ: Optional[Mapping[str, str]] = None
) -> dict[str, Any]:
    """
    Override settings from GWAIHIR_* environment variables in place.

    Unset or empty variables leave the file value untouched.

    Raises:
        ConfigError: If GWAIHIR_PORT is not an integer
    """
    env = os.environ if environ is None else environ
    server = config.setdefault("server", {})
    log = server.setdefault("log", {})

    port = env.get("GWAIHIR_PORT")
    if port:
        try:
            server["port"] = int(port)
        except ValueError:
            raise ConfigError(f"invalid GWAIHIR_PORT value {port!r}: must be an integer") from None
    if env.get("GWAIHIR_LOG_LEVEL"):
        log["level"] = env["GWAIHIR_LOG_LEVEL"]
    if env.get("GWAIHIR_LOG_FORMAT"):
        log["format"] = env["GWAIHIR_LOG_FORMAT"]
    if env.get("GWAIHIR_API_KEY"):
        config.setdefault("authentication", {})["api_key"] = env["GWAIHIR_API_KEY"]
    return config


def validate_config(config: dict[str, Any]) -> list[str]:
    """
    Validate a loaded configuration dictionary.

    Machine records are only checked for shape here; their contents are
    validated when the registry is built.

    Returns:
        List of validation error messages (empty list = valid)
    """
    errors: list[str] = []

    if not isinstance(config, dict):
        return ["Config root must be a YAML mapping"]

    server = config.get("server", {})
    port = server.get("port")
    if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
        errors.append(f"server.port: invalid port {port!r} (expected 1-65535)")

    log = server.get("log", {})
    if str(log.get("level", "")).lower() not in LOG_LEVELS:
        errors.append(
            f"server.log.level: unrecognized level {log.get('level')!r} "
            "(expected debug, info, warning or error)"
        )
    if str(log.get("format", "")).lower() not in LOG_FORMATS:
        errors.append(
            f"server.log.format: unrecognized format {log.get('format')!r} "
            "(expected text or json)"
        )

    timeout = config.get("wol", {}).get("timeout_seconds")
    if timeout is not None and (
        not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0
    ):
        errors.append(f"wol.timeout_seconds: must be a positive number, got {timeout!r}")

    machines = config.get("machines", [])
    if not isinstance(machines, list):
        errors.append("'machines' must be a list")
    else:
        for i, machine in enumerate(machines):
            if not isinstance(machine, dict):
                errors.append(f"machines[{i}]: must be a mapping")

    return errors


def settings_from_config(config: dict[str, Any]) -> Settings:
    """
    Construct Settings from a validated config dict.

    Args:
        config: Parsed config dictionary with defaults applied

    Returns:
        Settings instance
    """
    server = config.get("server", {})
    log = server.get("log", {})
    observability = config.get("observability", {})
    timeout = config.get("wol", {}).get("timeout_seconds", DEFAULT_WOL_TIMEOUT)
    return Settings(
        port=int(server.get("port", DEFAULT_PORT)),
        log=LogSettings(
            format=str(log.get("format", DEFAULT_LOG_FORMAT)).lower(),
            level=str(log.get("level", DEFAULT_LOG_LEVEL)).lower(),
        ),
        api_key=str(config.get("authentication", {}).get("api_key") or ""),
        wol_timeout=float(timeout) if timeout is not None else None,
        health_check_enabled=bool(observability.get("health_check", {}).get("enabled", True)),
        metrics_enabled=bool(observability.get("metrics", {}).get("enabled", True)),
        machines=list(config.get("machines") or []),
    )


def load_settings(path: Path, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Load, default, override and validate a config file in one pass.

    Raises:
        ConfigError: If the file is missing, empty, unparseable or invalid
    """
    try:
        raw = load_config(path)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {exc}") from exc
    if not raw:
        raise ConfigError("Config file is empty.")
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a YAML mapping")

    config = apply_env_overrides(apply_defaults(raw), environ)
    errors = validate_config(config)
    if errors:
        raise ConfigError("Config validation errors: " + "; ".join(errors))
    return settings_from_config(config)
