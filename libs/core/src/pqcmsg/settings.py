"""Runtime settings for the messaging layer.

Values come from an optional YAML file and are then overridden by
environment variables:

    PQCMSG_CONFIG           path to a YAML file with the keys below
    PQCMSG_KEM_VARIANT      e.g. ml-kem-768 (aliases such as "kyber" accepted)
    PQCMSG_DEFAULT_SCHEME   e.g. ml-dsa-65 (aliases such as "dilithium" accepted)
    PQCMSG_OPAQUE_FAILURES  1/true to report every rejected envelope as "rejected"
    PQCMSG_LOG_LEVEL        standard logging level name
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from .errors import ConfigurationError, UnsupportedScheme
from .schemes import KemVariant, SignatureScheme, resolve_kem, resolve_scheme

log = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}
_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class MessagingSettings:
    kem_variant: KemVariant = KemVariant.ML_KEM_768
    default_scheme: SignatureScheme = SignatureScheme.ML_DSA_65
    opaque_failures: bool = False
    log_level: str = "WARNING"


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def _parse_level(name: str, value: Any) -> str:
    level = str(value).strip().upper()
    if level not in _LEVELS:
        raise ConfigurationError(f"{name} must be one of {sorted(_LEVELS)}, got {value!r}")
    return level


def _apply(settings: MessagingSettings, source: str, values: Mapping[str, Any]) -> MessagingSettings:
    updates: dict[str, Any] = {}
    try:
        if values.get("kem_variant") is not None:
            updates["kem_variant"] = resolve_kem(values["kem_variant"])
        if values.get("default_scheme") is not None:
            updates["default_scheme"] = resolve_scheme(values["default_scheme"])
    except UnsupportedScheme as exc:
        raise ConfigurationError(f"{source}: {exc}") from exc
    if values.get("opaque_failures") is not None:
        updates["opaque_failures"] = _parse_bool(f"{source}: opaque_failures", values["opaque_failures"])
    if values.get("log_level") is not None:
        updates["log_level"] = _parse_level(f"{source}: log_level", values["log_level"])
    return replace(settings, **updates)


def _read_yaml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read settings file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Settings file {path} is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")
    unknown = set(data) - {"kem_variant", "default_scheme", "opaque_failures", "log_level"}
    if unknown:
        log.warning("Ignoring unknown settings keys in %s: %s", path, ", ".join(sorted(map(str, unknown))))
    return data


def load_settings(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> MessagingSettings:
    env_map = env if env is not None else os.environ
    settings = MessagingSettings()

    config_path = path or env_map.get("PQCMSG_CONFIG")
    if config_path:
        p = Path(config_path)
        settings = _apply(settings, str(p), _read_yaml(p))

    env_values = {
        "kem_variant": env_map.get("PQCMSG_KEM_VARIANT") or None,
        "default_scheme": env_map.get("PQCMSG_DEFAULT_SCHEME") or None,
        "opaque_failures": env_map.get("PQCMSG_OPAQUE_FAILURES") or None,
        "log_level": env_map.get("PQCMSG_LOG_LEVEL") or None,
    }
    return _apply(settings, "environment", env_values)


__all__ = ["MessagingSettings", "load_settings"]
