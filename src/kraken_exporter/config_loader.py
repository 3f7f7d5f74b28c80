from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import appdirs  # type: ignore[import-untyped]
import yaml  # type: ignore[import-untyped]

from kraken_exporter.config_models import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_SECONDS,
    AuthConfig,
    ExporterConfig,
)
from kraken_exporter.logging_config import LOG_LEVEL_ENV_VAR
from kraken_exporter.market_data.pairs import DEFAULT_REFERENCE_CURRENCIES, STRATEGIES

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
CONFIG_ENV_VAR = "KRAKEN_EXPORTER_ENV"
MODES = ("pull", "lazy")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def get_config_dir() -> Path:
    """
    Returns the OS-specific configuration directory for the exporter using appdirs.
    """
    return Path(appdirs.user_config_dir("kraken_exporter"))


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not a mapping", path)
        return {}
    return data


def _deep_merge_dicts(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def _validated_port(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 65535:
        return value
    logger.warning("port %r is invalid; using default %s", value, DEFAULT_PORT)
    return DEFAULT_PORT


def _validated_seconds(value: Any, default: float, field_name: str, allow_zero: bool = False) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value > 0 or (allow_zero and value == 0):
            return float(value)
    logger.warning("%s %r is invalid; using default %s", field_name, value, default)
    return default


def _validated_choice(value: Any, choices: Any, default: str, field_name: str) -> str:
    if isinstance(value, str) and value in choices:
        return value
    logger.warning("%s %r is not one of %s; using default %s", field_name, value, sorted(choices), default)
    return default


def load_config(
    config_path: Optional[Path] = None, env: Optional[str] = None
) -> ExporterConfig:
    """
    Loads the exporter configuration from the default location or a specified path.

    ``config.yaml`` is read first and ``config.<env>.yaml`` from the same
    directory is deep-merged on top when ``env`` (or ``KRAKEN_EXPORTER_ENV``)
    is set. ``LOG_LEVEL`` in the environment overrides the file's
    ``log_level``. Missing files yield defaults; invalid values fall back to their
    defaults with a warning.
    """
    path = Path(config_path) if config_path else get_config_dir() / CONFIG_FILENAME
    raw = _read_yaml(path)

    active_env = env if env is not None else os.environ.get(CONFIG_ENV_VAR)
    if active_env:
        overlay_path = path.with_name(f"{path.stem}.{active_env}{path.suffix or '.yaml'}")
        raw = _deep_merge_dicts(raw, _read_yaml(overlay_path))

    defaults = ExporterConfig()
    config = ExporterConfig()

    if "port" in raw:
        config.port = _validated_port(raw["port"])
    if "host" in raw:
        config.host = str(raw["host"] or defaults.host)
    if "timeout" in raw:
        config.timeout = _validated_seconds(raw["timeout"], DEFAULT_TIMEOUT_SECONDS, "timeout")
    if "interval" in raw:
        config.interval = _validated_seconds(raw["interval"], defaults.interval, "interval")
    if "mode" in raw:
        config.mode = _validated_choice(raw["mode"], MODES, defaults.mode, "mode")
    if "strategy" in raw:
        config.strategy = _validated_choice(raw["strategy"], STRATEGIES, defaults.strategy, "strategy")
    if "api_url" in raw:
        config.api_url = str(raw["api_url"] or defaults.api_url)
    if "asset_pairs_ttl" in raw:
        config.asset_pairs_ttl = _validated_seconds(raw["asset_pairs_ttl"], 0.0, "asset_pairs_ttl", allow_zero=True)
    if "cycle_timeout" in raw:
        config.cycle_timeout = _validated_seconds(raw["cycle_timeout"], 0.0, "cycle_timeout", allow_zero=True)
    if "log_level" in raw:
        config.log_level = _validated_choice(
            str(raw["log_level"] or "").upper(), LOG_LEVELS, defaults.log_level, "log_level"
        )
    env_level = os.environ.get(LOG_LEVEL_ENV_VAR)
    if env_level:
        config.log_level = _validated_choice(
            env_level.upper(), LOG_LEVELS, config.log_level, LOG_LEVEL_ENV_VAR
        )

    references = raw.get("reference_currencies")
    if references is not None:
        if isinstance(references, list) and references and all(isinstance(r, str) and r for r in references):
            config.reference_currencies = list(references)
        else:
            logger.warning("reference_currencies is invalid; using defaults")
            config.reference_currencies = list(DEFAULT_REFERENCE_CURRENCIES)

    auth_raw = raw.get("auth") or {}
    if isinstance(auth_raw, dict):
        config.auth = AuthConfig(
            enabled=bool(auth_raw.get("enabled", False)),
            token=str(auth_raw.get("token") or ""),
        )

    if config.auth.enabled and not config.auth.token:
        logger.warning("auth is enabled without a token; every request to / will be rejected")

    return config
