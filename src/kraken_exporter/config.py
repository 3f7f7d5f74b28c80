from __future__ import annotations

# Re-export loader helpers
from .config_loader import (
    CONFIG_ENV_VAR,
    CONFIG_FILENAME,
    get_config_dir,
    load_config,
)

# Re-export config models
from .config_models import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_SECONDS,
    AuthConfig,
    ExporterConfig,
)

__all__ = [
    # models
    "AuthConfig",
    "ExporterConfig",
    "DEFAULT_PORT",
    "DEFAULT_TIMEOUT_SECONDS",
    # loader
    "CONFIG_ENV_VAR",
    "CONFIG_FILENAME",
    "get_config_dir",
    "load_config",
]
