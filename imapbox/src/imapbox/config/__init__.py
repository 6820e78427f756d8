"""Runtime configuration for imapbox sessions.

What:
  Re-export the loader helpers and pydantic models that make up the supported
  configuration surface.

Why:
  Callers should not depend on the internal split between ``loader`` and
  ``schema``; keeping ``__all__`` explicit documents the dependency flow.

Interfaces:
  - get_runtime_config / load_runtime_config / reset_runtime_config
  - ConfigLoadError / RuntimeConfigError
  - RuntimeConfig / ImapSettings / MessageSettings
"""

from .loader import (
    ConfigLoadError,
    RuntimeConfigError,
    get_runtime_config,
    load_runtime_config,
    reset_runtime_config,
)
from .schema import ImapSettings, MessageSettings, RuntimeConfig

__all__ = [
    "get_runtime_config",
    "load_runtime_config",
    "reset_runtime_config",
    "ConfigLoadError",
    "RuntimeConfigError",
    "RuntimeConfig",
    "ImapSettings",
    "MessageSettings",
]
