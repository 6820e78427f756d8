"""Locate, parse, validate, and cache the imapbox runtime configuration.

What:
  Resolve ``imapbox.yaml`` from an explicit path, the ``IMAPBOX_CONFIG_PATH``
  environment variable, or well-known default locations, and expose the
  validated :class:`~imapbox.config.schema.RuntimeConfig`.

Why:
  Sessions need ambient defaults (port, TLS, socket timeout, liveness probe)
  without every caller threading them through constructors. Centralising the
  lookup gives one precedence chain and one validation path.

How:
  Candidate paths are walked in priority order. The first existing file is
  parsed with PyYAML ``safe_load`` and validated by pydantic. The result is
  cached module-wide until :func:`reset_runtime_config` or ``reload=True``.
  Explicitly requested paths (argument or environment) must exist. When only
  default locations were searched and none exists, built-in defaults apply.

Interfaces:
  :func:`load_runtime_config`, :func:`get_runtime_config`,
  :func:`reset_runtime_config`, :class:`ConfigLoadError`,
  :class:`RuntimeConfigError`.

Invariants:
  - Every returned model has passed strict (``extra="forbid"``) validation.
  - The cache honours explicit reload requests and the precedence order of
    candidate paths.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import yaml
from pydantic import ValidationError as _PydanticValidationError

from .schema import RuntimeConfig


class ConfigLoadError(Exception):
    """Base error for configuration parsing or validation failures."""


class RuntimeConfigError(ConfigLoadError):
    """Error raised when ``imapbox.yaml`` cannot be loaded or validated."""


_CONFIG_ENV = "IMAPBOX_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("imapbox.yaml"),
    Path("~/.config/imapbox/config.yaml"),
    Path("/etc/imapbox/config.yaml"),
)

_RUNTIME_CACHE: Optional[Tuple[Optional[Path], RuntimeConfig]] = None


def _candidate_paths(path: Optional[Path]) -> Iterable[Tuple[Path, bool]]:
    """Yield ``(candidate, required)`` pairs in priority order.

    What:
      Produce the ordered configuration locations, flagging the ones the
      caller asked for explicitly.

    Why:
      A typo in an explicit path or in ``IMAPBOX_CONFIG_PATH`` must fail loudly,
      while absent default files simply mean "use built-in defaults".

    How:
      Accumulate deduplicated, user-expanded paths from the argument, the
      environment variable, and the default locations.
    """

    seen: set[Path] = set()
    if path is not None:
        candidate = path.expanduser()
        seen.add(candidate)
        yield candidate, True
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate, True
    for default in _DEFAULT_LOCATIONS:
        candidate = default.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate, False


def _parse_config_payload(text: str, source: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeConfigError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeConfigError(f"{source} must contain a mapping at the top-level")
    return payload


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    """Read ``path`` and validate it into a :class:`RuntimeConfig`.

    Raises:
      RuntimeConfigError: If the file cannot be read, parsed, or validated.
    """

    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise RuntimeConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise RuntimeConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    payload = _parse_config_payload(text, path)
    try:
        return RuntimeConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise RuntimeConfigError(f"Invalid configuration in {path}: {exc}") from exc


def load_runtime_config(
    path: Optional[Path | str] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the runtime configuration.

    What:
      Locate the configuration file using the precedence chain and return a
      validated :class:`RuntimeConfig`.

    Why:
      Every :class:`~imapbox.session.SessionConfig` consults these defaults;
      caching avoids repeated disk IO while ``reload`` allows deterministic
      refreshes in tests.

    How:
      Return the cached model unless ``reload`` is set or a different explicit
      path is requested. Otherwise walk the candidates; a required candidate
      that does not exist raises, the first existing file wins, and when no
      file is found the built-in defaults are cached.

    Args:
      path: Optional explicit location of the configuration file.
      reload: When ``True`` bypass the cache.

    Returns:
      The validated runtime configuration.

    Raises:
      RuntimeConfigError: If a required file is missing or any file is invalid.
    """

    global _RUNTIME_CACHE
    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    for candidate, required in _candidate_paths(requested_path):
        if not candidate.exists():
            if required:
                raise RuntimeConfigError(f"Configuration file missing: {candidate}")
            continue
        config = _load_runtime_from_path(candidate)
        _RUNTIME_CACHE = (candidate, config)
        return config

    config = RuntimeConfig()
    _RUNTIME_CACHE = (None, config)
    return config


def get_runtime_config() -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand."""

    return load_runtime_config()


def reset_runtime_config() -> None:
    """Clear the runtime configuration cache."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None
