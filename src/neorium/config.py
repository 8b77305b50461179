"""Client configuration for Neorium.

Resolution order for every option (first match wins):
  1. Explicit keyword argument
  2. Environment source (``NEO_APIKEY``, ``NEO_BASE_URL``, ...)
  3. Built-in defaults

The environment is read once, in :func:`resolve_config`.  Nothing else in
the package looks at ``os.environ``.

Config file discovery for :func:`load_config` (first match wins):
  1. explicit ``path`` argument
  2. ``./neorium.yaml``
  3. ``~/.config/neorium/config.yaml``
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import httpx
import yaml

from neorium.errors import NeoError

_logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.neorium.ai"
DEFAULT_MODEL = "neorium-1"
DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_MAX_RETRIES = 2
DEFAULT_MAX_TOOL_ITERATIONS = 5

ENV_API_KEY = "NEO_APIKEY"
ENV_API_KEY_ALIAS = "neo_apikey"
ENV_BASE_URL = "NEO_BASE_URL"
ENV_MODEL = "NEO_MODEL"
ENV_TIMEOUT_MS = "NEO_TIMEOUT_MS"


# ---------------------------------------------------------------------------
# Config data structure
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ClientConfig:
    """Resolved, immutable settings for one client instance."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    max_tool_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS
    user_agent: str | None = None
    # Network implementation override, e.g. ``httpx.MockTransport`` in tests.
    transport: httpx.AsyncBaseTransport | None = None

    def __repr__(self) -> str:
        # Never print the credential.
        return (
            f"ClientConfig(base_url={self.base_url!r}, model={self.model!r}, "
            f"timeout={self.timeout!r}, max_retries={self.max_retries!r}, "
            f"max_tool_iterations={self.max_tool_iterations!r})"
        )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def _env_timeout(env: Mapping[str, str]) -> float | None:
    raw = env.get(ENV_TIMEOUT_MS)
    if not raw:
        return None
    try:
        ms = float(raw)
    except ValueError:
        _logger.warning("Ignoring non-numeric %s=%r", ENV_TIMEOUT_MS, raw)
        return None
    if not math.isfinite(ms) or ms <= 0:
        _logger.warning("Ignoring out-of-range %s=%r", ENV_TIMEOUT_MS, raw)
        return None
    return ms / 1000


def require_api_key(api_key: str | None) -> str:
    """Return *api_key* or fail with an AUTH error when it is missing."""
    if not api_key or not api_key.strip():
        raise NeoError.auth(
            "Missing API key. Set NEO_APIKEY (alias: neo_apikey) "
            "or pass api_key explicitly."
        )
    return api_key


def resolve_config(
    *,
    api_key: str | None = None,
    base_url: str | None = None,
    model: str | None = None,
    timeout: float | None = None,
    max_retries: int | None = None,
    max_tool_iterations: int | None = None,
    user_agent: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    env: Mapping[str, str] | None = None,
) -> ClientConfig:
    """Build a :class:`ClientConfig` from explicit options, *env* and defaults.

    Parameters
    ----------
    env:
        Key-value source for fallbacks.  Defaults to ``os.environ``; pass
        ``{}`` to disable environment lookup entirely.

    Raises
    ------
    NeoError
        ``ErrorKind.AUTH`` when no credential can be found.
    ValueError
        For out-of-range numeric options.
    """
    if env is None:
        env = os.environ

    if api_key is None:
        api_key = env.get(ENV_API_KEY) or env.get(ENV_API_KEY_ALIAS)
    api_key = require_api_key(api_key)

    if timeout is None:
        timeout = _env_timeout(env)
        if timeout is None:
            timeout = DEFAULT_TIMEOUT
    if max_retries is None:
        max_retries = DEFAULT_MAX_RETRIES
    if max_tool_iterations is None:
        max_tool_iterations = DEFAULT_MAX_TOOL_ITERATIONS

    if timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout}")
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")
    if max_tool_iterations < 0:
        raise ValueError(
            f"max_tool_iterations must be >= 0, got {max_tool_iterations}"
        )

    return ClientConfig(
        api_key=api_key,
        base_url=base_url or env.get(ENV_BASE_URL) or DEFAULT_BASE_URL,
        model=model or env.get(ENV_MODEL) or DEFAULT_MODEL,
        timeout=float(timeout),
        max_retries=max_retries,
        max_tool_iterations=max_tool_iterations,
        user_agent=user_agent,
        transport=transport,
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_SEARCH_PATHS = [
    Path("./neorium.yaml"),
    Path.home() / ".config" / "neorium" / "config.yaml",
]

_FILE_KEYS = (
    "api_key", "base_url", "model", "max_retries",
    "max_tool_iterations", "user_agent",
)


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return raw


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ClientConfig:
    """Load settings from YAML, then resolve them like :func:`resolve_config`.

    File values take the place of explicit options; keyword *overrides*
    win over the file.  ``timeout_ms`` in the file is read as
    milliseconds, ``timeout`` as seconds.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            _logger.warning("Config file not found: %s, using defaults", path)
            config_path = None
    else:
        for candidate in _SEARCH_PATHS:
            if candidate.exists():
                config_path = candidate
                break
        if config_path is None:
            _logger.info("No config file found, using defaults")

    options: dict[str, Any] = {}
    if config_path is not None:
        _logger.info("Loading config from %s", config_path)
        raw = _read_yaml(config_path)
        for key in _FILE_KEYS:
            if raw.get(key) is not None:
                options[key] = raw[key]
        if raw.get("timeout") is not None:
            options["timeout"] = float(raw["timeout"])
        elif raw.get("timeout_ms") is not None:
            options["timeout"] = float(raw["timeout_ms"]) / 1000

    options.update({k: v for k, v in overrides.items() if v is not None})
    return resolve_config(env=env, **options)
