from __future__ import annotations

from typing import Any, Callable

import pytest

from neorium.config import ClientConfig, resolve_config
from fakes import FakeServer


@pytest.fixture
def make_config() -> Callable[..., ClientConfig]:
    """Build a config with test defaults, optionally wired to a FakeServer."""

    def _make(server: FakeServer | None = None, **overrides: Any) -> ClientConfig:
        options: dict[str, Any] = {
            "api_key": "test-key",
            "base_url": "http://test.local",
            "timeout": 2.0,
        }
        options.update(overrides)
        if server is not None:
            options["transport"] = server.transport
        return resolve_config(env={}, **options)

    return _make
