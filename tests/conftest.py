"""
Shared test fixtures and helpers for the samlsession test suite.
"""

import pytest
from typing import Any, Dict, Optional

from samlsession.config import Configuration
from samlsession.sessions import (
    MemoryBackend,
    MemoryChannel,
    JsonPayloadOwner,
    SessionHandler,
    reset_session_handler,
)


# ============================================================================
# Helpers
# ============================================================================


def make_config(
    *,
    cookiename: Optional[str] = "samlsession",
    session: Optional[Dict[str, Any]] = None,
    **root: Any,
) -> Configuration:
    """Build a Configuration with the usual session section."""
    data: Dict[str, Any] = {"session": {"channel": {}, "cookie": {}}}
    if cookiename is not None:
        data["session"]["channel"]["cookiename"] = cookiename
    for section, values in (session or {}).items():
        data["session"].setdefault(section, {}).update(values)
    data.update(root)
    return Configuration(data)


def https():
    return True


def http():
    return False


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _clear_handler_cache():
    reset_session_handler()
    yield
    reset_session_handler()


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def channel(backend):
    return MemoryChannel(backend)


@pytest.fixture
def owner():
    return JsonPayloadOwner()


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def make_handler(backend, owner):
    """Factory building a handler over a fresh channel per call."""

    def _make(
        config: Optional[Configuration] = None,
        *,
        channel: Optional[MemoryChannel] = None,
        cookies: Optional[Dict[str, str]] = None,
        headers_sent: bool = False,
        is_https=http,
    ) -> SessionHandler:
        if channel is None:
            channel = MemoryChannel(backend, request_cookies=cookies, headers_sent=headers_sent)
        return SessionHandler(
            channel,
            config if config is not None else make_config(),
            owner=owner,
            is_https=is_https,
        )

    return _make
