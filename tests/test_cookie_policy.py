"""
Cookie policy (sessions/policy.py)

Tests CookiePolicy.resolve, RuntimeCapabilities and SameSite encoding.
"""

import logging

import pytest

from samlsession.config import Configuration
from samlsession.sessions import (
    CookieConfigConflictFault,
    CookiePolicy,
    InvalidCookieConfigFault,
    RuntimeCapabilities,
    SameSite,
)
from tests.conftest import make_config


NATIVE = RuntimeCapabilities(native_samesite_support=True)
LEGACY = RuntimeCapabilities(native_samesite_support=False)


# ============================================================================
# Defaults
# ============================================================================

class TestDefaults:

    def test_empty_config(self):
        params = CookiePolicy.resolve(Configuration(), NATIVE)
        assert params.lifetime == 0
        assert params.path == "/"
        assert params.domain is None
        assert params.secure is False
        assert params.httponly is True
        assert params.samesite is None

    def test_configured_values(self):
        config = make_config(session={"cookie": {
            "lifetime": 3600,
            "path": "/app/",
            "domain": ".example.org",
            "secure": True,
            "samesite": "strict",
        }})
        params = CookiePolicy.resolve(config, NATIVE)
        assert params.lifetime == 3600
        assert params.path == "/app/"
        assert params.domain == ".example.org"
        assert params.secure is True
        assert params.samesite is SameSite.STRICT

    def test_httponly_override(self):
        config = make_config(session={"channel": {"httponly": False}})
        assert CookiePolicy.resolve(config, NATIVE).httponly is False


# ============================================================================
# Path restriction
# ============================================================================

class TestPathRestriction:

    def test_conflict(self):
        config = make_config(session={
            "channel": {"limitedpath": True},
            "cookie": {"path": "/x/"},
        })
        with pytest.raises(CookieConfigConflictFault) as exc:
            CookiePolicy.resolve(config, NATIVE)
        assert exc.value.code == "SESSION_COOKIE_CONFIG_CONFLICT"
        assert "session.channel.limitedpath" in exc.value.message

    def test_conflict_even_when_flag_false(self):
        config = make_config(session={
            "channel": {"limitedpath": False},
            "cookie": {"path": "/x/"},
        })
        with pytest.raises(CookieConfigConflictFault):
            CookiePolicy.resolve(config, NATIVE)

    def test_limited_path_uses_base_path(self):
        config = make_config(
            session={"channel": {"limitedpath": True}},
            baseurlpath="saml/",
        )
        assert CookiePolicy.resolve(config, NATIVE).path == "/saml/"

    def test_limited_path_from_full_url(self):
        config = make_config(
            session={"channel": {"limitedpath": True}},
            baseurlpath="https://idp.example.org/sso/",
        )
        assert CookiePolicy.resolve(config, NATIVE).path == "/sso/"

    def test_limited_path_disabled(self):
        config = make_config(
            session={"channel": {"limitedpath": False}},
            baseurlpath="saml/",
        )
        assert CookiePolicy.resolve(config, NATIVE).path == "/"


# ============================================================================
# SameSite
# ============================================================================

class TestSameSite:

    def test_native_support_keeps_path(self):
        config = make_config(session={"cookie": {"samesite": "Lax"}})
        params = CookiePolicy.resolve(config, NATIVE)
        assert params.path == "/"
        assert params.samesite is SameSite.LAX

    def test_legacy_runtime_appends_to_path(self):
        config = make_config(session={"cookie": {"samesite": "Lax"}})
        params = CookiePolicy.resolve(config, LEGACY)
        assert params.path == "/; SameSite=Lax"
        assert params.samesite is SameSite.LAX

    def test_append_is_idempotent(self):
        config = make_config(session={"cookie": {"samesite": "Strict", "path": "/a; samesite=Strict"}})
        params = CookiePolicy.resolve(config, LEGACY)
        assert params.path == "/a; samesite=Strict"

    def test_encode_helper(self):
        once = CookiePolicy.encode_samesite_in_path("/", SameSite.NONE)
        assert once == "/; SameSite=None"
        assert CookiePolicy.encode_samesite_in_path(once, SameSite.NONE) == once

    def test_invalid_value(self):
        config = make_config(session={"cookie": {"samesite": "sometimes"}})
        with pytest.raises(InvalidCookieConfigFault):
            CookiePolicy.resolve(config, NATIVE)

    def test_none_without_secure_warns(self, caplog):
        config = make_config(session={"cookie": {"samesite": "None"}})
        with caplog.at_level(logging.WARNING, logger="samlsession.sessions.policy"):
            params = CookiePolicy.resolve(config, NATIVE)
        assert params.samesite is SameSite.NONE
        assert "SameSite=None" in caplog.text


# ============================================================================
# Validation & capabilities
# ============================================================================

class TestValidation:

    def test_negative_lifetime(self):
        config = make_config(session={"cookie": {"lifetime": -1}})
        with pytest.raises(InvalidCookieConfigFault):
            CookiePolicy.resolve(config, NATIVE)

    def test_wrong_type(self):
        config = make_config(session={"cookie": {"secure": "yes please"}})
        with pytest.raises(InvalidCookieConfigFault):
            CookiePolicy.resolve(config, NATIVE)

    def test_capabilities_from_config(self):
        assert RuntimeCapabilities.from_config(Configuration()).native_samesite_support is True
        config = Configuration({"runtime": {"native_samesite": False}})
        assert RuntimeCapabilities.from_config(config).native_samesite_support is False
