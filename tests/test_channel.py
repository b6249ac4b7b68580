"""
Host channel (sessions/channel.py)

Tests MemoryChannel lifecycle, best-effort start and cookie rendering.
"""

import pytest

from samlsession.sessions import (
    ChannelNotActiveFault,
    CookieParams,
    MemoryBackend,
    MemoryChannel,
    SameSite,
    render_set_cookie,
)


# ============================================================================
# Lifecycle
# ============================================================================

class TestMemoryChannelLifecycle:

    def test_start_generates_id(self):
        channel = MemoryChannel(id_generator=lambda: "generated1")
        result = channel.start()
        assert result.ok
        assert result.session_id == "generated1"
        assert channel.has_active_channel()
        assert channel.get_id() == "generated1"

    def test_start_uses_request_cookie(self):
        channel = MemoryChannel(name="app", request_cookies={"app": "abc123"})
        assert channel.start().session_id == "abc123"
        # Id came from the cookie: nothing to send back
        assert channel.set_cookie_headers == []

    def test_start_explicit_id_emits_cookie(self):
        channel = MemoryChannel(name="app")
        channel.set_id("explicit")
        channel.start()
        assert channel.set_cookie_headers == ["app=explicit; Path=/; HttpOnly"]

    def test_start_twice_is_harmless(self):
        channel = MemoryChannel(id_generator=lambda: "once")
        channel.start()
        assert channel.start().session_id == "once"

    def test_write_close_persists_and_keeps_id(self):
        backend = MemoryBackend()
        channel = MemoryChannel(backend)
        channel.set_id("s1")
        channel.start()
        channel.bag["k"] = "v"
        channel.write_close()

        assert not channel.has_active_channel()
        assert channel.get_id() == "s1"
        assert backend.read("s1") == {"k": "v"}

    def test_bag_requires_active_channel(self):
        channel = MemoryChannel()
        with pytest.raises(ChannelNotActiveFault):
            channel.bag

    def test_identity_frozen_while_active(self):
        channel = MemoryChannel(name="app")
        channel.set_id("s1")
        channel.start()
        channel.set_id("s2")
        channel.set_name("other")
        channel.set_cookie_params(CookieParams(secure=True))
        assert channel.get_id() == "s1"
        assert channel.get_name() == "app"
        assert channel.get_cookie_params().secure is False

    def test_expire_cookie(self):
        channel = MemoryChannel(name="app")
        channel.set_id(None)
        result = channel.start()
        assert not result.ok
        assert not channel.has_active_channel()
        assert channel.set_cookie_headers == [
            "app=; Max-Age=0; Expires=Thu, 01 Jan 1970 00:00:00 GMT; Path=/; HttpOnly"
        ]

    def test_disable_cookies(self):
        channel = MemoryChannel(name="app")
        assert channel.disable_cookies() is True
        channel.set_id("quiet")
        channel.start()
        assert channel.set_cookie_headers == []
        # Cannot be switched while active
        assert channel.disable_cookies() is False

    def test_save_path_namespaces_storage(self):
        backend = MemoryBackend()
        backend.write("s1", {"k": "default"})
        channel = MemoryChannel(backend)
        channel.set_save_path("/elsewhere")
        channel.set_id("s1")
        channel.start()
        assert channel.bag == {}


# ============================================================================
# Best-effort start
# ============================================================================

class TestBestEffortStart:

    def test_headers_sent_suppresses_cache_limiter(self):
        channel = MemoryChannel(headers_sent=True, id_generator=lambda: "late")
        result = channel.start()
        assert result.ok
        assert channel.response_headers == []
        # Restored after the call
        assert channel.cache_limiter == "nocache"

    def test_cache_headers_when_not_sent(self):
        channel = MemoryChannel(id_generator=lambda: "early")
        channel.start()
        names = [name for name, _ in channel.response_headers]
        assert "Cache-Control" in names

    def test_invalid_id_fails_without_raising(self):
        channel = MemoryChannel(name="app", request_cookies={"app": "../../etc/passwd"})
        result = channel.start()
        assert not result.ok
        assert "illegal" in result.reason
        assert not channel.has_active_channel()
        assert channel.get_id() == ""

    def test_cache_control_suppressed_restores_on_error(self):
        channel = MemoryChannel()
        channel.cache_limiter = "private"
        with pytest.raises(RuntimeError):
            with channel.cache_control_suppressed():
                assert channel.cache_limiter == ""
                raise RuntimeError("boom")
        assert channel.cache_limiter == "private"


# ============================================================================
# Cookie rendering
# ============================================================================

class TestRenderSetCookie:

    def test_full_attributes(self):
        params = CookieParams(
            lifetime=60,
            path="/saml/",
            domain="example.org",
            secure=True,
            httponly=True,
            samesite=SameSite.LAX,
        )
        header = render_set_cookie("sid", "v", params, now=0)
        assert header == (
            "sid=v; Max-Age=60; Expires=Thu, 01 Jan 1970 00:01:00 GMT; "
            "Path=/saml/; Domain=example.org; Secure; HttpOnly; SameSite=Lax"
        )

    def test_samesite_in_path_not_duplicated(self):
        params = CookieParams(path="/; SameSite=Strict", samesite=SameSite.STRICT, httponly=False)
        header = render_set_cookie("sid", "v", params, native_samesite=False)
        assert header == "sid=v; Path=/; SameSite=Strict"
