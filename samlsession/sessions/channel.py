"""
samlsession sessions - Host channel adapters.

The host channel is the single, process-wide session primitive the
embedding application also uses. The session handler drives it through
a small capability interface:

- ChannelAdapter: Protocol the handler depends on
- BaseChannel: Best-effort ``start()`` shared by concrete channels
- MemoryChannel: In-process host channel backed by a ChannelBackend
"""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from email.utils import formatdate
from typing import Callable, Iterator, Mapping, MutableMapping, Protocol

from samlsession.faults import hash_session_id

from .core import CookieParams, StartResult, generate_session_id
from .faults import ChannelNotActiveFault
from .store import ChannelBackend, MemoryBackend

logger = logging.getLogger("samlsession.sessions.channel")

# Characters a host channel accepts in a session id
_VALID_SESSION_ID = re.compile(r"^[a-zA-Z0-9,-]{1,256}$")

_CACHE_LIMITER_HEADERS = {
    "nocache": [
        ("Expires", "Thu, 19 Nov 1981 08:52:00 GMT"),
        ("Cache-Control", "no-store, no-cache, must-revalidate"),
        ("Pragma", "no-cache"),
    ],
    "private": [("Cache-Control", "private, max-age=10800")],
    "private_no_expire": [("Cache-Control", "private, max-age=10800")],
    "public": [("Cache-Control", "public, max-age=10800")],
}


def is_valid_session_id(session_id: str) -> bool:
    return bool(_VALID_SESSION_ID.match(session_id))


# ============================================================================
# ChannelAdapter Protocol
# ============================================================================

class ChannelAdapter(Protocol):
    """
    Capability interface over the host session channel.
    
    The handler drives the channel but does not own its logic. Semantics
    follow the host primitive:
    - the id survives ``write_close()`` (it is only rebound, never cleared)
    - name, id and cookie parameters can only change while inactive
    - ``start()`` never raises; failure leaves the channel unbound
    """
    
    def start(self) -> StartResult:
        ...
    
    def write_close(self) -> None:
        ...
    
    def get_id(self) -> str:
        ...
    
    def set_id(self, session_id: str | None) -> None:
        """Bind the next start to ``session_id``; None expires the cookie."""
        ...
    
    def get_name(self) -> str:
        ...
    
    def set_name(self, name: str) -> None:
        ...
    
    def get_cookie_params(self) -> CookieParams:
        ...
    
    def set_cookie_params(self, params: CookieParams) -> None:
        ...
    
    def has_active_channel(self) -> bool:
        ...
    
    def cache_control_suppressed(self):
        """Context manager clearing the cache limiter for its duration."""
        ...
    
    def headers_sent(self) -> bool:
        ...
    
    def request_cookies(self) -> Mapping[str, str]:
        ...
    
    def disable_cookies(self) -> bool:
        """Switch off automatic cookie emission; False if not possible."""
        ...
    
    def enable_cookies(self) -> None:
        ...
    
    def set_save_path(self, path: str) -> None:
        ...
    
    @property
    def bag(self) -> MutableMapping[str, object]:
        """Key-value storage of the active channel."""
        ...


# ============================================================================
# BaseChannel
# ============================================================================

class BaseChannel(ABC):
    """
    Shared best-effort start logic.
    
    Subclasses implement ``_open()`` (bind and load storage, return the
    bound id) and the request/response predicates.
    """
    
    cache_limiter: str = "nocache"
    
    def start(self) -> StartResult:
        """
        Start the channel, tolerating already-sent headers.
        
        When headers are gone the cache limiter is cleared for the duration
        of this single call (no header emission), then restored.
        """
        if self.headers_sent():
            with self.cache_control_suppressed():
                return self._start()
        return self._start()
    
    def _start(self) -> StartResult:
        try:
            session_id = self._open()
        except Exception as e:
            logger.warning(f"Session channel start failed: {e}")
            self.set_id("")
            return StartResult(ok=False, reason=str(e))
        
        if not session_id:
            return StartResult(ok=False, reason="channel left unbound")
        
        return StartResult(ok=True, session_id=session_id)
    
    @contextmanager
    def cache_control_suppressed(self) -> Iterator[None]:
        saved = self.cache_limiter
        self.cache_limiter = ""
        try:
            yield
        finally:
            self.cache_limiter = saved
    
    @abstractmethod
    def _open(self) -> str:
        """Bind the channel; return the bound id ('' if left unbound)."""
    
    @abstractmethod
    def set_id(self, session_id: str | None) -> None:
        ...
    
    @abstractmethod
    def headers_sent(self) -> bool:
        ...


# ============================================================================
# MemoryChannel
# ============================================================================

class MemoryChannel(BaseChannel):
    """
    In-process host session channel.
    
    Models one request's view of a host session module: the request cookie
    jar, the response headers emitted so far, and the live session bag.
    Storage outlives the request through the backend.
    
    Example:
        >>> channel = MemoryChannel(request_cookies={"app_sess": "X1"}, name="app_sess")
        >>> channel.start().session_id
        'X1'
        >>> channel.bag["user"] = "alice"
        >>> channel.write_close()
    """
    
    def __init__(
        self,
        backend: ChannelBackend | None = None,
        *,
        name: str = "SESSIONID",
        request_cookies: Mapping[str, str] | None = None,
        headers_sent: bool = False,
        native_samesite_support: bool = True,
        id_generator: Callable[[], str] = generate_session_id,
    ):
        self.backend = backend if backend is not None else MemoryBackend()
        self.native_samesite_support = native_samesite_support
        self.use_cookies = True
        self.response_headers: list[tuple[str, str]] = []
        
        self._name = name
        self._id = ""
        self._active = False
        self._bag: dict[str, object] = {}
        self._cookie_params = CookieParams()
        self._request_cookies = dict(request_cookies or {})
        self._headers_sent = headers_sent
        self._expire_pending = False
        self._id_generator = id_generator
    
    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    
    def get_id(self) -> str:
        return self._id
    
    def set_id(self, session_id: str | None) -> None:
        if self._active:
            logger.warning("Session ID cannot be changed while the channel is active")
            return
        self._id = session_id or ""
        self._expire_pending = session_id is None
    
    def get_name(self) -> str:
        return self._name
    
    def set_name(self, name: str) -> None:
        if self._active:
            logger.warning("Session name cannot be changed while the channel is active")
            return
        self._name = name
    
    def get_cookie_params(self) -> CookieParams:
        return self._cookie_params
    
    def set_cookie_params(self, params: CookieParams) -> None:
        if self._active:
            logger.warning("Session cookie parameters cannot be changed while the channel is active")
            return
        self._cookie_params = params
    
    def has_active_channel(self) -> bool:
        return self._active
    
    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    
    def _open(self) -> str:
        if self._active:
            return self._id
        
        if self._expire_pending:
            self._expire_pending = False
            if self.use_cookies:
                self._emit_cookie("", expire=True)
            return ""
        
        session_id = self._id
        if not session_id and self.use_cookies:
            session_id = self._request_cookies.get(self._name, "")
        
        if session_id and not is_valid_session_id(session_id):
            raise ValueError("session id contains illegal characters")
        
        if not session_id:
            session_id = self._id_generator()
        
        if self.cache_limiter:
            if self._headers_sent:
                raise RuntimeError("cannot send cache limiter headers, headers already sent")
            self.response_headers.extend(_CACHE_LIMITER_HEADERS.get(self.cache_limiter, []))
        
        if self.use_cookies and self._request_cookies.get(self._name) != session_id:
            self._emit_cookie(session_id)
        
        self._id = session_id
        self._bag = self.backend.read(session_id)
        self._active = True
        logger.debug(f"Channel {self._name} started ({hash_session_id(session_id)})")
        return session_id
    
    def write_close(self) -> None:
        if not self._active:
            return
        self.backend.write(self._id, self._bag)
        self._bag = {}
        self._active = False
    
    @property
    def bag(self) -> MutableMapping[str, object]:
        if not self._active:
            raise ChannelNotActiveFault()
        return self._bag
    
    # ------------------------------------------------------------------
    # Request / response
    # ------------------------------------------------------------------
    
    def headers_sent(self) -> bool:
        return self._headers_sent
    
    def mark_headers_sent(self) -> None:
        """Record that the response headers have been flushed."""
        self._headers_sent = True
    
    def request_cookies(self) -> Mapping[str, str]:
        return dict(self._request_cookies)
    
    def disable_cookies(self) -> bool:
        if self._active:
            return False
        self.use_cookies = False
        return True
    
    def enable_cookies(self) -> None:
        self.use_cookies = True
    
    def set_save_path(self, path: str) -> None:
        self.backend.set_save_path(path)
    
    @property
    def set_cookie_headers(self) -> list[str]:
        return [value for key, value in self.response_headers if key == "Set-Cookie"]
    
    def _emit_cookie(self, value: str, expire: bool = False) -> None:
        if self._headers_sent:
            logger.warning("Session cookie cannot be sent, headers already sent")
            return
        header = render_set_cookie(
            self._name,
            value,
            self._cookie_params,
            expire=expire,
            native_samesite=self.native_samesite_support,
        )
        self.response_headers.append(("Set-Cookie", header))


# ============================================================================
# Cookie rendering
# ============================================================================

def render_set_cookie(
    name: str,
    value: str,
    params: CookieParams,
    *,
    expire: bool = False,
    native_samesite: bool = True,
    now: float | None = None,
) -> str:
    """
    Render a ``Set-Cookie`` header value.
    
    Args:
        name: Cookie name
        value: Cookie value (empty when expiring)
        params: Cookie attributes
        expire: Emit an already-expired cookie (deletion)
        native_samesite: Emit SameSite as a real attribute
        now: Current epoch seconds (defaults to time.time())
    """
    cookie_parts = [f"{name}={value}"]
    
    if expire:
        cookie_parts.append("Max-Age=0")
        cookie_parts.append("Expires=Thu, 01 Jan 1970 00:00:00 GMT")
    elif params.lifetime > 0:
        if now is None:
            now = time.time()
        cookie_parts.append(f"Max-Age={params.lifetime}")
        cookie_parts.append(f"Expires={formatdate(now + params.lifetime, usegmt=True)}")
    
    cookie_parts.append(f"Path={params.path}")
    
    if params.domain:
        cookie_parts.append(f"Domain={params.domain}")
    
    if params.secure:
        cookie_parts.append("Secure")
    
    if params.httponly:
        cookie_parts.append("HttpOnly")
    
    if params.samesite is not None and native_samesite:
        cookie_parts.append(f"SameSite={params.samesite.value}")
    
    return "; ".join(cookie_parts)
