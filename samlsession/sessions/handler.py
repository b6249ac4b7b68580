"""
samlsession sessions - Session handler.

The SessionHandler layers our session on top of the shared host channel:
1. Guard - Commit and remember a foreign session already on the channel
2. Policy - Resolve and apply cookie parameters
3. Identity - Create, read from cookie, or bind a specific session id
4. Storage - Save/load the opaque payload through the codec
5. Hand-back - Restore the foreign session and retire the handler

The handler is request-scoped. The process-wide cached reference lives in
a context variable (``get_session_handler``) and is dropped by
``restore_previous``.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Callable

from samlsession.faults import hash_session_id

from .codec import JsonPayloadOwner, PayloadOwner, SessionCodec
from .core import ChannelIdentity, CookieParams, StartResult, generate_session_id
from .faults import (
    CookieDisableFailedFault,
    HandlerRetiredFault,
    HeadersAlreadySentFault,
    IdentityMismatchFault,
    SecureCookieOnPlaintextFault,
)
from .guard import ForeignSessionGuard
from .policy import CookiePolicy, RuntimeCapabilities

if TYPE_CHECKING:
    from samlsession.config import Configuration
    from .channel import ChannelAdapter


logger = logging.getLogger("samlsession.sessions")


def plaintext_transport() -> bool:
    """Transport predicate for deployments without TLS."""
    return False


# ============================================================================
# SessionHandler
# ============================================================================

class SessionHandler:
    """
    Session lifecycle on a shared host channel.

    Construction detects and preserves a foreign session, names the channel,
    applies cookie parameters (unless headers are gone) and the save path.

    Example:
        >>> handler = SessionHandler(channel, config, is_https=request.is_secure)
        >>> payload = handler.load_session()
        >>> if payload is None:
        ...     sid = handler.new_session_id()
        ...     handler.set_cookie(handler.get_session_cookie_name(), sid)
        >>> handler.save_session({"user": "alice"})
    """

    def __init__(
        self,
        channel: ChannelAdapter,
        config: Configuration,
        *,
        owner: PayloadOwner | None = None,
        is_https: Callable[[], bool] = plaintext_transport,
        caps: RuntimeCapabilities | None = None,
    ):
        """
        Initialize the handler for one request.

        Args:
            channel: Host channel adapter
            config: Configuration view
            owner: Payload owner (defaults to JSON)
            is_https: Whether the current request travels over TLS
            caps: Runtime capabilities (defaults to the configured ones)

        Raises:
            CookieConfigConflictFault: Cookie path options conflict
            InvalidCookieConfigFault: Invalid cookie option value
        """
        self.channel = channel
        self.config = config
        self.owner = owner if owner is not None else JsonPayloadOwner()
        self.is_https = is_https
        self.caps = caps if caps is not None else RuntimeCapabilities.from_config(config)
        self.codec = SessionCodec(channel, self.owner)
        self.guard = ForeignSessionGuard()
        self._retired = False

        self.cookie_name = config.get_string("session.channel.cookiename", None)

        self.guard.detect(channel, self.cookie_name)

        if self.cookie_name:
            channel.set_name(self.cookie_name)
        else:
            self.cookie_name = channel.get_name()

        params = self.get_cookie_params()

        if not channel.headers_sent():
            channel.set_cookie_params(params)

        savepath = config.get_string("session.channel.savepath", None)
        if savepath:
            channel.set_save_path(savepath)

    # ========================================================================
    # Identity
    # ========================================================================

    @property
    def identity(self) -> ChannelIdentity:
        """Identity of the live channel (empty id when unbound)."""
        if not self.channel.has_active_channel():
            return ChannelIdentity(self.channel.get_name(), "")
        return ChannelIdentity(self.channel.get_name(), self.channel.get_id())

    def new_session_id(self) -> str:
        """
        Create a new session id and announce it to the payload owner.

        Returns:
            32 lowercase hex characters (128 random bits)
        """
        self._ensure_usable()
        session_id = generate_session_id()
        self.owner.session_created(session_id)
        logger.debug(f"Created session {hash_session_id(session_id)}")
        return session_id

    def get_cookie_session_id(self) -> str | None:
        """
        Start the channel from the session cookie.

        The id is taken from the cookie itself, never from a channel that may
        still carry a previous session's id.

        Returns:
            Session id, or None without a session cookie or if start failed

        Raises:
            SecureCookieOnPlaintextFault: Secure cookie on a plain HTTP request
        """
        self._ensure_usable()
        if not self.has_session_cookie():
            return None

        self.channel.set_id(self.channel.request_cookies()[self.cookie_name])

        # The channel may still carry defaults when headers were already sent
        secure = self.get_cookie_params().secure or self.channel.get_cookie_params().secure
        if secure and not self.is_https():
            raise SecureCookieOnPlaintextFault(message="Session start with secure cookie not allowed on http.")

        result = self._start()
        return result.session_id if result else None

    def get_session_cookie_name(self) -> str:
        return self.cookie_name

    def has_session_cookie(self) -> bool:
        """True if the request carries our session cookie."""
        return self.cookie_name in self.channel.request_cookies()

    # ========================================================================
    # Storage
    # ========================================================================

    def load_session(self, session_id: str | None = None) -> Any | None:
        """
        Load our session payload.

        Args:
            session_id: Specific session to load, or None to use the cookie

        Returns:
            Payload, or None if there is no (readable) session

        Raises:
            CookieDisableFailedFault: Cookie emission could not be disabled
            IdentityMismatchFault: Another session id is already bound
            SecureCookieOnPlaintextFault: Secure cookie on a plain HTTP request
        """
        self._ensure_usable()
        bound_id = self.channel.get_id()

        if session_id is not None:
            if not bound_id:
                # Not started from the cookie: bind without emitting one
                if not self.channel.disable_cookies():
                    raise CookieDisableFailedFault()
                try:
                    self.channel.set_id(session_id)
                    self._start()
                finally:
                    self.channel.enable_cookies()
            elif session_id != bound_id:
                raise IdentityMismatchFault(requested_id=session_id, bound_id=bound_id)
        elif not bound_id:
            self.get_cookie_session_id()

        return self.codec.load()

    def save_session(self, payload: Any) -> None:
        """
        Store our session payload in the active channel.

        Raises:
            ChannelNotActiveFault: No channel is active
        """
        self._ensure_usable()
        self.codec.save(payload)

    # ========================================================================
    # Cookies
    # ========================================================================

    def get_cookie_params(self) -> CookieParams:
        """
        Cookie parameters for our sessions.

        Raises:
            CookieConfigConflictFault: Cookie path options conflict
        """
        return CookiePolicy.resolve(self.config, self.caps)

    def set_cookie(
        self,
        name: str,
        session_id: str | None,
        cookie_params: CookieParams | None = None,
    ) -> None:
        """
        Issue (or with ``session_id=None``, expire) a session cookie.

        Preconditions are checked before the channel is touched, so a
        rejected call leaves it as it was.

        Args:
            name: Cookie (channel) name
            session_id: Session id, or None to delete the cookie
            cookie_params: Cookie attributes (defaults to the channel's)

        Raises:
            SecureCookieOnPlaintextFault: Secure cookie on a plain HTTP request
            HeadersAlreadySentFault: Response headers already flushed
        """
        self._ensure_usable()
        if cookie_params is None:
            cookie_params = self.channel.get_cookie_params()

        if cookie_params.secure and not self.is_https():
            raise SecureCookieOnPlaintextFault()

        if self.channel.headers_sent():
            raise HeadersAlreadySentFault()

        if self.channel.has_active_channel():
            self.channel.write_close()

        self.channel.set_cookie_params(cookie_params)
        self.channel.set_name(name)
        self.channel.set_id(session_id)
        self._start()

    # ========================================================================
    # Hand-back
    # ========================================================================

    def restore_previous(self) -> None:
        """
        Give the channel back to the session that held it before us.

        Our session must be saved before calling this. Afterwards this
        handler is retired: obtain a new one for further session work.
        """
        if not self.guard.restore(self.channel):
            return

        self._retired = True
        reset_session_handler()
        logger.debug(f"Restored previous session {self.channel.get_name()}")

    # ========================================================================
    # Internals
    # ========================================================================

    def _start(self) -> StartResult:
        result = self.channel.start()
        if not result:
            logger.info(f"Session channel {self.channel.get_name()} left unbound: {result.reason}")
        return result

    def _ensure_usable(self) -> None:
        if self._retired:
            raise HandlerRetiredFault()


# ============================================================================
# Process-wide handler reference
# ============================================================================

_current_handler: ContextVar[SessionHandler | None] = ContextVar(
    "samlsession_session_handler", default=None
)


def get_session_handler(
    factory: Callable[[], SessionHandler] | None = None,
) -> SessionHandler | None:
    """
    Return the cached handler, creating it with ``factory`` if needed.

    Args:
        factory: Builds a handler when none is cached

    Returns:
        Cached handler, or None if none is cached and no factory was given
    """
    handler = _current_handler.get()
    if handler is None and factory is not None:
        handler = factory()
        _current_handler.set(handler)
    return handler


def set_session_handler(handler: SessionHandler | None) -> None:
    _current_handler.set(handler)


def reset_session_handler() -> None:
    """Drop the cached handler so the next consumer builds a fresh one."""
    _current_handler.set(None)
