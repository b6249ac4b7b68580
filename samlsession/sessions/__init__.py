"""
samlsession sessions - Authentication sessions on a shared host channel.

This package layers an authentication session on top of the host's
session channel without corrupting the embedding application's own
session:
- Foreign session detection, preservation and hand-back
- Cookie policy (path restriction, httponly, SameSite encoding)
- Best-effort channel start when headers are already sent
- Opaque payload storage with corruption tolerance

Philosophy:
- The channel is injected, never reached through globals
- Security preconditions fail loudly, storage corruption fails quietly
- Every failure has its own fault code
"""

from .core import (
    SESSION_KEY,
    SameSite,
    CookieParams,
    ChannelIdentity,
    StartResult,
    generate_session_id,
)

from .policy import (
    CookiePolicy,
    RuntimeCapabilities,
)

from .channel import (
    ChannelAdapter,
    BaseChannel,
    MemoryChannel,
    render_set_cookie,
)

from .store import (
    ChannelBackend,
    MemoryBackend,
    FileBackend,
)

from .guard import (
    ForeignSessionGuard,
    PreviousSessionState,
)

from .codec import (
    PayloadOwner,
    JsonPayloadOwner,
    PicklePayloadOwner,
    SessionCodec,
)

from .handler import (
    SessionHandler,
    get_session_handler,
    set_session_handler,
    reset_session_handler,
    plaintext_transport,
)

from .faults import (
    SessionFault,
    CookieConfigConflictFault,
    InvalidCookieConfigFault,
    CannotSetCookieFault,
    SecureCookieOnPlaintextFault,
    HeadersAlreadySentFault,
    CookieDisableFailedFault,
    IdentityMismatchFault,
    HandlerRetiredFault,
    ChannelNotActiveFault,
    ChannelStoreUnavailableFault,
    CorruptPayloadFault,
)

__all__ = [
    # Core types
    "SESSION_KEY",
    "SameSite",
    "CookieParams",
    "ChannelIdentity",
    "StartResult",
    "generate_session_id",
    # Policy
    "CookiePolicy",
    "RuntimeCapabilities",
    # Channel
    "ChannelAdapter",
    "BaseChannel",
    "MemoryChannel",
    "render_set_cookie",
    # Storage
    "ChannelBackend",
    "MemoryBackend",
    "FileBackend",
    # Guard
    "ForeignSessionGuard",
    "PreviousSessionState",
    # Codec
    "PayloadOwner",
    "JsonPayloadOwner",
    "PicklePayloadOwner",
    "SessionCodec",
    # Handler
    "SessionHandler",
    "get_session_handler",
    "set_session_handler",
    "reset_session_handler",
    "plaintext_transport",
    # Faults
    "SessionFault",
    "CookieConfigConflictFault",
    "InvalidCookieConfigFault",
    "CannotSetCookieFault",
    "SecureCookieOnPlaintextFault",
    "HeadersAlreadySentFault",
    "CookieDisableFailedFault",
    "IdentityMismatchFault",
    "HandlerRetiredFault",
    "ChannelNotActiveFault",
    "ChannelStoreUnavailableFault",
    "CorruptPayloadFault",
]
