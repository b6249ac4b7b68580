"""
samlsession sessions - Core types.

Defines fundamental session data structures:
- SameSite: Cookie same-site attribute values
- CookieParams: Effective session cookie attributes
- ChannelIdentity: Name/ID pair of the live channel
- StartResult: Outcome of a best-effort channel start
- generate_session_id: Cryptographic session identifier
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


# Key under which the serialized session payload lives in the channel bag
SESSION_KEY = "samlsession.session"


# ============================================================================
# Session identifiers
# ============================================================================

def generate_session_id() -> str:
    """
    Generate a new session identifier.
    
    128 bits from the OS CSPRNG, hex encoded (32 lowercase characters).
    """
    return secrets.token_hex(16)


# ============================================================================
# SameSite
# ============================================================================

class SameSite(str, Enum):
    """RFC 6265bis SameSite cookie attribute values."""
    
    NONE = "None"
    LAX = "Lax"
    STRICT = "Strict"
    
    @classmethod
    def parse(cls, value: str | SameSite | None) -> SameSite | None:
        """
        Parse a configured value case-insensitively.
        
        Raises:
            ValueError: If value is not one of None/Lax/Strict
        """
        if value is None or isinstance(value, SameSite):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(f"Invalid SameSite value: {value!r}")


# ============================================================================
# CookieParams
# ============================================================================

@dataclass(frozen=True)
class CookieParams:
    """
    Session cookie attributes.
    
    Attributes:
        lifetime: Seconds from now, 0 for a browser-session cookie
        path: Cookie path (may carry a textual ``; SameSite=...`` suffix)
        domain: Cookie domain (None = host-only)
        secure: Only send over encrypted transport
        httponly: Hide from client-side scripts
        samesite: SameSite attribute (None = not sent)
    """
    
    lifetime: int = 0
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: SameSite | None = None
    
    def with_changes(self, **changes: Any) -> CookieParams:
        """Return a copy with some attributes replaced."""
        return replace(self, **changes)
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "lifetime": self.lifetime,
            "path": self.path,
            "domain": self.domain,
            "secure": self.secure,
            "httponly": self.httponly,
            "samesite": self.samesite.value if self.samesite else None,
        }


# ============================================================================
# ChannelIdentity
# ============================================================================

@dataclass(frozen=True)
class ChannelIdentity:
    """Name and ID the host channel is bound to."""
    
    name: str
    session_id: str
    
    def __bool__(self) -> bool:
        return bool(self.session_id)


# ============================================================================
# StartResult
# ============================================================================

@dataclass(frozen=True)
class StartResult:
    """
    Outcome of a best-effort channel start.
    
    A failed start is not an error for the caller: the channel simply
    stays unbound and reads as "no session".
    """
    
    ok: bool
    session_id: str = ""
    reason: str | None = None
    
    def __bool__(self) -> bool:
        return self.ok
