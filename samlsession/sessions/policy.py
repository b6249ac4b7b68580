"""
samlsession sessions - Cookie policy.

Computes the effective session cookie attributes from configuration and
runtime capability flags:
- RuntimeCapabilities: What the host channel can encode natively
- CookiePolicy: Pure resolution of CookieParams
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from samlsession.config import ConfigError

from .core import CookieParams, SameSite
from .faults import CookieConfigConflictFault, InvalidCookieConfigFault

if TYPE_CHECKING:
    from samlsession.config import Configuration


logger = logging.getLogger("samlsession.sessions.policy")

LIMITED_PATH_OPTION = "session.channel.limitedpath"
COOKIE_PATH_OPTION = "session.cookie.path"

_SAMESITE_IN_PATH = re.compile(r";\s+samesite", re.IGNORECASE)


# ============================================================================
# RuntimeCapabilities
# ============================================================================

@dataclass(frozen=True)
class RuntimeCapabilities:
    """
    Capability flags of the host channel, resolved once at startup.
    
    Attributes:
        native_samesite_support: Host cookie primitive accepts a real
            SameSite attribute. When False, SameSite is smuggled into
            the cookie path instead.
    """
    
    native_samesite_support: bool = True
    
    @classmethod
    def from_config(cls, config: Configuration) -> RuntimeCapabilities:
        return cls(
            native_samesite_support=config.get_boolean("runtime.native_samesite", True),
        )


# ============================================================================
# CookiePolicy
# ============================================================================

class CookiePolicy:
    """
    Resolves session cookie parameters.
    
    Rules:
    - ``session.channel.limitedpath`` and ``session.cookie.path`` are
      mutually exclusive
    - limitedpath true restricts the cookie to the application base path
    - httponly defaults to true
    - without native SameSite support, ``; SameSite=<v>`` is appended to
      the path (once)
    
    Example:
        >>> params = CookiePolicy.resolve(config, RuntimeCapabilities())
        >>> params.httponly
        True
    """
    
    @classmethod
    def resolve(cls, config: Configuration, caps: RuntimeCapabilities) -> CookieParams:
        """
        Compute effective cookie parameters.
        
        Args:
            config: Configuration view
            caps: Runtime capability flags
            
        Returns:
            CookieParams for the session cookie
            
        Raises:
            CookieConfigConflictFault: Both path options are set
            InvalidCookieConfigFault: An option holds an invalid value
        """
        if config.has_value(LIMITED_PATH_OPTION) and config.has_value(COOKIE_PATH_OPTION):
            raise CookieConfigConflictFault(LIMITED_PATH_OPTION, COOKIE_PATH_OPTION)
        
        try:
            params = cls._base_params(config)
            
            if config.has_value(LIMITED_PATH_OPTION):
                limited = config.get_boolean(LIMITED_PATH_OPTION, False)
                path = "/" + config.base_url_path() if limited else "/"
                params = params.with_changes(path=path)
            
            params = params.with_changes(
                httponly=config.get_boolean("session.channel.httponly", True),
            )
        except ConfigError as e:
            raise InvalidCookieConfigFault("session cookie", str(e)) from e
        
        if params.samesite is SameSite.NONE and not params.secure:
            logger.warning(
                "SameSite=None session cookie without the secure flag will be "
                "rejected by current browsers"
            )
        
        if params.samesite is not None and not caps.native_samesite_support:
            params = params.with_changes(path=cls.encode_samesite_in_path(params.path, params.samesite))
        
        return params
    
    @staticmethod
    def encode_samesite_in_path(path: str, samesite: SameSite) -> str:
        """Append the SameSite attribute to a cookie path, unless already there."""
        if _SAMESITE_IN_PATH.search(path):
            return path
        return f"{path}; SameSite={samesite.value}"
    
    @staticmethod
    def _base_params(config: Configuration) -> CookieParams:
        lifetime = config.get_integer("session.cookie.lifetime", 0)
        if lifetime < 0:
            raise InvalidCookieConfigFault("session.cookie.lifetime", lifetime)
        
        raw_samesite = config.get_string("session.cookie.samesite", None)
        try:
            samesite = SameSite.parse(raw_samesite)
        except ValueError:
            raise InvalidCookieConfigFault("session.cookie.samesite", raw_samesite) from None
        
        return CookieParams(
            lifetime=lifetime,
            path=config.get_string(COOKIE_PATH_OPTION, "/"),
            domain=config.get_string("session.cookie.domain", None),
            secure=config.get_boolean("session.cookie.secure", False),
            httponly=True,
            samesite=samesite,
        )
