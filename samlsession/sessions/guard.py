"""
samlsession sessions - Foreign session guard.

The host channel may already be running a session of the embedding
application when the handler is created. The guard commits that session
untouched, remembers how to reach it again, and hands the channel back on
request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from samlsession.faults import hash_session_id

from .core import CookieParams

if TYPE_CHECKING:
    from .channel import ChannelAdapter


logger = logging.getLogger("samlsession.sessions.guard")


@dataclass(frozen=True)
class PreviousSessionState:
    """
    Details of the session that owned the channel before us.
    
    Attributes:
        id: Session id of the foreign session
        name: Channel (cookie) name of the foreign session
        cookie_params: Cookie parameters in effect for it
    """
    
    id: str
    name: str
    cookie_params: CookieParams


class ForeignSessionGuard:
    """
    Detects, preserves and restores a pre-existing foreign session.
    
    At most one PreviousSessionState is held; it is consumed by ``restore``.
    
    Example:
        >>> guard = ForeignSessionGuard()
        >>> guard.detect(channel, cookie_name="samlsession")
        >>> # ... handler uses the channel ...
        >>> guard.restore(channel)
        True
    """
    
    def __init__(self):
        self.previous: PreviousSessionState | None = None
    
    @property
    def has_previous(self) -> bool:
        return self.previous is not None
    
    def detect(self, adapter: ChannelAdapter, cookie_name: str | None) -> bool:
        """
        Capture and commit an already-active channel.
        
        Args:
            adapter: Host channel
            cookie_name: Channel name this handler is configured to use
            
        Returns:
            True if a foreign session was captured
        """
        if self.previous is not None or not adapter.has_active_channel():
            return False
        
        if adapter.get_name() == cookie_name or cookie_name is None:
            logger.warning(
                "There is already a session with the same name as ours, or the "
                "'session.channel.cookiename' configuration option is not set. Make "
                "sure to set the cookie name to a value not used by any other "
                "application."
            )
        
        self.previous = PreviousSessionState(
            id=adapter.get_id(),
            name=adapter.get_name(),
            cookie_params=adapter.get_cookie_params(),
        )
        
        # Commit the foreign session without touching its content, then
        # release its id so our own session starts unbound
        adapter.write_close()
        adapter.set_id("")
        
        logger.debug(
            f"Preserved foreign session {self.previous.name} "
            f"({hash_session_id(self.previous.id)})"
        )
        return True
    
    def restore(self, adapter: ChannelAdapter) -> bool:
        """
        Hand the channel back to the foreign session.
        
        Our own session must already be saved; it is committed here.
        
        Returns:
            False if there was nothing to restore
        """
        if self.previous is None:
            return False
        
        previous = self.previous
        
        adapter.write_close()
        
        adapter.set_name(previous.name)
        adapter.set_cookie_params(previous.cookie_params)
        adapter.set_id(previous.id)
        self.previous = None
        
        result = adapter.start()
        if not result:
            logger.warning(f"Restoring previous session {previous.name} failed: {result.reason}")
        
        return True
