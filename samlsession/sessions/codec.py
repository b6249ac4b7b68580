"""
samlsession sessions - Session payload codec.

Moves the opaque session payload in and out of the channel bag:
- PayloadOwner: Collaborator that (de)serializes payloads and is told
  about new sessions
- JsonPayloadOwner: JSON encoding (default, safe)
- PicklePayloadOwner: Arbitrary Python objects (trusted storage only)
- SessionCodec: Stores the payload under a fixed bag key
"""

from __future__ import annotations

import base64
import json
import logging
import pickle
from typing import TYPE_CHECKING, Any, Protocol

from .core import SESSION_KEY
from .faults import ChannelNotActiveFault, CorruptPayloadFault

if TYPE_CHECKING:
    from .channel import ChannelAdapter


logger = logging.getLogger("samlsession.sessions.codec")


# ============================================================================
# PayloadOwner Protocol
# ============================================================================

class PayloadOwner(Protocol):
    """
    Owner of the session payload.
    
    The codec never interprets payloads; it only stores what ``serialize``
    returns. Serialized values must be strings so any channel backend can
    persist them.
    """
    
    def serialize(self, payload: Any) -> str:
        ...
    
    def deserialize(self, data: str) -> Any:
        """
        Raises:
            CorruptPayloadFault: Data cannot be decoded
        """
        ...
    
    def session_created(self, session_id: str) -> None:
        """Called when the handler creates a new session id."""
        ...


class JsonPayloadOwner:
    """
    JSON payload owner - safe, human-readable.
    
    Handles Python primitives and containers (dict, list, str, int,
    float, bool, None).
    """
    
    def __init__(self):
        self.created: list[str] = []
    
    def serialize(self, payload: Any) -> str:
        try:
            return json.dumps(payload, ensure_ascii=False, sort_keys=True)
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning(f"JSON serialization failed: {e}")
            raise
    
    def deserialize(self, data: str) -> Any:
        if not isinstance(data, str):
            raise CorruptPayloadFault(cause=f"expected str, got {type(data).__name__}")
        try:
            return json.loads(data)
        except (json.JSONDecodeError, RecursionError) as e:
            raise CorruptPayloadFault(cause=str(e)) from e
    
    def session_created(self, session_id: str) -> None:
        self.created.append(session_id)


class PicklePayloadOwner(JsonPayloadOwner):
    """
    Pickle payload owner - supports arbitrary Python objects.
    
    WARNING: Only use with trusted storage. Pickle can execute arbitrary
    code during deserialization. Payloads are base64 text in the bag.
    """
    
    def serialize(self, payload: Any) -> str:
        try:
            raw = pickle.dumps(payload, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            logger.warning(f"Pickle serialization failed: {e}")
            raise
        return base64.b64encode(raw).decode("ascii")
    
    def deserialize(self, data: str) -> Any:
        if not isinstance(data, str):
            raise CorruptPayloadFault(cause=f"expected str, got {type(data).__name__}")
        try:
            return pickle.loads(base64.b64decode(data.encode("ascii"), validate=True))
        except Exception as e:
            # Truncated or forged streams fail with arbitrary exception types
            raise CorruptPayloadFault(cause=str(e)) from e


# ============================================================================
# SessionCodec
# ============================================================================

class SessionCodec:
    """
    Stores and retrieves the payload under ``SESSION_KEY``.
    
    A corrupt or incompatible stored value reads as "no session"; it never
    propagates to the caller.
    """
    
    def __init__(self, adapter: ChannelAdapter, owner: PayloadOwner, key: str = SESSION_KEY):
        self.adapter = adapter
        self.owner = owner
        self.key = key
    
    def save(self, payload: Any) -> None:
        """
        Write the serialized payload into the active channel.
        
        Raises:
            ChannelNotActiveFault: No channel is active
        """
        if not self.adapter.has_active_channel():
            raise ChannelNotActiveFault()
        self.adapter.bag[self.key] = self.owner.serialize(payload)
    
    def load(self) -> Any | None:
        """Read the payload; None if absent, corrupt or no channel is active."""
        if not self.adapter.has_active_channel():
            return None
        
        data = self.adapter.bag.get(self.key)
        if data is None:
            return None
        
        try:
            return self.owner.deserialize(data)
        except CorruptPayloadFault as e:
            logger.warning(f"Discarding stored session: {e.message}")
            return None
        except Exception as e:
            # Owners that do not wrap their decode errors
            logger.warning(f"Discarding stored session: {type(e).__name__}: {e}")
            return None
