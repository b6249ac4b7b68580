"""
samlsession sessions - Channel storage.

Where the host channel keeps the key-value bag of each session id:
- ChannelBackend: Storage protocol
- MemoryBackend: In-process dict (tests, single process apps)
- FileBackend: One JSON file per session id under the save path

Backends only persist bags; they never interpret the values.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from .faults import ChannelStoreUnavailableFault

logger = logging.getLogger("samlsession.sessions.store")


# ============================================================================
# ChannelBackend Protocol
# ============================================================================

class ChannelBackend(Protocol):
    """
    Storage interface used by host channels.
    
    Bags are plain dicts of JSON-compatible values. ``read`` returns a
    fresh copy; mutations only land on ``write``.
    """
    
    def read(self, session_id: str) -> dict[str, Any]:
        """Return the bag for ``session_id`` (empty if unknown)."""
        ...
    
    def write(self, session_id: str, bag: dict[str, Any]) -> None:
        """Persist the bag for ``session_id``."""
        ...
    
    def delete(self, session_id: str) -> None:
        ...
    
    def exists(self, session_id: str) -> bool:
        ...
    
    def set_save_path(self, path: str) -> None:
        """Switch storage location (namespace) for subsequent calls."""
        ...


# ============================================================================
# MemoryBackend
# ============================================================================

class MemoryBackend:
    """
    In-memory channel storage.
    
    Bags are namespaced by save path so that two channels configured with
    different save paths never see each other's data.
    
    Example:
        >>> backend = MemoryBackend()
        >>> backend.write("abc", {"k": "v"})
        >>> backend.read("abc")
        {'k': 'v'}
    """
    
    def __init__(self, save_path: str = ""):
        self.save_path = save_path
        self._bags: dict[str, dict[str, dict[str, Any]]] = {}
    
    def _namespace(self) -> dict[str, dict[str, Any]]:
        return self._bags.setdefault(self.save_path, {})
    
    def read(self, session_id: str) -> dict[str, Any]:
        return dict(self._namespace().get(session_id, {}))
    
    def write(self, session_id: str, bag: dict[str, Any]) -> None:
        self._namespace()[session_id] = dict(bag)
    
    def delete(self, session_id: str) -> None:
        self._namespace().pop(session_id, None)
    
    def exists(self, session_id: str) -> bool:
        return session_id in self._namespace()
    
    def set_save_path(self, path: str) -> None:
        self.save_path = path
    
    def __len__(self) -> int:
        return len(self._namespace())


# ============================================================================
# FileBackend
# ============================================================================

class FileBackend:
    """
    File-based channel storage.
    
    Features:
    - One JSON file per session id (``sess_<id>.json``)
    - Atomic writes (temp file + rename)
    - Corrupt files read as an empty bag
    
    Example:
        >>> backend = FileBackend("/var/lib/samlsession")
        >>> backend.write("abc", {"k": "v"})
    """
    
    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
    
    def _get_path(self, session_id: str) -> Path:
        return self.directory / f"sess_{session_id}.json"
    
    def read(self, session_id: str) -> dict[str, Any]:
        path = self._get_path(session_id)
        
        if not path.exists():
            return {}
        
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Session file {path.name} corrupted, ignoring: {e}")
            return {}
        except OSError as e:
            raise ChannelStoreUnavailableFault(store_name="file", cause=str(e))
        
        if not isinstance(data, dict):
            logger.warning(f"Session file {path.name} does not hold a mapping, ignoring")
            return {}
        
        return data
    
    def write(self, session_id: str, bag: dict[str, Any]) -> None:
        path = self._get_path(session_id)
        
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(bag, f)
                os.replace(temp_name, path)
            except BaseException:
                Path(temp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise ChannelStoreUnavailableFault(store_name="file", cause=str(e))
    
    def delete(self, session_id: str) -> None:
        try:
            self._get_path(session_id).unlink(missing_ok=True)
        except OSError as e:
            raise ChannelStoreUnavailableFault(store_name="file", cause=str(e))
    
    def exists(self, session_id: str) -> bool:
        return self._get_path(session_id).exists()
    
    def set_save_path(self, path: str) -> None:
        self.directory = Path(path)
    
    def get_stats(self) -> dict[str, Any]:
        """Get store statistics."""
        files = list(self.directory.glob("sess_*.json"))
        return {
            "total_sessions": len(files),
            "total_size_bytes": sum(p.stat().st_size for p in files),
            "directory": str(self.directory),
        }
