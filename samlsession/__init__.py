"""
samlsession - Authentication sessions on a shared host session channel.

Complete integration of:
- Sessions: Session handler, cookie policy, foreign session guard, codec
- Config: Layered configuration (YAML/JSON files, .env, environment)
- Faults: Structured error handling with fault domains
- Modules: Module discovery, enable markers and hook dispatch
"""

__version__ = "0.1.0"

from .config import Configuration, ConfigLoader, ConfigError
from .faults import Fault, FaultDomain, Severity
from .modules import ModuleRegistry

from .sessions import (
    SessionHandler,
    CookieParams,
    CookiePolicy,
    RuntimeCapabilities,
    SameSite,
    MemoryChannel,
    MemoryBackend,
    FileBackend,
    JsonPayloadOwner,
    PicklePayloadOwner,
    get_session_handler,
    reset_session_handler,
)

__all__ = [
    "__version__",
    "Configuration",
    "ConfigLoader",
    "ConfigError",
    "Fault",
    "FaultDomain",
    "Severity",
    "ModuleRegistry",
    "SessionHandler",
    "CookieParams",
    "CookiePolicy",
    "RuntimeCapabilities",
    "SameSite",
    "MemoryChannel",
    "MemoryBackend",
    "FileBackend",
    "JsonPayloadOwner",
    "PicklePayloadOwner",
    "get_session_handler",
    "reset_session_handler",
]
