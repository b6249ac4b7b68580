"""
samlsession faults - Structured fault handling.

Errors here are typed fault signals: every failure the embedding
application may need to distinguish (configuration bugs, security
violations, transient conditions) maps to an explicit fault code.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain taxonomy
- Severity: Severity levels
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
    DOMAIN_DEFAULTS,
    hash_session_id,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
    "DOMAIN_DEFAULTS",
    "hash_session_id",
]
