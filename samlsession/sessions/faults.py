"""
samlsession sessions - Fault definitions.

Every failure an embedding application may need to tell apart maps to its
own fault class, so configuration bugs, security violations and transient
conditions never collapse into a generic error.
"""

from samlsession.faults.core import Fault, FaultDomain, Severity, hash_session_id


# ============================================================================
# Session Fault Base
# ============================================================================

class SessionFault(Fault):
    """
    Base class for session-related faults.
    
    Session faults use FaultDomain.SECURITY unless they describe a
    configuration problem.
    """
    
    domain = FaultDomain.SECURITY


# ============================================================================
# Configuration Faults
# ============================================================================

class CookieConfigConflictFault(SessionFault):
    """
    Two mutually exclusive cookie path options are set at the same time.
    
    This is a deployment bug: the request path computing cookie
    parameters cannot continue.
    """
    
    domain = FaultDomain.CONFIG
    code = "SESSION_COOKIE_CONFIG_CONFLICT"
    message = "Conflicting session cookie configuration"
    severity = Severity.FATAL
    public = False
    retryable = False
    
    def __init__(self, first: str, second: str, **kwargs):
        super().__init__(**kwargs)
        self.options = (first, second)
        self.message = f"You cannot set both the {first} and {second} options."


class InvalidCookieConfigFault(SessionFault):
    """A cookie option holds a value outside its allowed range."""
    
    domain = FaultDomain.CONFIG
    code = "SESSION_COOKIE_CONFIG_INVALID"
    message = "Invalid session cookie configuration"
    severity = Severity.FATAL
    public = False
    retryable = False
    
    def __init__(self, option: str, value: object, **kwargs):
        super().__init__(**kwargs)
        self.option = option
        self.value = value
        self.message = f"Invalid value for {option}: {value!r}"


# ============================================================================
# Cookie Faults
# ============================================================================

class CannotSetCookieFault(SessionFault):
    """
    A session cookie cannot be issued or read.
    
    ``reason`` tells the embedding application which precondition failed.
    """
    
    SECURE_COOKIE = "secure_cookie"
    HEADERS_SENT = "headers_sent"
    
    code = "SESSION_CANNOT_SET_COOKIE"
    message = "Cannot set session cookie"
    severity = Severity.ERROR
    public = False
    retryable = False
    reason: str | None = None


class SecureCookieOnPlaintextFault(CannotSetCookieFault):
    """
    A cookie marked secure would travel over plain HTTP.
    
    Security critical: the cookie is never silently downgraded.
    """
    
    code = "SESSION_SECURE_COOKIE_ON_PLAINTEXT"
    message = "Setting secure cookie on plain HTTP is not allowed."
    reason = CannotSetCookieFault.SECURE_COOKIE


class HeadersAlreadySentFault(CannotSetCookieFault):
    """Response headers have already left the process."""
    
    code = "SESSION_HEADERS_SENT"
    message = "Headers already sent."
    severity = Severity.WARN
    reason = CannotSetCookieFault.HEADERS_SENT


class CookieDisableFailedFault(SessionFault):
    """
    Automatic cookie emission could not be switched off.
    
    Proceeding would risk leaking a duplicate session cookie.
    """
    
    code = "SESSION_COOKIE_DISABLE_FAILED"
    message = "Disabling automatic session cookies failed."
    severity = Severity.FATAL
    public = False
    retryable = False


# ============================================================================
# Identity Faults
# ============================================================================

class IdentityMismatchFault(SessionFault):
    """
    A specific session was requested while another one is bound.
    """
    
    code = "SESSION_IDENTITY_MISMATCH"
    message = "Cannot load session with a specific ID."
    severity = Severity.ERROR
    public = False
    retryable = False
    
    def __init__(self, requested_id: str, bound_id: str, **kwargs):
        super().__init__(**kwargs)
        self.requested_id_hash = hash_session_id(requested_id)
        self.bound_id_hash = hash_session_id(bound_id)


class HandlerRetiredFault(SessionFault):
    """
    The handler gave the channel back to the embedding application.
    
    Obtain a fresh handler before doing any further session work.
    """
    
    code = "SESSION_HANDLER_RETIRED"
    message = "Session handler was retired after restoring the previous session"
    severity = Severity.ERROR
    public = False
    retryable = False


# ============================================================================
# Storage Faults
# ============================================================================

class ChannelNotActiveFault(SessionFault):
    """Session storage was accessed while no channel is active."""
    
    code = "SESSION_CHANNEL_NOT_ACTIVE"
    message = "No active session channel"
    severity = Severity.ERROR
    public = False
    retryable = False


class CorruptPayloadFault(SessionFault):
    """
    Stored session payload cannot be deserialized.
    
    Recovered locally by the codec: a corrupt session behaves as no session.
    """
    
    code = "SESSION_PAYLOAD_CORRUPT"
    message = "Session payload corrupted"
    severity = Severity.WARN
    public = False
    retryable = False
    
    def __init__(self, cause: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.cause = cause
        if cause:
            self.message = f"Session payload corrupted: {cause}"


class ChannelStoreUnavailableFault(SessionFault):
    """
    Channel storage backend is unavailable.
    
    Examples: unwritable save path, permission errors.
    """
    
    domain = FaultDomain.IO
    code = "SESSION_STORE_UNAVAILABLE"
    message = "Session storage unavailable"
    severity = Severity.ERROR
    public = False
    retryable = True
    
    def __init__(self, store_name: str, cause: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.store_name = store_name
        self.cause = cause
        if cause:
            self.message = f"Session store '{store_name}' unavailable: {cause}"
        else:
            self.message = f"Session store '{store_name}' unavailable"
