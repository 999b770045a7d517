"""Failure taxonomy for the secure messaging layer.

Every failure the protocol can report is a `MessagingError` subclass tagged
with a `FailureReason`. The receive path turns envelope verdicts into a
`VerificationResult` carrying the reason instead of raising, so callers have
to look at the outcome before touching the plaintext.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Type


class FailureReason(str, Enum):
    NOT_INITIALIZED = "not-initialized"
    UNSUPPORTED_SCHEME = "unsupported-scheme"
    SIGNATURE_INVALID = "signature-invalid"
    AUTHENTICATION_FAILURE = "authentication-failure"
    MALFORMED_ENVELOPE = "malformed-envelope"
    MALFORMED_KEY = "malformed-key"
    CONFIGURATION_ERROR = "configuration-error"
    PRIMITIVE_ERROR = "primitive-error"
    # Single reason reported when opaque failures are enabled.
    REJECTED = "rejected"


class MessagingError(Exception):
    reason: FailureReason = FailureReason.REJECTED


class NotInitialized(MessagingError):
    """Raised when an operation runs before `pqcmsg.backend.init()`."""

    reason = FailureReason.NOT_INITIALIZED


class UnsupportedScheme(MessagingError):
    reason = FailureReason.UNSUPPORTED_SCHEME


class SignatureInvalid(MessagingError):
    reason = FailureReason.SIGNATURE_INVALID


class AuthenticationFailure(MessagingError):
    reason = FailureReason.AUTHENTICATION_FAILURE


class MalformedEnvelope(MessagingError):
    reason = FailureReason.MALFORMED_ENVELOPE


class MalformedKey(MessagingError):
    reason = FailureReason.MALFORMED_KEY


class ConfigurationError(MessagingError):
    reason = FailureReason.CONFIGURATION_ERROR


class PrimitiveError(MessagingError):
    """Backend missing or a primitive adapter failed."""

    reason = FailureReason.PRIMITIVE_ERROR


class Rejected(MessagingError):
    """Catch-all raised by `VerificationResult.unwrap()` for opaque failures."""

    reason = FailureReason.REJECTED


_BY_REASON: Dict[FailureReason, Type[MessagingError]] = {
    cls.reason: cls
    for cls in (
        NotInitialized,
        UnsupportedScheme,
        SignatureInvalid,
        AuthenticationFailure,
        MalformedEnvelope,
        MalformedKey,
        ConfigurationError,
        PrimitiveError,
        Rejected,
    )
}


def error_for_reason(reason: FailureReason) -> Type[MessagingError]:
    return _BY_REASON.get(reason, Rejected)


__all__ = [
    "FailureReason",
    "MessagingError",
    "NotInitialized",
    "UnsupportedScheme",
    "SignatureInvalid",
    "AuthenticationFailure",
    "MalformedEnvelope",
    "MalformedKey",
    "ConfigurationError",
    "PrimitiveError",
    "Rejected",
    "error_for_reason",
]
