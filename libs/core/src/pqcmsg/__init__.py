from .interfaces import KEM, Signature, PrimitiveProvider, KeyPair, EncapsulationResult
from .registry import registry, RegistryProvider
from .backend import init, shutdown, is_initialized, BackendState
from .schemes import KemVariant, SignatureScheme, resolve_kem, resolve_scheme
from .envelope import (
    SecureEnvelope,
    signable_bytes,
    encode_envelope,
    decode_envelope,
    envelope_to_dict,
    envelope_from_dict,
)
from .errors import (
    FailureReason,
    MessagingError,
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
from .settings import MessagingSettings, load_settings
from .messaging import EncryptedPayload, VerificationResult, SecureMessenger

__all__ = [
    "KEM",
    "Signature",
    "PrimitiveProvider",
    "KeyPair",
    "EncapsulationResult",
    "registry",
    "RegistryProvider",
    "init",
    "shutdown",
    "is_initialized",
    "BackendState",
    "KemVariant",
    "SignatureScheme",
    "resolve_kem",
    "resolve_scheme",
    "SecureEnvelope",
    "signable_bytes",
    "encode_envelope",
    "decode_envelope",
    "envelope_to_dict",
    "envelope_from_dict",
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
    "MessagingSettings",
    "load_settings",
    "EncryptedPayload",
    "VerificationResult",
    "SecureMessenger",
]
