"""Hybrid post-quantum secure messaging.

Send:    plaintext -> KEM encapsulate -> key = ss[:32] -> AES-256-GCM
         -> sign(kem_ct || nonce || ct || tag) -> SecureEnvelope
Receive: SecureEnvelope -> length checks -> verify signature
         -> (only if valid) KEM decapsulate -> key = ss[:32] -> AES-256-GCM decrypt

The receive path never touches the KEM ciphertext or AEAD ciphertext until
the signature over them has verified. A valid signature can still end in
`AuthenticationFailure` when the envelope was sealed for a different KEM key;
the AEAD tag is the final check.

Shared secrets and derived keys live in bytearrays that are zeroed as soon as
the AEAD call returns. Nothing secret (keys, shared secrets, plaintext) is
logged.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Union

from . import aead, backend
from .envelope import SecureEnvelope, decode_envelope, signable_bytes, validate_envelope
from .errors import (
    AuthenticationFailure,
    FailureReason,
    MalformedEnvelope,
    MalformedKey,
    MessagingError,
    SignatureInvalid,
    UnsupportedScheme,
    error_for_reason,
)
from .interfaces import KEM, EncapsulationResult, KeyPair, Signature
from .schemes import KemVariant, SignatureScheme, resolve_kem, resolve_scheme
from .settings import MessagingSettings, load_settings

log = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]
MessageInput = Union[str, bytes, bytearray, memoryview]

# Verdicts about an envelope; everything else (lifecycle, configuration,
# backend failures) propagates to the caller as an exception.
_ENVELOPE_VERDICTS = (
    UnsupportedScheme,
    SignatureInvalid,
    AuthenticationFailure,
    MalformedEnvelope,
    MalformedKey,
)


def _as_bytes(value: MessageInput) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"Expected str or bytes-like message, got {type(value).__name__}")


def _check_key(label: str, key: BytesLike, expected: int, algorithm: str) -> bytes:
    if not isinstance(key, (bytes, bytearray, memoryview)):
        raise MalformedKey(f"{label} must be bytes, got {type(key).__name__}")
    raw = bytes(key)
    if len(raw) != expected:
        raise MalformedKey(f"{label} is {len(raw)} bytes, {algorithm} expects {expected}")
    return raw


@dataclass(frozen=True)
class EncryptedPayload:
    """KEM + AEAD output without a signature."""

    kem_ciphertext: bytes
    nonce: bytes
    ciphertext: bytes
    tag: bytes


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of `SecureMessenger.verify_secure_message`.

    `message` is set only on success. `reason` is set only on failure.
    """

    message: Optional[bytes]
    signature_valid: bool
    reason: Optional[FailureReason] = None

    @property
    def ok(self) -> bool:
        return self.reason is None and self.message is not None

    def unwrap(self) -> bytes:
        if self.ok:
            assert self.message is not None
            return self.message
        reason = self.reason or FailureReason.REJECTED
        raise error_for_reason(reason)(f"Secure message rejected: {reason.value}")

    def text(self, encoding: str = "utf-8") -> str:
        return self.unwrap().decode(encoding)


class SecureMessenger:
    """Create and verify signed, KEM-encrypted envelopes.

    Holds no per-message state; one instance can serve many threads once the
    backend is initialised.
    """

    def __init__(
        self,
        kem_variant: Optional[Union[str, KemVariant]] = None,
        settings: Optional[MessagingSettings] = None,
    ) -> None:
        self.settings = settings if settings is not None else load_settings()
        self.kem_variant = resolve_kem(kem_variant) if kem_variant is not None else self.settings.kem_variant

    # ------------------------------------------------------------------
    # adapter lookup

    def _kem(self) -> KEM:
        return backend.kem_adapter(self.kem_variant)

    def _signer(self, scheme: Optional[Union[str, SignatureScheme]]) -> tuple[SignatureScheme, Signature]:
        resolved = resolve_scheme(scheme) if scheme is not None else self.settings.default_scheme
        return resolved, backend.signature_adapter(resolved)

    # ------------------------------------------------------------------
    # key generation

    def generate_kem_keypair(self) -> KeyPair:
        return KeyPair.from_tuple(self._kem().keygen())

    def generate_signing_keypair(self, scheme: Optional[Union[str, SignatureScheme]] = None) -> KeyPair:
        _, signer = self._signer(scheme)
        return KeyPair.from_tuple(signer.keygen())

    # ------------------------------------------------------------------
    # KEM + AEAD

    def encrypt(self, recipient_public_key: BytesLike, plaintext: MessageInput) -> EncryptedPayload:
        kem = self._kem()
        pk = _check_key("Recipient public key", recipient_public_key, kem.public_key_length, kem.algorithm)
        data = _as_bytes(plaintext)

        enc = EncapsulationResult(*kem.encapsulate(pk))
        kem_ciphertext = bytes(enc.ciphertext)
        shared = bytearray(enc.shared_secret)
        del enc
        key: Optional[bytearray] = None
        try:
            key = aead.derive_key(shared)
            nonce = aead.generate_nonce()
            ciphertext, tag = aead.encrypt(key, nonce, data)
        finally:
            aead.wipe(key)
            aead.wipe(shared)
        log.debug(
            "Encrypted %d-byte payload for %s (kem_ct=%d bytes)",
            len(data), kem.algorithm, len(kem_ciphertext),
        )
        return EncryptedPayload(kem_ciphertext, nonce, ciphertext, tag)

    def decrypt(self, recipient_secret_key: BytesLike, payload: EncryptedPayload) -> bytes:
        kem = self._kem()
        sk = _check_key("Recipient secret key", recipient_secret_key, kem.secret_key_length, kem.algorithm)
        if len(payload.kem_ciphertext) != kem.ciphertext_length:
            raise MalformedEnvelope(
                f"KEM ciphertext is {len(payload.kem_ciphertext)} bytes, "
                f"{kem.algorithm} expects {kem.ciphertext_length}"
            )
        if len(payload.nonce) != aead.NONCE_LENGTH:
            raise MalformedEnvelope(f"Nonce must be {aead.NONCE_LENGTH} bytes, got {len(payload.nonce)}")

        ss = kem.decapsulate(sk, payload.kem_ciphertext)
        shared = bytearray(ss)
        del ss
        key: Optional[bytearray] = None
        try:
            key = aead.derive_key(shared)
            return aead.decrypt(key, payload.nonce, payload.ciphertext, payload.tag)
        finally:
            aead.wipe(key)
            aead.wipe(shared)

    # ------------------------------------------------------------------
    # signatures

    def sign(
        self,
        scheme: Union[str, SignatureScheme],
        secret_key: BytesLike,
        message: MessageInput,
    ) -> bytes:
        resolved, signer = self._signer(scheme)
        sk = _check_key(f"{resolved.value} signing key", secret_key, signer.secret_key_length, signer.algorithm)
        return bytes(signer.sign(sk, _as_bytes(message)))

    def verify_signature(
        self,
        scheme: Union[str, SignatureScheme],
        public_key: BytesLike,
        message: MessageInput,
        signature: BytesLike,
    ) -> bool:
        resolved, signer = self._signer(scheme)
        pk = _check_key(f"{resolved.value} verifying key", public_key, signer.public_key_length, signer.algorithm)
        sig = bytes(signature)
        if not sig or len(sig) > signer.signature_length:
            return False
        return bool(signer.verify(pk, _as_bytes(message), sig))

    # ------------------------------------------------------------------
    # secure envelopes

    def create_secure_message(
        self,
        sender_signing_key: BytesLike,
        recipient_public_key: BytesLike,
        plaintext: MessageInput,
        scheme: Optional[Union[str, SignatureScheme]] = None,
    ) -> SecureEnvelope:
        """Encrypt `plaintext` for the recipient and sign the result.

        The scheme is resolved (and the signing key checked) before any
        encryption happens, so an unsupported scheme costs no KEM work.
        """
        resolved, signer = self._signer(scheme)
        sk = _check_key(
            f"{resolved.value} signing key", sender_signing_key, signer.secret_key_length, signer.algorithm
        )
        payload = self.encrypt(recipient_public_key, plaintext)
        to_sign = signable_bytes(payload.kem_ciphertext, payload.nonce, payload.ciphertext, payload.tag)
        signature = bytes(signer.sign(sk, to_sign))
        log.debug("Signed envelope with %s (%d-byte signature)", resolved.value, len(signature))
        return SecureEnvelope(
            kem_ciphertext=payload.kem_ciphertext,
            nonce=payload.nonce,
            ciphertext=payload.ciphertext,
            tag=payload.tag,
            signature=signature,
            scheme=resolved,
        )

    def _open(
        self,
        recipient_secret_key: BytesLike,
        sender_verifying_key: BytesLike,
        envelope: Union[SecureEnvelope, BytesLike],
    ) -> bytes:
        kem = self._kem()
        if not isinstance(envelope, SecureEnvelope):
            envelope = decode_envelope(bytes(envelope))
        scheme, verifier = self._signer(envelope.scheme)
        if envelope.scheme is not scheme:
            envelope = replace(envelope, scheme=scheme)

        # Everything below up to the signature check is length validation only.
        validate_envelope(envelope, kem, verifier)
        vk = _check_key(
            f"{scheme.value} verifying key", sender_verifying_key, verifier.public_key_length, verifier.algorithm
        )
        _check_key("Recipient secret key", recipient_secret_key, kem.secret_key_length, kem.algorithm)

        if not verifier.verify(vk, envelope.signable_bytes(), envelope.signature):
            raise SignatureInvalid(f"{scheme.value} signature does not verify")

        payload = EncryptedPayload(envelope.kem_ciphertext, envelope.nonce, envelope.ciphertext, envelope.tag)
        return self.decrypt(recipient_secret_key, payload)

    def _reject(self, exc: MessagingError) -> VerificationResult:
        log.warning("Rejected secure message: %s", exc.reason.value)
        if self.settings.opaque_failures:
            return VerificationResult(message=None, signature_valid=False, reason=FailureReason.REJECTED)
        return VerificationResult(
            message=None,
            signature_valid=isinstance(exc, AuthenticationFailure),
            reason=exc.reason,
        )

    def verify_secure_message(
        self,
        recipient_secret_key: BytesLike,
        sender_verifying_key: BytesLike,
        envelope: Union[SecureEnvelope, BytesLike],
    ) -> VerificationResult:
        """Verify the sender's signature, then decrypt.

        Envelope problems come back as a failed `VerificationResult` with no
        plaintext. `NotInitialized`, `ConfigurationError` and `PrimitiveError`
        are raised.
        """
        try:
            plaintext = self._open(recipient_secret_key, sender_verifying_key, envelope)
        except _ENVELOPE_VERDICTS as exc:
            return self._reject(exc)
        return VerificationResult(message=plaintext, signature_valid=True)

    def open_secure_message(
        self,
        recipient_secret_key: BytesLike,
        sender_verifying_key: BytesLike,
        envelope: Union[SecureEnvelope, BytesLike],
    ) -> bytes:
        """Like `verify_secure_message` but raises on rejection."""
        return self.verify_secure_message(recipient_secret_key, sender_verifying_key, envelope).unwrap()


__all__ = [
    "EncryptedPayload",
    "VerificationResult",
    "SecureMessenger",
]
