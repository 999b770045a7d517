"""Secure envelope layout.

Two byte layouts live here and must not be confused:

* `signable_bytes` is what gets signed: ``kem_ciphertext || nonce ||
  ciphertext || tag`` with no delimiters. Changing the order or the field set
  is a protocol version change. It is never parsed back into fields.
* `encode_envelope` / `decode_envelope` is the transport form: each of the
  five byte fields prefixed with a 4-byte big-endian length, then a single
  byte naming the signature scheme.
"""
from __future__ import annotations

import base64
import binascii
import struct
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from .aead import NONCE_LENGTH, TAG_LENGTH
from .errors import MalformedEnvelope
from .interfaces import KEM, Signature
from .schemes import SignatureScheme, resolve_scheme, scheme_from_wire

_LEN = struct.Struct(">I")
_FIELDS = ("kem_ciphertext", "nonce", "ciphertext", "tag", "signature")
# Generous upper bound for a single field (SPHINCS+-256f signatures are ~50 KB).
MAX_FIELD_LENGTH = 64 * 1024 * 1024


@dataclass(frozen=True)
class SecureEnvelope:
    kem_ciphertext: bytes
    nonce: bytes
    ciphertext: bytes
    tag: bytes
    signature: bytes
    scheme: SignatureScheme

    def signable_bytes(self) -> bytes:
        return signable_bytes(self.kem_ciphertext, self.nonce, self.ciphertext, self.tag)

    def to_bytes(self) -> bytes:
        return encode_envelope(self)

    @classmethod
    def from_bytes(cls, data: bytes) -> "SecureEnvelope":
        return decode_envelope(data)


def signable_bytes(kem_ciphertext: bytes, nonce: bytes, ciphertext: bytes, tag: bytes) -> bytes:
    return b"".join((bytes(kem_ciphertext), bytes(nonce), bytes(ciphertext), bytes(tag)))


def encode_envelope(envelope: SecureEnvelope) -> bytes:
    parts = []
    for name in _FIELDS:
        value = bytes(getattr(envelope, name))
        parts.append(_LEN.pack(len(value)))
        parts.append(value)
    parts.append(bytes((envelope.scheme.wire_tag,)))
    return b"".join(parts)


def decode_envelope(data: bytes) -> SecureEnvelope:
    """Parse the transport form; reject truncation and trailing bytes."""
    view = memoryview(bytes(data))
    offset = 0
    values: Dict[str, bytes] = {}
    for name in _FIELDS:
        if offset + _LEN.size > len(view):
            raise MalformedEnvelope(f"Envelope truncated before {name} length")
        (length,) = _LEN.unpack_from(view, offset)
        offset += _LEN.size
        if length > MAX_FIELD_LENGTH or offset + length > len(view):
            raise MalformedEnvelope(f"Envelope field {name} overruns the buffer")
        values[name] = view[offset:offset + length].tobytes()
        offset += length
    if offset + 1 != len(view):
        raise MalformedEnvelope("Envelope must end with exactly one scheme byte")
    scheme = scheme_from_wire(view[offset])
    return SecureEnvelope(scheme=scheme, **values)


def envelope_to_dict(envelope: SecureEnvelope) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        name: base64.b64encode(getattr(envelope, name)).decode("ascii") for name in _FIELDS
    }
    out["scheme"] = envelope.scheme.value
    return out


def envelope_from_dict(data: Mapping[str, Any]) -> SecureEnvelope:
    missing = [name for name in (*_FIELDS, "scheme") if name not in data]
    if missing:
        raise MalformedEnvelope(f"Envelope is missing fields: {', '.join(missing)}")
    values: Dict[str, bytes] = {}
    for name in _FIELDS:
        try:
            values[name] = base64.b64decode(data[name], validate=True)
        except (binascii.Error, TypeError, ValueError) as exc:
            raise MalformedEnvelope(f"Envelope field {name} is not valid base64") from exc
    return SecureEnvelope(scheme=resolve_scheme(data["scheme"]), **values)


def validate_envelope(envelope: SecureEnvelope, kem: KEM, signature: Signature) -> None:
    """Check field lengths against the KEM variant and declared scheme.

    Runs before any cryptographic operation on the receive path.
    """
    if len(envelope.kem_ciphertext) != kem.ciphertext_length:
        raise MalformedEnvelope(
            f"KEM ciphertext is {len(envelope.kem_ciphertext)} bytes, "
            f"{kem.algorithm} expects {kem.ciphertext_length}"
        )
    if len(envelope.nonce) != NONCE_LENGTH:
        raise MalformedEnvelope(f"Nonce must be {NONCE_LENGTH} bytes, got {len(envelope.nonce)}")
    if len(envelope.tag) != TAG_LENGTH:
        raise MalformedEnvelope(f"Tag must be {TAG_LENGTH} bytes, got {len(envelope.tag)}")
    sig_len = len(envelope.signature)
    if envelope.scheme.info.variable_length:
        ok = 0 < sig_len <= signature.signature_length
    else:
        ok = sig_len == signature.signature_length
    if not ok:
        raise MalformedEnvelope(
            f"Signature is {sig_len} bytes, inconsistent with {envelope.scheme.value} "
            f"({signature.signature_length})"
        )


__all__ = [
    "SecureEnvelope",
    "signable_bytes",
    "encode_envelope",
    "decode_envelope",
    "envelope_to_dict",
    "envelope_from_dict",
    "validate_envelope",
    "MAX_FIELD_LENGTH",
]
