"""AES-256-GCM engine with detached tag.

Uses the low-level `cryptography` GCM mode so ciphertext and tag travel as
separate envelope fields. Decryption is fail-closed: a bad tag raises
`AuthenticationFailure` and no plaintext is returned.
"""
from __future__ import annotations

import os
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import AuthenticationFailure, ConfigurationError

KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16


def generate_nonce() -> bytes:
    """Fresh 96-bit nonce from the OS CSPRNG; never reuse one under a key."""
    return os.urandom(NONCE_LENGTH)


def derive_key(shared_secret: bytes) -> bytearray:
    """AEAD key = first 32 bytes of the KEM shared secret.

    Returned as a bytearray so the caller can wipe it. A shorter secret
    means the KEM variant cannot back this construction.
    """
    if len(shared_secret) < KEY_LENGTH:
        raise ConfigurationError(
            f"KEM shared secret is {len(shared_secret)} bytes; AES-256-GCM needs at least {KEY_LENGTH}"
        )
    return bytearray(memoryview(shared_secret)[:KEY_LENGTH])


def wipe(buf: Optional[bytearray]) -> None:
    if buf is None:
        return
    for i in range(len(buf)):
        buf[i] = 0


def _check(key: bytes, nonce: bytes) -> None:
    if len(key) != KEY_LENGTH:
        raise ValueError(f"AES-256-GCM key must be {KEY_LENGTH} bytes, got {len(key)}")
    if len(nonce) != NONCE_LENGTH:
        raise ValueError(f"AES-GCM nonce must be {NONCE_LENGTH} bytes, got {len(nonce)}")


def encrypt(
    key: bytes,
    nonce: bytes,
    plaintext: bytes,
    associated_data: Optional[bytes] = None,
) -> Tuple[bytes, bytes]:
    _check(key, nonce)
    encryptor = Cipher(algorithms.AES(key), modes.GCM(nonce)).encryptor()
    if associated_data:
        encryptor.authenticate_additional_data(associated_data)
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    return ciphertext, encryptor.tag


def decrypt(
    key: bytes,
    nonce: bytes,
    ciphertext: bytes,
    tag: bytes,
    associated_data: Optional[bytes] = None,
) -> bytes:
    _check(key, nonce)
    if len(tag) != TAG_LENGTH:
        raise AuthenticationFailure(f"AES-GCM tag must be {TAG_LENGTH} bytes, got {len(tag)}")
    decryptor = Cipher(algorithms.AES(key), modes.GCM(nonce, tag)).decryptor()
    if associated_data:
        decryptor.authenticate_additional_data(associated_data)
    # GCM only verifies on finalize(); keep update() output private until then.
    partial = decryptor.update(ciphertext)
    try:
        final = decryptor.finalize()
    except InvalidTag:
        raise AuthenticationFailure("AES-GCM authentication tag mismatch") from None
    return partial + final


__all__ = [
    "KEY_LENGTH",
    "NONCE_LENGTH",
    "TAG_LENGTH",
    "generate_nonce",
    "derive_key",
    "wipe",
    "encrypt",
    "decrypt",
]
