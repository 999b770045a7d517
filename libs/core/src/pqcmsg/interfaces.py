from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Tuple

"""Primitive interfaces consumed by the messaging layer.

Adapters implement these Protocols and register themselves into the global
registry. The orchestrator interacts only with these interfaces, never with
vendor libraries directly.
"""


class KEM(Protocol):
    """Key Encapsulation Mechanism contract.

    `decapsulate` with a mismatched secret key must return a pseudorandom
    shared secret rather than raising (implicit rejection).
    """
    name: str
    algorithm: str
    public_key_length: int
    secret_key_length: int
    ciphertext_length: int
    shared_secret_length: int
    def keygen(self) -> Tuple[bytes, bytes]: ...
    def encapsulate(self, public_key: bytes) -> Tuple[bytes, bytes]: ...
    def decapsulate(self, secret_key: bytes, ciphertext: bytes) -> bytes: ...


class Signature(Protocol):
    """Digital Signature contract.

    `signature_length` is the maximum length for schemes whose signatures
    vary in size (Falcon).
    """
    name: str
    algorithm: str
    public_key_length: int
    secret_key_length: int
    signature_length: int
    def keygen(self) -> Tuple[bytes, bytes]: ...
    def sign(self, secret_key: bytes, message: bytes) -> bytes: ...
    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool: ...


class PrimitiveProvider(Protocol):
    """Hands out adapters for concrete mechanism names."""
    name: str
    def kem(self, family: str, mechanisms: Tuple[str, ...]) -> KEM: ...
    def signature(self, family: str, mechanisms: Tuple[str, ...]) -> Signature: ...


@dataclass(frozen=True)
class KeyPair:
    public_key: bytes
    secret_key: bytes = field(repr=False)

    @classmethod
    def from_tuple(cls, pair: Tuple[bytes, bytes]) -> "KeyPair":
        pk, sk = pair
        return cls(bytes(pk), bytes(sk))


@dataclass(frozen=True)
class EncapsulationResult:
    ciphertext: bytes
    shared_secret: bytes = field(repr=False)
