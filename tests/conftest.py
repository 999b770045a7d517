from __future__ import annotations

import hashlib
import hmac
import os
import sys
from pathlib import Path
from typing import Sequence, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
for candidate in (
    ROOT / "libs" / "core" / "src",
    ROOT / "libs" / "adapters" / "liboqs" / "src",
    ROOT / "apps" / "cli" / "src",
):
    candidate_str = str(candidate)
    if candidate_str not in sys.path:
        sys.path.insert(0, candidate_str)

from pqcmsg import backend  # noqa: E402
from pqcmsg.messaging import SecureMessenger  # noqa: E402
from pqcmsg.registry import RegistryProvider, _Registry  # noqa: E402
from pqcmsg.settings import MessagingSettings  # noqa: E402


class DummyKEMAdapter:
    """Hash-based stand-in for ML-KEM.

    ss = SHA-256(pk || ct) with pk = SHA-256("pk" || sk), so decapsulating
    with the wrong secret key silently yields an unrelated secret, like
    implicit rejection in the real thing.
    """

    name = "ml-kem"
    public_key_length = 32
    secret_key_length = 32
    ciphertext_length = 48
    shared_secret_length = 32

    def __init__(self, mechanisms: Sequence[str]) -> None:
        self.algorithm = f"dummy-{mechanisms[0]}"
        self.calls = {"keygen": 0, "encapsulate": 0, "decapsulate": 0}

    @staticmethod
    def _public(sk: bytes) -> bytes:
        return hashlib.sha256(b"pk" + sk).digest()

    def keygen(self) -> Tuple[bytes, bytes]:
        self.calls["keygen"] += 1
        sk = os.urandom(self.secret_key_length)
        return self._public(sk), sk

    def encapsulate(self, pk: bytes) -> Tuple[bytes, bytes]:
        self.calls["encapsulate"] += 1
        ct = os.urandom(self.ciphertext_length)
        return ct, hashlib.sha256(pk + ct).digest()

    def decapsulate(self, sk: bytes, ct: bytes) -> bytes:
        self.calls["decapsulate"] += 1
        return hashlib.sha256(self._public(sk) + ct).digest()


class ShortSecretKEMAdapter(DummyKEMAdapter):
    shared_secret_length = 16

    def encapsulate(self, pk: bytes) -> Tuple[bytes, bytes]:
        ct, ss = super().encapsulate(pk)
        return ct, ss[:16]

    def decapsulate(self, sk: bytes, ct: bytes) -> bytes:
        return super().decapsulate(sk, ct)[:16]


class DummySignatureAdapter:
    """HMAC-SHA256 "signature"; the verifying key equals the signing key."""

    name = "ml-dsa"
    public_key_length = 32
    secret_key_length = 32
    signature_length = 32

    def __init__(self, mechanisms: Sequence[str]) -> None:
        self.algorithm = f"dummy-{mechanisms[0]}"
        self.calls = {"keygen": 0, "sign": 0, "verify": 0}

    def keygen(self) -> Tuple[bytes, bytes]:
        self.calls["keygen"] += 1
        sk = os.urandom(self.secret_key_length)
        return sk, sk

    def sign(self, sk: bytes, message: bytes) -> bytes:
        self.calls["sign"] += 1
        return hmac.new(sk, message, hashlib.sha256).digest()

    def verify(self, pk: bytes, message: bytes, signature: bytes) -> bool:
        self.calls["verify"] += 1
        expected = hmac.new(pk, message, hashlib.sha256).digest()
        return hmac.compare_digest(expected, signature)


@pytest.fixture
def dummy_registry() -> _Registry:
    reg = _Registry()
    reg.register("ml-kem")(DummyKEMAdapter)
    reg.register("ml-dsa")(DummySignatureAdapter)
    reg.register("falcon")(DummySignatureAdapter)
    # No "sphincs+" adapter: that family stays unsupported.
    return reg


@pytest.fixture
def dummy_backend(dummy_registry: _Registry):
    backend.shutdown()
    provider = RegistryProvider(dummy_registry, name="dummy")
    backend.init(provider)
    try:
        yield provider
    finally:
        backend.shutdown()


@pytest.fixture
def messenger(dummy_backend) -> SecureMessenger:
    return SecureMessenger(settings=MessagingSettings())


@pytest.fixture
def uninitialized_backend():
    backend.shutdown()
    yield
    backend.shutdown()
