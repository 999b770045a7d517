"""Round trips through the real liboqs adapters; skipped without liboqs-python."""
from __future__ import annotations

import pytest

from pqcmsg_liboqs._util import pick_sig_algorithm, try_import_oqs

oqs = try_import_oqs()
if oqs is None:
    pytest.skip("liboqs-python (oqs) not importable", allow_module_level=True)

from pqcmsg import backend  # noqa: E402
from pqcmsg.envelope import decode_envelope, encode_envelope  # noqa: E402
from pqcmsg.errors import FailureReason  # noqa: E402
from pqcmsg.messaging import SecureMessenger  # noqa: E402
from pqcmsg.schemes import KemVariant, SignatureScheme  # noqa: E402
from pqcmsg.settings import MessagingSettings  # noqa: E402
from pqcmsg_liboqs import load_provider  # noqa: E402


@pytest.fixture
def liboqs_messenger():
    backend.shutdown()
    backend.init(load_provider())
    try:
        yield SecureMessenger(settings=MessagingSettings())
    finally:
        backend.shutdown()


def test_kem_adapter_reports_ml_kem_sizes(liboqs_messenger):
    kem = backend.kem_adapter(KemVariant.ML_KEM_768)
    assert kem.public_key_length == 1184
    assert kem.ciphertext_length == 1088
    assert kem.shared_secret_length == 32
    pk, sk = kem.keygen()
    ct, ss = kem.encapsulate(pk)
    assert len(ct) == kem.ciphertext_length
    assert kem.decapsulate(sk, ct) == ss


def test_hello_round_trip(liboqs_messenger):
    alice = liboqs_messenger.generate_signing_keypair()
    bob = liboqs_messenger.generate_kem_keypair()
    envelope = liboqs_messenger.create_secure_message(alice.secret_key, bob.public_key, "hello")
    assert envelope.scheme is SignatureScheme.ML_DSA_65
    assert len(envelope.nonce) == 12 and len(envelope.tag) == 16

    result = liboqs_messenger.verify_secure_message(
        bob.secret_key, alice.public_key, decode_envelope(encode_envelope(envelope))
    )
    assert result.ok
    assert result.message == b"hello"


def test_wrong_recipient_fails_authentication(liboqs_messenger):
    alice = liboqs_messenger.generate_signing_keypair()
    bob = liboqs_messenger.generate_kem_keypair()
    eve = liboqs_messenger.generate_kem_keypair()
    envelope = liboqs_messenger.create_secure_message(alice.secret_key, bob.public_key, b"for bob")
    result = liboqs_messenger.verify_secure_message(eve.secret_key, alice.public_key, envelope)
    assert not result.ok
    assert result.reason is FailureReason.AUTHENTICATION_FAILURE


def test_falcon_round_trip(liboqs_messenger):
    if pick_sig_algorithm(oqs, SignatureScheme.FALCON_512.info.mechanisms) is None:
        pytest.skip("Falcon-512 not enabled in this liboqs build")
    alice = liboqs_messenger.generate_signing_keypair("falcon")
    bob = liboqs_messenger.generate_kem_keypair()
    envelope = liboqs_messenger.create_secure_message(alice.secret_key, bob.public_key, b"hi", "falcon")
    assert envelope.scheme is SignatureScheme.FALCON_512
    assert liboqs_messenger.open_secure_message(bob.secret_key, alice.public_key, envelope) == b"hi"
