from __future__ import annotations

import json
import struct
from types import SimpleNamespace

import pytest

from pqcmsg.envelope import (
    SecureEnvelope,
    decode_envelope,
    encode_envelope,
    envelope_from_dict,
    envelope_to_dict,
    signable_bytes,
    validate_envelope,
)
from pqcmsg.errors import MalformedEnvelope, UnsupportedScheme
from pqcmsg.schemes import SignatureScheme


def _envelope(scheme: SignatureScheme = SignatureScheme.ML_DSA_65, **overrides) -> SecureEnvelope:
    fields = dict(
        kem_ciphertext=b"K" * 48,
        nonce=b"N" * 12,
        ciphertext=b"secret text",
        tag=b"T" * 16,
        signature=b"S" * 32,
        scheme=scheme,
    )
    fields.update(overrides)
    return SecureEnvelope(**fields)


def test_signable_bytes_is_plain_concatenation():
    env = _envelope()
    assert signable_bytes(b"ab", b"c", b"", b"d") == b"abcd"
    assert env.signable_bytes() == b"K" * 48 + b"N" * 12 + b"secret text" + b"T" * 16


def test_wire_layout_matches_documented_format():
    env = _envelope(SignatureScheme.FALCON_512)
    wire = encode_envelope(env)
    expected = b"".join(
        struct.pack(">I", len(v)) + v
        for v in (env.kem_ciphertext, env.nonce, env.ciphertext, env.tag, env.signature)
    ) + b"\x10"
    assert wire == expected
    assert decode_envelope(wire) == env
    assert SecureEnvelope.from_bytes(env.to_bytes()) == env


def test_empty_ciphertext_survives_transport():
    env = _envelope(ciphertext=b"")
    assert decode_envelope(encode_envelope(env)) == env


@pytest.mark.parametrize("cut", [0, 3, 10, 60, -2])
def test_truncated_wire_rejected(cut):
    wire = encode_envelope(_envelope())
    with pytest.raises(MalformedEnvelope):
        decode_envelope(wire[:cut])


def test_trailing_bytes_rejected():
    with pytest.raises(MalformedEnvelope):
        decode_envelope(encode_envelope(_envelope()) + b"\x00")


def test_oversized_length_prefix_rejected():
    with pytest.raises(MalformedEnvelope):
        decode_envelope(struct.pack(">I", 0xFFFFFFFF) + b"x" * 10)


def test_unknown_scheme_tag_rejected():
    wire = bytearray(encode_envelope(_envelope()))
    wire[-1] = 0x7F
    with pytest.raises(UnsupportedScheme):
        decode_envelope(bytes(wire))


def test_dict_form_is_json_safe():
    env = _envelope(SignatureScheme.ML_DSA_87)
    data = json.loads(json.dumps(envelope_to_dict(env)))
    assert data["scheme"] == "ml-dsa-87"
    assert envelope_from_dict(data) == env


def test_dict_form_accepts_legacy_scheme_names():
    data = envelope_to_dict(_envelope())
    data["scheme"] = "dilithium"
    assert envelope_from_dict(data).scheme is SignatureScheme.ML_DSA_65


def test_dict_form_rejects_missing_and_bad_fields():
    data = envelope_to_dict(_envelope())
    del data["tag"]
    with pytest.raises(MalformedEnvelope):
        envelope_from_dict(data)
    data = envelope_to_dict(_envelope())
    data["nonce"] = "not base64!!"
    with pytest.raises(MalformedEnvelope):
        envelope_from_dict(data)
    data = envelope_to_dict(_envelope())
    data["scheme"] = "ed25519"
    with pytest.raises(UnsupportedScheme):
        envelope_from_dict(data)


def test_envelope_is_immutable():
    env = _envelope()
    with pytest.raises(AttributeError):
        env.signature = b""  # type: ignore[misc]


KEM = SimpleNamespace(algorithm="test-kem", ciphertext_length=48)
FIXED_SIG = SimpleNamespace(algorithm="test-sig", signature_length=32)


def test_validate_accepts_consistent_lengths():
    validate_envelope(_envelope(), KEM, FIXED_SIG)


@pytest.mark.parametrize(
    "overrides",
    [
        {"kem_ciphertext": b"K" * 47},
        {"nonce": b"N" * 16},
        {"tag": b"T" * 15},
        {"signature": b"S" * 31},
        {"signature": b""},
    ],
)
def test_validate_rejects_inconsistent_lengths(overrides):
    with pytest.raises(MalformedEnvelope):
        validate_envelope(_envelope(**overrides), KEM, FIXED_SIG)


def test_variable_length_schemes_are_bounded_not_fixed():
    falcon = SimpleNamespace(algorithm="Falcon-512", signature_length=752)
    validate_envelope(_envelope(SignatureScheme.FALCON_512, signature=b"S" * 650), KEM, falcon)
    with pytest.raises(MalformedEnvelope):
        validate_envelope(_envelope(SignatureScheme.FALCON_512, signature=b"S" * 753), KEM, falcon)
