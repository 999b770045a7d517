from __future__ import annotations
from typing import Sequence, Tuple

from pqcmsg import registry
from pqcmsg.errors import UnsupportedScheme
from ._util import oqs_errors, pick_sig_algorithm, require_oqs


class _LiboqsSignature:
    name = "signature"
    label = "signature"

    def __init__(self, mechanisms: Sequence[str]) -> None:
        self._oqs = require_oqs()
        self.alg = pick_sig_algorithm(self._oqs, mechanisms)
        if not self.alg:
            raise UnsupportedScheme(
                f"No supported {self.label} mechanism enabled in liboqs (tried {', '.join(mechanisms)})"
            )
        self.algorithm = self.alg
        with self._oqs.Signature(self.alg) as s:
            self.public_key_length = int(s.length_public_key)
            self.secret_key_length = int(s.length_secret_key)
            # Upper bound for Falcon; exact for ML-DSA and SPHINCS+.
            self.signature_length = int(s.length_signature)

    def keygen(self) -> Tuple[bytes, bytes]:
        with oqs_errors(f"{self.alg} keygen"), self._oqs.Signature(self.alg) as s:
            pk = s.generate_keypair()
            sk = s.export_secret_key()
            return bytes(pk), bytes(sk)

    def sign(self, secret_key: bytes, message: bytes) -> bytes:
        with oqs_errors(f"{self.alg} sign"), self._oqs.Signature(self.alg, secret_key=secret_key) as s:
            return bytes(s.sign(message))

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        with oqs_errors(f"{self.alg} verify"), self._oqs.Signature(self.alg) as v:
            return bool(v.verify(message, signature, public_key))


@registry.register("ml-dsa")
class MLDSA(_LiboqsSignature):
    name = "ml-dsa"
    label = "Dilithium/ML-DSA"


@registry.register("falcon")
class Falcon(_LiboqsSignature):
    name = "falcon"
    label = "Falcon"


@registry.register("sphincs+")
class SphincsPlus(_LiboqsSignature):
    name = "sphincs+"
    label = "SPHINCS+"
