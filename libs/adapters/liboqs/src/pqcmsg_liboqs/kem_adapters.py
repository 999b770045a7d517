from __future__ import annotations
from typing import Sequence, Tuple

from pqcmsg import registry
from pqcmsg.errors import UnsupportedScheme
from ._util import oqs_errors, pick_kem_algorithm, require_oqs


@registry.register("ml-kem")
class MLKEM:
    """ML-KEM (Kyber) via liboqs.

    One short-lived `oqs.KeyEncapsulation` per operation, so an instance can be
    shared between threads. liboqs decapsulation implements implicit
    rejection: a wrong secret key yields a pseudorandom shared secret.
    """
    name = "ml-kem"

    def __init__(self, mechanisms: Sequence[str]) -> None:
        self._oqs = require_oqs()
        # Prefer NIST names, then legacy names; try instantiation to confirm availability
        self.alg = pick_kem_algorithm(self._oqs, mechanisms)
        if not self.alg:
            raise UnsupportedScheme(
                f"No supported ML-KEM mechanism enabled in liboqs (tried {', '.join(mechanisms)})"
            )
        self.algorithm = self.alg
        with self._oqs.KeyEncapsulation(self.alg) as kem:
            self.public_key_length = int(kem.length_public_key)
            self.secret_key_length = int(kem.length_secret_key)
            self.ciphertext_length = int(kem.length_ciphertext)
            self.shared_secret_length = int(kem.length_shared_secret)

    def keygen(self) -> Tuple[bytes, bytes]:
        with oqs_errors(f"{self.alg} keygen"), self._oqs.KeyEncapsulation(self.alg) as kem:
            pk = kem.generate_keypair()
            sk = kem.export_secret_key()
            return bytes(pk), bytes(sk)

    def encapsulate(self, public_key: bytes) -> Tuple[bytes, bytes]:
        with oqs_errors(f"{self.alg} encapsulate"), self._oqs.KeyEncapsulation(self.alg) as kem:
            ct, ss = kem.encap_secret(public_key)
            return bytes(ct), bytes(ss)

    def decapsulate(self, secret_key: bytes, ciphertext: bytes) -> bytes:
        with oqs_errors(f"{self.alg} decapsulate"), \
                self._oqs.KeyEncapsulation(self.alg, secret_key=secret_key) as kem:
            ss = kem.decap_secret(ciphertext)
            return bytes(ss)
