"""Closed sets of KEM variants and signature schemes.

Each member maps to an algorithm family (the registry key for its adapter),
the liboqs mechanism names to try (NIST name first, then the legacy round-3
name), its NIST security category and, for signatures, the one-byte tag
carried in the envelope wire format. Unknown names and tags fail with
`UnsupportedScheme`; nothing falls back to a default algorithm.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

from .errors import UnsupportedScheme

SecurityCategory = int  # Expected values: 1, 3, 5

SECURITY_CATEGORIES: Tuple[SecurityCategory, ...] = (1, 3, 5)


@dataclass(frozen=True)
class AlgorithmVariant:
    """A concrete parameter set within an algorithm family."""

    family: str
    mechanisms: Tuple[str, ...]
    category: SecurityCategory
    wire_tag: Optional[int] = None
    variable_length: bool = False
    note: Optional[str] = None

    @property
    def mechanism(self) -> str:
        return self.mechanisms[0]


class KemVariant(str, Enum):
    ML_KEM_512 = "ml-kem-512"
    ML_KEM_768 = "ml-kem-768"
    ML_KEM_1024 = "ml-kem-1024"

    @property
    def info(self) -> AlgorithmVariant:
        return _KEM_VARIANTS[self]


class SignatureScheme(str, Enum):
    ML_DSA_44 = "ml-dsa-44"
    ML_DSA_65 = "ml-dsa-65"
    ML_DSA_87 = "ml-dsa-87"
    FALCON_512 = "falcon-512"
    FALCON_1024 = "falcon-1024"
    SPHINCS_SHAKE_128F = "sphincs-shake-128f"

    @property
    def info(self) -> AlgorithmVariant:
        return _SIG_VARIANTS[self]

    @property
    def wire_tag(self) -> int:
        tag = self.info.wire_tag
        assert tag is not None
        return tag


_KEM_VARIANTS: Mapping[KemVariant, AlgorithmVariant] = {
    KemVariant.ML_KEM_512: AlgorithmVariant("ml-kem", ("ML-KEM-512", "Kyber512"), 1),
    KemVariant.ML_KEM_768: AlgorithmVariant("ml-kem", ("ML-KEM-768", "Kyber768"), 3),
    KemVariant.ML_KEM_1024: AlgorithmVariant("ml-kem", ("ML-KEM-1024", "Kyber1024"), 5),
}

_SIG_VARIANTS: Mapping[SignatureScheme, AlgorithmVariant] = {
    SignatureScheme.ML_DSA_44: AlgorithmVariant("ml-dsa", ("ML-DSA-44", "Dilithium2"), 1, 0x01),
    SignatureScheme.ML_DSA_65: AlgorithmVariant("ml-dsa", ("ML-DSA-65", "Dilithium3"), 3, 0x02),
    SignatureScheme.ML_DSA_87: AlgorithmVariant("ml-dsa", ("ML-DSA-87", "Dilithium5"), 5, 0x03),
    SignatureScheme.FALCON_512: AlgorithmVariant(
        "falcon", ("Falcon-512",), 1, 0x10, variable_length=True,
        note="Falcon signatures are compressed; length is bounded, not fixed.",
    ),
    SignatureScheme.FALCON_1024: AlgorithmVariant(
        "falcon", ("Falcon-1024",), 5, 0x11, variable_length=True,
        note="Falcon signatures are compressed; length is bounded, not fixed.",
    ),
    SignatureScheme.SPHINCS_SHAKE_128F: AlgorithmVariant(
        "sphincs+", ("SPHINCS+-SHAKE-128f-simple",), 1, 0x20,
        note="Fast (f) variant; signatures are ~17 KB.",
    ),
}

# Legacy round-3 names and shorthand accepted on input.
_SCHEME_ALIASES: Dict[str, SignatureScheme] = {
    "dilithium": SignatureScheme.ML_DSA_65,
    "dilithium2": SignatureScheme.ML_DSA_44,
    "dilithium3": SignatureScheme.ML_DSA_65,
    "dilithium5": SignatureScheme.ML_DSA_87,
    "ml_dsa_44": SignatureScheme.ML_DSA_44,
    "ml_dsa_65": SignatureScheme.ML_DSA_65,
    "ml_dsa_87": SignatureScheme.ML_DSA_87,
    "falcon": SignatureScheme.FALCON_512,
    "sphincs+": SignatureScheme.SPHINCS_SHAKE_128F,
    "sphincsplus": SignatureScheme.SPHINCS_SHAKE_128F,
}

_KEM_ALIASES: Dict[str, KemVariant] = {
    "kyber": KemVariant.ML_KEM_768,
    "kyber512": KemVariant.ML_KEM_512,
    "kyber768": KemVariant.ML_KEM_768,
    "kyber1024": KemVariant.ML_KEM_1024,
    "ml_kem_512": KemVariant.ML_KEM_512,
    "ml_kem_768": KemVariant.ML_KEM_768,
    "ml_kem_1024": KemVariant.ML_KEM_1024,
}

_SCHEMES_BY_TAG: Dict[int, SignatureScheme] = {s.wire_tag: s for s in SignatureScheme}


def resolve_scheme(value: Union[str, SignatureScheme]) -> SignatureScheme:
    """Map a scheme name, alias or enum member to a `SignatureScheme`."""
    if isinstance(value, SignatureScheme):
        return value
    key = str(value).strip().lower()
    try:
        return SignatureScheme(key)
    except ValueError:
        pass
    scheme = _SCHEME_ALIASES.get(key)
    if scheme is None:
        raise UnsupportedScheme(f"Unsupported signature scheme: {value!r}")
    return scheme


def resolve_kem(value: Union[str, KemVariant]) -> KemVariant:
    if isinstance(value, KemVariant):
        return value
    key = str(value).strip().lower()
    try:
        return KemVariant(key)
    except ValueError:
        pass
    variant = _KEM_ALIASES.get(key)
    if variant is None:
        raise UnsupportedScheme(f"Unsupported KEM variant: {value!r}")
    return variant


def scheme_from_wire(tag: int) -> SignatureScheme:
    scheme = _SCHEMES_BY_TAG.get(tag)
    if scheme is None:
        raise UnsupportedScheme(f"Unsupported signature scheme tag: 0x{tag:02x}")
    return scheme


def schemes_for_category(category: SecurityCategory) -> Sequence[SignatureScheme]:
    return tuple(s for s in SignatureScheme if s.info.category == category)


def kem_for_category(category: SecurityCategory) -> KemVariant:
    """Pick the ML-KEM parameter set for a NIST security category.

    Fallback rules:
    - Prefer an exact match.
    - If unavailable, choose the lowest category above the request.
    - If none are above, choose the highest available category below.
    """
    by_category = {v.info.category: v for v in KemVariant}
    defined = sorted(by_category)
    if category in by_category:
        return by_category[category]
    higher = [lvl for lvl in defined if lvl >= category]
    chosen = higher[0] if higher else defined[-1]
    return by_category[chosen]


__all__ = [
    "AlgorithmVariant",
    "KemVariant",
    "SignatureScheme",
    "SecurityCategory",
    "SECURITY_CATEGORIES",
    "resolve_scheme",
    "resolve_kem",
    "scheme_from_wire",
    "schemes_for_category",
    "kem_for_category",
]
