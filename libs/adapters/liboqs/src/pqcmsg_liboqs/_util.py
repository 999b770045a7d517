from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

from pqcmsg.errors import PrimitiveError


def try_import_oqs():
    try:
        import oqs  # type: ignore
        return oqs
    except Exception:
        return None


def require_oqs():
    oqs_mod = try_import_oqs()
    if oqs_mod is None:
        raise PrimitiveError(
            "liboqs-python (`oqs`) is not importable; install liboqs-python and the liboqs shared library"
        )
    return oqs_mod


def pick_kem_algorithm(oqs_mod, candidates: Sequence[str]) -> Optional[str]:
    """
    Choose a KEM mechanism without relying on oqs helper lists, by attempting
    to instantiate each candidate. Names differ across liboqs releases
    (ML-KEM-768 vs Kyber768), so a variant lists all of its spellings.
    """
    for name in candidates:
        try:
            with oqs_mod.KeyEncapsulation(name):
                return name
        except Exception:
            continue
    return None


def pick_sig_algorithm(oqs_mod, candidates: Sequence[str]) -> Optional[str]:
    """
    Choose a SIG mechanism by attempting instantiation.
    """
    for name in candidates:
        try:
            with oqs_mod.Signature(name):
                return name
        except Exception:
            continue
    return None


def enabled_kem_mechanisms(oqs_mod, candidates: Sequence[str]) -> List[str]:
    return [name for name in candidates if pick_kem_algorithm(oqs_mod, (name,))]


def enabled_sig_mechanisms(oqs_mod, candidates: Sequence[str]) -> List[str]:
    return [name for name in candidates if pick_sig_algorithm(oqs_mod, (name,))]


@contextmanager
def oqs_errors(context: str) -> Iterator[None]:
    """Re-raise liboqs failures (plain RuntimeError/ValueError) as PrimitiveError."""
    try:
        yield
    except PrimitiveError:
        raise
    except (RuntimeError, ValueError, TypeError) as exc:
        raise PrimitiveError(f"{context}: {exc}") from exc
