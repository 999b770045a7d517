"""Process-wide primitive backend.

`init()` is the single entry point that must complete before any messaging
operation. It runs once under a lock; later calls are no-ops and return the
provider already installed. After that the provider is only read, so
concurrent messaging calls need no further locking.
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional

from .errors import NotInitialized, PrimitiveError
from .interfaces import KEM, PrimitiveProvider, Signature
from .schemes import KemVariant, SignatureScheme

log = logging.getLogger(__name__)


class BackendState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


def _load_default_provider() -> PrimitiveProvider:
    try:
        from pqcmsg_liboqs import load_provider
    except ImportError as exc:
        raise PrimitiveError(f"liboqs adapter package unavailable: {exc}") from exc
    return load_provider()


class _Backend:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._provider: Optional[PrimitiveProvider] = None

    @property
    def state(self) -> BackendState:
        return BackendState.READY if self._provider is not None else BackendState.UNINITIALIZED

    def init(self, provider: Optional[PrimitiveProvider] = None) -> PrimitiveProvider:
        current = self._provider
        if current is not None:
            return current
        with self._lock:
            if self._provider is None:
                loaded = provider if provider is not None else _load_default_provider()
                self._provider = loaded
                log.info("Primitive backend ready (provider=%s)", getattr(loaded, "name", type(loaded).__name__))
            return self._provider

    def provider(self) -> PrimitiveProvider:
        current = self._provider
        if current is None:
            raise NotInitialized("Primitive backend has not been initialised. Call pqcmsg.init() first.")
        return current

    def shutdown(self) -> None:
        with self._lock:
            if self._provider is not None:
                log.info("Primitive backend shut down")
            self._provider = None


_backend = _Backend()


def init(provider: Optional[PrimitiveProvider] = None) -> PrimitiveProvider:
    """Install the primitive provider (liboqs unless one is given)."""
    return _backend.init(provider)


def shutdown() -> None:
    _backend.shutdown()


def state() -> BackendState:
    return _backend.state


def is_initialized() -> bool:
    return _backend.state is BackendState.READY


def get_provider() -> PrimitiveProvider:
    return _backend.provider()


def kem_adapter(variant: KemVariant) -> KEM:
    info = variant.info
    return get_provider().kem(info.family, info.mechanisms)


def signature_adapter(scheme: SignatureScheme) -> Signature:
    info = scheme.info
    return get_provider().signature(info.family, info.mechanisms)


__all__ = [
    "BackendState",
    "init",
    "shutdown",
    "state",
    "is_initialized",
    "get_provider",
    "kem_adapter",
    "signature_adapter",
]
