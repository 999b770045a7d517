"""Adapter package for liboqs-backed algorithms.

Importing submodules triggers registration of the adapter classes in the
global registry. `load_provider()` is what `pqcmsg.init()` calls by default.
"""
from __future__ import annotations

import logging

from pqcmsg.registry import RegistryProvider, registry

# Trigger registration side-effects
from . import kem_adapters as _kem_adapters  # noqa: F401
from . import sig_adapters as _sig_adapters  # noqa: F401
from ._util import require_oqs

log = logging.getLogger(__name__)


def load_provider() -> RegistryProvider:
    """Provider over the liboqs adapters; fails if `oqs` cannot be imported."""
    oqs_mod = require_oqs()
    try:
        version = oqs_mod.oqs_version()
    except Exception:
        version = "unknown"
    log.info("Using liboqs %s", version)
    return RegistryProvider(registry, name=f"liboqs-{version}")


__all__ = ["load_provider"]
