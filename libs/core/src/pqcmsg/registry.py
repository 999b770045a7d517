from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Tuple

from .errors import UnsupportedScheme


class _Registry:
    """Adapter classes keyed by algorithm family ("ml-kem", "ml-dsa", ...)."""

    def __init__(self) -> None:
        self._items: Dict[str, Any] = {}

    def register(self, name: str) -> Callable[[Any], Any]:
        def _inner(cls_or_obj: Any) -> Any:
            self._items[name] = cls_or_obj
            return cls_or_obj
        return _inner

    def get(self, name: str) -> Any:
        try:
            return self._items[name]
        except KeyError:
            raise UnsupportedScheme(f"No adapter registered for algorithm family {name!r}") from None

    def list(self) -> Dict[str, Any]:
        return dict(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._items


registry = _Registry()


class RegistryProvider:
    """Primitive provider backed by a registry of adapter classes.

    Adapter classes take the tuple of candidate mechanism names for a variant
    and settle on the first one the backend enables. Construction probes the
    backend, so instances are cached per (family, candidates).
    """

    def __init__(self, reg: _Registry | None = None, name: str = "registry") -> None:
        self.name = name
        self._registry = reg if reg is not None else registry
        self._cache: Dict[Tuple[str, Tuple[str, ...]], Any] = {}
        self._lock = threading.Lock()

    def _adapter(self, family: str, mechanisms: Tuple[str, ...]) -> Any:
        key = (family, tuple(mechanisms))
        with self._lock:
            cached = self._cache.get(key)
            if cached is None:
                cls = self._registry.get(family)
                cached = cls(tuple(mechanisms))
                self._cache[key] = cached
            return cached

    def kem(self, family: str, mechanisms: Tuple[str, ...]) -> Any:
        return self._adapter(family, mechanisms)

    def signature(self, family: str, mechanisms: Tuple[str, ...]) -> Any:
        return self._adapter(family, mechanisms)

    def families(self) -> Tuple[str, ...]:
        return tuple(sorted(self._registry.list()))
