from __future__ import annotations

import threading

import pytest

from pqcmsg import backend
from pqcmsg.errors import NotInitialized, UnsupportedScheme
from pqcmsg.registry import RegistryProvider
from pqcmsg.schemes import KemVariant, SignatureScheme


def test_state_transitions(uninitialized_backend, dummy_registry):
    assert backend.state() is backend.BackendState.UNINITIALIZED
    with pytest.raises(NotInitialized):
        backend.get_provider()
    provider = RegistryProvider(dummy_registry, name="dummy")
    assert backend.init(provider) is provider
    assert backend.is_initialized()
    backend.shutdown()
    assert not backend.is_initialized()


def test_repeat_init_is_a_no_op(uninitialized_backend, dummy_registry):
    first = RegistryProvider(dummy_registry, name="first")
    second = RegistryProvider(dummy_registry, name="second")
    assert backend.init(first) is first
    assert backend.init(second) is first
    assert backend.init() is first


def test_concurrent_init_installs_exactly_one_provider(uninitialized_backend, dummy_registry):
    providers = [RegistryProvider(dummy_registry, name=f"p{i}") for i in range(16)]
    barrier = threading.Barrier(len(providers))
    seen = []

    def _worker(p):
        barrier.wait()
        seen.append(backend.init(p))

    threads = [threading.Thread(target=_worker, args=(p,)) for p in providers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len({id(p) for p in seen}) == 1
    assert backend.get_provider() is seen[0]


def test_adapters_are_cached_per_variant(dummy_backend):
    a = backend.kem_adapter(KemVariant.ML_KEM_768)
    b = backend.kem_adapter(KemVariant.ML_KEM_768)
    c = backend.kem_adapter(KemVariant.ML_KEM_512)
    assert a is b
    assert a is not c
    assert a.algorithm == "dummy-ML-KEM-768"


def test_unregistered_family_is_unsupported(dummy_backend):
    with pytest.raises(UnsupportedScheme):
        backend.signature_adapter(SignatureScheme.SPHINCS_SHAKE_128F)
    assert dummy_backend.families() == ("falcon", "ml-dsa", "ml-kem")
