"""
Unit tests for the verifier backend factory.
"""

import pytest

from zkhe_confidential.confidential_protocol import factory, feature_flags
from zkhe_confidential.confidential_protocol.config import EngineConfig
from zkhe_confidential.confidential_protocol.exceptions import ConfigurationError
from zkhe_confidential.confidential_protocol.interfaces import VerifierBackend
from zkhe_confidential.confidential_protocol.zkelgamal.backend import ZkElGamalVerifier


@pytest.fixture(autouse=True)
def reset_feature_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    feature_flags.set_backend_type(None)
    monkeypatch.delenv(feature_flags.ENV_VAR_NAME, raising=False)
    yield
    feature_flags.set_backend_type(None)


def test_default_backend() -> None:
    backend = factory.get_verifier_backend(EngineConfig())

    assert isinstance(backend, ZkElGamalVerifier)
    assert isinstance(backend, VerifierBackend)
    assert backend.backend_name == "ZK-ElGamal"


def test_network_id_is_injected() -> None:
    backend = factory.get_verifier_backend(EngineConfig(network_id=b"\x07" * 32))
    assert backend.network_id == b"\x07" * 32


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ZKHE_NETWORK_ID", "09" * 32)
    backend = factory.get_verifier_backend()
    assert backend.network_id == b"\x09" * 32


def test_prefer() -> None:
    backend = factory.get_verifier_backend(EngineConfig(), prefer="zkelgamal")
    assert isinstance(backend, ZkElGamalVerifier)


def test_unknown_backend_name() -> None:
    with pytest.raises(ConfigurationError):
        factory.get_verifier_backend(EngineConfig(verifier_backend="fhe"))


def test_unregistered_backend() -> None:
    with pytest.raises(ConfigurationError, match="not registered"):
        factory._load_backend_class("tee")


def test_missing_module(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(
        factory.BACKEND_REGISTRY, "zkelgamal", "zkhe_confidential.nowhere.Backend"
    )
    with pytest.raises(ImportError):
        factory._load_backend_class("zkelgamal")


def test_missing_class(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(
        factory.BACKEND_REGISTRY,
        "zkelgamal",
        "zkhe_confidential.confidential_protocol.zkelgamal.backend.Nope",
    )
    with pytest.raises(ImportError):
        factory._load_backend_class("zkelgamal")


def test_class_without_interface(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(
        factory.BACKEND_REGISTRY,
        "zkelgamal",
        "zkhe_confidential.confidential_protocol.config.EngineConfig",
    )
    with pytest.raises(TypeError):
        factory._load_backend_class("zkelgamal")
