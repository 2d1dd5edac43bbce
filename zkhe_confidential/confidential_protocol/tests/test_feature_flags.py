"""
Unit tests for verifier backend selection.
"""

import pytest

from zkhe_confidential.confidential_protocol import feature_flags
from zkhe_confidential.confidential_protocol.config import EngineConfig


@pytest.fixture(autouse=True)
def reset_feature_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    feature_flags.set_backend_type(None)
    monkeypatch.delenv(feature_flags.ENV_VAR_NAME, raising=False)
    yield
    feature_flags.set_backend_type(None)
    monkeypatch.delenv(feature_flags.ENV_VAR_NAME, raising=False)


def test_default_backend_is_zkelgamal() -> None:
    assert feature_flags.get_backend_type() == "zkelgamal"


def test_env_var_is_read(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(feature_flags.ENV_VAR_NAME, "zkelgamal")
    assert feature_flags.get_backend_type() == "zkelgamal"


def test_empty_env_var_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(feature_flags.ENV_VAR_NAME, "")
    assert feature_flags.get_backend_type() == "zkelgamal"


def test_config_field_is_consulted() -> None:
    cfg = EngineConfig(verifier_backend="zkelgamal")
    assert feature_flags.get_backend_type(config=cfg) == "zkelgamal"


def test_config_wins_over_invalid_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(feature_flags.ENV_VAR_NAME, "fhe")
    cfg = EngineConfig(verifier_backend="zkelgamal")
    assert feature_flags.get_backend_type(config=cfg) == "zkelgamal"


def test_prefer_wins_over_invalid_config() -> None:
    cfg = EngineConfig(verifier_backend="tee")
    assert feature_flags.get_backend_type(prefer="zkelgamal", config=cfg) == "zkelgamal"


def test_override_wins_over_invalid_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(feature_flags.ENV_VAR_NAME, "fhe")
    feature_flags.set_backend_type("zkelgamal")
    assert feature_flags.get_backend_type() == "zkelgamal"


def test_set_backend_type_empty_string_clears() -> None:
    feature_flags.set_backend_type("zkelgamal")
    feature_flags.set_backend_type("")
    assert feature_flags._backend_override is None


def test_invalid_prefer_raises_value_error() -> None:
    with pytest.raises(ValueError, match="Unknown verifier backend"):
        feature_flags.get_backend_type(prefer="invalid")


def test_invalid_env_raises_value_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(feature_flags.ENV_VAR_NAME, "invalid")
    with pytest.raises(ValueError, match=feature_flags.ENV_VAR_NAME):
        feature_flags.get_backend_type()


def test_invalid_config_raises_value_error() -> None:
    cfg = EngineConfig(verifier_backend="invalid")
    with pytest.raises(ValueError, match="EngineConfig"):
        feature_flags.get_backend_type(config=cfg)


def test_invalid_override_raises_value_error() -> None:
    with pytest.raises(ValueError, match="override"):
        feature_flags.set_backend_type("invalid")
