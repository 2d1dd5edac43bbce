"""
Verifier backend factory.

Maps backend names to import paths and instantiates the selected backend with
the engine configuration. Alternative backends (FHE, TEE) register here under
their own names and implement the same VerifierBackend interface.

WARNING: This factory does not validate cryptographic correctness.
"""

from __future__ import annotations

import importlib
import logging
from typing import Final, Optional

from .config import EngineConfig
from .exceptions import ConfigurationError
from .feature_flags import get_backend_type
from .interfaces import VerifierBackend

logger = logging.getLogger(__name__)

BACKEND_REGISTRY: Final[dict[str, str]] = {
    "zkelgamal": "zkhe_confidential.confidential_protocol.zkelgamal.backend.ZkElGamalVerifier",
}


def _load_backend_class(backend_name: str) -> type[VerifierBackend]:
    try:
        import_path = BACKEND_REGISTRY[backend_name]
    except KeyError as exc:
        raise ConfigurationError(
            f"Backend {backend_name!r} is not registered. "
            f"Registered: {', '.join(sorted(BACKEND_REGISTRY))}"
        ) from exc

    module_path, _, class_name = import_path.rpartition(".")
    try:
        module = importlib.import_module(module_path)
    except ModuleNotFoundError as exc:
        raise ImportError(
            f"Unable to import backend module {module_path!r} for {backend_name!r}"
        ) from exc

    backend_cls = getattr(module, class_name, None)
    if not isinstance(backend_cls, type):
        raise ImportError(
            f"Backend class {class_name!r} not found in module {module_path!r}"
        )

    if not issubclass(backend_cls, VerifierBackend):
        raise TypeError(
            f"Backend class {backend_cls.__name__!r} does not implement VerifierBackend"
        )

    return backend_cls


def get_verifier_backend(
    config: Optional[EngineConfig] = None, *, prefer: str | None = None
) -> VerifierBackend:
    """
    Return a verifier backend instance for ``config``.

    Args:
        config: Engine configuration (defaults from environment if None).
        prefer: Optional backend name overriding the configuration.

    Raises:
        ConfigurationError: If the backend name is invalid or unregistered.
        ImportError: If the backend class cannot be imported.
        TypeError: If the class does not implement VerifierBackend.
    """
    if config is None:
        config = EngineConfig.from_env()

    try:
        backend_name = get_backend_type(prefer, config)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    backend_cls = _load_backend_class(backend_name)
    backend = backend_cls(network_id=config.network_id, config=config)
    logger.info("Selected verifier backend %s", backend_name)
    return backend
