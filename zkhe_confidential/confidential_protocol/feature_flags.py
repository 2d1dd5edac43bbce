"""
Feature flags for selecting the confidential verifier backend.

The backend is chosen once, when the host ledger is configured. Resolution
order: explicit preference, in-process override (tests), the
``verifier_backend`` field of an EngineConfig, the ZKHE_VERIFIER_BACKEND
environment variable, then the default.

WARNING: Backend choice changes the security assumptions of the ledger.
"""

from __future__ import annotations

import os
from typing import Final, Optional

from .config import DEFAULT_VERIFIER_BACKEND, EngineConfig

KNOWN_BACKENDS: Final[tuple[str, ...]] = ("zkelgamal",)
ENV_VAR_NAME: Final[str] = "ZKHE_VERIFIER_BACKEND"

_backend_override: str | None = None


def _check(value: str | None, source: str) -> str | None:
    if value is None or value == "":
        return None

    if not isinstance(value, str) or value not in KNOWN_BACKENDS:
        raise ValueError(
            f"Unknown verifier backend {value!r} from {source}. "
            f"Known backends: {', '.join(KNOWN_BACKENDS)}"
        )

    return value


def get_backend_type(
    prefer: str | None = None, config: Optional[EngineConfig] = None
) -> str:
    """
    Resolve the verifier backend name.

    Args:
        prefer: Explicit backend name, wins over everything else.
        config: Engine configuration whose ``verifier_backend`` is consulted.

    Raises:
        ValueError: If any consulted source names an unknown backend.
    """
    chosen = _check(prefer, "prefer")
    if chosen is not None:
        return chosen

    if _backend_override is not None:
        return _backend_override

    if config is not None:
        chosen = _check(config.verifier_backend, "EngineConfig")
        if chosen is not None:
            return chosen

    chosen = _check(os.getenv(ENV_VAR_NAME), ENV_VAR_NAME)
    if chosen is not None:
        return chosen

    return DEFAULT_VERIFIER_BACKEND


def set_backend_type(value: str | None) -> None:
    """Force a backend in-process (testing only); None clears it."""
    global _backend_override
    _backend_override = _check(value, "override")
