"""Public API for the confidential-balance protocol."""
from __future__ import annotations

from .config import EngineConfig
from .factory import get_verifier_backend
from .feature_flags import get_backend_type, set_backend_type
from .interfaces import (
    BurnResult,
    MintResult,
    NewDeposit,
    TransferReceivedResult,
    TransferSentResult,
    VerifierBackend,
)
from .ledger import AccountAssetState, AssetState, ConfidentialLedger, PendingDeposit
from .types import ProofEnvelope, ProofKind

__all__ = [
    "EngineConfig",
    "get_verifier_backend",
    "get_backend_type",
    "set_backend_type",
    "VerifierBackend",
    "NewDeposit",
    "TransferSentResult",
    "TransferReceivedResult",
    "MintResult",
    "BurnResult",
    "ConfidentialLedger",
    "AccountAssetState",
    "AssetState",
    "PendingDeposit",
    "ProofEnvelope",
    "ProofKind",
]
