"""
⚠️ DRAFT — requires crypto review before production use

Cryptographic and engine configuration for the confidential-balance protocol.

Module-level constants describe the fixed protocol parameters (curve,
generators, wire sizes, bounds). ``EngineConfig`` carries the values that a
host injects once at startup (network id, pending-deposit bound, decryption
bound, verifier backend) and passes explicitly into every proving and
verification call.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Final, Optional

from .exceptions import ConfigurationError

# ============================================================================
# CURVE SELECTION
# ============================================================================

# secp256k1 via petlib (prime order, cofactor 1)
CURVE_NAME = "secp256k1"
CURVE_LIBRARY = "petlib"

GROUP_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
GROUP_ORDER_BITS = 256
COFACTOR = 1
CURVE_NID = 714  # OpenSSL NID for secp256k1

# Compressed SEC1 point; the identity encodes as POINT_SIZE_BYTES zero bytes
POINT_SIZE_BYTES = 33
SCALAR_SIZE_BYTES = 32
CIPHERTEXT_SIZE_BYTES = 2 * POINT_SIZE_BYTES
COMMITMENT_SIZE_BYTES = POINT_SIZE_BYTES
PUBLIC_KEY_SIZE_BYTES = POINT_SIZE_BYTES

# ============================================================================
# GENERATOR SELECTION (Nothing-Up-My-Sleeve)
# ============================================================================

# G = standard secp256k1 generator
# H = hash_to_point(GENERATOR_H_SEED)
GENERATOR_H_SEED = b"Zether/PedersenH"

# Bulletproof vector generators G_i / H_i and the inner-product base U
BULLETPROOF_GENERATOR_SEED = b"Zether/Bulletproofs/v1"

# ============================================================================
# HASH FUNCTIONS / TRANSCRIPTS
# ============================================================================

HASH_FUNCTION = "SHA3-256"
HASH_OUTPUT_BITS = 256

DOMAIN_SEPARATOR_PREFIX = b"ZKHE_V1_"

# Protocol label and version folded into every transcript context
PROTOCOL_LABEL = b"Zether/ZkElGamal"
PROTOCOL_VERSION = 1

DOMAIN_SEPARATORS = {
    "context": DOMAIN_SEPARATOR_PREFIX + b"CONTEXT",
    "transfer": DOMAIN_SEPARATOR_PREFIX + b"TRANSFER",
    "accept": DOMAIN_SEPARATOR_PREFIX + b"ACCEPT",
    "mint": DOMAIN_SEPARATOR_PREFIX + b"MINT",
    "burn": DOMAIN_SEPARATOR_PREFIX + b"BURN",
    "disclose": DOMAIN_SEPARATOR_PREFIX + b"DISCLOSE",
    "range_proof": DOMAIN_SEPARATOR_PREFIX + b"RANGE",
    "deposit_blinding": DOMAIN_SEPARATOR_PREFIX + b"DEPOSIT_BLINDING",
    "seeded_rng": DOMAIN_SEPARATOR_PREFIX + b"SEEDED_RNG",
}

CONTEXT_SIZE_BYTES = 32
NETWORK_ID_SIZE_BYTES = 32
MAX_ASSET_ID_BYTES = 32

# ============================================================================
# SECURITY PARAMETERS
# ============================================================================

BLINDING_FACTOR_BITS = 256
CHALLENGE_SPACE_BITS = 256
RANDOMNESS_SOURCE = "secrets.SystemRandom"
RNG_SEED_SIZE_BYTES = 32

# Every committed value lies in [0, 2^RANGE_BITS)
RANGE_BITS = 64
MAX_VALUE = (1 << RANGE_BITS) - 1

# ============================================================================
# PROOF SERIALIZATION
# ============================================================================

SERIALIZATION_FORMAT = "CBOR"
PROOF_VERSION = 1

MAX_PROOF_SIZE_BYTES = 4096

# ============================================================================
# LEDGER / DISCLOSURE LIMITS
# ============================================================================

MAX_PENDING_DEPOSITS = 64

# Plaintext range searched by baby-step/giant-step decryption
DECRYPTION_MAX_BITS = 32
MAX_DECRYPTION_BITS_LIMIT = 48

DEFAULT_VERIFIER_BACKEND: Final[str] = "zkelgamal"

ENV_NETWORK_ID: Final[str] = "ZKHE_NETWORK_ID"
ENV_MAX_PENDING_DEPOSITS: Final[str] = "ZKHE_MAX_PENDING_DEPOSITS"
ENV_DECRYPTION_MAX_BITS: Final[str] = "ZKHE_DECRYPTION_MAX_BITS"

# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        AssertionError: If configuration is invalid
    """
    assert CHALLENGE_SPACE_BITS >= 128, "Challenge space too small for security"
    assert BLINDING_FACTOR_BITS >= 256, "Blinding factor too small"
    assert CURVE_NAME == "secp256k1", "Invalid curve"
    assert CURVE_LIBRARY == "petlib", "secp256k1 requires petlib library"
    assert COFACTOR == 1, "secp256k1 must have cofactor 1"
    assert CURVE_NID == 714, "secp256k1 NID must be 714"
    assert HASH_FUNCTION in ["SHA3-256", "SHA256"], "Invalid hash function"
    assert RANGE_BITS > 0 and RANGE_BITS & (RANGE_BITS - 1) == 0, (
        "Range bit length must be a power of two"
    )
    assert 0 < DECRYPTION_MAX_BITS <= MAX_DECRYPTION_BITS_LIMIT, (
        "Decryption bound out of range"
    )
    assert MAX_PENDING_DEPOSITS > 0, "Pending deposit bound must be positive"
    assert MAX_PROOF_SIZE_BYTES < 2**16, "Proof size must fit a u16 length"

    return True


# Auto-validate on import
validate_config()


# ============================================================================
# ENGINE CONFIGURATION (injected once at startup)
# ============================================================================


def _parse_network_id(value: str) -> bytes:
    try:
        raw = bytes.fromhex(value)
    except ValueError as e:
        raise ConfigurationError(f"{ENV_NETWORK_ID} must be hex: {e}") from e
    if len(raw) != NETWORK_ID_SIZE_BYTES:
        raise ConfigurationError(
            f"{ENV_NETWORK_ID} must decode to {NETWORK_ID_SIZE_BYTES} bytes, "
            f"got {len(raw)}"
        )
    return raw


def _parse_positive_int(name: str, value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer: {value!r}") from e
    if parsed <= 0:
        raise ConfigurationError(f"{name} must be positive, got {parsed}")
    return parsed


@dataclass(frozen=True)
class EngineConfig:
    """
    Process-wide engine configuration.

    Attributes:
        network_id: 32-byte network identifier bound into every transcript
        max_pending_deposits: Outstanding deposit bound per (account, asset)
        decryption_max_bits: Plaintext bit range searched when decrypting
        verifier_backend: Registered verifier backend name

    Example:
        >>> cfg = EngineConfig(network_id=b"\\x01" * 32)
        >>> cfg.max_pending_deposits
        64
    """

    network_id: bytes = field(default=b"\x00" * NETWORK_ID_SIZE_BYTES)
    max_pending_deposits: int = MAX_PENDING_DEPOSITS
    decryption_max_bits: int = DECRYPTION_MAX_BITS
    verifier_backend: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.network_id, bytes):
            raise ConfigurationError(
                f"network_id must be bytes, got {type(self.network_id)}"
            )
        if len(self.network_id) != NETWORK_ID_SIZE_BYTES:
            raise ConfigurationError(
                f"network_id must be {NETWORK_ID_SIZE_BYTES} bytes, "
                f"got {len(self.network_id)}"
            )
        if not isinstance(self.max_pending_deposits, int) or self.max_pending_deposits <= 0:
            raise ConfigurationError(
                f"max_pending_deposits must be a positive int, "
                f"got {self.max_pending_deposits!r}"
            )
        if not (0 < self.decryption_max_bits <= MAX_DECRYPTION_BITS_LIMIT):
            raise ConfigurationError(
                f"decryption_max_bits must be in [1, {MAX_DECRYPTION_BITS_LIMIT}], "
                f"got {self.decryption_max_bits}"
            )

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "EngineConfig":
        """
        Build configuration from environment variables.

        Unset variables fall back to the module defaults.
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        network_hex = env.get(ENV_NETWORK_ID)
        if network_hex:
            kwargs["network_id"] = _parse_network_id(network_hex)

        max_pending = env.get(ENV_MAX_PENDING_DEPOSITS)
        if max_pending:
            kwargs["max_pending_deposits"] = _parse_positive_int(
                ENV_MAX_PENDING_DEPOSITS, max_pending
            )

        max_bits = env.get(ENV_DECRYPTION_MAX_BITS)
        if max_bits:
            kwargs["decryption_max_bits"] = _parse_positive_int(
                ENV_DECRYPTION_MAX_BITS, max_bits
            )

        return cls(**kwargs)
