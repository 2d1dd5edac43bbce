"""
⚠️ DRAFT — requires crypto review before production use

Security utilities for cryptographic operations.

Randomness sources, hashing to scalars, length-prefixed encoding
and constant-time comparison shared by the prover and verifier.
"""

import os
import secrets
import hashlib
import hmac
from typing import Iterable, Optional

from .config import (
    CURVE_NAME,
    DOMAIN_SEPARATORS,
    GROUP_ORDER,
    HASH_FUNCTION,
    RNG_SEED_SIZE_BYTES,
)


# ============================================================================
# GROUP ORDER VALIDATION (Run at module import)
# ============================================================================


def _validate_group_order():
    """
    Validate GROUP_ORDER is reasonable.

    Raises:
        ValueError: If GROUP_ORDER is invalid
    """
    if GROUP_ORDER <= 0:
        raise ValueError(f"Invalid GROUP_ORDER: {GROUP_ORDER}")

    if GROUP_ORDER < 2**128:
        raise ValueError(f"GROUP_ORDER too small (< 2^128): {GROUP_ORDER}")

    secp256k1_order = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
    if CURVE_NAME == "secp256k1" and GROUP_ORDER != secp256k1_order:
        raise ValueError(
            f"GROUP_ORDER mismatch for secp256k1: "
            f"expected {hex(secp256k1_order)}, got {hex(GROUP_ORDER)}"
        )


_validate_group_order()


# ============================================================================
# RANDOMNESS SOURCES
# ============================================================================


class RandomnessSource:
    """
    Cryptographically secure randomness with fork detection.

    Prevents catastrophic randomness reuse if process forks.

    Example:
        >>> rng = RandomnessSource()
        >>> scalar = rng.get_random_scalar_mod_order()
    """

    def __init__(self):
        """Initialize randomness source with fork detection."""
        self._pid = os.getpid()
        self._rng = secrets.SystemRandom()

    def get_random_scalar(self, max_value: int) -> int:
        """
        Get random scalar in [0, max_value).

        Args:
            max_value: Upper bound (exclusive)

        Returns:
            Random scalar in [0, max_value)
        """
        if os.getpid() != self._pid:
            self.__init__()
        return self._rng.randrange(0, max_value)

    def get_random_bytes(self, n: int) -> bytes:
        """
        Get n cryptographically secure random bytes.

        Args:
            n: Number of bytes to generate

        Returns:
            n random bytes
        """
        if os.getpid() != self._pid:
            self.__init__()
        return secrets.token_bytes(n)

    def get_random_scalar_mod_order(self) -> int:
        """
        Get random scalar modulo group order.

        Returns:
            Random scalar in [0, GROUP_ORDER)
        """
        return self.get_random_scalar(GROUP_ORDER)

    def get_nonzero_scalar(self) -> int:
        """Random scalar in [1, GROUP_ORDER)."""
        scalar = self.get_random_scalar_mod_order()
        while scalar == 0:
            scalar = self.get_random_scalar_mod_order()
        return scalar


class SeededRandomness(RandomnessSource):
    """
    Deterministic scalar stream expanded from a full-entropy 32-byte seed.

    Used for reproducible proofs (test vectors). Each output is
    SHA3-512(domain || seed || counter) reduced mod GROUP_ORDER, so every
    scalar carries full width even though the stream is deterministic.

    Example:
        >>> rng = SeededRandomness(b"\\x07" * 32)
        >>> a = rng.get_random_scalar_mod_order()
        >>> b = SeededRandomness(b"\\x07" * 32).get_random_scalar_mod_order()
        >>> assert a == b
    """

    def __init__(self, seed: bytes):
        if not isinstance(seed, bytes):
            raise TypeError(f"seed must be bytes, got {type(seed)}")
        if len(seed) != RNG_SEED_SIZE_BYTES:
            raise ValueError(
                f"seed must be {RNG_SEED_SIZE_BYTES} bytes, got {len(seed)}"
            )
        self._seed = seed
        self._counter = 0

    def _next_block(self) -> bytes:
        h = hashlib.sha3_512()
        h.update(DOMAIN_SEPARATORS["seeded_rng"])
        h.update(self._seed)
        h.update(self._counter.to_bytes(8, "big"))
        self._counter += 1
        return h.digest()

    def get_random_scalar(self, max_value: int) -> int:
        if max_value <= 1:
            raise ValueError(f"max_value must be > 1, got {max_value}")
        return int.from_bytes(self._next_block(), "big") % max_value

    def get_random_bytes(self, n: int) -> bytes:
        out = bytearray()
        while len(out) < n:
            out.extend(self._next_block())
        return bytes(out[:n])


def randomness_from_seed(seed: Optional[bytes]) -> RandomnessSource:
    """Seeded stream when a seed is given, system randomness otherwise."""
    if seed is None:
        return RandomnessSource()
    return SeededRandomness(seed)


# ============================================================================
# HASH FUNCTIONS
# ============================================================================


def encode_length_prefixed(parts: Iterable[bytes]) -> bytes:
    """
    Concatenate parts as len(part) || part with 4-byte big-endian lengths.

    Raises:
        TypeError: If any part is not bytes
    """
    out = bytearray()
    for part in parts:
        if not isinstance(part, bytes):
            raise TypeError(f"parts must be bytes, got {type(part)}")
        out.extend(len(part).to_bytes(4, "big"))
        out.extend(part)
    return bytes(out)


def hash_to_scalar(
    data: bytes, max_value: int = GROUP_ORDER, domain_sep: Optional[bytes] = None
) -> int:
    """
    Hash data to scalar in [0, max_value) with domain separation.

    Args:
        data: Data to hash (must be non-empty)
        max_value: Maximum value (exclusive, must be > 1)
        domain_sep: Optional domain separator

    Returns:
        Scalar in [0, max_value)

    Raises:
        ValueError: If inputs are invalid
        TypeError: If inputs are wrong type
    """
    if not isinstance(data, bytes):
        raise TypeError(f"data must be bytes, got {type(data)}")

    if not data:
        raise ValueError("Data cannot be empty")

    if max_value <= 1:
        raise ValueError(f"max_value must be > 1, got {max_value}")

    if domain_sep:
        if not isinstance(domain_sep, bytes):
            raise TypeError(f"domain_sep must be bytes, got {type(domain_sep)}")
        data = encode_length_prefixed([domain_sep]) + data

    # 512-bit digest keeps the modular bias negligible
    h = hashlib.sha3_512(data)

    return int.from_bytes(h.digest(), "big") % max_value


def hash_digest(data: bytes) -> bytes:
    """32-byte digest with the configured hash function."""
    if HASH_FUNCTION == "SHA3-256":
        return hashlib.sha3_256(data).digest()
    return hashlib.sha256(data).digest()


# ============================================================================
# CONSTANT-TIME OPERATIONS
# ============================================================================


def constant_time_compare(a: bytes, b: bytes) -> bool:
    """
    Constant-time comparison to prevent timing attacks.

    Args:
        a: First byte string
        b: Second byte string

    Returns:
        True if a == b, False otherwise
    """
    return hmac.compare_digest(a, b)
