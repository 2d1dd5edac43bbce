"""
⚠️ DRAFT — requires crypto review before production use

Twisted (exponential) ElGamal over secp256k1.

    pk = sk * G
    Enc(v, pk; k) = (C_k, D) = (k * G, v * G + k * pk)
    D - sk * C_k = v * G

Recovering ``v`` from ``v * G`` needs a discrete log, so decryption searches a
bounded plaintext range with a baby-step/giant-step table.

The ElGamal shared secret ``k * pk = sk * C_k`` also seeds the Pedersen
blinding of a deposit, so the receiver can open deposits sent to them without
any side channel.
"""

import logging
import math
import threading
from typing import Any, Dict, Optional, Tuple

from ..config import (
    CIPHERTEXT_SIZE_BYTES,
    DECRYPTION_MAX_BITS,
    DOMAIN_SEPARATORS,
    GROUP_ORDER,
    MAX_DECRYPTION_BITS_LIMIT,
    MAX_VALUE,
    POINT_SIZE_BYTES,
)
from ..exceptions import DecryptionRangeExceeded, MalformedEncoding
from ..security import RandomnessSource, hash_to_scalar
from .commitments import (
    CurveParameters,
    IDENTITY_BYTES,
    decode_point,
    encode_point,
    get_cached_curve_params,
    to_bn,
)

logger = logging.getLogger(__name__)


# ============================================================================
# KEYS
# ============================================================================


def public_key_from_secret(sk: int, params: Optional[CurveParameters] = None) -> bytes:
    if params is None:
        params = get_cached_curve_params()
    if not isinstance(sk, int) or not (0 < sk < GROUP_ORDER):
        raise ValueError("secret key must be an int in [1, GROUP_ORDER)")
    return encode_point(to_bn(sk) * params.G)


def keygen(randomness_source: Optional[RandomnessSource] = None) -> Tuple[int, bytes]:
    """
    Generate an ElGamal key pair.

    Returns:
        Tuple of (secret_key, public_key_bytes)
    """
    if randomness_source is None:
        randomness_source = RandomnessSource()
    sk = randomness_source.get_nonzero_scalar()
    return sk, public_key_from_secret(sk)


def decode_public_key(data: bytes, params: Optional[CurveParameters] = None) -> Any:
    """Public keys are never the identity."""
    return decode_point(data, params, allow_identity=False)


# ============================================================================
# CIPHERTEXTS
# ============================================================================


def encode_ciphertext(c_k: Any, d: Any) -> bytes:
    return encode_point(c_k) + encode_point(d)


def decode_ciphertext(
    data: bytes, params: Optional[CurveParameters] = None
) -> Tuple[Any, Any]:
    """
    Split a 66-byte ciphertext into (C_k, D).

    Raises:
        MalformedEncoding: If the length is wrong
        InvalidCurvePoint: If either half is invalid or C_k is the identity
    """
    if not isinstance(data, (bytes, bytearray)) or len(data) != CIPHERTEXT_SIZE_BYTES:
        raise MalformedEncoding(f"ciphertext must be {CIPHERTEXT_SIZE_BYTES} bytes")
    data = bytes(data)
    # k is nonzero, so C_k = k*G is never the identity
    c_k = decode_point(data[:POINT_SIZE_BYTES], params, allow_identity=False)
    d = decode_point(data[POINT_SIZE_BYTES:], params, allow_identity=True)
    return c_k, d


def encrypt(
    value: int,
    pk: bytes,
    nonce: int,
    params: Optional[CurveParameters] = None,
) -> bytes:
    """
    Encrypt a 64-bit value to ``pk`` with ElGamal nonce ``nonce``.

    Args:
        value: Plaintext in [0, 2^64)
        pk: Recipient public key (33 bytes)
        nonce: ElGamal nonce k in [1, GROUP_ORDER)

    Returns:
        66-byte ciphertext C_k || D
    """
    if params is None:
        params = get_cached_curve_params()
    if not isinstance(value, int) or not (0 <= value <= MAX_VALUE):
        raise ValueError(f"value must be in [0, 2^64), got {value!r}")
    if not isinstance(nonce, int) or not (0 < nonce < GROUP_ORDER):
        raise ValueError("nonce must be in [1, GROUP_ORDER)")

    pk_pt = decode_public_key(pk, params)
    k = to_bn(nonce)
    c_k = k * params.G
    d = k * pk_pt
    if value:
        d = d + to_bn(value) * params.G
    return encode_ciphertext(c_k, d)


def decrypt_to_point(sk: int, ciphertext: bytes, params=None) -> Any:
    """Recover v*G = D - sk*C_k."""
    if params is None:
        params = get_cached_curve_params()
    c_k, d = decode_ciphertext(ciphertext, params)
    return d + (-(to_bn(sk) * c_k))


# ============================================================================
# SHARED SECRET -> DEPOSIT BLINDING
# ============================================================================


def sender_shared_secret(nonce: int, pk: bytes, params=None) -> bytes:
    """k * pk, as seen by the party that chose the nonce."""
    pk_pt = decode_public_key(pk, params)
    return encode_point(to_bn(nonce) * pk_pt)


def receiver_shared_secret(sk: int, ciphertext: bytes, params=None) -> bytes:
    """sk * C_k, as seen by the key owner."""
    c_k, _ = decode_ciphertext(ciphertext, params)
    return encode_point(to_bn(sk) * c_k)


def derive_deposit_blinding(shared_secret: bytes, context: bytes) -> int:
    """Pedersen blinding of a deposit, bound to the transcript context."""
    if shared_secret == IDENTITY_BYTES:
        raise ValueError("shared secret must not be the identity")
    return hash_to_scalar(
        context + shared_secret, domain_sep=DOMAIN_SEPARATORS["deposit_blinding"]
    )


# ============================================================================
# BOUNDED DECRYPTION (baby-step / giant-step)
# ============================================================================


class DecryptionTable:
    """
    Baby-step/giant-step lookup for plaintexts in [0, 2^max_bits).

    Building the table costs 2^ceil(max_bits/2) point additions; lookups cost
    at most as many again.

    Example:
        >>> table = DecryptionTable(16)
        >>> sk, pk = keygen()
        >>> ct = encrypt(1234, pk, 7)
        >>> table.solve(decrypt_to_point(sk, ct))
        1234
    """

    def __init__(self, max_bits: int = DECRYPTION_MAX_BITS, params=None):
        if not (0 < max_bits <= MAX_DECRYPTION_BITS_LIMIT):
            raise ValueError(
                f"max_bits must be in [1, {MAX_DECRYPTION_BITS_LIMIT}], got {max_bits}"
            )
        if params is None:
            params = get_cached_curve_params()

        self.max_bits = max_bits
        self.bound = 1 << max_bits
        self._params = params
        self._step = 1 << math.ceil(max_bits / 2)

        baby: Dict[bytes, int] = {}
        point = params.group.infinite()
        for j in range(self._step):
            baby[encode_point(point)] = j
            point = point + params.G
        self._baby = baby
        self._giant = -(to_bn(self._step) * params.G)
        logger.debug("Built decryption table: max_bits=%d steps=%d", max_bits, self._step)

    def solve(self, point: Any) -> int:
        """
        Find v with v*G == point.

        Raises:
            DecryptionRangeExceeded: If v is not in [0, 2^max_bits)
        """
        current = point
        for i in range(self._step):
            j = self._baby.get(encode_point(current))
            if j is not None:
                value = i * self._step + j
                if value < self.bound:
                    return value
                break
            current = current + self._giant
        raise DecryptionRangeExceeded(
            f"plaintext not in [0, 2^{self.max_bits})"
        )


_TABLES: Dict[int, DecryptionTable] = {}
_TABLES_LOCK = threading.Lock()


def get_decryption_table(max_bits: int = DECRYPTION_MAX_BITS) -> DecryptionTable:
    """Shared table per bit bound (double-checked locking)."""
    table = _TABLES.get(max_bits)
    if table is not None:
        return table
    with _TABLES_LOCK:
        table = _TABLES.get(max_bits)
        if table is None:
            table = DecryptionTable(max_bits)
            _TABLES[max_bits] = table
    return table


def decrypt_value(
    sk: int, ciphertext: bytes, table: Optional[DecryptionTable] = None
) -> int:
    """
    Decrypt a ciphertext to its integer plaintext.

    Raises:
        DecryptionRangeExceeded: If the plaintext lies above the table bound
        MalformedEncoding / InvalidCurvePoint: If the ciphertext is invalid
    """
    if table is None:
        table = get_decryption_table()
    return table.solve(decrypt_to_point(sk, ciphertext))


__all__ = [
    "keygen",
    "public_key_from_secret",
    "decode_public_key",
    "encrypt",
    "decrypt_to_point",
    "decrypt_value",
    "DecryptionTable",
    "get_decryption_table",
    "encode_ciphertext",
    "decode_ciphertext",
    "sender_shared_secret",
    "receiver_shared_secret",
    "derive_deposit_blinding",
]
