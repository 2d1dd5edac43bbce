"""
⚠️ DRAFT — requires crypto review before production use

Pedersen commitments and point/scalar codecs over secp256k1 (petlib).

Pedersen Commitments:
    C = value * G + blinding * H
    where G is the standard generator and H = hash_to_point("Zether/PedersenH")
    has no known discrete log relative to G.

    - Hiding: C reveals nothing about value without blinding
    - Binding: cannot open C to a different (value, blinding)
    - Homomorphic: commit(a, r1) + commit(b, r2) = commit(a + b, r1 + r2)

Wire encoding:
    Points are 33-byte compressed SEC1. The identity point (the commitment to
    zero with zero blinding, i.e. an unused balance) is 33 zero bytes.
    Scalars are 32-byte big-endian and must be canonical (< GROUP_ORDER).
"""

from typing import Any, Optional, Sequence, Tuple
from dataclasses import dataclass
import threading

from petlib.ec import EcGroup, EcPt
from petlib.bn import Bn

from ..security import RandomnessSource, constant_time_compare
from ..exceptions import (
    CryptographicError,
    InvalidCurvePoint,
    MalformedEncoding,
    SecurityError,
)
from ..config import (
    COFACTOR,
    CURVE_LIBRARY,
    CURVE_NAME,
    CURVE_NID,
    GENERATOR_H_SEED,
    GROUP_ORDER,
    POINT_SIZE_BYTES,
    SCALAR_SIZE_BYTES,
)

IDENTITY_BYTES = b"\x00" * POINT_SIZE_BYTES


# ============================================================================
# CURVE SETUP
# ============================================================================


@dataclass
class CurveParameters:
    """
    Elliptic curve parameters shared by prover and verifier.

    Attributes:
        curve: Curve name ("secp256k1")
        library: Cryptographic library ("petlib")
        group: Elliptic curve group (EcGroup)
        G: Base generator (value generator)
        H: Blinding generator (Nothing-Up-My-Sleeve via hash-to-point)
        order: Group order
    """

    curve: str
    library: str
    group: Any  # EcGroup
    G: Any  # EcPt
    H: Any  # EcPt
    order: int

    def __post_init__(self):
        if not isinstance(self.order, int):
            self.order = int(self.order)

        if self.order != GROUP_ORDER:
            raise SecurityError(
                f"Group order mismatch: expected {GROUP_ORDER}, got {self.order}"
            )

        if COFACTOR != 1:
            raise SecurityError(
                f"Configuration error: COFACTOR={COFACTOR}, expected 1. "
                "Pedersen commitments require prime order curves only."
            )

    @property
    def scalar_bytes(self) -> int:
        return SCALAR_SIZE_BYTES

    @property
    def identity(self) -> Any:
        return self.group.infinite()


def setup_curve(
    curve_name: Optional[str] = None, library: Optional[str] = None
) -> CurveParameters:
    """
    Setup the secp256k1 group and the Pedersen generators G and H.

    ⚠️ TRUST ASSUMPTION: nobody knows alpha with H = alpha*G. H is derived
    deterministically from GENERATOR_H_SEED, so anyone can recompute it.

    Args:
        curve_name: Name of elliptic curve (defaults to config.CURVE_NAME)
        library: Cryptographic library (defaults to config.CURVE_LIBRARY)

    Returns:
        CurveParameters: Initialized curve parameters with G, H

    Raises:
        ValueError: If curve/library combination is unsupported
        SecurityError: If curve doesn't meet security requirements
        CryptographicError: If curve initialization fails
    """
    curve_name = curve_name or CURVE_NAME
    library = library or CURVE_LIBRARY

    if curve_name != "secp256k1":
        raise ValueError(f"Only secp256k1 is supported, got {curve_name}.")

    if library != "petlib":
        raise ValueError(f"Only petlib is supported, got {library}.")

    try:
        group = EcGroup(CURVE_NID)
        G = group.generator()
        H = group.hash_to_point(GENERATOR_H_SEED)

        order = int(group.order())
        if order != GROUP_ORDER:
            raise SecurityError(
                f"Group order mismatch: expected {GROUP_ORDER}, got {order}"
            )

        return CurveParameters(
            curve=curve_name,
            library=library,
            group=group,
            G=G,
            H=H,
            order=order,
        )

    except Exception as e:
        if isinstance(e, (ValueError, SecurityError)):
            raise
        raise CryptographicError(
            f"Failed to initialize curve {curve_name}: {e}"
        ) from e


# ============================================================================
# MODULE-LEVEL CACHE
# ============================================================================

_CURVE_PARAMS_CACHE: Optional[CurveParameters] = None
_CACHE_LOCK = threading.Lock()


def get_cached_curve_params() -> CurveParameters:
    """
    Get cached curve parameters (initialize if needed).

    Thread-safe using double-checked locking.
    """
    global _CURVE_PARAMS_CACHE

    if _CURVE_PARAMS_CACHE is not None:
        return _CURVE_PARAMS_CACHE

    with _CACHE_LOCK:
        if _CURVE_PARAMS_CACHE is None:
            _CURVE_PARAMS_CACHE = setup_curve()

    return _CURVE_PARAMS_CACHE


def h_generator() -> Any:
    """The shared Pedersen blinding generator H."""
    return get_cached_curve_params().H


# ============================================================================
# SCALAR / POINT CODECS
# ============================================================================


def to_bn(value: int) -> Bn:
    """Reduce an int mod GROUP_ORDER and convert it to a petlib Bn."""
    if isinstance(value, Bn):
        return value
    if not isinstance(value, int):
        raise TypeError(f"Expected int, got {type(value)}")
    return Bn.from_decimal(str(value % GROUP_ORDER))


def encode_scalar(value: int) -> bytes:
    return (value % GROUP_ORDER).to_bytes(SCALAR_SIZE_BYTES, "big")


def decode_scalar(data: bytes) -> int:
    """
    Decode a canonical 32-byte scalar.

    Raises:
        MalformedEncoding: If the length is wrong or value >= GROUP_ORDER
    """
    if not isinstance(data, (bytes, bytearray)) or len(data) != SCALAR_SIZE_BYTES:
        raise MalformedEncoding(
            f"scalar must be {SCALAR_SIZE_BYTES} bytes"
        )
    value = int.from_bytes(data, "big")
    if value >= GROUP_ORDER:
        raise MalformedEncoding("non-canonical scalar")
    return value


def encode_point(point: Any) -> bytes:
    """Compressed 33-byte encoding; identity encodes as zero bytes."""
    if point.is_infinite():
        return IDENTITY_BYTES
    data = point.export()
    if len(data) != POINT_SIZE_BYTES:
        raise CryptographicError(
            f"Point size mismatch: expected {POINT_SIZE_BYTES}, got {len(data)}"
        )
    return data


def decode_point(
    data: bytes,
    params: Optional[CurveParameters] = None,
    allow_identity: bool = True,
) -> Any:
    """
    Decode a 33-byte compressed point.

    Args:
        data: Encoded point
        params: Curve parameters (cached if None)
        allow_identity: Whether the all-zero identity encoding is accepted

    Raises:
        MalformedEncoding: If the length is wrong
        InvalidCurvePoint: If the bytes are not a valid curve point
    """
    if params is None:
        params = get_cached_curve_params()

    if not isinstance(data, (bytes, bytearray)):
        raise MalformedEncoding(f"point must be bytes, got {type(data)}")

    data = bytes(data)
    if len(data) != POINT_SIZE_BYTES:
        raise MalformedEncoding(
            f"point must be {POINT_SIZE_BYTES} bytes, got {len(data)}"
        )

    if data == IDENTITY_BYTES:
        if not allow_identity:
            raise InvalidCurvePoint("identity point not allowed here")
        return params.group.infinite()

    if data[0] not in (0x02, 0x03):
        raise InvalidCurvePoint(f"invalid point prefix 0x{data[0]:02x}")

    try:
        point = EcPt.from_binary(data, params.group)
    except Exception as e:
        raise InvalidCurvePoint(f"point is not on the curve: {e}") from e

    if point is None or not params.group.check_point(point):
        raise InvalidCurvePoint("point is not on the curve")

    # Round-trip keeps encodings canonical
    if point.export() != data:
        raise InvalidCurvePoint("non-canonical point encoding")

    return point


def multiexp(scalars: Sequence[int], points: Sequence[Any], params=None) -> Any:
    """Sum of scalar_i * point_i (scalars as ints)."""
    if len(scalars) != len(points):
        raise ValueError("scalars and points length mismatch")
    if params is None:
        params = get_cached_curve_params()
    acc = params.group.infinite()
    for scalar, point in zip(scalars, points):
        scalar %= GROUP_ORDER
        if scalar == 0:
            continue
        acc = acc + to_bn(scalar) * point
    return acc


# ============================================================================
# COMMITMENT OPERATIONS
# ============================================================================


def commit_point(value: int, blinding: int, params=None) -> Any:
    """C = value*G + blinding*H as a curve point."""
    if params is None:
        params = get_cached_curve_params()
    return multiexp([value, blinding], [params.G, params.H], params)


def commit(
    value: int,
    blinding: Optional[int] = None,
    params: Optional[CurveParameters] = None,
    randomness_source: Optional[RandomnessSource] = None,
) -> Tuple[bytes, int]:
    """
    Create a Pedersen commitment to a value.

    Computes: C = value * G + blinding * H

    Args:
        value: Integer value to commit to (must be in [0, GROUP_ORDER))
        blinding: Blinding factor (generated if None)
        params: Curve parameters (cached if None)
        randomness_source: Source for random blinding (created if None)

    Returns:
        Tuple of (commitment_bytes, blinding_factor)

    Raises:
        ValueError: If value or blinding is out of range

    Example:
        >>> c1, r1 = commit(10)
        >>> c2, r2 = commit(20)
        >>> c_sum, _ = commit(30, (r1 + r2) % GROUP_ORDER)
        >>> assert add_commitments(c1, c2) == c_sum
    """
    if params is None:
        params = get_cached_curve_params()

    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Value must be an integer, got {type(value)}")

    if not (0 <= value < GROUP_ORDER):
        raise ValueError(f"Value must be in [0, GROUP_ORDER), got {value}")

    if blinding is None:
        if randomness_source is None:
            randomness_source = RandomnessSource()
        blinding = randomness_source.get_random_scalar_mod_order()
    else:
        if not isinstance(blinding, int) or isinstance(blinding, bool):
            raise ValueError(f"Blinding must be an integer, got {type(blinding)}")

        if not (0 <= blinding < GROUP_ORDER):
            raise ValueError(
                f"Blinding must be in [0, GROUP_ORDER), got {blinding}"
            )

    return encode_point(commit_point(value, blinding, params)), blinding


def zero_commitment() -> bytes:
    """Commitment to zero with zero blinding (an untouched balance)."""
    return IDENTITY_BYTES


def verify_commitment(
    commitment_bytes: bytes,
    value: int,
    blinding: int,
    params: Optional[CurveParameters] = None,
) -> bool:
    """
    Verify that commitment == value * G + blinding * H.

    Values and blindings are reduced modulo GROUP_ORDER, so openings produced
    by homomorphic arithmetic verify without normalisation.

    Returns:
        bool: True if the opening matches, False otherwise
    """
    if params is None:
        params = get_cached_curve_params()

    try:
        decode_point(commitment_bytes, params)
    except (MalformedEncoding, InvalidCurvePoint):
        return False

    expected = encode_point(commit_point(value, blinding, params))
    return constant_time_compare(bytes(commitment_bytes), expected)


# ============================================================================
# HOMOMORPHIC OPERATIONS
# ============================================================================


def add_commitments(
    commitment1_bytes: bytes,
    commitment2_bytes: bytes,
    params: Optional[CurveParameters] = None,
) -> bytes:
    """
    Add two Pedersen commitments homomorphically.

    commit(v1, r1) + commit(v2, r2) = commit(v1 + v2, r1 + r2)
    """
    if params is None:
        params = get_cached_curve_params()
    c1 = decode_point(commitment1_bytes, params)
    c2 = decode_point(commitment2_bytes, params)
    return encode_point(c1 + c2)


def sub_commitments(
    commitment1_bytes: bytes,
    commitment2_bytes: bytes,
    params: Optional[CurveParameters] = None,
) -> bytes:
    """commit(v1, r1) - commit(v2, r2) = commit(v1 - v2, r1 - r2)."""
    if params is None:
        params = get_cached_curve_params()
    c1 = decode_point(commitment1_bytes, params)
    c2 = decode_point(commitment2_bytes, params)
    return encode_point(c1 + (-c2))


def sum_commitments(
    commitments: Sequence[bytes], params: Optional[CurveParameters] = None
) -> bytes:
    if params is None:
        params = get_cached_curve_params()
    acc = params.group.infinite()
    for c in commitments:
        acc = acc + decode_point(c, params)
    return encode_point(acc)


def add_commitment_blindings(blinding1: int, blinding2: int) -> int:
    """Add blinding factors modulo GROUP_ORDER."""
    return (blinding1 + blinding2) % GROUP_ORDER


def validate_commitment_format(commitment_bytes: bytes) -> bool:
    """Fast structural check (length and prefix) without curve operations."""
    if not isinstance(commitment_bytes, bytes):
        return False

    if len(commitment_bytes) != POINT_SIZE_BYTES:
        return False

    if commitment_bytes == IDENTITY_BYTES:
        return True

    return commitment_bytes[0] in (0x02, 0x03)
