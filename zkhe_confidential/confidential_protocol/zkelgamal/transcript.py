"""
⚠️ DRAFT — requires crypto review before production use

Fiat-Shamir transcripts.

Every proof in a bundle is derived from a transcript that starts with the
32-byte context tag returned by ``transcript_bind(asset_id, network_id)``.
A proof built for one asset or network therefore yields different challenges
anywhere else, which blocks cross-asset and cross-network replay.

All absorbed data is length-prefixed and labelled, so two different sequences
of appends can never hash to the same state.
"""

import hashlib
from typing import Any

from ..config import (
    CONTEXT_SIZE_BYTES,
    DOMAIN_SEPARATORS,
    GROUP_ORDER,
    MAX_ASSET_ID_BYTES,
    NETWORK_ID_SIZE_BYTES,
    PROTOCOL_LABEL,
    PROTOCOL_VERSION,
)
from ..security import encode_length_prefixed
from .commitments import encode_point, encode_scalar


_ASSET_TAG_INT = b"\x01"
_ASSET_TAG_BYTES = b"\x02"


def encode_asset_id(asset_id) -> bytes:
    """
    Asset ids are bytes (up to 32) or non-negative ints (u64).

    The encoding is a type tag followed by the id itself, so ``1``, ``b"\\x01"``
    and ``b"\\x01\\x00"`` bind to three different contexts.

    Raises:
        ValueError: If the asset id is too long or out of range
        TypeError: If the asset id has an unsupported type
    """
    if isinstance(asset_id, bool):
        raise TypeError("asset_id must be bytes or int")
    if isinstance(asset_id, int):
        if not (0 <= asset_id < 2**64):
            raise ValueError(f"asset_id must be a u64, got {asset_id}")
        return _ASSET_TAG_INT + asset_id.to_bytes(8, "little")
    if not isinstance(asset_id, (bytes, bytearray)):
        raise TypeError(f"asset_id must be bytes or int, got {type(asset_id)}")
    if len(asset_id) > MAX_ASSET_ID_BYTES:
        raise ValueError(
            f"asset_id must be at most {MAX_ASSET_ID_BYTES} bytes, "
            f"got {len(asset_id)}"
        )
    return _ASSET_TAG_BYTES + bytes(asset_id)


def transcript_bind(asset_id, network_id: bytes) -> bytes:
    """
    Derive the 32-byte context tag for (asset_id, network_id).

    Args:
        asset_id: Asset identifier (bytes or int)
        network_id: 32-byte network identifier

    Returns:
        32-byte context tag

    Raises:
        ValueError: If network_id or asset_id has the wrong size

    Example:
        >>> tag = transcript_bind(b"USDC", b"\\x00" * 32)
        >>> len(tag)
        32
    """
    if not isinstance(network_id, (bytes, bytearray)):
        raise TypeError(f"network_id must be bytes, got {type(network_id)}")
    if len(network_id) != NETWORK_ID_SIZE_BYTES:
        raise ValueError(
            f"network_id must be {NETWORK_ID_SIZE_BYTES} bytes, "
            f"got {len(network_id)}"
        )

    data = encode_length_prefixed(
        [
            DOMAIN_SEPARATORS["context"],
            PROTOCOL_LABEL,
            PROTOCOL_VERSION.to_bytes(4, "big"),
            bytes(network_id),
            encode_asset_id(asset_id),
        ]
    )
    return hashlib.sha3_256(data).digest()


class Transcript:
    """
    Labelled, length-prefixed SHA3 transcript.

    The running state is a 32-byte SHA3-256 chaining value. Challenges are
    drawn from SHA3-512 (reduced mod GROUP_ORDER) and folded back into the
    state, so later challenges depend on earlier ones.

    Example:
        >>> t = Transcript(b"ZKHE_V1_TRANSFER", b"\\x00" * 32)
        >>> t.append_message(b"note", b"hello")
        >>> c = t.challenge_scalar(b"c")
        >>> 0 < c < GROUP_ORDER
        True
    """

    def __init__(self, label: bytes, context: bytes):
        if not isinstance(context, bytes) or len(context) != CONTEXT_SIZE_BYTES:
            raise ValueError(f"context must be {CONTEXT_SIZE_BYTES} bytes")
        self._state = hashlib.sha3_256(
            encode_length_prefixed([PROTOCOL_LABEL, label, context])
        ).digest()

    def _absorb(self, *parts: bytes) -> None:
        self._state = hashlib.sha3_256(
            self._state + encode_length_prefixed(list(parts))
        ).digest()

    def append_message(self, label: bytes, message: bytes) -> None:
        self._absorb(b"msg", label, bytes(message))

    def append_u64(self, label: bytes, value: int) -> None:
        self._absorb(b"u64", label, value.to_bytes(8, "little"))

    def append_point(self, label: bytes, point: Any) -> None:
        """Absorb a point (petlib EcPt) or its 33-byte encoding."""
        if not isinstance(point, (bytes, bytearray)):
            point = encode_point(point)
        self._absorb(b"pt", label, bytes(point))

    def append_scalar(self, label: bytes, scalar: int) -> None:
        self._absorb(b"sc", label, encode_scalar(scalar))

    def challenge_bytes(self, label: bytes, n: int = 32) -> bytes:
        out = bytearray()
        counter = 0
        while len(out) < n:
            out.extend(
                hashlib.sha3_512(
                    self._state
                    + encode_length_prefixed(
                        [b"chal", label, counter.to_bytes(4, "big")]
                    )
                ).digest()
            )
            counter += 1
        out = bytes(out[:n])
        self._absorb(b"chal", label, out)
        return out

    def challenge_scalar(self, label: bytes) -> int:
        """Challenge in [0, GROUP_ORDER); callers reject zero where it matters."""
        return int.from_bytes(self.challenge_bytes(label, 64), "big") % GROUP_ORDER

    def fork(self, label: bytes) -> "Transcript":
        """Independent copy of this transcript continued under ``label``."""
        child = Transcript.__new__(Transcript)
        child._state = self._state
        child._absorb(b"fork", label)
        return child

    def state(self) -> bytes:
        return self._state
