"""
⚠️ DRAFT — requires crypto review before production use

Fixed binary layouts of the proof bundles.

Points are 33 bytes, scalars 32 bytes big-endian, variable-length sub-proofs
carry a u16 little-endian length prefix and public values are u64
little-endian. Every bundle starts with the 32-byte transcript context tag and
is bounded by MAX_PROOF_SIZE_BYTES.

    SenderBundle     ctx | dC | new_sender_available | new_receiver_pending |
                     ciphertext | link | key_proof | len|range | len|balance
    ReceiverEnvelope ctx | dC | new_available | new_pending | key_proof |
                     len|range_available | len|range_pending
    MintProof        ctx | value | dC | ciphertext | link |
                     len|range_pending | len|range_total
    BurnProof        ctx | value | dC | new_available | link |
                     len|balance | len|range_total
    DisclosureProof  ctx | value | dleq

Decoding validates lengths, point encodings and scalar canonicity; it does
not check any proof.
"""

import struct
from dataclasses import dataclass, field
from typing import Optional

from ..config import (
    CIPHERTEXT_SIZE_BYTES,
    CONTEXT_SIZE_BYTES,
    MAX_PROOF_SIZE_BYTES,
    POINT_SIZE_BYTES,
)
from ..exceptions import MalformedEncoding
from .bulletproofs import RangeProof
from .commitments import decode_point
from .elgamal import decode_ciphertext
from .schnorr import DleqProof, KeyProof, LinkProof

_U16 = struct.Struct("<H")
_U64 = struct.Struct("<Q")


@dataclass(frozen=True)
class Opening:
    """Plaintext opening (value, blinding) of a commitment. Never serialized."""

    value: int
    blinding: int


class _Reader:
    def __init__(self, data: bytes, name: str):
        if not isinstance(data, (bytes, bytearray)):
            raise MalformedEncoding(f"{name} must be bytes, got {type(data)}")
        if len(data) > MAX_PROOF_SIZE_BYTES:
            raise MalformedEncoding(
                f"{name} exceeds {MAX_PROOF_SIZE_BYTES} bytes ({len(data)})"
            )
        self._data = bytes(data)
        self._pos = 0
        self._name = name

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise MalformedEncoding(f"{self._name} truncated")
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def u16_prefixed(self) -> bytes:
        (length,) = _U16.unpack(self.take(_U16.size))
        return self.take(length)

    def u64(self) -> int:
        (value,) = _U64.unpack(self.take(_U64.size))
        return value

    def point(self, params=None) -> bytes:
        raw = self.take(POINT_SIZE_BYTES)
        decode_point(raw, params)
        return raw

    def ciphertext(self, params=None) -> bytes:
        raw = self.take(CIPHERTEXT_SIZE_BYTES)
        decode_ciphertext(raw, params)
        return raw

    def finish(self) -> None:
        if self._pos != len(self._data):
            raise MalformedEncoding(
                f"{self._name} has {len(self._data) - self._pos} trailing bytes"
            )


def _prefixed(data: bytes) -> bytes:
    return _U16.pack(len(data)) + data


def _bounded(data: bytes, name: str) -> bytes:
    if len(data) > MAX_PROOF_SIZE_BYTES:
        raise MalformedEncoding(f"{name} exceeds {MAX_PROOF_SIZE_BYTES} bytes")
    return data


def _check_context(context: bytes) -> None:
    if not isinstance(context, bytes) or len(context) != CONTEXT_SIZE_BYTES:
        raise MalformedEncoding(f"context must be {CONTEXT_SIZE_BYTES} bytes")


@dataclass
class SenderBundle:
    """
    Proof bundle for an outgoing transfer.

    ``new_available_opening`` is the sender's local opening of their new
    balance; it is never serialized.
    """

    context: bytes
    delta_commitment: bytes
    new_sender_available: bytes
    new_receiver_pending: bytes
    ciphertext: bytes
    link_proof: LinkProof
    key_proof: KeyProof
    range_proof: RangeProof
    balance_proof: RangeProof
    new_available_opening: Optional[Opening] = field(
        default=None, compare=False, repr=False
    )

    def to_bytes(self) -> bytes:
        _check_context(self.context)
        return _bounded(
            self.context
            + self.delta_commitment
            + self.new_sender_available
            + self.new_receiver_pending
            + self.ciphertext
            + self.link_proof.to_bytes()
            + self.key_proof.to_bytes()
            + _prefixed(self.range_proof.to_bytes())
            + _prefixed(self.balance_proof.to_bytes()),
            "sender bundle",
        )

    @classmethod
    def from_bytes(cls, data: bytes, params=None) -> "SenderBundle":
        r = _Reader(data, "sender bundle")
        bundle = cls(
            context=r.take(CONTEXT_SIZE_BYTES),
            delta_commitment=r.point(params),
            new_sender_available=r.point(params),
            new_receiver_pending=r.point(params),
            ciphertext=r.ciphertext(params),
            link_proof=LinkProof.from_bytes(r.take(LinkProof.SIZE), params),
            key_proof=KeyProof.from_bytes(r.take(KeyProof.SIZE), params),
            range_proof=RangeProof.from_bytes(r.u16_prefixed(), params),
            balance_proof=RangeProof.from_bytes(r.u16_prefixed(), params),
        )
        r.finish()
        return bundle


@dataclass
class ReceiverEnvelope:
    """Proof bundle for accepting pending deposits into available."""

    context: bytes
    delta_commitment: bytes
    new_available: bytes
    new_pending: bytes
    key_proof: KeyProof
    range_available: RangeProof
    range_pending: RangeProof
    new_available_opening: Optional[Opening] = field(
        default=None, compare=False, repr=False
    )
    new_pending_opening: Optional[Opening] = field(
        default=None, compare=False, repr=False
    )

    def to_bytes(self) -> bytes:
        _check_context(self.context)
        return _bounded(
            self.context
            + self.delta_commitment
            + self.new_available
            + self.new_pending
            + self.key_proof.to_bytes()
            + _prefixed(self.range_available.to_bytes())
            + _prefixed(self.range_pending.to_bytes()),
            "receiver envelope",
        )

    @classmethod
    def from_bytes(cls, data: bytes, params=None) -> "ReceiverEnvelope":
        r = _Reader(data, "receiver envelope")
        envelope = cls(
            context=r.take(CONTEXT_SIZE_BYTES),
            delta_commitment=r.point(params),
            new_available=r.point(params),
            new_pending=r.point(params),
            key_proof=KeyProof.from_bytes(r.take(KeyProof.SIZE), params),
            range_available=RangeProof.from_bytes(r.u16_prefixed(), params),
            range_pending=RangeProof.from_bytes(r.u16_prefixed(), params),
        )
        r.finish()
        return envelope


@dataclass
class MintProof:
    """Mint of a public amount into the recipient's pending balance."""

    context: bytes
    value: int
    delta_commitment: bytes
    ciphertext: bytes
    link_proof: LinkProof
    range_pending: RangeProof
    range_total: RangeProof

    def to_bytes(self) -> bytes:
        _check_context(self.context)
        return _bounded(
            self.context
            + _U64.pack(self.value)
            + self.delta_commitment
            + self.ciphertext
            + self.link_proof.to_bytes()
            + _prefixed(self.range_pending.to_bytes())
            + _prefixed(self.range_total.to_bytes()),
            "mint proof",
        )

    @classmethod
    def from_bytes(cls, data: bytes, params=None) -> "MintProof":
        r = _Reader(data, "mint proof")
        proof = cls(
            context=r.take(CONTEXT_SIZE_BYTES),
            value=r.u64(),
            delta_commitment=r.point(params),
            ciphertext=r.ciphertext(params),
            link_proof=LinkProof.from_bytes(r.take(LinkProof.SIZE), params),
            range_pending=RangeProof.from_bytes(r.u16_prefixed(), params),
            range_total=RangeProof.from_bytes(r.u16_prefixed(), params),
        )
        r.finish()
        return proof


@dataclass
class BurnProof:
    """
    Burn of a public amount from the owner's available balance.

    The ciphertext of the burned amount travels next to the proof, not inside
    it; ``ciphertext`` holds the prover's copy and is never serialized.
    """

    context: bytes
    value: int
    delta_commitment: bytes
    new_available: bytes
    link_proof: LinkProof
    balance_proof: RangeProof
    range_total: RangeProof
    ciphertext: Optional[bytes] = field(default=None, compare=False, repr=False)
    new_available_opening: Optional[Opening] = field(
        default=None, compare=False, repr=False
    )

    def to_bytes(self) -> bytes:
        _check_context(self.context)
        return _bounded(
            self.context
            + _U64.pack(self.value)
            + self.delta_commitment
            + self.new_available
            + self.link_proof.to_bytes()
            + _prefixed(self.balance_proof.to_bytes())
            + _prefixed(self.range_total.to_bytes()),
            "burn proof",
        )

    @classmethod
    def from_bytes(cls, data: bytes, params=None) -> "BurnProof":
        r = _Reader(data, "burn proof")
        proof = cls(
            context=r.take(CONTEXT_SIZE_BYTES),
            value=r.u64(),
            delta_commitment=r.point(params),
            new_available=r.point(params),
            link_proof=LinkProof.from_bytes(r.take(LinkProof.SIZE), params),
            balance_proof=RangeProof.from_bytes(r.u16_prefixed(), params),
            range_total=RangeProof.from_bytes(r.u16_prefixed(), params),
        )
        r.finish()
        return proof


@dataclass
class DisclosureProof:
    context: bytes
    value: int
    dleq: DleqProof

    def to_bytes(self) -> bytes:
        _check_context(self.context)
        return self.context + _U64.pack(self.value) + self.dleq.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes, params=None) -> "DisclosureProof":
        r = _Reader(data, "disclosure proof")
        proof = cls(
            context=r.take(CONTEXT_SIZE_BYTES),
            value=r.u64(),
            dleq=DleqProof.from_bytes(r.take(DleqProof.SIZE), params),
        )
        r.finish()
        return proof
