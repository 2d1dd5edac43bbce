"""
⚠️ DRAFT — requires crypto review before production use

Transport types for proof bundles.

This module provides:
1. ProofKind - enum of bundle variants
2. ProofEnvelope - tagged bundle wrapper with CBOR serialization

The bundle bytes inside an envelope use the fixed binary layouts from
``zkelgamal.bundles``; the envelope only adds the variant tag, a version
field and optional side data (the burn ciphertext travels this way).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import cbor2

from .config import MAX_PROOF_SIZE_BYTES, PROOF_VERSION, SERIALIZATION_FORMAT
from .exceptions import CryptographicError, MalformedEncoding

# ============================================================================
# PROOF KIND ENUM
# ============================================================================


class ProofKind(Enum):
    """
    Bundle variants carried by a ProofEnvelope.

    - SENDER: outgoing transfer (SenderBundle)
    - RECEIVER: accept of pending deposits (ReceiverEnvelope)
    - MINT: public-amount mint (MintProof)
    - BURN: public-amount burn (BurnProof)
    - DISCLOSURE: proof-gated decryption (DisclosureProof)
    """

    SENDER = "sender"
    RECEIVER = "receiver"
    MINT = "mint"
    BURN = "burn"
    DISCLOSURE = "disclosure"


# ============================================================================
# PROOF ENVELOPE
# ============================================================================


@dataclass
class ProofEnvelope:
    """
    Tagged proof bundle for transport.

    Attributes:
        kind: Bundle variant
        payload: Fixed-layout bundle bytes
        ciphertext: Side ciphertext (burn only)
        version: Envelope format version

    Example:
        >>> env = ProofEnvelope(kind=ProofKind.MINT, payload=mint.to_bytes())
        >>> restored = ProofEnvelope.deserialize(env.serialize())
        >>> assert restored.kind is ProofKind.MINT
    """

    kind: ProofKind
    payload: bytes
    ciphertext: Optional[bytes] = None
    version: int = PROOF_VERSION

    @property
    def format(self) -> str:
        return SERIALIZATION_FORMAT

    def serialize(self) -> bytes:
        """
        Serialize the envelope to CBOR.

        Raises:
            CryptographicError: If serialization fails
        """
        if len(self.payload) > MAX_PROOF_SIZE_BYTES:
            raise MalformedEncoding(
                f"payload exceeds {MAX_PROOF_SIZE_BYTES} bytes"
            )
        try:
            data = {
                "v": self.version,
                "t": self.kind.value,
                "p": self.payload,
            }
            if self.ciphertext is not None:
                data["ct"] = self.ciphertext
            return cbor2.dumps(data)
        except Exception as e:
            raise CryptographicError(f"Failed to serialize envelope: {e}") from e

    @classmethod
    def deserialize(cls, data: bytes) -> "ProofEnvelope":
        """
        Deserialize an envelope from CBOR bytes.

        Raises:
            MalformedEncoding: If the structure, kind or version is invalid
        """
        try:
            obj = cbor2.loads(data)
        except Exception as e:
            raise MalformedEncoding(f"Failed to deserialize envelope: {e}") from e

        if not isinstance(obj, dict):
            raise MalformedEncoding("Invalid envelope format: expected a map")

        version = obj.get("v")
        if version != PROOF_VERSION:
            raise MalformedEncoding(
                f"Unsupported envelope version: {version} "
                f"(expected {PROOF_VERSION})"
            )

        if "t" not in obj or "p" not in obj:
            raise MalformedEncoding("Invalid envelope format: missing required fields")

        try:
            kind = ProofKind(obj["t"])
        except ValueError as e:
            raise MalformedEncoding(f"Unknown proof kind: {obj['t']!r}") from e

        payload = obj["p"]
        if not isinstance(payload, bytes) or len(payload) > MAX_PROOF_SIZE_BYTES:
            raise MalformedEncoding("Invalid envelope payload")

        ciphertext = obj.get("ct")
        if ciphertext is not None and not isinstance(ciphertext, bytes):
            raise MalformedEncoding("Invalid envelope ciphertext")

        return cls(kind=kind, payload=payload, ciphertext=ciphertext, version=version)

    def to_dict(self) -> dict:
        """JSON-friendly view with hex-encoded binary fields."""
        return {
            "version": self.version,
            "kind": self.kind.value,
            "payload": self.payload.hex(),
            "ciphertext": self.ciphertext.hex() if self.ciphertext else None,
        }
