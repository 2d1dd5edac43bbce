"""
Unit tests for ProofEnvelope CBOR transport.
"""

import cbor2
import pytest

from zkhe_confidential.confidential_protocol.config import (
    MAX_PROOF_SIZE_BYTES,
    PROOF_VERSION,
)
from zkhe_confidential.confidential_protocol.exceptions import MalformedEncoding
from zkhe_confidential.confidential_protocol.types import ProofEnvelope, ProofKind


class TestProofKind:
    def test_values(self):
        assert {k.value for k in ProofKind} == {
            "sender",
            "receiver",
            "mint",
            "burn",
            "disclosure",
        }


class TestProofEnvelope:
    def test_round_trip(self):
        env = ProofEnvelope(kind=ProofKind.SENDER, payload=b"\x01\x02\x03")
        restored = ProofEnvelope.deserialize(env.serialize())

        assert restored == env
        assert restored.ciphertext is None
        assert restored.version == PROOF_VERSION

    def test_burn_carries_ciphertext(self):
        env = ProofEnvelope(kind=ProofKind.BURN, payload=b"p", ciphertext=b"\x02" * 66)
        assert ProofEnvelope.deserialize(env.serialize()).ciphertext == b"\x02" * 66

    def test_format(self):
        assert ProofEnvelope(kind=ProofKind.MINT, payload=b"").format == "CBOR"

    def test_to_dict(self):
        env = ProofEnvelope(kind=ProofKind.MINT, payload=b"\xab")
        assert env.to_dict() == {
            "version": PROOF_VERSION,
            "kind": "mint",
            "payload": "ab",
            "ciphertext": None,
        }

    def test_oversized_payload(self):
        env = ProofEnvelope(kind=ProofKind.MINT, payload=b"\x00" * (MAX_PROOF_SIZE_BYTES + 1))
        with pytest.raises(MalformedEncoding):
            env.serialize()

    def test_unknown_version(self):
        data = cbor2.dumps({"v": PROOF_VERSION + 1, "t": "mint", "p": b""})
        with pytest.raises(MalformedEncoding, match="version"):
            ProofEnvelope.deserialize(data)

    def test_unknown_kind(self):
        data = cbor2.dumps({"v": PROOF_VERSION, "t": "teleport", "p": b""})
        with pytest.raises(MalformedEncoding, match="kind"):
            ProofEnvelope.deserialize(data)

    @pytest.mark.parametrize(
        "obj",
        [
            [1, 2, 3],
            {"v": PROOF_VERSION, "t": "mint"},
            {"v": PROOF_VERSION, "t": "mint", "p": "text"},
            {"v": PROOF_VERSION, "t": "burn", "p": b"", "ct": 5},
        ],
    )
    def test_invalid_structure(self, obj):
        with pytest.raises(MalformedEncoding):
            ProofEnvelope.deserialize(cbor2.dumps(obj))

    def test_garbage(self):
        with pytest.raises(MalformedEncoding):
            ProofEnvelope.deserialize(b"\xff\xff\xff")
