"""
⚠️ DRAFT — requires crypto review before production use

Tests for the sigma protocols (link, key possession, DLEQ) and transcripts.

Test Coverage:
1. Transcript binding and determinism
2. Link proof completeness and soundness checks
3. Key possession
4. DLEQ decryption proofs
5. Wire sizes
"""

import pytest

from ..commitments import commit_point, get_cached_curve_params
from ..elgamal import decode_ciphertext, decode_public_key, encrypt, keygen
from ..schnorr import (
    DleqProof,
    KeyProof,
    LinkProof,
    prove_dleq,
    prove_key_possession,
    prove_link,
    verify_dleq,
    verify_key_possession,
    verify_link,
)
from ..transcript import Transcript, encode_asset_id, transcript_bind
from ...config import GROUP_ORDER
from ...exceptions import LinkProofInvalid, MalformedEncoding
from ...security import RandomnessSource

NET = b"\x00" * 32
CTX = transcript_bind(b"ASSET", NET)


def _t():
    return Transcript(b"TEST", CTX)


@pytest.fixture
def rng():
    return RandomnessSource()


@pytest.fixture
def statement():
    """Ciphertext and commitment to the same value under a fresh key."""
    sk, pk = keygen()
    value, nonce, rho = 777, 1234567, 7654321
    ct = encrypt(value, pk, nonce)
    c_k, d = decode_ciphertext(ct)
    return {
        "sk": sk,
        "pk": decode_public_key(pk),
        "c_k": c_k,
        "d": d,
        "delta_c": commit_point(value, rho),
        "value": value,
        "nonce": nonce,
        "rho": rho,
    }


# ============================================================================
# TEST: TRANSCRIPT
# ============================================================================


class TestTranscript:
    def test_context_is_32_bytes(self):
        assert len(CTX) == 32

    def test_context_depends_on_asset(self):
        assert transcript_bind(b"A", NET) != transcript_bind(b"B", NET)

    def test_context_depends_on_network(self):
        assert transcript_bind(b"A", NET) != transcript_bind(b"A", b"\x01" * 32)

    def test_int_asset_ids(self):
        assert encode_asset_id(1) == b"\x01" + (1).to_bytes(8, "little")
        assert transcript_bind(1, NET) != transcript_bind(2, NET)

    def test_asset_id_encoding_is_injective(self):
        ids = [1, b"\x01", b"\x01\x00", b"\x01" + bytes(7), b"\x01" + bytes(31), b""]
        contexts = {transcript_bind(a, NET) for a in ids}
        assert len(contexts) == len(ids)

    @pytest.mark.parametrize("asset_id", [b"x" * 33, -1, 2**64])
    def test_invalid_asset_id(self, asset_id):
        with pytest.raises(ValueError):
            transcript_bind(asset_id, NET)

    def test_invalid_network_id(self):
        with pytest.raises(ValueError):
            transcript_bind(b"A", b"\x00" * 31)

    def test_same_appends_same_challenge(self):
        t1, t2 = _t(), _t()
        for t in (t1, t2):
            t.append_message(b"m", b"hello")
            t.append_u64(b"n", 5)

        assert t1.challenge_scalar(b"c") == t2.challenge_scalar(b"c")

    def test_label_changes_challenge(self):
        t1, t2 = _t(), _t()
        t1.append_message(b"a", b"x")
        t2.append_message(b"b", b"x")

        assert t1.challenge_scalar(b"c") != t2.challenge_scalar(b"c")

    def test_challenges_chain(self):
        t = _t()
        assert t.challenge_scalar(b"c") != t.challenge_scalar(b"c")

    def test_fork_is_independent(self):
        t = _t()
        child = t.fork(b"child")
        before = t.state()
        child.append_message(b"m", b"x")

        assert t.state() == before
        assert child.state() != before

    def test_challenge_in_range(self):
        assert 0 <= _t().challenge_scalar(b"c") < GROUP_ORDER


# ============================================================================
# TEST: LINK PROOF
# ============================================================================


class TestLinkProof:
    def test_valid_proof(self, statement, rng):
        s = statement
        proof = prove_link(
            _t(), s["pk"], s["c_k"], s["d"], s["delta_c"],
            s["value"], s["nonce"], s["rho"], rng,
        )
        verify_link(_t(), s["pk"], s["c_k"], s["d"], s["delta_c"], proof)

    def test_size(self, statement, rng):
        s = statement
        proof = prove_link(
            _t(), s["pk"], s["c_k"], s["d"], s["delta_c"],
            s["value"], s["nonce"], s["rho"], rng,
        )

        data = proof.to_bytes()

        assert len(data) == LinkProof.SIZE == 195
        assert LinkProof.from_bytes(data) == proof

    def test_mismatched_commitment_rejected(self, statement, rng):
        """Ciphertext hides 777, commitment hides 778."""
        s = statement
        wrong_c = commit_point(s["value"] + 1, s["rho"])
        proof = prove_link(
            _t(), s["pk"], s["c_k"], s["d"], wrong_c,
            s["value"], s["nonce"], s["rho"], rng,
        )
        with pytest.raises(LinkProofInvalid):
            verify_link(_t(), s["pk"], s["c_k"], s["d"], wrong_c, proof)

    def test_different_transcript_rejected(self, statement, rng):
        s = statement
        proof = prove_link(
            _t(), s["pk"], s["c_k"], s["d"], s["delta_c"],
            s["value"], s["nonce"], s["rho"], rng,
        )
        other = Transcript(b"TEST", transcript_bind(b"OTHER", NET))
        with pytest.raises(LinkProofInvalid):
            verify_link(other, s["pk"], s["c_k"], s["d"], s["delta_c"], proof)

    def test_public_value(self, rng):
        sk, pk = keygen()
        pk_pt = decode_public_key(pk)
        c_k, d = decode_ciphertext(encrypt(50, pk, 99))
        delta_c = commit_point(50, 0)

        proof = prove_link(
            _t(), pk_pt, c_k, d, delta_c, 50, 99, 0, rng, public_value=True
        )

        verify_link(_t(), pk_pt, c_k, d, delta_c, proof, public_value=50)
        with pytest.raises(LinkProofInvalid):
            verify_link(_t(), pk_pt, c_k, d, delta_c, proof, public_value=51)

    def test_wrong_size_bytes(self):
        with pytest.raises(MalformedEncoding):
            LinkProof.from_bytes(b"\x00" * 194)


# ============================================================================
# TEST: KEY POSSESSION
# ============================================================================


class TestKeyProof:
    def test_valid(self, rng):
        sk, pk = keygen()
        pk_pt = decode_public_key(pk)

        proof = prove_key_possession(_t(), pk_pt, sk, rng)

        verify_key_possession(_t(), pk_pt, proof)
        assert len(proof.to_bytes()) == KeyProof.SIZE == 65

    def test_wrong_key(self, rng):
        sk, _ = keygen()
        _, other_pk = keygen()
        pk_pt = decode_public_key(other_pk)

        proof = prove_key_possession(_t(), pk_pt, sk, rng)

        with pytest.raises(LinkProofInvalid):
            verify_key_possession(_t(), pk_pt, proof)


# ============================================================================
# TEST: DLEQ
# ============================================================================


class TestDleq:
    def test_valid(self, statement, rng):
        s = statement
        proof = prove_dleq(_t(), s["pk"], s["c_k"], s["d"], s["value"], s["sk"], rng)

        verify_dleq(_t(), s["pk"], s["c_k"], s["d"], s["value"], proof)
        assert len(proof.to_bytes()) == DleqProof.SIZE == 98
        assert DleqProof.from_bytes(proof.to_bytes()) == proof

    def test_claimed_value_must_match(self, statement, rng):
        s = statement
        proof = prove_dleq(_t(), s["pk"], s["c_k"], s["d"], s["value"] + 1, s["sk"], rng)

        with pytest.raises(LinkProofInvalid):
            verify_dleq(_t(), s["pk"], s["c_k"], s["d"], s["value"] + 1, proof)

    def test_other_key_cannot_prove(self, statement, rng):
        s = statement
        other_sk, _ = keygen()
        proof = prove_dleq(_t(), s["pk"], s["c_k"], s["d"], s["value"], other_sk, rng)

        with pytest.raises(LinkProofInvalid):
            verify_dleq(_t(), s["pk"], s["c_k"], s["d"], s["value"], proof)


def test_params_shared():
    """Sigma proofs run on the cached curve."""
    assert get_cached_curve_params() is get_cached_curve_params()
