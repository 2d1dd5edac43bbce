"""
⚠️ DRAFT — requires crypto review before production use

Schnorr-style sigma proofs made non-interactive with Fiat-Shamir.

Link proof (ciphertext <-> commitment equality):
    Statement: C_k = k*G, D = v*G + k*pk, dC = v*G + rho*H
    Prover:    A1 = a_k*G, A2 = a_v*G + a_k*pk, A3 = a_v*G + a_r*H
               c = transcript challenge
               z_k = a_k + c*k, z_v = a_v + c*v, z_r = a_r + c*rho
    Verifier:  z_k*G           == A1 + c*C_k
               z_v*G + z_k*pk  == A2 + c*D
               z_v*G + z_r*H   == A3 + c*dC
    With a public value v (mint/burn) the prover sets a_v = 0 and the
    verifier additionally checks z_v == c*v.

Key possession:
    A = a*G, z = a + c*sk; check z*G == A + c*pk

Decryption (Chaum-Pedersen DLEQ):
    Statement: pk = sk*G and D - v*G = sk*C_k
    A1 = a*G, A2 = a*C_k, z = a + c*sk
    Check z*G == A1 + c*pk and z*C_k == A2 + c*(D - v*G)

Every proof takes the caller's Transcript, which already carries the context
tag and the public statement; challenges are always re-derived, never read
from the proof.

Security Requirements:
    1. Nonces MUST be random and unique per proof (nonce reuse leaks witnesses)
    2. Challenges MUST come from the transcript (binds context and statement)
    3. All scalar operations MUST be modulo GROUP_ORDER
"""

from dataclasses import dataclass
from typing import Any, Optional

from ..config import GROUP_ORDER, POINT_SIZE_BYTES, SCALAR_SIZE_BYTES
from ..exceptions import LinkProofInvalid, MalformedEncoding
from ..security import RandomnessSource
from .commitments import (
    CurveParameters,
    decode_point,
    decode_scalar,
    encode_point,
    encode_scalar,
    get_cached_curve_params,
    multiexp,
)
from .transcript import Transcript

P = POINT_SIZE_BYTES
S = SCALAR_SIZE_BYTES


def _nonce(rng: RandomnessSource) -> int:
    # Zero nonce leaks the witness: z = c*w
    return rng.get_nonzero_scalar()


def _challenge(transcript: Transcript, label: bytes) -> int:
    c = transcript.challenge_scalar(label)
    if c == 0:
        raise LinkProofInvalid("degenerate zero challenge")
    return c


def _split(data: bytes, expected: int, name: str) -> bytes:
    if not isinstance(data, (bytes, bytearray)) or len(data) != expected:
        raise MalformedEncoding(f"{name} must be {expected} bytes")
    return bytes(data)


# ============================================================================
# LINK PROOF
# ============================================================================


@dataclass(frozen=True)
class LinkProof:
    """A1 || A2 || A3 || z_k || z_v || z_r (195 bytes)."""

    A1: Any
    A2: Any
    A3: Any
    z_k: int
    z_v: int
    z_r: int

    SIZE = 3 * P + 3 * S

    def to_bytes(self) -> bytes:
        return (
            encode_point(self.A1)
            + encode_point(self.A2)
            + encode_point(self.A3)
            + encode_scalar(self.z_k)
            + encode_scalar(self.z_v)
            + encode_scalar(self.z_r)
        )

    @classmethod
    def from_bytes(cls, data: bytes, params=None) -> "LinkProof":
        data = _split(data, cls.SIZE, "link proof")
        return cls(
            A1=decode_point(data[0:P], params),
            A2=decode_point(data[P:2 * P], params),
            A3=decode_point(data[2 * P:3 * P], params),
            z_k=decode_scalar(data[3 * P:3 * P + S]),
            z_v=decode_scalar(data[3 * P + S:3 * P + 2 * S]),
            z_r=decode_scalar(data[3 * P + 2 * S:]),
        )


def _append_link_statement(t: Transcript, pk, c_k, d, delta_c) -> None:
    t.append_message(b"proof", b"link")
    t.append_point(b"link_pk", pk)
    t.append_point(b"link_ck", c_k)
    t.append_point(b"link_d", d)
    t.append_point(b"link_dc", delta_c)


def prove_link(
    transcript: Transcript,
    pk: Any,
    c_k: Any,
    d: Any,
    delta_c: Any,
    value: int,
    nonce: int,
    rho: int,
    randomness_source: RandomnessSource,
    public_value: bool = False,
    params: Optional[CurveParameters] = None,
) -> LinkProof:
    """
    Prove that ciphertext (c_k, d) under ``pk`` and commitment ``delta_c``
    hide the same value.

    Args:
        transcript: Transcript already bound to context and statement
        pk: Encryption public key (EcPt)
        c_k, d: Ciphertext halves (EcPt)
        delta_c: Pedersen commitment (EcPt)
        value, nonce, rho: Witness (v, k, rho)
        randomness_source: Nonce source
        public_value: If True, v is known to the verifier
    """
    if params is None:
        params = get_cached_curve_params()

    a_k = _nonce(randomness_source)
    a_v = 0 if public_value else _nonce(randomness_source)
    a_r = _nonce(randomness_source)

    A1 = multiexp([a_k], [params.G], params)
    A2 = multiexp([a_v, a_k], [params.G, pk], params)
    A3 = multiexp([a_v, a_r], [params.G, params.H], params)

    _append_link_statement(transcript, pk, c_k, d, delta_c)
    transcript.append_point(b"A1", A1)
    transcript.append_point(b"A2", A2)
    transcript.append_point(b"A3", A3)
    c = _challenge(transcript, b"link_c")

    return LinkProof(
        A1=A1,
        A2=A2,
        A3=A3,
        z_k=(a_k + c * nonce) % GROUP_ORDER,
        z_v=(a_v + c * value) % GROUP_ORDER,
        z_r=(a_r + c * rho) % GROUP_ORDER,
    )


def verify_link(
    transcript: Transcript,
    pk: Any,
    c_k: Any,
    d: Any,
    delta_c: Any,
    proof: LinkProof,
    public_value: Optional[int] = None,
    params: Optional[CurveParameters] = None,
) -> None:
    """
    Verify a link proof.

    Raises:
        LinkProofInvalid: If any verification equation fails
    """
    if params is None:
        params = get_cached_curve_params()

    _append_link_statement(transcript, pk, c_k, d, delta_c)
    transcript.append_point(b"A1", proof.A1)
    transcript.append_point(b"A2", proof.A2)
    transcript.append_point(b"A3", proof.A3)
    c = _challenge(transcript, b"link_c")

    lhs1 = multiexp([proof.z_k], [params.G], params)
    rhs1 = proof.A1 + multiexp([c], [c_k], params)
    if lhs1 != rhs1:
        raise LinkProofInvalid("nonce equation failed")

    lhs2 = multiexp([proof.z_v, proof.z_k], [params.G, pk], params)
    rhs2 = proof.A2 + multiexp([c], [d], params)
    if lhs2 != rhs2:
        raise LinkProofInvalid("ciphertext equation failed")

    lhs3 = multiexp([proof.z_v, proof.z_r], [params.G, params.H], params)
    rhs3 = proof.A3 + multiexp([c], [delta_c], params)
    if lhs3 != rhs3:
        raise LinkProofInvalid("commitment equation failed")

    if public_value is not None and proof.z_v != (c * public_value) % GROUP_ORDER:
        raise LinkProofInvalid("public value mismatch")


# ============================================================================
# KEY POSSESSION
# ============================================================================


@dataclass(frozen=True)
class KeyProof:
    """A || z (65 bytes)."""

    A: Any
    z: int

    SIZE = P + S

    def to_bytes(self) -> bytes:
        return encode_point(self.A) + encode_scalar(self.z)

    @classmethod
    def from_bytes(cls, data: bytes, params=None) -> "KeyProof":
        data = _split(data, cls.SIZE, "key proof")
        return cls(A=decode_point(data[:P], params), z=decode_scalar(data[P:]))


def prove_key_possession(
    transcript: Transcript,
    pk: Any,
    sk: int,
    randomness_source: RandomnessSource,
    params: Optional[CurveParameters] = None,
) -> KeyProof:
    """Schnorr proof of knowledge of sk with pk = sk*G."""
    if params is None:
        params = get_cached_curve_params()

    a = _nonce(randomness_source)
    A = multiexp([a], [params.G], params)

    transcript.append_message(b"proof", b"key")
    transcript.append_point(b"key_pk", pk)
    transcript.append_point(b"key_A", A)
    c = _challenge(transcript, b"key_c")

    return KeyProof(A=A, z=(a + c * sk) % GROUP_ORDER)


def verify_key_possession(
    transcript: Transcript,
    pk: Any,
    proof: KeyProof,
    params: Optional[CurveParameters] = None,
) -> None:
    """
    Raises:
        LinkProofInvalid: If the proof does not verify
    """
    if params is None:
        params = get_cached_curve_params()

    transcript.append_message(b"proof", b"key")
    transcript.append_point(b"key_pk", pk)
    transcript.append_point(b"key_A", proof.A)
    c = _challenge(transcript, b"key_c")

    if multiexp([proof.z], [params.G], params) != proof.A + multiexp([c], [pk], params):
        raise LinkProofInvalid("key possession proof failed")


# ============================================================================
# DLEQ (DECRYPTION) PROOF
# ============================================================================


@dataclass(frozen=True)
class DleqProof:
    """A1 || A2 || z (98 bytes)."""

    A1: Any
    A2: Any
    z: int

    SIZE = 2 * P + S

    def to_bytes(self) -> bytes:
        return encode_point(self.A1) + encode_point(self.A2) + encode_scalar(self.z)

    @classmethod
    def from_bytes(cls, data: bytes, params=None) -> "DleqProof":
        data = _split(data, cls.SIZE, "dleq proof")
        return cls(
            A1=decode_point(data[:P], params),
            A2=decode_point(data[P:2 * P], params),
            z=decode_scalar(data[2 * P:]),
        )


def prove_dleq(
    transcript: Transcript,
    pk: Any,
    c_k: Any,
    d: Any,
    value: int,
    sk: int,
    randomness_source: RandomnessSource,
    params: Optional[CurveParameters] = None,
) -> DleqProof:
    """Prove log_G(pk) == log_{C_k}(D - value*G)."""
    if params is None:
        params = get_cached_curve_params()

    a = _nonce(randomness_source)
    A1 = multiexp([a], [params.G], params)
    A2 = multiexp([a], [c_k], params)

    transcript.append_message(b"proof", b"dleq")
    transcript.append_point(b"dleq_pk", pk)
    transcript.append_point(b"dleq_ck", c_k)
    transcript.append_point(b"dleq_d", d)
    transcript.append_u64(b"dleq_v", value)
    transcript.append_point(b"dleq_A1", A1)
    transcript.append_point(b"dleq_A2", A2)
    c = _challenge(transcript, b"dleq_c")

    return DleqProof(A1=A1, A2=A2, z=(a + c * sk) % GROUP_ORDER)


def verify_dleq(
    transcript: Transcript,
    pk: Any,
    c_k: Any,
    d: Any,
    value: int,
    proof: DleqProof,
    params: Optional[CurveParameters] = None,
) -> None:
    """
    Raises:
        LinkProofInvalid: If either equation fails
    """
    if params is None:
        params = get_cached_curve_params()

    transcript.append_message(b"proof", b"dleq")
    transcript.append_point(b"dleq_pk", pk)
    transcript.append_point(b"dleq_ck", c_k)
    transcript.append_point(b"dleq_d", d)
    transcript.append_u64(b"dleq_v", value)
    transcript.append_point(b"dleq_A1", proof.A1)
    transcript.append_point(b"dleq_A2", proof.A2)
    c = _challenge(transcript, b"dleq_c")

    if multiexp([proof.z], [params.G], params) != proof.A1 + multiexp([c], [pk], params):
        raise LinkProofInvalid("disclosure key equation failed")

    shared = d + (-multiexp([value], [params.G], params))
    if multiexp([proof.z], [c_k], params) != proof.A2 + multiexp([c], [shared], params):
        raise LinkProofInvalid("disclosure decryption equation failed")
