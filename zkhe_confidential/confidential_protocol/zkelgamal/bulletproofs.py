"""
⚠️ DRAFT — requires crypto review before production use

Single-value 64-bit Bulletproof range proofs (Bünz et al., S&P 2018).

Proves that a Pedersen commitment V = v*G + gamma*H opens to v in [0, 2^64)
without revealing v. The proof is logarithmic in the bit length: four points,
three scalars, 2*log2(64) = 12 inner-product points and two final scalars
(688 bytes with 33-byte points).

Generators:
    G_i, H_i (i < 64) and the inner-product base U are hash-to-point outputs
    of BULLETPROOF_GENERATOR_SEED with distinct labels. The blinding generator
    is the Pedersen H shared with commitments.

Verification checks two equations:
    1. t_hat*G + tau_x*H == z^2*V + delta(y,z)*G + x*T1 + x^2*T2
    2. The inner-product argument, collapsed into a single multiexp that must
       equal the identity.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from ..config import (
    BULLETPROOF_GENERATOR_SEED,
    DOMAIN_SEPARATORS,
    GROUP_ORDER,
    POINT_SIZE_BYTES,
    RANGE_BITS,
    SCALAR_SIZE_BYTES,
)
from ..exceptions import MalformedEncoding, RangeProofInvalid
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

logger = logging.getLogger(__name__)

q = GROUP_ORDER
LOG_BITS = RANGE_BITS.bit_length() - 1
RANGE_PROOF_SIZE_BYTES = (4 + 2 * LOG_BITS) * POINT_SIZE_BYTES + 5 * SCALAR_SIZE_BYTES


# ============================================================================
# GENERATORS (cached)
# ============================================================================


@dataclass(frozen=True)
class BulletproofGenerators:
    G_vec: Tuple[Any, ...]
    H_vec: Tuple[Any, ...]
    U: Any


_GENERATORS_CACHE: Optional[BulletproofGenerators] = None
_GENERATORS_LOCK = threading.Lock()


def _derive_generators(params: CurveParameters) -> BulletproofGenerators:
    group = params.group
    g_vec = tuple(
        group.hash_to_point(BULLETPROOF_GENERATOR_SEED + b"/G/" + i.to_bytes(4, "big"))
        for i in range(RANGE_BITS)
    )
    h_vec = tuple(
        group.hash_to_point(BULLETPROOF_GENERATOR_SEED + b"/H/" + i.to_bytes(4, "big"))
        for i in range(RANGE_BITS)
    )
    u = group.hash_to_point(BULLETPROOF_GENERATOR_SEED + b"/U")
    return BulletproofGenerators(G_vec=g_vec, H_vec=h_vec, U=u)


def get_generators() -> BulletproofGenerators:
    """Vector generators, derived once (double-checked locking)."""
    global _GENERATORS_CACHE

    if _GENERATORS_CACHE is not None:
        return _GENERATORS_CACHE

    with _GENERATORS_LOCK:
        if _GENERATORS_CACHE is None:
            _GENERATORS_CACHE = _derive_generators(get_cached_curve_params())

    return _GENERATORS_CACHE


# ============================================================================
# SCALAR VECTOR HELPERS
# ============================================================================


def _inner(a: Sequence[int], b: Sequence[int]) -> int:
    return sum(x * y for x, y in zip(a, b)) % q


def _powers(base: int, n: int) -> List[int]:
    out = [1] * n
    for i in range(1, n):
        out[i] = out[i - 1] * base % q
    return out


def _inv(x: int) -> int:
    return pow(x, -1, q)


def range_transcript(context: bytes, label: bytes) -> Transcript:
    """Fresh range-proof transcript for one committed value."""
    t = Transcript(DOMAIN_SEPARATORS["range_proof"], context)
    t.append_message(b"range_label", label)
    return t


def _challenge(t: Transcript, label: bytes) -> int:
    c = t.challenge_scalar(label)
    if c == 0:
        raise RangeProofInvalid(f"degenerate zero challenge {label!r}")
    return c


# ============================================================================
# PROOF STRUCTURE
# ============================================================================


@dataclass(frozen=True)
class RangeProof:
    """
    A, S, T1, T2, tau_x, mu, t_hat, (L_i, R_i) * 6, a, b.
    """

    A: Any
    S: Any
    T1: Any
    T2: Any
    tau_x: int
    mu: int
    t_hat: int
    L: Tuple[Any, ...]
    R: Tuple[Any, ...]
    a: int
    b: int

    def to_bytes(self) -> bytes:
        out = bytearray()
        for point in (self.A, self.S, self.T1, self.T2):
            out.extend(encode_point(point))
        for scalar in (self.tau_x, self.mu, self.t_hat):
            out.extend(encode_scalar(scalar))
        for left, right in zip(self.L, self.R):
            out.extend(encode_point(left))
            out.extend(encode_point(right))
        out.extend(encode_scalar(self.a))
        out.extend(encode_scalar(self.b))
        return bytes(out)

    @classmethod
    def from_bytes(cls, data: bytes, params=None) -> "RangeProof":
        """
        Raises:
            MalformedEncoding: If the length or a scalar is invalid
            InvalidCurvePoint: If a point does not decode
        """
        if not isinstance(data, (bytes, bytearray)) or len(data) != RANGE_PROOF_SIZE_BYTES:
            raise MalformedEncoding(
                f"range proof must be {RANGE_PROOF_SIZE_BYTES} bytes"
            )
        data = bytes(data)
        pos = 0

        def point():
            nonlocal pos
            pt = decode_point(data[pos:pos + POINT_SIZE_BYTES], params)
            pos += POINT_SIZE_BYTES
            return pt

        def scalar():
            nonlocal pos
            s = decode_scalar(data[pos:pos + SCALAR_SIZE_BYTES])
            pos += SCALAR_SIZE_BYTES
            return s

        A, S, T1, T2 = point(), point(), point(), point()
        tau_x, mu, t_hat = scalar(), scalar(), scalar()
        L, R = [], []
        for _ in range(LOG_BITS):
            L.append(point())
            R.append(point())
        a, b = scalar(), scalar()
        return cls(A, S, T1, T2, tau_x, mu, t_hat, tuple(L), tuple(R), a, b)


# ============================================================================
# PROVER
# ============================================================================


def prove_range(
    transcript: Transcript,
    value: int,
    blinding: int,
    randomness_source: RandomnessSource,
    params: Optional[CurveParameters] = None,
) -> RangeProof:
    """
    Prove that commit(value, blinding) holds a value in [0, 2^64).

    Args:
        transcript: Range transcript (see ``range_transcript``)
        value: Committed value
        blinding: Commitment blinding factor
        randomness_source: Source of prover randomness

    Raises:
        ValueError: If value is outside [0, 2^64)
    """
    if params is None:
        params = get_cached_curve_params()
    if not isinstance(value, int) or not (0 <= value < (1 << RANGE_BITS)):
        raise ValueError(f"value must be in [0, 2^{RANGE_BITS})")

    n = RANGE_BITS
    gens = get_generators()
    G, H = params.G, params.H
    rng = randomness_source

    V = multiexp([value, blinding], [G, H], params)
    transcript.append_u64(b"n", n)
    transcript.append_point(b"V", V)

    a_L = [(value >> i) & 1 for i in range(n)]
    a_R = [(bit - 1) % q for bit in a_L]

    alpha = rng.get_random_scalar_mod_order()
    A = multiexp(
        [alpha] + a_L + a_R, [H] + list(gens.G_vec) + list(gens.H_vec), params
    )

    s_L = [rng.get_random_scalar_mod_order() for _ in range(n)]
    s_R = [rng.get_random_scalar_mod_order() for _ in range(n)]
    rho = rng.get_random_scalar_mod_order()
    S = multiexp([rho] + s_L + s_R, [H] + list(gens.G_vec) + list(gens.H_vec), params)

    transcript.append_point(b"A", A)
    transcript.append_point(b"S", S)
    y = _challenge(transcript, b"y")
    z = _challenge(transcript, b"z")

    y_n = _powers(y, n)
    two_n = _powers(2, n)
    z2 = z * z % q

    # l(X) = l0 + l1*X, r(X) = r0 + r1*X
    l0 = [(x - z) % q for x in a_L]
    l1 = s_L
    r0 = [(y_n[i] * (a_R[i] + z) + z2 * two_n[i]) % q for i in range(n)]
    r1 = [(y_n[i] * s_R[i]) % q for i in range(n)]

    t1 = (_inner(l0, r1) + _inner(l1, r0)) % q
    t2 = _inner(l1, r1)

    tau1 = rng.get_random_scalar_mod_order()
    tau2 = rng.get_random_scalar_mod_order()
    T1 = multiexp([t1, tau1], [G, H], params)
    T2 = multiexp([t2, tau2], [G, H], params)

    transcript.append_point(b"T1", T1)
    transcript.append_point(b"T2", T2)
    x = _challenge(transcript, b"x")

    tau_x = (tau2 * x * x + tau1 * x + z2 * blinding) % q
    mu = (alpha + rho * x) % q
    l_vec = [(l0[i] + l1[i] * x) % q for i in range(n)]
    r_vec = [(r0[i] + r1[i] * x) % q for i in range(n)]
    t_hat = _inner(l_vec, r_vec)

    transcript.append_scalar(b"tau_x", tau_x)
    transcript.append_scalar(b"mu", mu)
    transcript.append_scalar(b"t_hat", t_hat)
    w = _challenge(transcript, b"w")
    Q = multiexp([w], [gens.U], params)

    y_inv = _inv(y)
    y_inv_n = _powers(y_inv, n)
    h_prime = [multiexp([y_inv_n[i]], [gens.H_vec[i]], params) for i in range(n)]

    L, R, a, b = _prove_inner_product(
        transcript, list(gens.G_vec), h_prime, Q, l_vec, r_vec, params
    )

    logger.debug("Built range proof")
    return RangeProof(A, S, T1, T2, tau_x, mu, t_hat, tuple(L), tuple(R), a, b)


def _prove_inner_product(
    transcript: Transcript,
    g_vec: List[Any],
    h_vec: List[Any],
    Q: Any,
    a_vec: List[int],
    b_vec: List[int],
    params: CurveParameters,
):
    L_out, R_out = [], []
    n = len(a_vec)

    while n > 1:
        n //= 2
        a_lo, a_hi = a_vec[:n], a_vec[n:]
        b_lo, b_hi = b_vec[:n], b_vec[n:]
        g_lo, g_hi = g_vec[:n], g_vec[n:]
        h_lo, h_hi = h_vec[:n], h_vec[n:]

        c_L = _inner(a_lo, b_hi)
        c_R = _inner(a_hi, b_lo)

        L = multiexp(a_lo + b_hi + [c_L], g_hi + h_lo + [Q], params)
        R = multiexp(a_hi + b_lo + [c_R], g_lo + h_hi + [Q], params)
        L_out.append(L)
        R_out.append(R)

        transcript.append_point(b"L", L)
        transcript.append_point(b"R", R)
        u = _challenge(transcript, b"u")
        u_inv = _inv(u)

        a_vec = [(a_lo[i] * u + a_hi[i] * u_inv) % q for i in range(n)]
        b_vec = [(b_lo[i] * u_inv + b_hi[i] * u) % q for i in range(n)]
        g_vec = [multiexp([u_inv, u], [g_lo[i], g_hi[i]], params) for i in range(n)]
        h_vec = [multiexp([u, u_inv], [h_lo[i], h_hi[i]], params) for i in range(n)]

    return L_out, R_out, a_vec[0], b_vec[0]


# ============================================================================
# VERIFIER
# ============================================================================


def verify_range(
    transcript: Transcript,
    commitment: Any,
    proof: RangeProof,
    params: Optional[CurveParameters] = None,
) -> None:
    """
    Verify a range proof for ``commitment`` (EcPt).

    Raises:
        RangeProofInvalid: If either verification equation fails
    """
    if params is None:
        params = get_cached_curve_params()

    n = RANGE_BITS
    gens = get_generators()
    G, H = params.G, params.H

    if len(proof.L) != LOG_BITS or len(proof.R) != LOG_BITS:
        raise RangeProofInvalid("wrong number of inner-product rounds")

    transcript.append_u64(b"n", n)
    transcript.append_point(b"V", commitment)
    transcript.append_point(b"A", proof.A)
    transcript.append_point(b"S", proof.S)
    y = _challenge(transcript, b"y")
    z = _challenge(transcript, b"z")
    transcript.append_point(b"T1", proof.T1)
    transcript.append_point(b"T2", proof.T2)
    x = _challenge(transcript, b"x")
    transcript.append_scalar(b"tau_x", proof.tau_x)
    transcript.append_scalar(b"mu", proof.mu)
    transcript.append_scalar(b"t_hat", proof.t_hat)
    w = _challenge(transcript, b"w")

    u_vals = []
    for left, right in zip(proof.L, proof.R):
        transcript.append_point(b"L", left)
        transcript.append_point(b"R", right)
        u_vals.append(_challenge(transcript, b"u"))

    y_n = _powers(y, n)
    two_n = _powers(2, n)
    z2 = z * z % q
    z3 = z2 * z % q

    # Polynomial identity
    delta = ((z - z2) * sum(y_n) - z3 * sum(two_n)) % q
    lhs = multiexp([proof.t_hat, proof.tau_x], [G, H], params)
    rhs = multiexp(
        [z2, delta, x, x * x % q],
        [commitment, G, proof.T1, proof.T2],
        params,
    )
    if lhs != rhs:
        raise RangeProofInvalid("polynomial commitment check failed")

    # Inner-product argument as one multiexp
    y_inv_n = _powers(_inv(y), n)
    u_inv = [_inv(u) for u in u_vals]

    s = []
    for i in range(n):
        acc = 1
        for j, u in enumerate(u_vals):
            bit = (i >> (LOG_BITS - 1 - j)) & 1
            acc = acc * (u if bit else u_inv[j]) % q
        s.append(acc)

    g_scalars = [(-z - proof.a * s[i]) % q for i in range(n)]
    h_scalars = [
        (z + z2 * two_n[i] * y_inv_n[i] - proof.b * _inv(s[i]) * y_inv_n[i]) % q
        for i in range(n)
    ]

    scalars = [1, x, (-proof.mu) % q, (w * (proof.t_hat - proof.a * proof.b)) % q]
    points = [proof.A, proof.S, H, gens.U]
    scalars += g_scalars + h_scalars
    points += list(gens.G_vec) + list(gens.H_vec)
    for j in range(LOG_BITS):
        scalars.append(u_vals[j] * u_vals[j] % q)
        points.append(proof.L[j])
        scalars.append(u_inv[j] * u_inv[j] % q)
        points.append(proof.R[j])

    if not multiexp(scalars, points, params).is_infinite():
        raise RangeProofInvalid("inner product check failed")
