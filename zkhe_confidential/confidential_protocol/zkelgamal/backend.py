"""
⚠️ DRAFT — requires crypto review before production use

ZK-ElGamal verifier backend.

Each verification runs the same five steps and stops at the first failure:

1. decode every fixed-size field (MalformedEncoding, InvalidCurvePoint)
2. rebuild the transcript from (network_id, asset_id) and the public inputs;
   a bundle bound to another context is TranscriptMismatch
3. range proofs (RangeProofInvalid)
4. link and key-possession proofs (LinkProofInvalid)
5. old/delta/new commitment identities (BalanceProofInvalid)

Nothing is returned unless every step passes.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Optional, Sequence

from ..config import (
    DOMAIN_SEPARATORS,
    NETWORK_ID_SIZE_BYTES,
    EngineConfig,
)
from ..exceptions import (
    BalanceProofInvalid,
    ConfigurationError,
    MalformedEncoding,
    ProofVerificationError,
    TranscriptMismatch,
)
from ..interfaces import (
    BurnResult,
    MintResult,
    NewDeposit,
    TransferReceivedResult,
    TransferSentResult,
    VerifierBackend,
)
from ..security import constant_time_compare
from .bulletproofs import range_transcript, verify_range
from .bundles import (
    BurnProof,
    DisclosureProof,
    MintProof,
    ReceiverEnvelope,
    SenderBundle,
)
from .commitments import (
    CurveParameters,
    commit_point,
    decode_point,
    encode_point,
    get_cached_curve_params,
)
from .elgamal import decode_ciphertext, decode_public_key
from .schnorr import verify_dleq, verify_key_possession, verify_link
from .transcript import Transcript, transcript_bind

logger = logging.getLogger(__name__)


def _rejections_logged(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except ProofVerificationError as e:
            logger.warning("%s rejected: %s: %s", method.__name__, type(e).__name__, e)
            raise

    return wrapper


def _expect_equal(actual: Any, expected: Any, what: str) -> None:
    if actual != expected:
        raise BalanceProofInvalid(f"{what} does not match the balance identity")


class ZkElGamalVerifier(VerifierBackend):
    """
    Verifier for Pedersen/ElGamal/Bulletproof bundles.

    Example:
        >>> verifier = ZkElGamalVerifier(network_id=b"\\x00" * 32)
        >>> result = verifier.verify_transfer_sent(
        ...     b"USDC", alice_pk, bob_pk, alice_avail, bob_pending, bundle_bytes)
        >>> result.new_pending_deposit.commitment
    """

    _BACKEND_NAME = "ZK-ElGamal"
    _BACKEND_VERSION = "0.1.0"

    def __init__(
        self,
        network_id: Optional[bytes] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        config = config or EngineConfig()
        if network_id is None:
            network_id = config.network_id
        if not isinstance(network_id, bytes) or len(network_id) != NETWORK_ID_SIZE_BYTES:
            raise ConfigurationError(
                f"network_id must be {NETWORK_ID_SIZE_BYTES} bytes"
            )
        self.network_id = network_id
        self.max_deposits = config.max_pending_deposits
        self.params: CurveParameters = get_cached_curve_params()

    @property
    def backend_name(self) -> str:
        return self._BACKEND_NAME

    @property
    def backend_version(self) -> str:
        return self._BACKEND_VERSION

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _context(self, asset_id, embedded: bytes) -> bytes:
        try:
            expected = transcript_bind(asset_id, self.network_id)
        except (TypeError, ValueError) as e:
            raise MalformedEncoding(f"invalid asset id: {e}") from e
        if not constant_time_compare(embedded, expected):
            raise TranscriptMismatch("proof is bound to a different asset or network")
        return expected

    def _point(self, data: bytes) -> Any:
        return decode_point(data, self.params)

    def _key(self, data: bytes) -> Any:
        return decode_public_key(data, self.params)

    # ------------------------------------------------------------------
    # transfer
    # ------------------------------------------------------------------

    @_rejections_logged
    def verify_transfer_sent(
        self,
        asset_id,
        sender_pk: bytes,
        receiver_pk: bytes,
        claimed_sender_available: bytes,
        claimed_receiver_pending: bytes,
        bundle: bytes,
    ) -> TransferSentResult:
        # 1. decode
        b = SenderBundle.from_bytes(bundle, self.params)
        sender_pt = self._key(sender_pk)
        receiver_pt = self._key(receiver_pk)
        available_old = self._point(claimed_sender_available)
        pending_old = self._point(claimed_receiver_pending)
        delta_c = self._point(b.delta_commitment)
        available_new = self._point(b.new_sender_available)
        pending_new = self._point(b.new_receiver_pending)
        c_k, d = decode_ciphertext(b.ciphertext, self.params)

        # 2. transcript
        ctx = self._context(asset_id, b.context)
        t = Transcript(DOMAIN_SEPARATORS["transfer"], ctx)
        t.append_point(b"sender_pk", sender_pt)
        t.append_point(b"receiver_pk", receiver_pt)
        t.append_point(b"sender_available_old", available_old)
        t.append_point(b"receiver_pending_old", pending_old)
        t.append_point(b"sender_available_new", available_new)
        t.append_point(b"receiver_pending_new", pending_new)

        # 3. range
        verify_range(range_transcript(ctx, b"range_delta"), delta_c, b.range_proof, self.params)
        verify_range(
            range_transcript(ctx, b"range_sender_new"),
            available_new,
            b.balance_proof,
            self.params,
        )

        # 4. link + key possession
        verify_link(t, receiver_pt, c_k, d, delta_c, b.link_proof, params=self.params)
        verify_key_possession(t, sender_pt, b.key_proof, self.params)

        # 5. balance identity
        _expect_equal(available_new, available_old + (-delta_c), "new sender available")
        _expect_equal(pending_new, pending_old + delta_c, "new receiver pending")

        logger.debug("Transfer bundle verified")
        return TransferSentResult(
            new_sender_available=encode_point(available_new),
            new_receiver_pending=encode_point(pending_new),
            new_pending_deposit=NewDeposit(
                commitment=encode_point(delta_c), ciphertext=b.ciphertext
            ),
        )

    @_rejections_logged
    def verify_transfer_received(
        self,
        asset_id,
        owner_pk: bytes,
        claimed_available: bytes,
        claimed_pending: bytes,
        deposits: Sequence[bytes],
        envelope: bytes,
    ) -> TransferReceivedResult:
        # 1. decode
        e = ReceiverEnvelope.from_bytes(envelope, self.params)
        owner_pt = self._key(owner_pk)
        available_old = self._point(claimed_available)
        pending_old = self._point(claimed_pending)
        delta_c = self._point(e.delta_commitment)
        available_new = self._point(e.new_available)
        pending_new = self._point(e.new_pending)

        if not deposits:
            raise MalformedEncoding("no deposits claimed")
        if len(deposits) > self.max_deposits:
            raise MalformedEncoding(f"more than {self.max_deposits} deposits claimed")
        deposit_pts = [self._point(c) for c in deposits]

        # 2. transcript
        ctx = self._context(asset_id, e.context)
        t = Transcript(DOMAIN_SEPARATORS["accept"], ctx)
        t.append_point(b"owner_pk", owner_pt)
        t.append_point(b"available_old", available_old)
        t.append_point(b"pending_old", pending_old)
        t.append_u64(b"deposit_count", len(deposit_pts))
        for point in deposit_pts:
            t.append_point(b"deposit", point)
        t.append_point(b"delta", delta_c)
        t.append_point(b"available_new", available_new)
        t.append_point(b"pending_new", pending_new)

        # 3. range
        verify_range(
            range_transcript(ctx, b"range_available_new"),
            available_new,
            e.range_available,
            self.params,
        )
        verify_range(
            range_transcript(ctx, b"range_pending_new"),
            pending_new,
            e.range_pending,
            self.params,
        )

        # 4. key possession
        verify_key_possession(t, owner_pt, e.key_proof, self.params)

        # 5. balance identity
        claimed_total = self.params.group.infinite()
        for point in deposit_pts:
            claimed_total = claimed_total + point
        _expect_equal(delta_c, claimed_total, "claimed deposit sum")
        _expect_equal(available_new, available_old + delta_c, "new available")
        _expect_equal(pending_new, pending_old + (-delta_c), "new pending")

        logger.debug("Receiver envelope verified for %d deposits", len(deposit_pts))
        return TransferReceivedResult(
            new_available=encode_point(available_new),
            new_pending=encode_point(pending_new),
        )

    # ------------------------------------------------------------------
    # mint / burn
    # ------------------------------------------------------------------

    @_rejections_logged
    def verify_mint(
        self,
        asset_id,
        recipient_pk: bytes,
        claimed_pending: bytes,
        claimed_total_supply: bytes,
        proof: bytes,
    ) -> MintResult:
        # 1. decode
        p = MintProof.from_bytes(proof, self.params)
        recipient_pt = self._key(recipient_pk)
        pending_old = self._point(claimed_pending)
        total_old = self._point(claimed_total_supply)
        delta_c = self._point(p.delta_commitment)
        c_k, d = decode_ciphertext(p.ciphertext, self.params)

        # 2. transcript
        ctx = self._context(asset_id, p.context)
        t = Transcript(DOMAIN_SEPARATORS["mint"], ctx)
        t.append_point(b"recipient_pk", recipient_pt)
        t.append_point(b"pending_old", pending_old)
        t.append_point(b"total_supply_old", total_old)
        t.append_u64(b"value", p.value)

        # 3. range
        pending_new = pending_old + delta_c
        total_new = total_old + delta_c
        verify_range(
            range_transcript(ctx, b"range_mint_pending_new"),
            pending_new,
            p.range_pending,
            self.params,
        )
        verify_range(
            range_transcript(ctx, b"range_mint_total_new"),
            total_new,
            p.range_total,
            self.params,
        )

        # 4. link with public value
        verify_link(
            t, recipient_pt, c_k, d, delta_c, p.link_proof,
            public_value=p.value, params=self.params,
        )

        # 5. public amount is exactly the delta
        _expect_equal(delta_c, commit_point(p.value, 0, self.params), "mint delta")

        logger.debug("Mint proof verified")
        return MintResult(
            new_pending=encode_point(pending_new),
            new_total_supply=encode_point(total_new),
            ciphertext=p.ciphertext,
            value=p.value,
            delta_commitment=encode_point(delta_c),
        )

    @_rejections_logged
    def verify_burn(
        self,
        asset_id,
        owner_pk: bytes,
        claimed_available: bytes,
        claimed_total_supply: bytes,
        ciphertext: bytes,
        proof: bytes,
    ) -> BurnResult:
        # 1. decode
        p = BurnProof.from_bytes(proof, self.params)
        owner_pt = self._key(owner_pk)
        available_old = self._point(claimed_available)
        total_old = self._point(claimed_total_supply)
        delta_c = self._point(p.delta_commitment)
        available_new = self._point(p.new_available)
        c_k, d = decode_ciphertext(ciphertext, self.params)

        # 2. transcript
        ctx = self._context(asset_id, p.context)
        t = Transcript(DOMAIN_SEPARATORS["burn"], ctx)
        t.append_point(b"owner_pk", owner_pt)
        t.append_point(b"available_old", available_old)
        t.append_point(b"total_supply_old", total_old)
        t.append_u64(b"value", p.value)
        t.append_point(b"available_new", available_new)

        # 3. range
        total_new = total_old + (-delta_c)
        verify_range(
            range_transcript(ctx, b"range_burn_available_new"),
            available_new,
            p.balance_proof,
            self.params,
        )
        verify_range(
            range_transcript(ctx, b"range_burn_total_new"),
            total_new,
            p.range_total,
            self.params,
        )

        # 4. link with public value
        verify_link(
            t, owner_pt, c_k, d, delta_c, p.link_proof,
            public_value=p.value, params=self.params,
        )

        # 5. balance identity
        _expect_equal(delta_c, commit_point(p.value, 0, self.params), "burn delta")
        _expect_equal(available_new, available_old + (-delta_c), "new available")

        logger.debug("Burn proof verified")
        return BurnResult(
            new_available=encode_point(available_new),
            new_total_supply=encode_point(total_new),
            disclosed_value=p.value,
        )

    # ------------------------------------------------------------------
    # disclosure
    # ------------------------------------------------------------------

    @_rejections_logged
    def disclose(
        self,
        asset_id,
        owner_pk: bytes,
        ciphertext: bytes,
        proof: bytes,
    ) -> int:
        p = DisclosureProof.from_bytes(proof, self.params)
        owner_pt = self._key(owner_pk)
        c_k, d = decode_ciphertext(ciphertext, self.params)

        ctx = self._context(asset_id, p.context)
        t = Transcript(DOMAIN_SEPARATORS["disclose"], ctx)
        t.append_message(b"ciphertext", bytes(ciphertext))
        verify_dleq(t, owner_pt, c_k, d, p.value, p.dleq, self.params)

        logger.debug("Disclosure verified")
        return p.value
