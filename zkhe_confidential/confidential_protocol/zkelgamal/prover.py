"""
⚠️ DRAFT — requires crypto review before production use

Off-chain prover for confidential balances.

The prover holds secret keys and plaintext openings and builds the proof
bundles the verifier checks:

    prove_sender_transfer   SenderBundle      (transfer out of available)
    prove_receiver_accept   ReceiverEnvelope  (pending deposits -> available)
    prove_mint              MintProof         (public amount -> pending)
    prove_burn              BurnProof         (available -> public amount)
    prove_disclosure        DisclosureProof   (reveal a ciphertext's value)

Invalid inputs raise InvalidInput, ArithmeticOverflow or
InsufficientLocalBalance before any proof is built; no partial bundle is ever
returned.

Blinding of deposits:
    A transfer deposit dC = dv*G + rho*H uses rho derived from the ElGamal
    shared secret k*receiver_pk, so the receiver recovers it as sk*C_k.
    Mint and burn move public amounts and use rho = 0, so the total supply
    commitment returns exactly to its prior point after mint then burn of
    the same amount.
"""

import logging
from typing import Any, Optional, Sequence, Tuple

from ..config import DOMAIN_SEPARATORS, GROUP_ORDER, MAX_PENDING_DEPOSITS, MAX_VALUE
from ..exceptions import (
    ArithmeticOverflow,
    InsufficientLocalBalance,
    InvalidCurvePoint,
    InvalidInput,
    MalformedEncoding,
    ProofGenerationError,
)
from ..security import RandomnessSource, randomness_from_seed
from .bulletproofs import prove_range, range_transcript
from .bundles import (
    BurnProof,
    DisclosureProof,
    MintProof,
    Opening,
    ReceiverEnvelope,
    SenderBundle,
)
from .commitments import (
    commit_point,
    decode_point,
    encode_point,
    get_cached_curve_params,
    verify_commitment,
)
from .elgamal import (
    DecryptionTable,
    decode_ciphertext,
    decode_public_key,
    decrypt_value,
    derive_deposit_blinding,
    encrypt,
    get_decryption_table,
    public_key_from_secret,
    receiver_shared_secret,
    sender_shared_secret,
)
from .schnorr import prove_dleq, prove_key_possession, prove_link
from .transcript import Transcript, transcript_bind

logger = logging.getLogger(__name__)

_DECODE_ERRORS = (MalformedEncoding, InvalidCurvePoint)


# ============================================================================
# INPUT VALIDATION
# ============================================================================


def _context(asset_id, network_id: bytes) -> bytes:
    try:
        return transcript_bind(asset_id, network_id)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"invalid asset/network id: {e}") from e


def _check_keypair(sk: int, pk: bytes, who: str) -> Any:
    if not isinstance(sk, int) or isinstance(sk, bool) or not (0 < sk < GROUP_ORDER):
        raise InvalidInput(f"{who} secret key out of range")
    try:
        pk_pt = decode_public_key(pk)
    except _DECODE_ERRORS as e:
        raise InvalidInput(f"{who} public key invalid: {e}") from e
    if public_key_from_secret(sk) != pk:
        raise InvalidInput(f"{who} secret key does not match public key")
    return pk_pt


def _public_key(pk: bytes, who: str) -> Any:
    try:
        return decode_public_key(pk)
    except _DECODE_ERRORS as e:
        raise InvalidInput(f"{who} public key invalid: {e}") from e


def _commitment(data: bytes, who: str) -> Any:
    try:
        return decode_point(data)
    except _DECODE_ERRORS as e:
        raise InvalidInput(f"{who} commitment invalid: {e}") from e


def _amount(value: int, who: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidInput(f"{who} must be a non-negative int")
    if value > MAX_VALUE:
        raise ArithmeticOverflow(f"{who} exceeds 2^64 - 1")
    return value


def _opening(opening: Opening, who: str) -> Opening:
    if not isinstance(opening, Opening):
        raise InvalidInput(f"{who} must be an Opening")
    _amount(opening.value, f"{who} value")
    if not isinstance(opening.blinding, int) or not (0 <= opening.blinding < GROUP_ORDER):
        raise InvalidInput(f"{who} blinding out of range")
    return opening


def _check_opening(commitment: bytes, opening: Opening, who: str) -> None:
    if not verify_commitment(commitment, opening.value, opening.blinding):
        raise InvalidInput(f"{who} opening does not match its commitment")


def _rng(randomness_seed: Optional[bytes]) -> RandomnessSource:
    try:
        return randomness_from_seed(randomness_seed)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"invalid randomness seed: {e}") from e


# ============================================================================
# TRANSFER (SENDER SIDE)
# ============================================================================


def prove_sender_transfer(
    sender_sk: int,
    sender_pk: bytes,
    receiver_pk: bytes,
    sender_available: Opening,
    sender_available_commitment: bytes,
    receiver_pending_commitment: bytes,
    delta_value: int,
    randomness_seed: Optional[bytes] = None,
    *,
    asset_id,
    network_id: bytes,
) -> SenderBundle:
    """
    Build a SenderBundle moving ``delta_value`` from the sender's available
    balance into a new pending deposit for the receiver.

    Args:
        sender_sk / sender_pk: Sender key pair
        receiver_pk: Receiver public key
        sender_available: Opening of the sender's current available balance
        sender_available_commitment: Stored available commitment (claimed state)
        receiver_pending_commitment: Stored receiver pending commitment
        delta_value: Amount to transfer
        randomness_seed: Optional 32-byte seed for reproducible proofs
        asset_id / network_id: Transcript binding

    Returns:
        SenderBundle with ``new_available_opening`` set for the sender's wallet

    Raises:
        InvalidInput: Malformed key, commitment or opening
        ArithmeticOverflow: delta_value outside the 64-bit range
        InsufficientLocalBalance: delta_value exceeds the available balance

    Example:
        >>> bundle = prove_sender_transfer(
        ...     sk, pk, bob_pk, Opening(5000, r), commit(5000, r)[0],
        ...     bob_pending, 1000, asset_id=b"USDC", network_id=net)
        >>> verifier.verify_transfer_sent(b"USDC", pk, bob_pk, ...)
    """
    ctx = _context(asset_id, network_id)
    sender_pt = _check_keypair(sender_sk, sender_pk, "sender")
    receiver_pt = _public_key(receiver_pk, "receiver")
    available_pt = _commitment(sender_available_commitment, "sender available")
    pending_pt = _commitment(receiver_pending_commitment, "receiver pending")
    _opening(sender_available, "sender available")
    _check_opening(sender_available_commitment, sender_available, "sender available")
    _amount(delta_value, "delta_value")

    if delta_value > sender_available.value:
        raise InsufficientLocalBalance(
            "transfer amount exceeds the sender's available balance"
        )

    rng = _rng(randomness_seed)
    params = get_cached_curve_params()

    try:
        k = rng.get_nonzero_scalar()
        ciphertext = encrypt(delta_value, receiver_pk, k)
        c_k, d = decode_ciphertext(ciphertext)
        rho = derive_deposit_blinding(sender_shared_secret(k, receiver_pk), ctx)

        delta_c = commit_point(delta_value, rho, params)
        new_available = available_pt + (-delta_c)
        new_pending = pending_pt + delta_c
        change = Opening(
            value=sender_available.value - delta_value,
            blinding=(sender_available.blinding - rho) % GROUP_ORDER,
        )

        t = Transcript(DOMAIN_SEPARATORS["transfer"], ctx)
        t.append_point(b"sender_pk", sender_pt)
        t.append_point(b"receiver_pk", receiver_pt)
        t.append_point(b"sender_available_old", available_pt)
        t.append_point(b"receiver_pending_old", pending_pt)
        t.append_point(b"sender_available_new", new_available)
        t.append_point(b"receiver_pending_new", new_pending)

        link = prove_link(t, receiver_pt, c_k, d, delta_c, delta_value, k, rho, rng)
        key_proof = prove_key_possession(t, sender_pt, sender_sk, rng)

        range_proof = prove_range(
            range_transcript(ctx, b"range_delta"), delta_value, rho, rng
        )
        balance_proof = prove_range(
            range_transcript(ctx, b"range_sender_new"),
            change.value,
            change.blinding,
            rng,
        )
    except ProofGenerationError:
        raise
    except Exception as e:
        raise ProofGenerationError(
            f"transfer proof generation failed: {type(e).__name__}"
        ) from e

    logger.debug("Built sender transfer bundle")
    return SenderBundle(
        context=ctx,
        delta_commitment=encode_point(delta_c),
        new_sender_available=encode_point(new_available),
        new_receiver_pending=encode_point(new_pending),
        ciphertext=ciphertext,
        link_proof=link,
        key_proof=key_proof,
        range_proof=range_proof,
        balance_proof=balance_proof,
        new_available_opening=change,
    )


# ============================================================================
# ACCEPT (RECEIVER SIDE)
# ============================================================================


def prove_receiver_accept(
    receiver_sk: int,
    receiver_pk: bytes,
    available_old: Opening,
    pending_old: Opening,
    deposits: Sequence[Tuple[bytes, Opening]],
    randomness_seed: Optional[bytes] = None,
    *,
    asset_id,
    network_id: bytes,
    max_deposits: int = MAX_PENDING_DEPOSITS,
) -> ReceiverEnvelope:
    """
    Build a ReceiverEnvelope moving the claimed deposits from pending to
    available.

    Args:
        receiver_sk / receiver_pk: Owner key pair
        available_old: Opening of the current available balance
        pending_old: Opening of the current pending balance
        deposits: (commitment, opening) of each deposit being claimed, in the
            order the ledger will be asked to consume them
        max_deposits: Deposit bound of the ledger this envelope is for

    Raises:
        InvalidInput: Malformed key/opening or no deposits
        ArithmeticOverflow: New available balance would exceed 2^64 - 1
        InsufficientLocalBalance: Claimed deposits exceed the pending opening
    """
    ctx = _context(asset_id, network_id)
    owner_pt = _check_keypair(receiver_sk, receiver_pk, "receiver")
    _opening(available_old, "available")
    _opening(pending_old, "pending")

    if not deposits:
        raise InvalidInput("at least one deposit must be claimed")
    if len(deposits) > max_deposits:
        raise InvalidInput(f"at most {max_deposits} deposits per accept")

    params = get_cached_curve_params()
    delta_c = params.group.infinite()
    delta_value = 0
    delta_blinding = 0
    for i, (commitment, opening) in enumerate(deposits):
        point = _commitment(commitment, f"deposit {i}")
        _opening(opening, f"deposit {i}")
        _check_opening(commitment, opening, f"deposit {i}")
        delta_c = delta_c + point
        delta_value += opening.value
        delta_blinding = (delta_blinding + opening.blinding) % GROUP_ORDER

    if available_old.value + delta_value > MAX_VALUE:
        raise ArithmeticOverflow("available balance would exceed 2^64 - 1")
    if delta_value > pending_old.value:
        raise InsufficientLocalBalance("claimed deposits exceed pending balance")

    new_available_opening = Opening(
        available_old.value + delta_value,
        (available_old.blinding + delta_blinding) % GROUP_ORDER,
    )
    new_pending_opening = Opening(
        pending_old.value - delta_value,
        (pending_old.blinding - delta_blinding) % GROUP_ORDER,
    )

    rng = _rng(randomness_seed)

    try:
        available_pt = commit_point(available_old.value, available_old.blinding, params)
        pending_pt = commit_point(pending_old.value, pending_old.blinding, params)
        new_available = available_pt + delta_c
        new_pending = pending_pt + (-delta_c)

        t = Transcript(DOMAIN_SEPARATORS["accept"], ctx)
        t.append_point(b"owner_pk", owner_pt)
        t.append_point(b"available_old", available_pt)
        t.append_point(b"pending_old", pending_pt)
        t.append_u64(b"deposit_count", len(deposits))
        for commitment, _ in deposits:
            t.append_point(b"deposit", commitment)
        t.append_point(b"delta", delta_c)
        t.append_point(b"available_new", new_available)
        t.append_point(b"pending_new", new_pending)

        key_proof = prove_key_possession(t, owner_pt, receiver_sk, rng)
        range_available = prove_range(
            range_transcript(ctx, b"range_available_new"),
            new_available_opening.value,
            new_available_opening.blinding,
            rng,
        )
        range_pending = prove_range(
            range_transcript(ctx, b"range_pending_new"),
            new_pending_opening.value,
            new_pending_opening.blinding,
            rng,
        )
    except ProofGenerationError:
        raise
    except Exception as e:
        raise ProofGenerationError(
            f"accept proof generation failed: {type(e).__name__}"
        ) from e

    logger.debug("Built receiver envelope for %d deposits", len(deposits))
    return ReceiverEnvelope(
        context=ctx,
        delta_commitment=encode_point(delta_c),
        new_available=encode_point(new_available),
        new_pending=encode_point(new_pending),
        key_proof=key_proof,
        range_available=range_available,
        range_pending=range_pending,
        new_available_opening=new_available_opening,
        new_pending_opening=new_pending_opening,
    )


# ============================================================================
# MINT / BURN (public amounts)
# ============================================================================


def prove_mint(
    recipient_pk: bytes,
    pending_old: Opening,
    total_supply_old: Opening,
    mint_value: int,
    randomness_seed: Optional[bytes] = None,
    *,
    asset_id,
    network_id: bytes,
) -> MintProof:
    """
    Build a MintProof crediting public ``mint_value`` to the recipient's
    pending balance and the asset's total supply.

    The minted deposit commitment is mint_value*G (zero blinding); its
    ciphertext, encrypted to the recipient, is returned in the proof. Both
    balances the mint changes get a range proof, so neither can wrap past
    2^64 - 1.

    Args:
        recipient_pk: Recipient public key
        pending_old: Opening of the recipient's current pending balance
        total_supply_old: Opening of the asset's current total supply
        mint_value: Public amount to mint

    Raises:
        InvalidInput: Malformed key or opening
        ArithmeticOverflow: New pending balance or total supply above 2^64 - 1
    """
    ctx = _context(asset_id, network_id)
    recipient_pt = _public_key(recipient_pk, "recipient")
    _opening(pending_old, "recipient pending")
    _opening(total_supply_old, "total supply")
    _amount(mint_value, "mint_value")

    if pending_old.value + mint_value > MAX_VALUE:
        raise ArithmeticOverflow("pending balance would exceed 2^64 - 1")
    if total_supply_old.value + mint_value > MAX_VALUE:
        raise ArithmeticOverflow("total supply would exceed 2^64 - 1")

    rng = _rng(randomness_seed)
    params = get_cached_curve_params()

    try:
        pending_pt = commit_point(pending_old.value, pending_old.blinding, params)
        total_pt = commit_point(total_supply_old.value, total_supply_old.blinding, params)
        k = rng.get_nonzero_scalar()
        ciphertext = encrypt(mint_value, recipient_pk, k)
        c_k, d = decode_ciphertext(ciphertext)
        delta_c = commit_point(mint_value, 0, params)

        t = Transcript(DOMAIN_SEPARATORS["mint"], ctx)
        t.append_point(b"recipient_pk", recipient_pt)
        t.append_point(b"pending_old", pending_pt)
        t.append_point(b"total_supply_old", total_pt)
        t.append_u64(b"value", mint_value)

        link = prove_link(
            t, recipient_pt, c_k, d, delta_c, mint_value, k, 0, rng, public_value=True
        )
        range_pending = prove_range(
            range_transcript(ctx, b"range_mint_pending_new"),
            pending_old.value + mint_value,
            pending_old.blinding,
            rng,
        )
        range_total = prove_range(
            range_transcript(ctx, b"range_mint_total_new"),
            total_supply_old.value + mint_value,
            total_supply_old.blinding,
            rng,
        )
    except ProofGenerationError:
        raise
    except Exception as e:
        raise ProofGenerationError(
            f"mint proof generation failed: {type(e).__name__}"
        ) from e

    logger.debug("Built mint proof")
    return MintProof(
        context=ctx,
        value=mint_value,
        delta_commitment=encode_point(delta_c),
        ciphertext=ciphertext,
        link_proof=link,
        range_pending=range_pending,
        range_total=range_total,
    )


def prove_burn(
    owner_sk: int,
    owner_pk: bytes,
    available_old: Opening,
    total_supply_old: Opening,
    burn_value: int,
    randomness_seed: Optional[bytes] = None,
    *,
    asset_id,
    network_id: bytes,
) -> BurnProof:
    """
    Build a BurnProof removing public ``burn_value`` from the owner's
    available balance and the asset's total supply.

    The ciphertext of the burned amount (encrypted to the owner) is attached
    as ``proof.ciphertext`` and submitted next to the proof bytes.

    Raises:
        InsufficientLocalBalance: burn_value exceeds the available balance
        ArithmeticOverflow: burn_value exceeds the total supply
    """
    ctx = _context(asset_id, network_id)
    owner_pt = _check_keypair(owner_sk, owner_pk, "owner")
    _opening(available_old, "available")
    _opening(total_supply_old, "total supply")
    _amount(burn_value, "burn_value")

    if burn_value > available_old.value:
        raise InsufficientLocalBalance("burn amount exceeds available balance")
    if burn_value > total_supply_old.value:
        raise ArithmeticOverflow("burn amount exceeds total supply")

    rng = _rng(randomness_seed)
    params = get_cached_curve_params()

    try:
        available_pt = commit_point(available_old.value, available_old.blinding, params)
        total_pt = commit_point(total_supply_old.value, total_supply_old.blinding, params)
        k = rng.get_nonzero_scalar()
        ciphertext = encrypt(burn_value, owner_pk, k)
        c_k, d = decode_ciphertext(ciphertext)
        delta_c = commit_point(burn_value, 0, params)
        new_available = available_pt + (-delta_c)
        remaining = Opening(available_old.value - burn_value, available_old.blinding)

        t = Transcript(DOMAIN_SEPARATORS["burn"], ctx)
        t.append_point(b"owner_pk", owner_pt)
        t.append_point(b"available_old", available_pt)
        t.append_point(b"total_supply_old", total_pt)
        t.append_u64(b"value", burn_value)
        t.append_point(b"available_new", new_available)

        link = prove_link(
            t, owner_pt, c_k, d, delta_c, burn_value, k, 0, rng, public_value=True
        )
        balance_proof = prove_range(
            range_transcript(ctx, b"range_burn_available_new"),
            remaining.value,
            remaining.blinding,
            rng,
        )
        range_total = prove_range(
            range_transcript(ctx, b"range_burn_total_new"),
            total_supply_old.value - burn_value,
            total_supply_old.blinding,
            rng,
        )
    except ProofGenerationError:
        raise
    except Exception as e:
        raise ProofGenerationError(
            f"burn proof generation failed: {type(e).__name__}"
        ) from e

    logger.debug("Built burn proof")
    return BurnProof(
        context=ctx,
        value=burn_value,
        delta_commitment=encode_point(delta_c),
        new_available=encode_point(new_available),
        link_proof=link,
        balance_proof=balance_proof,
        range_total=range_total,
        ciphertext=ciphertext,
        new_available_opening=remaining,
    )



# ============================================================================
# DISCLOSURE / WALLET HELPERS
# ============================================================================


def prove_disclosure(
    owner_sk: int,
    owner_pk: bytes,
    ciphertext: bytes,
    randomness_seed: Optional[bytes] = None,
    *,
    asset_id,
    network_id: bytes,
    table: Optional[DecryptionTable] = None,
) -> DisclosureProof:
    """
    Decrypt ``ciphertext`` and prove the plaintext is correct (DLEQ).

    Raises:
        InvalidInput: Key mismatch or malformed ciphertext
        DecryptionRangeExceeded: Plaintext above the decryption bound
    """
    ctx = _context(asset_id, network_id)
    owner_pt = _check_keypair(owner_sk, owner_pk, "owner")
    try:
        c_k, d = decode_ciphertext(ciphertext)
    except _DECODE_ERRORS as e:
        raise InvalidInput(f"ciphertext invalid: {e}") from e

    value = decrypt_value(owner_sk, ciphertext, table)
    rng = _rng(randomness_seed)

    t = Transcript(DOMAIN_SEPARATORS["disclose"], ctx)
    t.append_message(b"ciphertext", ciphertext)
    dleq = prove_dleq(t, owner_pt, c_k, d, value, owner_sk, rng)

    logger.debug("Built disclosure proof")
    return DisclosureProof(context=ctx, value=value, dleq=dleq)


def open_deposit(
    sk: int,
    ciphertext: bytes,
    commitment: bytes,
    *,
    asset_id,
    network_id: bytes,
    table: Optional[DecryptionTable] = None,
) -> Opening:
    """
    Recover the (value, blinding) opening of a deposit addressed to ``sk``.

    Transfer deposits are blinded with the shared-secret derivation, minted
    deposits with zero.

    Raises:
        InvalidInput: The deposit does not open under this key
        DecryptionRangeExceeded: Value above the decryption bound
    """
    ctx = _context(asset_id, network_id)
    try:
        value = decrypt_value(sk, ciphertext, table)
        shared = receiver_shared_secret(sk, ciphertext)
    except _DECODE_ERRORS as e:
        raise InvalidInput(f"ciphertext invalid: {e}") from e

    for blinding in (derive_deposit_blinding(shared, ctx), 0):
        if verify_commitment(commitment, value, blinding):
            return Opening(value, blinding)

    raise InvalidInput("deposit does not open under this key")


def sum_openings(openings: Sequence[Opening]) -> Opening:
    """Opening of the sum of the matching commitments."""
    return Opening(
        sum(o.value for o in openings),
        sum(o.blinding for o in openings) % GROUP_ORDER,
    )


def open_supply(
    total_supply: bytes, table: Optional[DecryptionTable] = None
) -> Opening:
    """
    Recover the opening of a total-supply commitment.

    Mint and burn only ever add or remove value*G, so the supply commitment
    always has zero blinding and its value is found by the decryption table.

    Raises:
        InvalidInput: Malformed commitment
        DecryptionRangeExceeded: Supply above the table bound
    """
    point = _commitment(total_supply, "total supply")
    if table is None:
        table = get_decryption_table()
    return Opening(table.solve(point), 0)


__all__ = [
    "Opening",
    "prove_sender_transfer",
    "prove_receiver_accept",
    "prove_mint",
    "prove_burn",
    "prove_disclosure",
    "open_deposit",
    "sum_openings",
    "open_supply",
]
