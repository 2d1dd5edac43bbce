"""
⚠️ DRAFT — requires crypto review before production use

Reference host ledger for confidential balances.

Stores per-(account, asset) commitments, the pending-deposit UTXO set and the
per-asset total supply, and drives every state transition through a
VerifierBackend:

    CAS check of claimed commitments -> verify -> stage -> commit -> event

All of it runs under one lock, so the CAS comparison and the write are a
single critical section. Any error leaves state untouched.

Invariants:
    - per asset, sum(available + pending) over accounts == total_supply
    - deposit ids are strictly increasing across the whole ledger
    - a deposit is consumed at most once
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

from .config import EngineConfig
from .exceptions import (
    DepositNotFound,
    PendingLimitExceeded,
    StaleClaimedState,
    UnknownPublicKey,
)
from .factory import get_verifier_backend
from .interfaces import VerifierBackend
from .security import constant_time_compare
from .zkelgamal.commitments import zero_commitment
from .zkelgamal.elgamal import decode_public_key

logger = logging.getLogger(__name__)

AccountId = Hashable
AssetId = Hashable


# ============================================================================
# STATE
# ============================================================================


@dataclass(frozen=True)
class PendingDeposit:
    """UTXO-style incoming deposit awaiting acceptance."""

    id: int
    commitment: bytes
    ciphertext: bytes


@dataclass
class AccountAssetState:
    available: bytes = field(default_factory=zero_commitment)
    pending: bytes = field(default_factory=zero_commitment)
    pending_utxos: "OrderedDict[int, PendingDeposit]" = field(default_factory=OrderedDict)

    def copy(self) -> "AccountAssetState":
        return AccountAssetState(
            available=self.available,
            pending=self.pending,
            pending_utxos=OrderedDict(self.pending_utxos),
        )


@dataclass
class AssetState:
    total_supply: bytes = field(default_factory=zero_commitment)


# ============================================================================
# EVENTS
# ============================================================================


@dataclass(frozen=True)
class PublicKeySet:
    account: AccountId
    public_key: bytes


@dataclass(frozen=True)
class Transferred:
    asset: AssetId
    sender: AccountId
    receiver: AccountId
    deposit_id: int
    delta_commitment: bytes


@dataclass(frozen=True)
class PendingAccepted:
    asset: AssetId
    account: AccountId
    deposit_ids: Tuple[int, ...]


@dataclass(frozen=True)
class PendingAcceptedAndTransferred:
    asset: AssetId
    account: AccountId
    receiver: AccountId
    accepted_ids: Tuple[int, ...]
    deposit_id: int


@dataclass(frozen=True)
class Minted:
    asset: AssetId
    account: AccountId
    value: int
    deposit_id: int


@dataclass(frozen=True)
class Burned:
    asset: AssetId
    account: AccountId
    value: int


@dataclass(frozen=True)
class AmountDisclosed:
    asset: AssetId
    account: AccountId
    value: int


# ============================================================================
# LEDGER
# ============================================================================


def _cas(stored: bytes, claimed: bytes, what: str) -> None:
    if not isinstance(claimed, bytes) or not constant_time_compare(stored, claimed):
        raise StaleClaimedState(f"claimed {what} does not match stored state")


class ConfidentialLedger:
    """
    In-memory confidential-asset ledger.

    Example:
        >>> ledger = ConfidentialLedger(config=EngineConfig(network_id=net))
        >>> ledger.set_public_key("alice", alice_pk)
        >>> deposit_id = ledger.mint(b"USDC", "alice", pending, supply, proof)
    """

    def __init__(
        self,
        backend: Optional[VerifierBackend] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or EngineConfig()
        self.backend = backend or get_verifier_backend(self.config)
        self._lock = threading.Lock()
        self._public_keys: Dict[AccountId, bytes] = {}
        self._accounts: Dict[Tuple[AccountId, AssetId], AccountAssetState] = {}
        self._assets: Dict[AssetId, AssetState] = {}
        self._next_deposit_id = 0
        self.events: List[object] = []

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def public_key(self, account: AccountId) -> bytes:
        try:
            return self._public_keys[account]
        except KeyError:
            raise UnknownPublicKey(f"no public key registered for {account!r}") from None

    def balance_of(self, account: AccountId, asset: AssetId) -> bytes:
        with self._lock:
            return self._state(account, asset).available

    def pending_of(self, account: AccountId, asset: AssetId) -> bytes:
        with self._lock:
            return self._state(account, asset).pending

    def pending_deposits(self, account: AccountId, asset: AssetId) -> List[PendingDeposit]:
        with self._lock:
            return list(self._state(account, asset).pending_utxos.values())

    def total_supply(self, asset: AssetId) -> bytes:
        with self._lock:
            return self._asset(asset).total_supply

    # ------------------------------------------------------------------
    # key registry
    # ------------------------------------------------------------------

    def set_public_key(self, account: AccountId, public_key: bytes) -> None:
        """Register or explicitly replace an account's ElGamal public key."""
        decode_public_key(public_key)
        with self._lock:
            self._public_keys[account] = public_key
            self.events.append(PublicKeySet(account, public_key))
        logger.info("Public key set for %r", account)

    # ------------------------------------------------------------------
    # internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _state(self, account: AccountId, asset: AssetId) -> AccountAssetState:
        return self._accounts.get((account, asset)) or AccountAssetState()

    def _asset(self, asset: AssetId) -> AssetState:
        return self._assets.get(asset) or AssetState()

    def _check_pending_room(self, state: AccountAssetState) -> None:
        if len(state.pending_utxos) >= self.config.max_pending_deposits:
            raise PendingLimitExceeded(
                f"at most {self.config.max_pending_deposits} pending deposits"
            )

    def _allocate_deposit_id(self) -> int:
        deposit_id = self._next_deposit_id
        self._next_deposit_id += 1
        return deposit_id

    def _take_deposits(
        self, state: AccountAssetState, deposit_ids: Sequence[int]
    ) -> List[PendingDeposit]:
        if len(set(deposit_ids)) != len(deposit_ids):
            raise DepositNotFound("deposit ids must be distinct")
        deposits = []
        for deposit_id in deposit_ids:
            deposit = state.pending_utxos.get(deposit_id)
            if deposit is None:
                raise DepositNotFound(f"deposit {deposit_id} not pending")
            deposits.append(deposit)
        return deposits

    def _stage_transfer(
        self,
        asset: AssetId,
        sender: AccountId,
        receiver: AccountId,
        sender_state: AccountAssetState,
        claimed_sender_available: bytes,
        claimed_receiver_pending: bytes,
        bundle: bytes,
        staged: Dict[Tuple[AccountId, AssetId], AccountAssetState],
    ) -> Tuple[int, bytes]:
        sender_pk = self.public_key(sender)
        receiver_pk = self.public_key(receiver)

        receiver_state = staged.get((receiver, asset)) or self._state(receiver, asset).copy()
        if receiver == sender:
            receiver_state = sender_state

        _cas(sender_state.available, claimed_sender_available, "sender available")
        _cas(receiver_state.pending, claimed_receiver_pending, "receiver pending")
        self._check_pending_room(receiver_state)

        result = self.backend.verify_transfer_sent(
            asset,
            sender_pk,
            receiver_pk,
            claimed_sender_available,
            claimed_receiver_pending,
            bundle,
        )

        deposit_id = self._allocate_deposit_id()
        sender_state.available = result.new_sender_available
        receiver_state.pending = result.new_receiver_pending
        receiver_state.pending_utxos[deposit_id] = PendingDeposit(
            id=deposit_id,
            commitment=result.new_pending_deposit.commitment,
            ciphertext=result.new_pending_deposit.ciphertext,
        )
        staged[(sender, asset)] = sender_state
        staged[(receiver, asset)] = receiver_state
        return deposit_id, result.new_pending_deposit.commitment

    def _stage_accept(
        self,
        asset: AssetId,
        account: AccountId,
        deposit_ids: Sequence[int],
        claimed_available: bytes,
        claimed_pending: bytes,
        envelope: bytes,
    ) -> AccountAssetState:
        owner_pk = self.public_key(account)
        state = self._state(account, asset).copy()

        _cas(state.available, claimed_available, "available")
        _cas(state.pending, claimed_pending, "pending")
        deposits = self._take_deposits(state, deposit_ids)

        result = self.backend.verify_transfer_received(
            asset,
            owner_pk,
            claimed_available,
            claimed_pending,
            [d.commitment for d in deposits],
            envelope,
        )

        for deposit in deposits:
            del state.pending_utxos[deposit.id]
        state.available = result.new_available
        state.pending = result.new_pending
        return state

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    def transfer(
        self,
        asset: AssetId,
        sender: AccountId,
        receiver: AccountId,
        claimed_sender_available: bytes,
        claimed_receiver_pending: bytes,
        bundle: bytes,
    ) -> int:
        """
        Apply a verified SenderBundle.

        Returns:
            id of the new pending deposit for ``receiver``

        Raises:
            UnknownPublicKey, StaleClaimedState, PendingLimitExceeded or any
            ProofVerificationError from the backend
        """
        with self._lock:
            staged: Dict[Tuple[AccountId, AssetId], AccountAssetState] = {}
            sender_state = self._state(sender, asset).copy()
            deposit_id, delta = self._stage_transfer(
                asset,
                sender,
                receiver,
                sender_state,
                claimed_sender_available,
                claimed_receiver_pending,
                bundle,
                staged,
            )
            self._accounts.update(staged)
            self.events.append(Transferred(asset, sender, receiver, deposit_id, delta))

        logger.info("Transfer committed: deposit %d", deposit_id)
        return deposit_id

    def accept_pending(
        self,
        asset: AssetId,
        account: AccountId,
        deposit_ids: Sequence[int],
        claimed_available: bytes,
        claimed_pending: bytes,
        envelope: bytes,
    ) -> None:
        """
        Move the listed pending deposits into available.

        Raises:
            DepositNotFound: If any id is unknown or already claimed
        """
        deposit_ids = list(deposit_ids)
        with self._lock:
            state = self._stage_accept(
                asset, account, deposit_ids, claimed_available, claimed_pending, envelope
            )
            self._accounts[(account, asset)] = state
            self.events.append(PendingAccepted(asset, account, tuple(deposit_ids)))

        logger.info("Accepted %d deposits", len(deposit_ids))

    def accept_pending_and_transfer(
        self,
        asset: AssetId,
        account: AccountId,
        deposit_ids: Sequence[int],
        claimed_available: bytes,
        claimed_pending: bytes,
        envelope: bytes,
        receiver: AccountId,
        claimed_receiver_pending: bytes,
        bundle: bytes,
    ) -> int:
        """
        Accept deposits, then transfer out of the resulting available balance,
        atomically. The transfer bundle must claim the post-accept available.
        """
        deposit_ids = list(deposit_ids)
        with self._lock:
            state = self._stage_accept(
                asset, account, deposit_ids, claimed_available, claimed_pending, envelope
            )
            staged = {(account, asset): state}
            deposit_id, _ = self._stage_transfer(
                asset,
                account,
                receiver,
                state,
                state.available,
                claimed_receiver_pending,
                bundle,
                staged,
            )
            self._accounts.update(staged)
            self.events.append(
                PendingAcceptedAndTransferred(
                    asset, account, receiver, tuple(deposit_ids), deposit_id
                )
            )

        logger.info("Accepted %d deposits and transferred", len(deposit_ids))
        return deposit_id

    def mint(
        self,
        asset: AssetId,
        account: AccountId,
        claimed_pending: bytes,
        claimed_total_supply: bytes,
        proof: bytes,
    ) -> int:
        """
        Credit a public amount to ``account``'s pending balance.

        Returns:
            id of the new pending deposit
        """
        with self._lock:
            recipient_pk = self.public_key(account)
            state = self._state(account, asset).copy()
            asset_state = self._asset(asset)

            _cas(state.pending, claimed_pending, "pending")
            _cas(asset_state.total_supply, claimed_total_supply, "total supply")
            self._check_pending_room(state)

            result = self.backend.verify_mint(
                asset, recipient_pk, claimed_pending, claimed_total_supply, proof
            )

            deposit_id = self._allocate_deposit_id()
            state.pending = result.new_pending
            state.pending_utxos[deposit_id] = PendingDeposit(
                id=deposit_id,
                commitment=result.delta_commitment,
                ciphertext=result.ciphertext,
            )
            self._accounts[(account, asset)] = state
            self._assets[asset] = AssetState(total_supply=result.new_total_supply)
            self.events.append(Minted(asset, account, result.value, deposit_id))

        logger.info("Minted into deposit %d", deposit_id)
        return deposit_id

    def burn(
        self,
        asset: AssetId,
        account: AccountId,
        claimed_available: bytes,
        claimed_total_supply: bytes,
        ciphertext: bytes,
        proof: bytes,
    ) -> int:
        """
        Remove a public amount from ``account``'s available balance.

        Returns:
            the disclosed burned value
        """
        with self._lock:
            owner_pk = self.public_key(account)
            state = self._state(account, asset).copy()
            asset_state = self._asset(asset)

            _cas(state.available, claimed_available, "available")
            _cas(asset_state.total_supply, claimed_total_supply, "total supply")

            result = self.backend.verify_burn(
                asset,
                owner_pk,
                claimed_available,
                claimed_total_supply,
                ciphertext,
                proof,
            )

            state.available = result.new_available
            self._accounts[(account, asset)] = state
            self._assets[asset] = AssetState(total_supply=result.new_total_supply)
            self.events.append(Burned(asset, account, result.disclosed_value))

        logger.info("Burned %d", result.disclosed_value)
        return result.disclosed_value

    def disclose_amount(
        self,
        asset: AssetId,
        account: AccountId,
        ciphertext: bytes,
        proof: bytes,
    ) -> int:
        """Proof-gated disclosure of a ciphertext held by ``account``."""
        owner_pk = self.public_key(account)
        value = self.backend.disclose(asset, owner_pk, ciphertext, proof)
        with self._lock:
            self.events.append(AmountDisclosed(asset, account, value))
        return value

