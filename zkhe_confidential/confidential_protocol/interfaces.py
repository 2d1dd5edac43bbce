"""
Verifier backend interface.

A host ledger selects one backend at configuration time (see ``factory``) and
routes every confidential state transition through it. Backends hold no
secret material; every method either returns the new public state or raises a
ProofVerificationError subclass.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import NamedTuple, Sequence


class NewDeposit(NamedTuple):
    commitment: bytes
    ciphertext: bytes


class TransferSentResult(NamedTuple):
    new_sender_available: bytes
    new_receiver_pending: bytes
    new_pending_deposit: NewDeposit


class TransferReceivedResult(NamedTuple):
    new_available: bytes
    new_pending: bytes


class MintResult(NamedTuple):
    new_pending: bytes
    new_total_supply: bytes
    ciphertext: bytes
    value: int
    delta_commitment: bytes


class BurnResult(NamedTuple):
    new_available: bytes
    new_total_supply: bytes
    disclosed_value: int


class VerifierBackend(ABC):
    """
    Capability set every confidential backend provides.

    Commitment arguments named ``claimed_*`` are the values the host read
    from storage; the host compares them against current state (CAS) before
    accepting the result.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        ...

    @abstractmethod
    def verify_transfer_sent(
        self,
        asset_id,
        sender_pk: bytes,
        receiver_pk: bytes,
        claimed_sender_available: bytes,
        claimed_receiver_pending: bytes,
        bundle: bytes,
    ) -> TransferSentResult:
        ...

    @abstractmethod
    def verify_transfer_received(
        self,
        asset_id,
        owner_pk: bytes,
        claimed_available: bytes,
        claimed_pending: bytes,
        deposits: Sequence[bytes],
        envelope: bytes,
    ) -> TransferReceivedResult:
        ...

    @abstractmethod
    def verify_mint(
        self,
        asset_id,
        recipient_pk: bytes,
        claimed_pending: bytes,
        claimed_total_supply: bytes,
        proof: bytes,
    ) -> MintResult:
        ...

    @abstractmethod
    def verify_burn(
        self,
        asset_id,
        owner_pk: bytes,
        claimed_available: bytes,
        claimed_total_supply: bytes,
        ciphertext: bytes,
        proof: bytes,
    ) -> BurnResult:
        ...

    @abstractmethod
    def disclose(
        self,
        asset_id,
        owner_pk: bytes,
        ciphertext: bytes,
        proof: bytes,
    ) -> int:
        ...
