"""
End-to-end tests for the confidential-balance engine.

Drives the prover, the verifier backend and the reference ledger together
and checks the system-level properties: homomorphism, transfer correctness,
tamper rejection on every bundle kind, wrong-key rejection, deposit id
monotonicity, no double-claim, the mint/burn round trip, stale-state rejection
and replay protection across networks and asset ids.
"""

import pytest

from zkhe_confidential.confidential_protocol import (
    ConfidentialLedger,
    EngineConfig,
    ProofEnvelope,
    ProofKind,
    get_verifier_backend,
)
from zkhe_confidential.confidential_protocol.config import GROUP_ORDER
from zkhe_confidential.confidential_protocol.exceptions import (
    DepositNotFound,
    LinkProofInvalid,
    ProofVerificationError,
    StaleClaimedState,
    TranscriptMismatch,
)
from zkhe_confidential.confidential_protocol.zkelgamal import (
    DecryptionTable,
    Opening,
    commit,
    keygen,
    open_deposit,
    open_supply,
    prove_burn,
    prove_mint,
    prove_receiver_accept,
    prove_sender_transfer,
    sum_openings,
)
from zkhe_confidential.confidential_protocol.zkelgamal.bulletproofs import (
    RANGE_PROOF_SIZE_BYTES,
)
from zkhe_confidential.confidential_protocol.zkelgamal.commitments import (
    add_commitments,
    decode_point,
    get_cached_curve_params,
    sub_commitments,
    zero_commitment,
)
from zkhe_confidential.confidential_protocol.zkelgamal.elgamal import (
    decrypt_to_point,
    encrypt,
)
from zkhe_confidential.confidential_protocol.zkelgamal.schnorr import KeyProof, LinkProof

ASSET = 7
NET = b"\x5a" * 32
TABLE = DecryptionTable(16)


class Account:
    def __init__(self, ledger, name, network_id=NET):
        self.ledger = ledger
        self.name = name
        self.net = network_id
        self.sk, self.pk = keygen()
        self.available = Opening(0, 0)
        ledger.set_public_key(name, self.pk)

    def pending_openings(self):
        deposits = self.ledger.pending_deposits(self.name, ASSET)
        return deposits, [
            open_deposit(
                self.sk, d.ciphertext, d.commitment,
                asset_id=ASSET, network_id=self.net, table=TABLE,
            )
            for d in deposits
        ]

    def mint(self, value):
        _, openings = self.pending_openings()
        proof = prove_mint(
            self.pk,
            sum_openings(openings),
            open_supply(self.ledger.total_supply(ASSET), TABLE),
            value,
            asset_id=ASSET,
            network_id=self.net,
        )
        return self.ledger.mint(
            ASSET,
            self.name,
            self.ledger.pending_of(self.name, ASSET),
            self.ledger.total_supply(ASSET),
            proof.to_bytes(),
        )

    def accept_all(self):
        deposits, openings = self.pending_openings()
        envelope = prove_receiver_accept(
            self.sk, self.pk, self.available, sum_openings(openings),
            [(d.commitment, o) for d, o in zip(deposits, openings)],
            asset_id=ASSET, network_id=self.net,
            max_deposits=self.ledger.config.max_pending_deposits,
        )
        claim = (
            ASSET,
            self.name,
            [d.id for d in deposits],
            self.ledger.balance_of(self.name, ASSET),
            self.ledger.pending_of(self.name, ASSET),
            envelope.to_bytes(),
        )
        self.ledger.accept_pending(*claim)
        self.available = envelope.new_available_opening
        return claim

    def bundle_to(self, receiver, value):
        return prove_sender_transfer(
            self.sk, self.pk, receiver.pk, self.available,
            self.ledger.balance_of(self.name, ASSET),
            self.ledger.pending_of(receiver.name, ASSET),
            value,
            asset_id=ASSET, network_id=self.net,
        )

    def send(self, receiver, value):
        bundle = self.bundle_to(receiver, value)
        deposit_id = self.ledger.transfer(
            ASSET, self.name, receiver.name,
            self.ledger.balance_of(self.name, ASSET),
            self.ledger.pending_of(receiver.name, ASSET),
            bundle.to_bytes(),
        )
        self.available = bundle.new_available_opening
        return deposit_id


@pytest.fixture
def ledger():
    return ConfidentialLedger(config=EngineConfig(network_id=NET))


@pytest.fixture
def funded(ledger):
    alice = Account(ledger, "alice")
    bob = Account(ledger, "bob")
    alice.mint(10_000)
    alice.accept_all()
    return alice, bob


# ============================================================================
# PRIMITIVE PROPERTIES
# ============================================================================


@pytest.mark.parametrize(
    "a,b,r1,r2",
    [(0, 0, 1, 2), (10, 20, 3, 4), (2**64 - 2, 1, GROUP_ORDER - 1, 5)],
)
def test_commitment_homomorphism(a, b, r1, r2):
    c1, _ = commit(a, r1)
    c2, _ = commit(b, r2)
    total, _ = commit(a + b, (r1 + r2) % GROUP_ORDER)

    assert add_commitments(c1, c2) == total


def test_encrypt_decrypt_agreement():
    sk, pk = keygen()
    params = get_cached_curve_params()
    point = decrypt_to_point(sk, encrypt(9, pk, 1234))

    expected = params.identity
    for _ in range(9):
        expected = expected + params.G
    assert point == expected


# ============================================================================
# TRANSFER
# ============================================================================


def test_transfer_correctness():
    """Available 5000, send 1000: new available == old - delta."""
    verifier = get_verifier_backend(EngineConfig(network_id=NET))
    alice_sk, alice_pk = keygen()
    _, bob_pk = keygen()
    available, r = commit(5000)

    bundle = prove_sender_transfer(
        alice_sk, alice_pk, bob_pk, Opening(5000, r), available,
        zero_commitment(), 1000, asset_id=ASSET, network_id=NET,
    )
    result = verifier.verify_transfer_sent(
        ASSET, alice_pk, bob_pk, available, zero_commitment(), bundle.to_bytes()
    )

    assert decode_point(result.new_sender_available) == decode_point(
        sub_commitments(available, bundle.delta_commitment)
    )
    assert result.new_pending_deposit.commitment == bundle.delta_commitment


def test_pending_deposit_appears_for_receiver(ledger, funded):
    alice, bob = funded
    deposit_id = alice.send(bob, 1000)

    deposits = ledger.pending_deposits("bob", ASSET)
    assert [d.id for d in deposits] == [deposit_id]
    opening = open_deposit(
        bob.sk, deposits[0].ciphertext, deposits[0].commitment,
        asset_id=ASSET, network_id=NET, table=TABLE,
    )
    assert opening.value == 1000


def _sections(sizes):
    start = 0
    for size in sizes:
        yield range(start, start + size)
        start += size


_RANGE = [2, RANGE_PROOF_SIZE_BYTES]

# Field sizes of each bundle, in wire order.
LAYOUTS = {
    "sender": [32, 33, 33, 33, 66, LinkProof.SIZE, KeyProof.SIZE] + _RANGE * 2,
    "receiver": [32, 33, 33, 33, KeyProof.SIZE] + _RANGE * 2,
    "mint": [32, 8, 33, 66, LinkProof.SIZE] + _RANGE * 2,
    "burn": [32, 8, 33, 33, LinkProof.SIZE] + _RANGE * 2,
}


def _signed(kind, verifier):
    """A valid bundle of ``kind`` and a callable verifying given bytes."""
    sk, pk = keygen()
    _, other_pk = keygen()
    available, r = commit(5000)

    if kind == "sender":
        bundle = prove_sender_transfer(
            sk, pk, other_pk, Opening(5000, r), available,
            zero_commitment(), 1000, asset_id=ASSET, network_id=NET,
        )
        return bundle.to_bytes(), lambda data: verifier.verify_transfer_sent(
            ASSET, pk, other_pk, available, zero_commitment(), data
        )
    if kind == "receiver":
        envelope = prove_receiver_accept(
            sk, pk, Opening(0, 0), Opening(5000, r), [(available, Opening(5000, r))],
            asset_id=ASSET, network_id=NET,
        )
        return envelope.to_bytes(), lambda data: verifier.verify_transfer_received(
            ASSET, pk, zero_commitment(), available, [available], data
        )
    if kind == "mint":
        proof = prove_mint(
            pk, Opening(0, 0), Opening(0, 0), 700, asset_id=ASSET, network_id=NET
        )
        return proof.to_bytes(), lambda data: verifier.verify_mint(
            ASSET, pk, zero_commitment(), zero_commitment(), data
        )
    supply, _ = commit(5000, 0)
    proof = prove_burn(
        sk, pk, Opening(5000, r), Opening(5000, 0), 250,
        asset_id=ASSET, network_id=NET,
    )
    return proof.to_bytes(), lambda data: verifier.verify_burn(
        ASSET, pk, available, supply, proof.ciphertext, data
    )


@pytest.mark.parametrize("kind", sorted(LAYOUTS))
def test_tampered_proof_bytes_rejected(kind):
    verifier = get_verifier_backend(EngineConfig(network_id=NET))
    data, verify = _signed(kind, verifier)
    sections = list(_sections(LAYOUTS[kind]))
    assert len(data) == sections[-1].stop
    verify(data)

    for section in sections:
        for index in section[::29]:
            tampered = bytearray(data)
            tampered[index] ^= 0xFF
            with pytest.raises(ProofVerificationError):
                verify(bytes(tampered))


def test_wrong_key_rejected():
    verifier = get_verifier_backend(EngineConfig(network_id=NET))
    alice_sk, alice_pk = keygen()
    _, bob_pk = keygen()
    _, carol_pk = keygen()
    available, r = commit(100)
    bundle = prove_sender_transfer(
        alice_sk, alice_pk, bob_pk, Opening(100, r), available,
        zero_commitment(), 10, asset_id=ASSET, network_id=NET,
    )

    with pytest.raises(LinkProofInvalid):
        verifier.verify_transfer_sent(
            ASSET, alice_pk, carol_pk, available, zero_commitment(), bundle.to_bytes()
        )


# ============================================================================
# LEDGER PROPERTIES
# ============================================================================


def test_deposit_ids_are_consecutive(ledger, funded):
    alice, bob = funded
    ids = [alice.send(bob, 10) for _ in range(4)]

    assert ids == list(range(ids[0], ids[0] + 4))
    assert [d.id for d in ledger.pending_deposits("bob", ASSET)] == ids


def test_no_double_claim(ledger, funded):
    alice, bob = funded
    deposit_id = alice.send(bob, 50)
    bob.accept_all()

    deposits = ledger.pending_deposits("bob", ASSET)
    assert deposits == []
    with pytest.raises(DepositNotFound):
        ledger.accept_pending(
            ASSET, "bob", [deposit_id],
            ledger.balance_of("bob", ASSET), ledger.pending_of("bob", ASSET),
            b"",
        )


def test_mint_burn_round_trip(ledger):
    carol = Account(ledger, "carol")
    before = ledger.total_supply(ASSET)

    carol.mint(10_000)
    carol.accept_all()
    proof = prove_burn(
        carol.sk, carol.pk, carol.available,
        open_supply(ledger.total_supply(ASSET), TABLE), 10_000,
        asset_id=ASSET, network_id=NET,
    )
    ledger.burn(
        ASSET, "carol", ledger.balance_of("carol", ASSET),
        ledger.total_supply(ASSET), proof.ciphertext, proof.to_bytes(),
    )

    assert decode_point(ledger.total_supply(ASSET)) == decode_point(before)


def test_stale_state_rejected(ledger, funded):
    alice, bob = funded
    bundle = alice.bundle_to(bob, 100)
    claimed_available = ledger.balance_of("alice", ASSET)
    alice.send(bob, 1)

    with pytest.raises(StaleClaimedState):
        ledger.transfer(
            ASSET, "alice", "bob", claimed_available,
            ledger.pending_of("bob", ASSET), bundle.to_bytes(),
        )


def test_supply_invariant_through_many_operations(ledger, funded):
    alice, bob = funded
    alice.send(bob, 1000)
    bob.accept_all()
    bob.send(alice, 250)
    alice.accept_all()
    alice.send(bob, 5)

    parts = [
        ledger.balance_of(n, ASSET) for n in ("alice", "bob")
    ] + [ledger.pending_of(n, ASSET) for n in ("alice", "bob")]
    total = parts[0]
    for part in parts[1:]:
        total = add_commitments(total, part)

    assert total == ledger.total_supply(ASSET)
    assert alice.available.value + bob.available.value + 5 == 10_000


# ============================================================================
# REPLAY / TRANSPORT
# ============================================================================


def test_cross_network_replay_rejected(funded):
    alice, bob = funded
    other = ConfidentialLedger(config=EngineConfig(network_id=b"\x00" * 32))
    other.set_public_key("alice", alice.pk)
    other.set_public_key("bob", bob.pk)
    # Same commitments in the foreign ledger, so CAS passes and binding is tested
    other._accounts[("alice", ASSET)] = alice.ledger._state("alice", ASSET).copy()
    bundle = alice.bundle_to(bob, 10)

    with pytest.raises(TranscriptMismatch):
        other.transfer(
            ASSET, "alice", "bob",
            other.balance_of("alice", ASSET), other.pending_of("bob", ASSET),
            bundle.to_bytes(),
        )


def test_cross_asset_replay_rejected(ledger, funded):
    alice, bob = funded
    verifier = ledger.backend
    bundle = alice.bundle_to(bob, 10)

    with pytest.raises(TranscriptMismatch):
        verifier.verify_transfer_sent(
            ASSET + 1, alice.pk, bob.pk,
            ledger.balance_of("alice", ASSET), ledger.pending_of("bob", ASSET),
            bundle.to_bytes(),
        )


@pytest.mark.parametrize("alias", [b"\x07", b"\x07\x00", b"\x07" + bytes(31)])
def test_integer_asset_has_no_byte_alias(ledger, funded, alias):
    alice, bob = funded
    bundle = alice.bundle_to(bob, 10)

    with pytest.raises(TranscriptMismatch):
        ledger.backend.verify_transfer_sent(
            alias, alice.pk, bob.pk,
            ledger.balance_of("alice", ASSET), ledger.pending_of("bob", ASSET),
            bundle.to_bytes(),
        )


def test_envelope_transport(ledger, funded):
    alice, bob = funded
    bundle = alice.bundle_to(bob, 10)
    wire = ProofEnvelope(kind=ProofKind.SENDER, payload=bundle.to_bytes()).serialize()

    received = ProofEnvelope.deserialize(wire)
    assert received.kind is ProofKind.SENDER
    ledger.transfer(
        ASSET, "alice", "bob",
        ledger.balance_of("alice", ASSET), ledger.pending_of("bob", ASSET),
        received.payload,
    )
