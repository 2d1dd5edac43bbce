"""
Command-Line Interface for the confidential-balance engine

Provides key generation, commitment arithmetic and an end-to-end demo of the
mint / accept / transfer / disclose / burn flow against the in-memory ledger.
"""

import sys

import click

from zkhe_confidential import __version__, print_disclaimer
from zkhe_confidential.confidential_protocol.config import MAX_VALUE, EngineConfig
from zkhe_confidential.confidential_protocol.exceptions import PrivacyProtocolError
from zkhe_confidential.confidential_protocol.ledger import ConfidentialLedger
from zkhe_confidential.confidential_protocol.security import SeededRandomness
from zkhe_confidential.confidential_protocol.zkelgamal.bundles import Opening
from zkhe_confidential.confidential_protocol.zkelgamal.commitments import (
    add_commitments,
    commit,
)
from zkhe_confidential.confidential_protocol.zkelgamal.elgamal import (
    DecryptionTable,
    keygen as elgamal_keygen,
)
from zkhe_confidential.confidential_protocol.zkelgamal.prover import (
    open_deposit,
    open_supply,
    prove_burn,
    prove_disclosure,
    prove_mint,
    prove_receiver_accept,
    prove_sender_transfer,
    sum_openings,
)


def _parse_seed(seed: str):
    if seed is None:
        return None
    try:
        raw = bytes.fromhex(seed)
    except ValueError:
        raise click.BadParameter("seed must be hex")
    if len(raw) != 32:
        raise click.BadParameter("seed must be 32 bytes (64 hex characters)")
    return raw


@click.group()
@click.version_option(version=__version__)
def main():
    """
    zkhe - confidential balances with ZK-ElGamal proofs.

    ⚠️  PROOF OF CONCEPT - NOT PRODUCTION READY
    """
    pass


@main.command()
@click.option("--seed", default=None, help="32-byte hex seed for a reproducible key")
def keygen(seed):
    """Generate an ElGamal key pair."""
    raw = _parse_seed(seed)
    rng = SeededRandomness(raw) if raw is not None else None
    sk, pk = elgamal_keygen(rng)
    click.echo(f"secret_key: {sk:064x}")
    click.echo(f"public_key: {pk.hex()}")


@main.command()
@click.argument("value", type=click.IntRange(0, MAX_VALUE))
@click.option("--blinding", type=str, default=None, help="Blinding factor (hex)")
@click.option(
    "--add",
    "extra",
    multiple=True,
    type=click.IntRange(0, MAX_VALUE),
    help="Additional value to commit and add homomorphically",
)
def commit_cmd(value, blinding, extra):
    """Commit to VALUE and optionally add further commitments."""
    try:
        r = int(blinding, 16) if blinding else None
        total, r_total = commit(value, r)
    except ValueError as e:
        raise click.BadParameter(str(e))
    click.echo(f"commitment: {total.hex()}")
    click.echo(f"blinding:   {r_total:064x}")

    for v in extra:
        c, _ = commit(v)
        total = add_commitments(total, c)
        click.echo(f"+ commit({v}) -> {total.hex()}")


main.add_command(commit_cmd, name="commit")


def _step(message: str) -> None:
    click.echo(click.style(f"\n▶ {message}", fg="cyan", bold=True))


def _ok(message: str) -> None:
    click.echo(click.style(f"  ✓ {message}", fg="green"))


@main.command()
@click.option("--asset", default="DEMO", show_default=True, help="Asset identifier")
@click.option("--mint-amount", default=10_000, show_default=True, type=click.IntRange(1, MAX_VALUE))
@click.option("--transfer-amount", default=1_000, show_default=True, type=click.IntRange(0, MAX_VALUE))
@click.option("--burn-amount", default=500, show_default=True, type=click.IntRange(0, MAX_VALUE))
@click.option(
    "--decrypt-bits",
    default=20,
    show_default=True,
    type=click.IntRange(1, 32),
    help="Plaintext bits searched when opening deposits",
)
def demo(asset, mint_amount, transfer_amount, burn_amount, decrypt_bits):
    """Run mint -> accept -> transfer -> accept -> disclose -> burn."""
    print_disclaimer()

    if transfer_amount + burn_amount > mint_amount:
        raise click.BadParameter("transfer + burn must not exceed the minted amount")
    if mint_amount >= 1 << decrypt_bits:
        raise click.BadParameter(
            f"mint amount must be below 2^{decrypt_bits} (raise --decrypt-bits)"
        )

    asset_id = asset.encode("utf-8")
    config = EngineConfig.from_env()
    net = config.network_id
    ledger = ConfidentialLedger(config=config)
    table = DecryptionTable(decrypt_bits)

    try:
        _step("Registering keys")
        alice_sk, alice_pk = elgamal_keygen()
        bob_sk, bob_pk = elgamal_keygen()
        ledger.set_public_key("alice", alice_pk)
        ledger.set_public_key("bob", bob_pk)
        _ok(f"alice {alice_pk.hex()[:16]}…  bob {bob_pk.hex()[:16]}…")

        _step(f"Minting {mint_amount} to alice")
        _, pending = _open_pending(ledger, asset_id, net, "alice", alice_sk, table)
        mint = prove_mint(
            alice_pk,
            sum_openings(pending),
            open_supply(ledger.total_supply(asset_id), table),
            mint_amount,
            asset_id=asset_id,
            network_id=net,
        )
        ledger.mint(
            asset_id,
            "alice",
            ledger.pending_of("alice", asset_id),
            ledger.total_supply(asset_id),
            mint.to_bytes(),
        )
        _ok(f"mint proof {len(mint.to_bytes())} bytes")

        _step("alice accepts the minted deposit")
        alice_avail = Opening(0, 0)
        alice_avail = _accept_all(ledger, asset_id, net, "alice", alice_sk, alice_pk, alice_avail, table)
        _ok(f"alice available = {alice_avail.value}")

        _step(f"alice sends {transfer_amount} to bob")
        bundle = prove_sender_transfer(
            alice_sk,
            alice_pk,
            bob_pk,
            alice_avail,
            ledger.balance_of("alice", asset_id),
            ledger.pending_of("bob", asset_id),
            transfer_amount,
            asset_id=asset_id,
            network_id=net,
        )
        deposit_id = ledger.transfer(
            asset_id,
            "alice",
            "bob",
            ledger.balance_of("alice", asset_id),
            ledger.pending_of("bob", asset_id),
            bundle.to_bytes(),
        )
        alice_avail = bundle.new_available_opening
        _ok(f"deposit {deposit_id} created, bundle {len(bundle.to_bytes())} bytes")

        _step("bob discloses the incoming amount")
        deposit = ledger.pending_deposits("bob", asset_id)[0]
        disclosure = prove_disclosure(
            bob_sk, bob_pk, deposit.ciphertext, asset_id=asset_id, network_id=net, table=table
        )
        value = ledger.disclose_amount(asset_id, "bob", deposit.ciphertext, disclosure.to_bytes())
        _ok(f"disclosed value = {value}")

        _step("bob accepts")
        bob_avail = _accept_all(ledger, asset_id, net, "bob", bob_sk, bob_pk, Opening(0, 0), table)
        _ok(f"bob available = {bob_avail.value}")

        if burn_amount:
            _step(f"alice burns {burn_amount}")
            burn = prove_burn(
                alice_sk,
                alice_pk,
                alice_avail,
                open_supply(ledger.total_supply(asset_id), table),
                burn_amount,
                asset_id=asset_id,
                network_id=net,
            )
            burned = ledger.burn(
                asset_id,
                "alice",
                ledger.balance_of("alice", asset_id),
                ledger.total_supply(asset_id),
                burn.ciphertext,
                burn.to_bytes(),
            )
            alice_avail = burn.new_available_opening
            _ok(f"burned {burned}, alice available = {alice_avail.value}")
    except PrivacyProtocolError as e:
        click.echo(click.style(f"✗ {type(e).__name__}: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(click.style("\n✓ Demo complete", fg="green", bold=True))
    click.echo(f"  events: {len(ledger.events)}")


def _open_pending(ledger, asset_id, net, account, sk, table):
    deposits = ledger.pending_deposits(account, asset_id)
    openings = [
        open_deposit(
            sk, d.ciphertext, d.commitment, asset_id=asset_id, network_id=net, table=table
        )
        for d in deposits
    ]
    return deposits, openings


def _accept_all(ledger, asset_id, net, account, sk, pk, available, table):
    deposits, openings = _open_pending(ledger, asset_id, net, account, sk, table)
    envelope = prove_receiver_accept(
        sk,
        pk,
        available,
        sum_openings(openings),
        [(d.commitment, o) for d, o in zip(deposits, openings)],
        asset_id=asset_id,
        network_id=net,
        max_deposits=ledger.config.max_pending_deposits,
    )
    ledger.accept_pending(
        asset_id,
        account,
        [d.id for d in deposits],
        ledger.balance_of(account, asset_id),
        ledger.pending_of(account, asset_id),
        envelope.to_bytes(),
    )
    return envelope.new_available_opening

