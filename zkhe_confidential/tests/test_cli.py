"""
Tests for the zkhe command-line interface.
"""

import pytest
from click.testing import CliRunner

from zkhe_confidential import __version__
from zkhe_confidential.cli import main
from zkhe_confidential.confidential_protocol.zkelgamal.commitments import (
    verify_commitment,
)


@pytest.fixture
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(main, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_lists_commands(runner):
    result = runner.invoke(main, ["--help"])

    assert result.exit_code == 0
    for command in ("keygen", "commit", "demo"):
        assert command in result.output


def test_keygen_seeded_is_reproducible(runner):
    seed = "11" * 32
    first = runner.invoke(main, ["keygen", "--seed", seed])
    second = runner.invoke(main, ["keygen", "--seed", seed])

    assert first.exit_code == 0
    assert first.output == second.output
    assert "public_key: 0" in first.output


def test_keygen_bad_seed(runner):
    result = runner.invoke(main, ["keygen", "--seed", "abcd"])
    assert result.exit_code != 0


def test_commit(runner):
    result = runner.invoke(main, ["commit", "42", "--blinding", "ff"])

    assert result.exit_code == 0
    commitment = bytes.fromhex(result.output.splitlines()[0].split(": ")[1])
    assert verify_commitment(commitment, 42, 0xFF)


def test_commit_add(runner):
    result = runner.invoke(main, ["commit", "1", "--add", "2", "--add", "3"])

    assert result.exit_code == 0
    assert result.output.count("+ commit(") == 2


def test_commit_rejects_negative(runner):
    result = runner.invoke(main, ["commit", "-5"])
    assert result.exit_code != 0


def test_demo(runner):
    result = runner.invoke(
        main,
        [
            "demo",
            "--mint-amount", "900",
            "--transfer-amount", "300",
            "--burn-amount", "100",
            "--decrypt-bits", "12",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "disclosed value = 300" in result.output
    assert "bob available = 300" in result.output
    assert "alice available = 500" in result.output
    assert "Demo complete" in result.output


def test_demo_rejects_overspend(runner):
    result = runner.invoke(
        main, ["demo", "--mint-amount", "10", "--transfer-amount", "20"]
    )
    assert result.exit_code != 0


def test_demo_rejects_mint_above_decryption_bound(runner):
    result = runner.invoke(
        main,
        [
            "demo",
            "--mint-amount", str(1 << 12),
            "--transfer-amount", "1",
            "--burn-amount", "1",
            "--decrypt-bits", "12",
        ],
    )

    assert result.exit_code != 0
    assert "2^12" in result.output
