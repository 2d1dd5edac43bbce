"""
zkhe-confidential: confidential balances with Pedersen commitments,
twisted ElGamal and Bulletproof range proofs.

⚠️  PROOF OF CONCEPT - NOT PRODUCTION READY
"""

__version__ = "0.1.0"

DISCLAIMER = (
    "⚠️  zkhe-confidential is a prototype. The cryptography has not been "
    "audited; do not use it to protect real value."
)


def print_disclaimer() -> None:
    print(DISCLAIMER)
