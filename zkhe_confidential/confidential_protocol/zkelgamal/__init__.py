"""
ZK-ElGamal primitives, prover and verifier.

⚠️ DRAFT — requires crypto review before production use
"""

from .backend import ZkElGamalVerifier
from .bundles import (
    BurnProof,
    DisclosureProof,
    MintProof,
    Opening,
    ReceiverEnvelope,
    SenderBundle,
)
from .commitments import commit, h_generator
from .elgamal import DecryptionTable, decrypt_to_point, decrypt_value, encrypt, keygen
from .prover import (
    open_deposit,
    open_supply,
    prove_burn,
    prove_disclosure,
    prove_mint,
    prove_receiver_accept,
    prove_sender_transfer,
    sum_openings,
)
from .transcript import Transcript, transcript_bind
