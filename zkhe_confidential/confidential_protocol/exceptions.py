"""
⚠️ DRAFT — requires crypto review before production use

Custom exceptions for the confidential-balance protocol.

Prover errors derive from ProofGenerationError, verifier errors from
ProofVerificationError and host-ledger errors from LedgerError. A host must
abort the whole enclosing operation on any of them.
"""


class PrivacyProtocolError(Exception):
    """Base exception for protocol errors."""

    pass


class ProofGenerationError(PrivacyProtocolError):
    """Error during proof generation."""

    pass


class ProofVerificationError(PrivacyProtocolError):
    """Error during proof verification."""

    pass


class ConfigurationError(PrivacyProtocolError):
    """Configuration error."""

    pass


class CryptographicError(PrivacyProtocolError):
    """Cryptographic operation error."""

    pass


class SecurityError(PrivacyProtocolError):
    """Security requirement violation."""

    pass


# ============================================================================
# PROVER ERRORS
# ============================================================================


class InvalidInput(ProofGenerationError):
    """Malformed key, commitment or opening supplied to the prover."""

    pass


class ArithmeticOverflow(ProofGenerationError):
    """Value arithmetic would leave the 64-bit range."""

    pass


class InsufficientLocalBalance(ProofGenerationError):
    """Caller's own bookkeeping shows the operation cannot succeed."""

    pass


class DecryptionRangeExceeded(ProofGenerationError):
    """Ciphertext plaintext lies outside the searched decryption range."""

    pass


# ============================================================================
# VERIFIER ERRORS
# ============================================================================


class MalformedEncoding(ProofVerificationError):
    """Field has the wrong length or layout."""

    pass


class InvalidCurvePoint(ProofVerificationError):
    """Bytes do not decode to a valid curve point."""

    pass


class RangeProofInvalid(ProofVerificationError):
    """A Bulletproof range proof failed to verify."""

    pass


class LinkProofInvalid(ProofVerificationError):
    """Ciphertext/commitment link (or key possession) proof failed."""

    pass


class BalanceProofInvalid(ProofVerificationError):
    """Old/delta/new commitment identity does not hold."""

    pass


class StaleClaimedState(ProofVerificationError):
    """Claimed prior commitment does not match stored state."""

    pass


class TranscriptMismatch(ProofVerificationError):
    """Proof was bound to a different asset or network context."""

    pass


# ============================================================================
# LEDGER ERRORS
# ============================================================================


class LedgerError(PrivacyProtocolError):
    """Host ledger rejected an operation."""

    pass


class UnknownPublicKey(LedgerError):
    """Account has no registered public key."""

    pass


class DepositNotFound(LedgerError):
    """Pending deposit does not exist (never created or already claimed)."""

    pass


class PendingLimitExceeded(LedgerError):
    """Too many outstanding pending deposits for (account, asset)."""

    pass
