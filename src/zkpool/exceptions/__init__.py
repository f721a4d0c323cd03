"""Custom exceptions for the shielded pool."""


class ZKPoolException(Exception):
    """Base exception for all shielded pool errors."""
    pass


# Transaction errors (abort a state transition, surfaced verbatim)
class TransactionError(ZKPoolException):
    """Base exception for rejected transactions."""
    pass


class InvalidProofError(TransactionError):
    """Raised when proof verification fails."""
    pass


class StaleRootError(TransactionError):
    """Raised when the proof references a root outside the history window."""
    pass


class DoubleSpendError(TransactionError):
    """Raised when attempting to spend the same note twice."""
    pass


class LimitExceededError(TransactionError):
    """Raised when an amount or fee breaks a public bound."""
    pass


class UnauthorizedError(TransactionError):
    """Raised when a privileged entry point is reached by the wrong caller."""
    pass


class InvalidExtDataError(TransactionError):
    """Raised when external data is unusable (e.g. empty withdrawal recipient)."""
    pass


class InvalidBridgePayloadError(TransactionError):
    """Raised when a bridged message payload cannot be decoded."""
    pass


# Cryptography errors
class CryptoError(ZKPoolException):
    """Base exception for cryptographic errors."""
    pass


class EncryptionError(CryptoError):
    """Raised when encryption fails."""
    pass


class DecryptionError(CryptoError):
    """Raised when decryption fails."""
    pass


class KeyMismatchError(CryptoError):
    """Raised when a key does not belong to the note owner."""
    pass


class CircuitConstraintError(CryptoError):
    """Raised when a witness does not satisfy the transaction circuit."""
    pass


# Merkle tree errors
class MerkleTreeError(ZKPoolException):
    """Base exception for Merkle tree errors."""
    pass


class TreeFullError(MerkleTreeError):
    """Raised when the accumulator has no room left. Fatal for the pool instance."""
    pass


class InvalidLeafIndexError(MerkleTreeError):
    """Raised when leaf index is invalid."""
    pass


# Ledger errors
class LedgerError(ZKPoolException):
    """Base exception for token ledger errors."""
    pass


class InsufficientBalanceError(LedgerError):
    """Raised when an account cannot cover a transfer."""
    pass


class InsufficientAllowanceError(LedgerError):
    """Raised when a spender exceeds its allowance."""
    pass


# Storage errors
class StorageError(ZKPoolException):
    """Base exception for storage errors."""
    pass


class DatabaseError(StorageError):
    """Raised when the event store cannot be read or written."""
    pass


class ReplayError(StorageError):
    """Raised when a public log does not replay into a consistent state."""
    pass
