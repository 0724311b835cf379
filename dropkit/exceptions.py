"""
Exceptions for the dropkit package.
"""
from typing import Iterable, List, Optional


class DropkitError(Exception):
    """Base exception for all dropkit errors."""
    pass


class ConfigValidationError(DropkitError):
    """Raised when a collection configuration has one or more invalid fields."""

    def __init__(self, errors: Iterable[str], message: Optional[str] = None):
        self.errors: List[str] = list(errors)
        if message is None:
            message = "Configuration validation failed:\n" + "\n".join(
                f"- {error}" for error in self.errors
            )
        super().__init__(message)


class UnsupportedChainError(DropkitError, ValueError):
    """Raised when a chain id or network name is not in the chain registry."""
    pass


class ChainRpcError(DropkitError):
    """Raised when the RPC endpoint fails or returns an error."""
    pass


class TransactionError(DropkitError):
    """Raised when a transaction cannot be signed or broadcast."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class TransactionFailed(TransactionError):
    """Raised when the chain accepted a transaction but execution reverted."""

    def __init__(self, message: str, tx_hash: Optional[str] = None, outcome=None):
        self.outcome = outcome
        super().__init__(message, tx_hash=tx_hash)


class TransactionPending(TransactionError):
    """Raised when a broadcast transaction is not confirmed before the deadline."""
    pass


class LogDecodingError(DropkitError):
    """Raised when an expected event cannot be decoded from a receipt."""
    pass


class LogNotFound(LogDecodingError):
    """Raised when no log in a receipt matches the expected event selector."""
    pass


class StoreIOError(DropkitError):
    """Raised when the project store cannot be read or written."""
    pass


class ProjectNotFoundError(DropkitError):
    """Raised when a collection has no project file."""
    pass


class AlreadyDeployedError(DropkitError):
    """Raised when a deploy is requested for a collection that is already deployed."""
    pass


class ContractNotDeployedError(DropkitError):
    """Raised when an action needs a deployed contract but none is recorded."""
    pass


class SetupLockedError(DropkitError):
    """Raised when the contract reports that its one-time setup is locked."""
    pass


class OperationCancelled(DropkitError):
    """Raised when the operator declines a confirmation prompt."""
    pass
