"""
Exception and Error Definitions Module

Defines the typed error hierarchy for transaction submission, signing and
confirmation. Every exception raised by the library inherits from ClientError
so callers can catch the whole family with one clause, and the concrete
subclass tells them whether a transaction ever reached the network.

Exception Hierarchy:
    ClientError (root)
    ├── ConnectionError
    ├── SerializationError
    ├── ParseError
    ├── ServiceError
    │   └── InvalidArgumentError
    ├── NotFoundError
    ├── TimeoutError
    ├── InvalidKeyError
    ├── ConfigurationError
    ├── BroadcastRejectedError
    ├── SimulationFailedError
    └── OperationCancelledError

Note:
    ConnectionError and TimeoutError intentionally shadow the builtins inside
    this module's namespace. Import them qualified (``exceptions.TimeoutError``)
    or by name from this module when both are needed.
"""

from typing import Optional


class ClientError(Exception):
    """
    Root exception class for all client errors.

    Also used directly for logic errors that have no narrower category,
    such as a missing signing key.

    Attributes:
        tx_hash: Hash of the transaction involved, once one exists.
        submitted: True when the node had already accepted the transaction
            before the error, so the account sequence is consumed and the
            caller must not blindly resubmit.
    """

    tx_hash: Optional[str] = None
    submitted: bool = False


class ConnectionError(ClientError):
    """
    Raised when the transport or channel to a node fails.

    Connection failures are never retried by the pipeline; they surface
    immediately to the caller.
    """
    pass


class SerializationError(ClientError):
    """
    Raised when a transaction envelope, amount or response cannot be
    encoded or decoded.
    """
    pass


class ParseError(ClientError):
    """
    Raised when an address, denomination or numeric string is malformed.
    """
    pass


class ServiceError(ClientError):
    """
    Raised when a node answers an RPC with an error.

    This is distinct from an on-chain rejection, which is reported as a
    Rejected broadcast outcome.
    """
    pass


class InvalidArgumentError(ServiceError):
    """
    Raised when a node reports the request argument as invalid.

    While polling for a transaction this usually means the node has not
    indexed the hash yet, so pollers treat it as a miss.
    """
    pass


class NotFoundError(ClientError):
    """
    Raised when an account, module account or transaction is absent.
    """
    pass


class TimeoutError(ClientError):
    """
    Raised when a poller exhausts its attempts.

    Attributes:
        tx_hash: Hash of the transaction being confirmed, if any.
        submitted: True when the transaction was accepted by the node before
            the timeout, meaning the account sequence was already consumed.
            Callers must not blindly resubmit in that case.
    """

    def __init__(self, message: str, tx_hash: Optional[str] = None, submitted: bool = False):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.submitted = submitted


class InvalidKeyError(ClientError):
    """
    Raised when a private key is malformed or out of the curve range.
    """
    pass


class ConfigurationError(ClientError):
    """
    Raised when client configuration is missing or invalid.

    This includes scenarios such as:
    - Unknown chain profile name
    - Missing RPC endpoint or signing key
    - Profile family that does not match the chosen codec
    """
    pass


class BroadcastRejectedError(ClientError):
    """
    Raised when the node rejects a broadcast transaction.

    The account sequence is left untouched on this path.

    Attributes:
        tx_hash: Hash of the rejected transaction, when the node returned one.
        code: Node error code.
        raw_log: Node error log.
        codespace: Module codespace reported by Cosmos nodes.
        reason: Coarse classification of raw_log (see classify_rejection).
    """

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        code: int = 0,
        raw_log: str = "",
        codespace: str = "",
        reason: str = "unknown",
    ):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.code = code
        self.raw_log = raw_log
        self.codespace = codespace
        self.reason = reason


class SimulationFailedError(ClientError):
    """
    Raised by the client when a dry run reports a non-zero result code.
    """

    def __init__(self, message: str, code: int = 0, log: str = ""):
        super().__init__(message)
        self.code = code
        self.log = log


class OperationCancelledError(ClientError):
    """
    Raised when a caller-supplied cancel token fires or its deadline passes.

    Attributes:
        tx_hash: Set when cancellation happened after the node accepted the
            transaction, i.e. while waiting for confirmation. submitted is
            True in that case.
    """

    def __init__(self, message: str = "operation cancelled", tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


# ---------------------------------------------------------------------------
# Rejection classification
# ---------------------------------------------------------------------------

_REJECTION_PATTERNS = (
    ("out_of_gas", ("out of gas",)),
    ("sequence_mismatch", ("account sequence mismatch", "incorrect account sequence", "nonce too low")),
    ("insufficient_fees", ("insufficient fee", "max fee per gas less than block base fee", "underpriced")),
    ("insufficient_funds", ("insufficient funds",)),
)


def classify_rejection(raw_log: str) -> str:
    """
    Map a node rejection log to a coarse reason string.

    Args:
        raw_log: Error log returned by the node.

    Returns:
        str: One of "out_of_gas", "sequence_mismatch", "insufficient_fees",
            "insufficient_funds" or "unknown".
    """
    text = (raw_log or "").lower()
    for reason, needles in _REJECTION_PATTERNS:
        if any(needle in text for needle in needles):
            return reason
    return "unknown"
