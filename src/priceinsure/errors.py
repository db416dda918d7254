"""Error taxonomy shared by every component.

Each error carries a stable machine-readable ``kind`` and the HTTP status
the API layer renders it with. Components raise these; only the API layer
turns them into responses.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for all gateway errors."""

    kind = "gateway_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class ValidationError(GatewayError):
    """Malformed input, detected before any network call."""

    kind = "validation_error"
    status_code = 400


# ----------------------------------------------------------------------
# Ledger connectivity
# ----------------------------------------------------------------------


class LedgerConnectionError(GatewayError):
    """The ledger endpoint is unreachable or answered with an HTTP error."""

    kind = "connection_error"
    status_code = 503


class LedgerTimeout(GatewayError):
    """A ledger call did not complete within its time budget."""

    kind = "timeout"
    status_code = 504


class ProgramCallFailed(GatewayError):
    """The node answered, but the program call reverted or returned garbage."""

    kind = "program_call_failed"
    status_code = 502


class UnsupportedProgramVersion(GatewayError):
    """A call to a function outside the fixed program interface."""

    kind = "unsupported_program_version"
    status_code = 500


# ----------------------------------------------------------------------
# Business state
# ----------------------------------------------------------------------


class OrderNotFound(GatewayError):
    """Order record unreadable, or its remaining amount is zero."""

    kind = "order_not_found"
    status_code = 404

    def __init__(self, order_id: int, message: Optional[str] = None):
        super().__init__(
            message or f"Order {order_id} does not exist or is already filled/cancelled",
            {"order_id": order_id},
        )
        self.order_id = order_id


class OrderNotFillable(GatewayError):
    """The order book reports the order cannot accept a fill right now."""

    kind = "order_not_fillable"
    status_code = 409

    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} is not fillable", {"order_id": order_id})
        self.order_id = order_id


class StrikeNotIssued(GatewayError):
    """No instrument pair exists yet for a strike price."""

    kind = "strike_not_issued"
    status_code = 404


class InsufficientPrerequisite(GatewayError):
    """The action cannot be authorized in the current on-chain state."""

    kind = "insufficient_prerequisite"
    status_code = 409


# ----------------------------------------------------------------------
# Faucet
# ----------------------------------------------------------------------


class FaucetUnavailable(GatewayError):
    """The faucet has no signing key configured."""

    kind = "faucet_unavailable"
    status_code = 503


class SubmissionFailed(GatewayError):
    """The transaction was never accepted by the node. Safe to retry."""

    kind = "submission_failed"
    status_code = 502


class AmbiguousSubmission(GatewayError):
    """Dispatched, but the outcome is unknown. Must not be resubmitted."""

    kind = "ambiguous_submission"
    status_code = 202

    def __init__(self, message: str, tx_hash: str, details: Optional[dict] = None):
        super().__init__(message, {"tx_hash": tx_hash, **(details or {})})
        self.tx_hash = tx_hash


class ConfirmationTimeout(AmbiguousSubmission):
    """No receipt was observed within the confirmation timeout."""

    kind = "confirmation_timeout"


class TransactionReverted(GatewayError):
    """The transaction was mined with a failure status."""

    kind = "transaction_reverted"
    status_code = 502

    def __init__(self, tx_hash: str, block_number: Optional[int] = None):
        super().__init__(
            f"Transaction {tx_hash} reverted",
            {"tx_hash": tx_hash, "block_number": block_number},
        )
        self.tx_hash = tx_hash
