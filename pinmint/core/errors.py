"""Error taxonomy for the pin-then-mint pipeline."""

from enum import Enum


class ErrorCategory(str, Enum):
    """User-facing failure categories reported by the mint pipeline."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    AUTHENTICATION = "authentication"
    NETWORK = "network"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNDERPRICED = "underpriced"
    RPC_CONFIG = "rpc_config"
    CONFIRMATION = "confirmation"
    CANCELLED = "cancelled"
    STORAGE = "storage"
    UNKNOWN = "unknown"


CATEGORY_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.AUTHENTICATION: (
        "RPC authentication failed. Please check your RPC URL configuration."
    ),
    ErrorCategory.NETWORK: (
        "Network error. Please check your internet connection and RPC URL."
    ),
    ErrorCategory.INSUFFICIENT_FUNDS: (
        "The wallet does not have enough ETH to pay for gas fees."
    ),
    ErrorCategory.UNDERPRICED: (
        "Transaction was underpriced by the node. Retry later."
    ),
    ErrorCategory.RPC_CONFIG: "No RPC endpoint or signing key configured.",
    ErrorCategory.UNKNOWN: "Failed to mint NFT",
}


class MintError(Exception):
    """Base class for pipeline errors."""

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(MintError):
    """Request rejected before any external call was made."""

    category = ErrorCategory.VALIDATION


class ContentNotFound(MintError):
    """A referenced content record does not exist."""

    category = ErrorCategory.NOT_FOUND


class ContentStoreUnavailable(MintError):
    """The content database could not be reached."""

    category = ErrorCategory.STORAGE


class PinningDegraded(MintError):
    """Pinning was skipped or failed; the pipeline continues without it."""


class SubmissionFailed(MintError):
    """The mint transaction could not be submitted. Nothing was recorded."""

    def __init__(
        self,
        category: ErrorCategory,
        details: str | None = None,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message
            or CATEGORY_MESSAGES.get(
                category, CATEGORY_MESSAGES[ErrorCategory.UNKNOWN]
            ),
            details,
        )
        self.category = category


class ConfirmationFailed(MintError):
    """The transaction was submitted but its confirmation was not observed.

    The transaction may still be mined later; ``tx_hash`` lets the caller
    reconcile it against the chain.
    """

    category = ErrorCategory.CONFIRMATION

    def __init__(self, tx_hash: str, reason: str, details: str | None = None) -> None:
        super().__init__(
            f"Transaction {tx_hash} was not confirmed ({reason})", details
        )
        self.tx_hash = tx_hash
        self.reason = reason


class DecodeIncomplete(MintError):
    """The receipt carried no recognizable mint event."""


class MintCancelled(MintError):
    """The caller went away before the transaction was submitted."""

    category = ErrorCategory.CANCELLED


class TokenNotFound(MintError):
    """The requested token does not exist on the contract."""

    category = ErrorCategory.NOT_FOUND
