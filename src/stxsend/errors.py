"""Error taxonomy for the transfer pipeline.

Every failure that leaves a component is one of these exceptions. Each carries
a ``kind`` tag, a human-readable ``message`` the UI can render directly, and
where useful the numbers a user needs to correct the situation.
"""

from typing import Any, Optional


class TransferError(Exception):
    """Base class for all pipeline failures."""

    kind = "TRANSFER_ERROR"
    default_message = "Token transfer failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def context(self) -> dict[str, Any]:
        """Numeric context attached to this error."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": True, "type": self.kind, "message": self.message, **self.context()}


class ValidationError(TransferError):
    """Transfer rejected by one of the admission gates."""


class InsufficientFundingBalance(ValidationError):
    """Not enough BTC to pay the transaction fee."""

    kind = "INSUFFICIENT_BTC_BALANCE"
    default_message = "Insufficient Bitcoin balance to fund transaction fees."

    def __init__(self, estimate: int, balance: int, message: Optional[str] = None):
        self.estimate = estimate
        self.balance = balance
        self.shortfall = estimate - balance
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        return {"estimate": self.estimate, "balance": self.balance, "shortfall": self.shortfall}


class PendingConfirmations(ValidationError):
    """BTC is present but not yet confirmed."""

    kind = "PENDING_CONFIRMATIONS"
    default_message = "Your BTC is still being confirmed. Please try again later."

    def __init__(self, estimate: int, confirmed_balance: int, message: Optional[str] = None):
        self.estimate = estimate
        self.confirmed_balance = confirmed_balance
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        return {"estimate": self.estimate, "confirmed_balance": self.confirmed_balance}


class InsufficientTokenBalance(ValidationError):
    kind = "INSUFFICIENT_STX_BALANCE"
    default_message = "Insufficient Stacks balance."

    def __init__(self, balance: int, amount: int, message: Optional[str] = None):
        self.balance = balance
        self.amount = amount
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        return {"balance": self.balance, "amount": self.amount}


class TokensLocked(ValidationError):
    kind = "LOCKED_TOKENS"
    default_message = "Token transfer cannot be safely sent. Tokens have not been unlocked."

    def __init__(self, unlock_height: int, block_height: int, message: Optional[str] = None):
        self.unlock_height = unlock_height
        self.block_height = block_height
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        return {"unlock_height": self.unlock_height, "block_height": self.block_height}


class TransactionError(TransferError):
    """Catch-all for failures while reading state, building or signing."""

    kind = "TRANSACTION_ERROR"
    default_message = "Token transfer cannot be safely sent."


class NetworkError(TransactionError):
    """A chain or account backend read failed."""


class SigningError(TransactionError):
    """The signing device failed, disconnected or the user rejected."""


class KeyMismatchError(SigningError):
    """The device key at the configured path does not control the sender address."""


class BroadcastRejected(TransferError):
    """The relay answered but did not accept the transaction."""

    kind = "BROADCAST_REJECTED"

    def __init__(self, response_body: str):
        self.response_body = response_body
        super().__init__(f"Broadcast transaction failed with message: {response_body}")

    def context(self) -> dict[str, Any]:
        return {"response_body": self.response_body}


class BroadcastError(TransferError):
    """The relay could not be reached."""

    kind = "BROADCAST_ERROR"
    default_message = "Transaction broadcast failed."


class InvalidAddressError(ValueError):
    """Address is not a valid c32check or base58check address."""
