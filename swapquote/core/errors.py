"""Error taxonomy for the swap quote engine."""

from enum import Enum


class SwapQuoteError(Exception):
    """Base exception for swap quote errors."""


class ParseError(SwapQuoteError, ValueError):
    """Malformed numeric or address input."""

    def __init__(self, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Cannot parse {value!r}: {reason}")


class NoRouteError(SwapQuoteError):
    """A liquidity source found no viable path."""

    def __init__(self, source: str, message: str = "No route found") -> None:
        self.source = source
        super().__init__(f"{source}: {message}")


class StaleResultError(SwapQuoteError):
    """A resolved result no longer matches the current inputs."""


class CurrencyMismatchError(SwapQuoteError, ValueError):
    """Arithmetic or comparison between amounts of different currencies."""

    def __init__(self, left: str, right: str) -> None:
        super().__init__(f"Currency mismatch: {left} vs {right}")


class InputError(str, Enum):
    """Validation classification surfaced in a verdict, in precedence order."""

    CONNECT_WALLET = "connect_wallet"
    ENTER_DETAILS = "enter_details"
    BASE_FEE_UNAVAILABLE = "base_fee_unavailable"
    ENTER_RECIPIENT = "enter_recipient"
    INVALID_RECIPIENT = "invalid_recipient"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    MIN_AMOUNT = "min_amount"
    INSUFFICIENT_NATIVE_FOR_FEES = "insufficient_native_for_fees"

    def message(self, symbol: str | None = None) -> str:
        """Human readable text for this error."""
        if self is InputError.INSUFFICIENT_BALANCE:
            return f"Insufficient {symbol} balance"
        if self is InputError.INSUFFICIENT_NATIVE_FOR_FEES:
            return f"Insufficient {symbol} balance (fees)"
        return _MESSAGES[self]


_MESSAGES = {
    InputError.CONNECT_WALLET: "Connect Wallet",
    InputError.ENTER_DETAILS: "Swap",
    InputError.BASE_FEE_UNAVAILABLE: "Undefined base fee per gas",
    InputError.ENTER_RECIPIENT: "Enter a recipient",
    InputError.INVALID_RECIPIENT: "Invalid recipient",
    InputError.MIN_AMOUNT: "Min trade amount not met",
}
