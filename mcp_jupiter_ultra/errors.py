"""Exceptions raised by the swap pipeline.

Everything derives from SwapError so the tool layer can turn a known failure
into a caller-facing message with a single except clause. Failed and timed-out
executions are outcomes, not exceptions (see classifier.py).
"""

from typing import Optional


class SwapError(Exception):
    """Base class for failures surfaced to the calling agent."""


class ConfigurationError(SwapError, ValueError):
    """Required environment configuration is missing or malformed."""


class InvalidAmount(SwapError, ValueError):
    """The amount string is not a finite, non-negative number."""

    def __init__(self, amount: str):
        self.amount = amount
        super().__init__(f"Invalid amount format: {amount!r}")


class InvalidAddress(SwapError, ValueError):
    """A mint or wallet string is not a valid base58 public key."""

    def __init__(self, label: str, value: str):
        self.label = label
        self.value = value
        super().__init__(f"Invalid {label} public key format: {value!r}")


class InvalidTransaction(SwapError, ValueError):
    """The transaction payload could not be decoded or signed."""


class UpstreamError(SwapError):
    """The aggregator or the RPC node failed or answered with something unusable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class InsufficientFees(SwapError):
    """The wallet cannot cover network fees, so nothing was submitted."""

    def __init__(self, balance_lamports: int, required_lamports: int):
        self.balance_lamports = balance_lamports
        self.required_lamports = required_lamports
        super().__init__(
            f"Insufficient SOL for transaction fees. "
            f"Balance: {balance_lamports / 1_000_000_000:.6f} SOL, "
            f"required: ~{required_lamports / 1_000_000_000:.3f} SOL. "
            f"Add about 0.01 SOL to the wallet and try again."
        )
