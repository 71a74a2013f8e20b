from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from .models import ExecutionAttempt, ExecutionStatus


class OutcomeKind(str, Enum):
    SUCCESS = "Success"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"


class FailureCategory(str, Enum):
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    SLIPPAGE_EXCEEDED = "SlippageExceeded"
    ORDER_EXPIRED = "OrderExpired"
    INSUFFICIENT_LIQUIDITY = "InsufficientLiquidity"
    UPSTREAM_INTERNAL_ERROR = "UpstreamInternalError"
    UNKNOWN = "Unknown"


# Evaluated top to bottom against the lowercased error text; first hit wins.
FAILURE_RULES: Tuple[Tuple[Tuple[str, ...], FailureCategory], ...] = (
    (("insufficient", "balance"), FailureCategory.INSUFFICIENT_FUNDS),
    (("slippage",), FailureCategory.SLIPPAGE_EXCEEDED),
    (("timeout", "expired"), FailureCategory.ORDER_EXPIRED),
    (("liquidity",), FailureCategory.INSUFFICIENT_LIQUIDITY),
    (("internal",), FailureCategory.UPSTREAM_INTERNAL_ERROR),
)

FAILURE_MESSAGES: Dict[FailureCategory, str] = {
    FailureCategory.INSUFFICIENT_FUNDS: "Insufficient funds",
    FailureCategory.SLIPPAGE_EXCEEDED: "Slippage tolerance exceeded",
    FailureCategory.ORDER_EXPIRED: "Order expired",
    FailureCategory.INSUFFICIENT_LIQUIDITY: "Insufficient liquidity",
    FailureCategory.UPSTREAM_INTERNAL_ERROR: "Jupiter server internal error",
}

GUIDANCE: Dict[FailureCategory, str] = {
    FailureCategory.INSUFFICIENT_FUNDS: "Check your token balances and SOL for fees.",
    FailureCategory.SLIPPAGE_EXCEEDED: "Try increasing slippage or retry after some time.",
    FailureCategory.ORDER_EXPIRED: "Get a new order and retry the operation.",
    FailureCategory.INSUFFICIENT_LIQUIDITY: "Try swapping a smaller amount or a different token pair.",
    FailureCategory.UPSTREAM_INTERNAL_ERROR: "Retry the operation in a few minutes.",
    FailureCategory.UNKNOWN: "Check the transaction on the explorer and retry with a new order.",
}

TIMEOUT_GUIDANCE = (
    "The on-chain result is not known yet. You can try again with the same order: "
    "resubmit the same quote id and transaction to keep polling. Do not request a new "
    "quote until this one is known to have failed."
)

UNKNOWN_ERROR = "Unknown error"


def classify_error(error: Optional[str]) -> FailureCategory:
    if not error:
        return FailureCategory.UNKNOWN
    lowered = error.lower()
    for keywords, category in FAILURE_RULES:
        if any(keyword in lowered for keyword in keywords):
            return category
    return FailureCategory.UNKNOWN


class ExecutionOutcome(BaseModel):
    kind: OutcomeKind
    quote_id: str
    category: Optional[FailureCategory] = None
    message: str = ""
    guidance: str = ""
    signature: Optional[str] = None
    slot: Optional[int] = None
    input_amount: Optional[str] = None
    output_amount: Optional[str] = None
    last_status: Optional[str] = None
    attempts: int = 0
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def is_error(self) -> bool:
        # A timeout is not a failure: the swap may still land.
        return self.kind is OutcomeKind.FAILED


def classify(attempt: ExecutionAttempt) -> ExecutionOutcome:
    """Maps the last state of an execution attempt to a caller-facing outcome."""
    common = dict(
        quote_id=attempt.quote_id,
        signature=attempt.signature,
        last_status=attempt.raw_status,
        attempts=attempt.attempts,
        raw=attempt.raw,
    )

    if attempt.status is ExecutionStatus.SUCCESS:
        return ExecutionOutcome(
            kind=OutcomeKind.SUCCESS,
            message="Swap executed successfully",
            slot=attempt.slot,
            input_amount=attempt.input_amount_result,
            output_amount=attempt.output_amount_result,
            **common,
        )

    if attempt.status is ExecutionStatus.FAILED:
        category = classify_error(attempt.error)
        message = FAILURE_MESSAGES.get(category) or attempt.error or UNKNOWN_ERROR
        return ExecutionOutcome(
            kind=OutcomeKind.FAILED,
            category=category,
            message=message,
            guidance=GUIDANCE[category],
            **common,
        )

    return ExecutionOutcome(
        kind=OutcomeKind.TIMED_OUT,
        message="Transaction status determination timeout",
        guidance=TIMEOUT_GUIDANCE,
        **common,
    )
