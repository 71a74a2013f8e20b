from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

# --- Data Structures ---


class Quote(BaseModel):
    """A swap order returned by GET /order. The transaction inside is unsigned."""

    model_config = ConfigDict(frozen=True)

    quote_id: str  # Ultra's requestId, ties the order to its later execution
    transaction: str  # base64 unsigned VersionedTransaction
    input_mint: str
    output_mint: str
    in_amount: int  # smallest unit
    out_amount: int  # smallest unit
    input_decimals: int
    output_decimals: int
    slippage_bps: int
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def in_amount_ui(self) -> float:
        return self.in_amount / (10 ** self.input_decimals)

    @property
    def out_amount_ui(self) -> float:
        return self.out_amount / (10 ** self.output_decimals)

    @property
    def price(self) -> Optional[float]:
        """Output units received per input unit, in human decimals."""
        if self.in_amount == 0:
            return None
        return self.out_amount_ui / self.in_amount_ui

    def summary(self) -> Dict[str, Any]:
        return {
            "requestId": self.quote_id,
            "transaction": self.transaction,
            "inputMint": self.input_mint,
            "outputMint": self.output_mint,
            "inAmount": str(self.in_amount),
            "outAmount": str(self.out_amount),
            "inAmountUI": self.in_amount_ui,
            "outAmountUI": self.out_amount_ui,
            "price": self.price,
        }


class ExecutionStatus(str, Enum):
    PENDING = "Pending"
    SUCCESS = "Success"
    FAILED = "Failed"

    @classmethod
    def from_wire(cls, status: Optional[str]) -> "ExecutionStatus":
        """Anything other than the two terminal strings means still pending."""
        if status == cls.SUCCESS.value:
            return cls.SUCCESS
        if status == cls.FAILED.value:
            return cls.FAILED
        return cls.PENDING


class ExecutionAttempt(BaseModel):
    """State of one signed submission as seen through POST /execute."""

    quote_id: str
    signed_transaction: str = Field(repr=False)
    status: ExecutionStatus = ExecutionStatus.PENDING
    raw_status: Optional[str] = None
    signature: Optional[str] = None
    slot: Optional[int] = None
    input_amount_result: Optional[str] = None
    output_amount_result: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.status is not ExecutionStatus.PENDING

    def apply(self, result: Dict[str, Any]) -> None:
        """Folds one /execute response into the attempt.

        A terminal status is never left once reached; fields the response omits
        keep whatever an earlier poll reported.
        """
        if self.is_terminal:
            raise RuntimeError(f"Execution {self.quote_id} already resolved as {self.status.value}")

        self.attempts += 1
        self.raw = result
        self.raw_status = result.get("status")
        self.status = ExecutionStatus.from_wire(self.raw_status)

        if result.get("signature"):
            self.signature = result["signature"]
        if result.get("slot") is not None:
            self.slot = int(result["slot"])
        in_amount = result.get("inputAmountResult") or result.get("totalInputAmount")
        out_amount = result.get("outputAmountResult") or result.get("totalOutputAmount")
        if in_amount is not None:
            self.input_amount_result = str(in_amount)
        if out_amount is not None:
            self.output_amount_result = str(out_amount)
        if result.get("error"):
            self.error = str(result["error"])
