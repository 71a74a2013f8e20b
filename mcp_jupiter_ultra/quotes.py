from decimal import ROUND_FLOOR, Decimal, InvalidOperation, localcontext

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException
from solders.pubkey import Pubkey

from mcp.server.fastmcp.utilities.logging import get_logger

from .errors import InvalidAddress, InvalidAmount, UpstreamError
from .models import Quote
from .ultra_client import UltraClient
from .wallet import SigningWallet

logger = get_logger(__name__)

# Largest accepted decimal exponent in a human amount; 1e31 and up is rejected.
MAX_AMOUNT_EXPONENT = 30


def parse_amount(amount: str) -> Decimal:
    """Parses a human-decimal amount such as "1.23". Rejects negatives, NaN, infinity and absurd exponents."""
    try:
        value = Decimal(amount.strip())
    except (InvalidOperation, AttributeError):
        raise InvalidAmount(amount) from None
    if not value.is_finite() or value < 0:
        raise InvalidAmount(amount)
    if value and value.adjusted() > MAX_AMOUNT_EXPONENT:
        raise InvalidAmount(amount)
    return value


def to_smallest_unit(value: Decimal, decimals: int) -> int:
    """floor(value * 10**decimals), computed exactly."""
    with localcontext() as ctx:
        # scaleb keeps every digit only if the context can hold them all
        ctx.prec = max(80, len(value.as_tuple().digits) + 1)
        return int(value.scaleb(decimals).to_integral_value(rounding=ROUND_FLOOR))


def parse_pubkey(value: str, label: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError:
        raise InvalidAddress(label, value) from None


async def fetch_mint_decimals(rpc: AsyncClient, mint: Pubkey) -> int:
    """Looks up a token mint's decimal precision over RPC."""
    try:
        resp = await rpc.get_token_supply(mint)
    except (RPCException, SolanaRpcException) as e:
        raise UpstreamError(f"Could not fetch mint info for {mint}: {e}") from e
    return resp.value.decimals


class QuoteClient:
    """Turns a human swap request into a Jupiter Ultra order for the configured wallet."""

    def __init__(self, ultra: UltraClient, rpc: AsyncClient, wallet: SigningWallet):
        self.ultra = ultra
        self.rpc = rpc
        self.wallet = wallet

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: str,
        slippage_bps: int,
    ) -> Quote:
        # Parse before any network traffic so bad input never reaches the aggregator.
        value = parse_amount(amount)
        input_pubkey = parse_pubkey(input_mint, "input mint")
        output_pubkey = parse_pubkey(output_mint, "output mint")

        input_decimals = await fetch_mint_decimals(self.rpc, input_pubkey)
        output_decimals = await fetch_mint_decimals(self.rpc, output_pubkey)
        amount_int = to_smallest_unit(value, input_decimals)
        logger.debug(
            f"Converted {amount} at {input_decimals} decimals to {amount_int} base units"
        )

        order = await self.ultra.get_order(
            input_mint=input_mint,
            output_mint=output_mint,
            amount=amount_int,
            slippage_bps=slippage_bps,
            taker=self.wallet.address,
        )
        if not order.get("transaction"):
            raise UpstreamError(f"No transaction field in order response: {order}")
        if not order.get("requestId"):
            raise UpstreamError(f"No requestId field in order response: {order}")

        try:
            in_amount = int(order.get("inAmount", amount_int))
            out_amount = int(order.get("outAmount", 0))
        except (TypeError, ValueError) as e:
            raise UpstreamError(f"Malformed amounts in order response: {order}") from e

        quote = Quote(
            quote_id=order["requestId"],
            transaction=order["transaction"],
            input_mint=input_mint,
            output_mint=output_mint,
            in_amount=in_amount,
            out_amount=out_amount,
            input_decimals=input_decimals,
            output_decimals=output_decimals,
            slippage_bps=slippage_bps,
            raw=order,
        )
        logger.info(
            f"Quote {quote.quote_id}: {quote.in_amount} {input_mint} -> {quote.out_amount} {output_mint}"
        )
        return quote
