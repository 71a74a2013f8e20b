from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import List, Optional

import httpx
from pydantic import Field
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.server.fastmcp.utilities.logging import get_logger

from .classifier import classify
from .config import Settings
from .errors import SwapError
from .executor import ExecutionPoller
from .formatting import filter_holdings, render_holdings, render_outcome, render_quote, render_search
from .quotes import QuoteClient, parse_pubkey
from .ultra_client import UltraClient, build_http_client
from .wallet import SigningWallet, sign_transaction

logger = get_logger(__name__)

# --- Server Context ---


@dataclass
class SwapContext:
    """Everything a tool call needs. Built once per server process, shared read-only."""

    settings: Settings
    wallet: SigningWallet
    http: httpx.AsyncClient
    rpc: AsyncClient
    ultra: UltraClient
    quotes: QuoteClient
    poller: ExecutionPoller

    @classmethod
    def create(
        cls,
        settings: Settings,
        http: Optional[httpx.AsyncClient] = None,
        rpc: Optional[AsyncClient] = None,
        wallet: Optional[SigningWallet] = None,
    ) -> "SwapContext":
        wallet = wallet or SigningWallet.from_base58(settings.private_key)
        http = http or build_http_client(settings)
        rpc = rpc or AsyncClient(settings.rpc_url, commitment=Confirmed)
        ultra = UltraClient(http)
        return cls(
            settings=settings,
            wallet=wallet,
            http=http,
            rpc=rpc,
            ultra=ultra,
            quotes=QuoteClient(ultra, rpc, wallet),
            poller=ExecutionPoller(
                ultra,
                rpc,
                wallet,
                min_fee_reserve_lamports=settings.min_fee_reserve_lamports,
                poll_interval=settings.poll_interval,
                max_attempts=settings.max_execute_attempts,
            ),
        )

    async def aclose(self) -> None:
        await self.http.aclose()
        await self.rpc.close()


@asynccontextmanager
async def swap_lifespan(server: FastMCP) -> AsyncIterator[SwapContext]:
    """Loads configuration and opens the HTTP and RPC clients for the server's lifetime."""
    settings = Settings.from_env()
    swap_ctx = SwapContext.create(settings)
    logger.info(f"Jupiter Ultra server ready for wallet {swap_ctx.wallet.address}")
    logger.info(f"Using RPC endpoint {settings.rpc_url} and Ultra API {settings.ultra_api_url}")
    try:
        yield swap_ctx
    finally:
        await swap_ctx.aclose()
        logger.info("Jupiter Ultra server shut down")


# --- Server Setup ---
mcp = FastMCP(name="Jupiter Ultra Swap Server", lifespan=swap_lifespan)


def _swap_context(context: Context) -> SwapContext:
    return context.request_context.lifespan_context


# --- MCP Tools ---


@mcp.tool(name="get-quote")
async def get_quote(
    context: Context,
    input_mint: str = Field(..., description="Input token mint address."),
    output_mint: str = Field(..., description="Output token mint address."),
    amount: str = Field(..., description="Input amount as a decimal string (e.g. '1.23')."),
    slippage_bps: int = Field(..., description="Slippage tolerance in basis points (e.g. 50 for 0.5%)."),
) -> str:
    """Get a swap order from Jupiter Ultra. Returns the request id and the unsigned transaction."""
    logger.info(
        f"Received get-quote request: {amount} {input_mint} -> {output_mint}, slippage={slippage_bps}bps"
    )
    swap = _swap_context(context)
    try:
        quote = await swap.quotes.get_quote(input_mint, output_mint, amount, slippage_bps)
    except SwapError as e:
        raise ToolError(f"Error fetching order: {e}") from e
    except Exception as e:
        logger.exception(f"Unexpected error fetching order: {e}")
        raise ToolError(f"Error fetching order: {e}") from e
    return render_quote(quote)


@mcp.tool(name="execute-quote")
async def execute_quote(
    context: Context,
    quote_id: str = Field(..., description="Request id returned by get-quote."),
    transaction: str = Field(..., description="Base64 encoded transaction returned by get-quote."),
) -> str:
    """
    Sign the quoted transaction with the server wallet and have Jupiter execute it.
    Jupiter handles slippage, priority fees and transaction landing; this tool polls
    until the swap succeeds, fails, or the status stays undetermined for about two minutes.
    """
    logger.info(f"Received execute-quote request for {quote_id}")
    swap = _swap_context(context)
    try:
        signed = sign_transaction(transaction, swap.wallet)
        attempt = await swap.poller.run(quote_id, signed)
    except SwapError as e:
        raise ToolError(f"Error executing swap: {e}") from e
    except Exception as e:
        logger.exception(f"Unexpected error executing swap {quote_id}: {e}")
        raise ToolError(f"Error executing swap: {e}") from e

    outcome = classify(attempt)
    text = render_outcome(outcome, swap.settings.explorer_tx_url)
    if outcome.is_error:
        logger.warning(f"Swap {quote_id} failed: {outcome.category.value} ({outcome.message})")
        raise ToolError(text)
    return text


@mcp.tool(name="search-asset")
async def search_asset(
    context: Context,
    query: str = Field(..., description="Token symbol (SOL, USDC), name (Solana), or mint address."),
) -> str:
    """Search tokens by symbol, name or mint. Includes price, volume and audit information."""
    logger.info(f"Received search-asset request for {query!r}")
    swap = _swap_context(context)
    try:
        tokens = await swap.ultra.search(query)
    except SwapError as e:
        raise ToolError(f"Token search error: {e}") from e
    except Exception as e:
        logger.exception(f"Unexpected error searching tokens: {e}")
        raise ToolError(f"Token search error: {e}") from e
    return render_search(query, tokens)


@mcp.tool(name="get-balances")
async def get_balances(
    context: Context,
    wallet_address: Optional[str] = Field(
        None, description="Wallet address to get balances for. Defaults to the server wallet."
    ),
    mints: Optional[List[str]] = Field(
        None, description="Token mint addresses to include. Defaults to all tokens."
    ),
) -> str:
    """
    Get token balances for a wallet. Do not name a ticker for unknown tokens in the
    answer to the user; give their mint address instead.
    """
    swap = _swap_context(context)
    address = wallet_address or swap.wallet.address
    logger.info(f"Received get-balances request for {address}")
    try:
        parse_pubkey(address, "wallet")
        holdings = await swap.ultra.holdings(address)
    except SwapError as e:
        raise ToolError(f"Error fetching balances: {e}") from e
    except Exception as e:
        logger.exception(f"Unexpected error fetching balances: {e}")
        raise ToolError(f"Error fetching balances: {e}") from e
    return render_holdings(filter_holdings(holdings, mints))


def main() -> None:
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
