"""Thin async client for the Jupiter Ultra HTTP API.

Only the four endpoints the tools need are wrapped. Every call shares one
httpx.AsyncClient that carries the base URL and the x-api-key header. Any
transport failure, non-2xx status or undecodable body becomes UpstreamError;
nothing here retries.
"""

from typing import Any, Dict, List, Optional

import httpx

from mcp.server.fastmcp.utilities.logging import get_logger

from .config import Settings
from .errors import UpstreamError

logger = get_logger(__name__)


def build_http_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Creates the shared HTTP client for the aggregator."""
    return httpx.AsyncClient(
        base_url=settings.ultra_api_url,
        headers={"x-api-key": settings.api_key, "Accept": "application/json"},
        timeout=settings.http_timeout,
        transport=transport,
    )


class UltraClient:
    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e!r}")
            raise UpstreamError(f"Request to {path} failed: {e}") from e

        if not response.is_success:
            logger.warning(f"{method} {path} returned HTTP {response.status_code}")
            raise UpstreamError(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"Malformed JSON from {path}: {response.text[:200]}") from e

    async def get_order(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int,
        taker: str,
    ) -> Dict[str, Any]:
        """GET /order. Returns the order payload including the unsigned transaction."""
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
            "taker": taker,
        }
        logger.debug(f"Requesting order: {params}")
        order = await self._request("GET", "/order", params=params)
        if not isinstance(order, dict):
            raise UpstreamError(f"Unexpected order response: {order!r}")
        return order

    async def execute(self, signed_transaction: str, request_id: str) -> Dict[str, Any]:
        """POST /execute. Used both to submit a signed transaction and to poll it."""
        result = await self._request(
            "POST",
            "/execute",
            json={"signedTransaction": signed_transaction, "requestId": request_id},
        )
        if not isinstance(result, dict) or "status" not in result:
            raise UpstreamError(f"Execute response has no status field: {result!r}")
        return result

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """GET /search."""
        tokens = await self._request("GET", "/search", params={"query": query})
        if tokens is None:
            return []
        if not isinstance(tokens, list):
            raise UpstreamError(f"Unexpected search response: {tokens!r}")
        return tokens

    async def holdings(self, address: str) -> Dict[str, Any]:
        """GET /holdings/{address}."""
        holdings = await self._request("GET", f"/holdings/{address}")
        if not isinstance(holdings, dict):
            raise UpstreamError(f"Unexpected holdings response: {holdings!r}")
        return holdings
