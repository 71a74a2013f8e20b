from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from solana.rpc.core import RPCException

from mcp_jupiter_ultra.errors import InvalidAddress, InvalidAmount, UpstreamError
from mcp_jupiter_ultra.quotes import QuoteClient, parse_amount, to_smallest_unit
from mcp_jupiter_ultra.wallet import SigningWallet
from tests.integration.conftest import SOL_MINT, USDC_MINT


@pytest.mark.parametrize(
    "amount, decimals, expected",
    [
        ("1.23", 6, 1_230_000),
        ("1.0", 6, 1_000_000),
        ("0.1", 9, 100_000_000),
        ("1.9999999", 6, 1_999_999),  # floors, never rounds up
        ("0", 6, 0),
        ("42", 0, 42),
        ("0.000000001", 9, 1),
        ("1e3", 2, 100_000),
        ("1." + "9" * 90, 6, 1_999_999),  # longer than the default context precision
    ],
)
def test_to_smallest_unit_floors(amount, decimals, expected):
    assert to_smallest_unit(parse_amount(amount), decimals) == expected


def test_to_smallest_unit_large_amount_is_exact():
    assert to_smallest_unit(Decimal("123456789012345678.123456789"), 9) == 123456789012345678123456789


@pytest.mark.parametrize("amount", ["abc", "", "1.2.3", "-1", "NaN", "Infinity", "1,5", "1e5000", "1e31"])
def test_parse_amount_rejects(amount):
    with pytest.raises(InvalidAmount):
        parse_amount(amount)


def test_parse_amount_strips_whitespace():
    assert parse_amount(" 2.5 ") == Decimal("2.5")


def test_parse_amount_accepts_largest_exponent():
    assert to_smallest_unit(parse_amount("9e30"), 9) == 9 * 10**39


def _order(**overrides):
    order = {
        "requestId": "q1",
        "transaction": "AQID",
        "inAmount": "1000000",
        "outAmount": "6500000",
    }
    order.update(overrides)
    return order


@pytest.mark.asyncio
async def test_get_quote_converts_amount_and_requests_order(mock_rpc: AsyncMock, wallet: SigningWallet):
    ultra = AsyncMock()
    ultra.get_order.return_value = _order()
    client = QuoteClient(ultra, mock_rpc, wallet)

    quote = await client.get_quote(USDC_MINT, SOL_MINT, "1.0", 50)

    ultra.get_order.assert_awaited_once_with(
        input_mint=USDC_MINT,
        output_mint=SOL_MINT,
        amount=1_000_000,
        slippage_bps=50,
        taker=wallet.address,
    )
    assert quote.quote_id == "q1"
    assert quote.transaction == "AQID"
    assert quote.in_amount == 1_000_000
    assert quote.out_amount == 6_500_000
    assert quote.in_amount_ui == 1.0
    assert quote.out_amount_ui == pytest.approx(0.0065)
    assert quote.price == pytest.approx(0.0065)


@pytest.mark.asyncio
async def test_get_quote_invalid_amount_never_calls_out(mock_rpc: AsyncMock, wallet: SigningWallet):
    ultra = AsyncMock()
    client = QuoteClient(ultra, mock_rpc, wallet)

    with pytest.raises(InvalidAmount):
        await client.get_quote(USDC_MINT, SOL_MINT, "abc", 50)

    ultra.get_order.assert_not_awaited()
    mock_rpc.get_token_supply.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_quote_invalid_mint(mock_rpc: AsyncMock, wallet: SigningWallet):
    ultra = AsyncMock()
    client = QuoteClient(ultra, mock_rpc, wallet)

    with pytest.raises(InvalidAddress, match="input mint"):
        await client.get_quote("not-a-mint", SOL_MINT, "1", 50)

    ultra.get_order.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_quote_missing_transaction_is_upstream_error(mock_rpc: AsyncMock, wallet: SigningWallet):
    ultra = AsyncMock()
    ultra.get_order.return_value = _order(transaction=None, errorMessage="Insufficient funds")
    client = QuoteClient(ultra, mock_rpc, wallet)

    with pytest.raises(UpstreamError, match="No transaction field"):
        await client.get_quote(USDC_MINT, SOL_MINT, "1", 50)


@pytest.mark.asyncio
async def test_get_quote_mint_lookup_failure_is_upstream_error(mock_rpc: AsyncMock, wallet: SigningWallet):
    mock_rpc.get_token_supply.side_effect = RPCException("Invalid param: not a Token mint")
    ultra = AsyncMock()
    client = QuoteClient(ultra, mock_rpc, wallet)

    with pytest.raises(UpstreamError, match="mint info"):
        await client.get_quote(USDC_MINT, SOL_MINT, "1", 50)

    ultra.get_order.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_quote_zero_in_amount_has_no_price(mock_rpc: AsyncMock, wallet: SigningWallet):
    ultra = AsyncMock()
    ultra.get_order.return_value = _order(inAmount="0", outAmount="0")
    client = QuoteClient(ultra, mock_rpc, wallet)

    quote = await client.get_quote(USDC_MINT, SOL_MINT, "0", 50)

    assert quote.price is None
    assert quote.summary()["price"] is None
