import base64
import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.rpc.responses import GetBalanceResp, GetTokenSupplyResp
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from mcp_jupiter_ultra.config import Settings
from mcp_jupiter_ultra.server import SwapContext
from mcp_jupiter_ultra.ultra_client import UltraClient, build_http_client
from mcp_jupiter_ultra.wallet import SigningWallet

USDC_MINT = "EPjFWdd5AufqSSqeM2qJxr5TqLMmgJdDfeuJGCxcAVFP"
SOL_MINT = "So11111111111111111111111111111111111111112"
MINT_DECIMALS = {USDC_MINT: 6, SOL_MINT: 9}

# --- Mock response structures helper ---

def create_mock_balance_resp(lamports: int) -> MagicMock:
    mock_resp = MagicMock(spec=GetBalanceResp)
    mock_resp.value = lamports
    return mock_resp


def create_mock_supply_resp(decimals: int) -> MagicMock:
    mock_resp = MagicMock(spec=GetTokenSupplyResp)
    mock_value = MagicMock()
    mock_value.decimals = decimals
    mock_resp.value = mock_value
    return mock_resp


# --- Transaction builders ---

def build_unsigned_transaction(
    payer: Pubkey, co_signer: Optional[Keypair] = None
) -> VersionedTransaction:
    """A v0 transfer paid by ``payer``; with ``co_signer`` a second required signer
    is added and its signature is already filled in, as an RFQ maker would."""
    instructions = [transfer(TransferParams(from_pubkey=payer, to_pubkey=Pubkey.new_unique(), lamports=1_000))]
    if co_signer is not None:
        instructions.append(
            Instruction(
                program_id=Pubkey.new_unique(),
                data=b"\x01",
                accounts=[AccountMeta(co_signer.pubkey(), is_signer=True, is_writable=False)],
            )
        )
    message = MessageV0.try_compile(payer, instructions, [], Hash.default())
    signatures = [Signature.default()] * message.header.num_required_signatures
    if co_signer is not None:
        index = list(message.account_keys).index(co_signer.pubkey())
        signatures[index] = co_signer.sign_message(to_bytes_versioned(message))
    return VersionedTransaction.populate(message, signatures)


def to_b64(tx: VersionedTransaction) -> str:
    return base64.b64encode(bytes(tx)).decode("ascii")


# --- Fake Jupiter Ultra API ---

Reply = Union[httpx.Response, Dict[str, Any], List[Any], Callable[[httpx.Request], httpx.Response]]


class FakeUltraApi:
    """Scripted stand-in for the Ultra API, served through httpx.MockTransport.

    Replies queued for a route are consumed in order; the last one repeats.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Reply) -> None:
        self.routes[(method, path)] = list(replies)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path.endswith(path)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for (method, path), replies in self.routes.items():
            if request.method == method and request.url.path.endswith(path):
                reply = replies.pop(0) if len(replies) > 1 else replies[0]
                if callable(reply):
                    return reply(request)
                if isinstance(reply, httpx.Response):
                    return reply
                return httpx.Response(200, json=reply)
        return httpx.Response(404, text=f"no route for {request.method} {request.url.path}")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def request_json(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content)


# --- Fixtures ---

@pytest.fixture(scope="function")
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture(scope="function")
def wallet(keypair: Keypair) -> SigningWallet:
    return SigningWallet(keypair)


@pytest.fixture(scope="function")
def settings(keypair: Keypair) -> Settings:
    return Settings(
        rpc_url="http://localhost:8899",
        private_key=str(keypair),
        api_key="test-api-key",
        ultra_api_url="https://ultra.test/ultra/v1",
        poll_interval=0.0,
    )


@pytest.fixture(scope="function")
def fake_ultra() -> FakeUltraApi:
    return FakeUltraApi()


@pytest.fixture(scope="function")
def ultra_client(settings: Settings, fake_ultra: FakeUltraApi) -> UltraClient:
    return UltraClient(build_http_client(settings, transport=fake_ultra.transport))


@pytest.fixture(scope="function")
def mock_rpc() -> AsyncMock:
    """Solana RPC double: known mint decimals and a funded wallet."""
    rpc = AsyncMock()
    rpc.get_token_supply.side_effect = lambda mint: create_mock_supply_resp(MINT_DECIMALS[str(mint)])
    rpc.get_balance.return_value = create_mock_balance_resp(50_000_000)
    return rpc


@pytest.fixture(scope="function")
def swap_context(
    settings: Settings, fake_ultra: FakeUltraApi, mock_rpc: AsyncMock, wallet: SigningWallet
) -> SwapContext:
    http = build_http_client(settings, transport=fake_ultra.transport)
    return SwapContext.create(settings, http=http, rpc=mock_rpc, wallet=wallet)


# --- Mock Context Fixture ---
@pytest.fixture(scope="function")
def mock_context(swap_context: SwapContext) -> MagicMock:
    """Provides a mock MCP Context whose lifespan context is the test SwapContext."""
    context = MagicMock()
    context.request_context.lifespan_context = swap_context
    return context
