"""Submits a signed swap to Jupiter Ultra and polls it to a resolution.

POST /execute both submits and reports progress, so polling means posting
the identical request again. The loop is:

    Submitted --"Success"--> Success
              --"Failed"---> Failed
              --other------> wait poll_interval, resubmit
              --ceiling----> TimedOut

The first call goes out immediately and at most ``max_attempts`` calls are
made in total. HTTP and transport failures are not retried: UpstreamError
propagates out of ``run`` as soon as it is raised.
"""

import asyncio
from typing import Awaitable, Callable

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException

from mcp.server.fastmcp.utilities.logging import get_logger

from .config import (
    EXECUTE_MAX_ATTEMPTS,
    EXECUTE_POLL_INTERVAL_SECONDS,
    MIN_FEE_RESERVE_LAMPORTS,
)
from .errors import InsufficientFees, UpstreamError
from .models import ExecutionAttempt
from .ultra_client import UltraClient
from .wallet import SigningWallet

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


async def fetch_sol_balance(rpc: AsyncClient, wallet: SigningWallet) -> int:
    """Returns the wallet's native balance in lamports."""
    try:
        resp = await rpc.get_balance(wallet.pubkey)
    except (RPCException, SolanaRpcException) as e:
        raise UpstreamError(f"Could not fetch SOL balance for {wallet.address}: {e}") from e
    return resp.value


class ExecutionPoller:
    def __init__(
        self,
        ultra: UltraClient,
        rpc: AsyncClient,
        wallet: SigningWallet,
        *,
        min_fee_reserve_lamports: int = MIN_FEE_RESERVE_LAMPORTS,
        poll_interval: float = EXECUTE_POLL_INTERVAL_SECONDS,
        max_attempts: int = EXECUTE_MAX_ATTEMPTS,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.ultra = ultra
        self.rpc = rpc
        self.wallet = wallet
        self.min_fee_reserve_lamports = min_fee_reserve_lamports
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def check_fee_reserve(self) -> int:
        """Raises InsufficientFees if the wallet cannot pay for the transaction."""
        balance = await fetch_sol_balance(self.rpc, self.wallet)
        logger.debug(
            f"Wallet {self.wallet.address} balance: {balance} lamports. "
            f"Reserve: {self.min_fee_reserve_lamports}"
        )
        if balance < self.min_fee_reserve_lamports:
            raise InsufficientFees(balance, self.min_fee_reserve_lamports)
        return balance

    async def run(self, quote_id: str, signed_transaction: str) -> ExecutionAttempt:
        """Drives one signed transaction to Success, Failed or the attempt ceiling.

        The returned attempt is still PENDING when the ceiling was hit; the
        classifier reports that as a timeout.
        """
        await self.check_fee_reserve()

        attempt = ExecutionAttempt(quote_id=quote_id, signed_transaction=signed_transaction)
        while True:
            result = await self.ultra.execute(signed_transaction, quote_id)
            attempt.apply(result)
            logger.debug(
                f"Execute {quote_id} attempt {attempt.attempts}/{self.max_attempts}: "
                f"status={attempt.raw_status}"
            )
            if attempt.is_terminal or attempt.attempts >= self.max_attempts:
                break
            await self._sleep(self.poll_interval)

        if attempt.is_terminal:
            logger.info(
                f"Execution {quote_id} resolved as {attempt.status.value} after "
                f"{attempt.attempts} call(s), signature={attempt.signature}"
            )
        else:
            logger.warning(
                f"Execution {quote_id} still '{attempt.raw_status}' after "
                f"{attempt.attempts} calls, giving up polling"
            )
        return attempt
