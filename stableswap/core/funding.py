# stableswap/core/funding.py

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .. import config
from ..utils.logger import get_logger
from ..utils.retry import poll_until
from .client import SolanaClient
from .exceptions import FundingTimeout, RetryExhausted

logger = get_logger(__name__)


async def fund_account(
        client: SolanaClient,
        address: Pubkey,
        lamports: int,
        max_attempts: int = config.FUND_MAX_ATTEMPTS,
        interval_seconds: float = config.FUND_POLL_INTERVAL_SECONDS,
) -> int:
    """
    Requests a faucet airdrop and polls until the balance is observed.

    Exact match: succeeds only once the balance equals `lamports`. Meant for fresh
    accounts; an account that already holds funds, or receives a second airdrop
    at the same time, overshoots and ends in FundingTimeout.
    """
    if lamports <= 0:
        raise ValueError(f"lamports must be positive, got {lamports}")

    await client.request_airdrop(address, lamports)
    try:
        balance = await poll_until(
            lambda: client.get_balance(address),
            lambda observed: observed == lamports,
            max_attempts=max_attempts,
            interval_seconds=interval_seconds,
            label=f"airdrop to {address}",
        )
    except RetryExhausted as e:
        raise FundingTimeout(address, lamports, e.last_value, e.attempts) from e

    logger.info(f"Funded {address} with {balance} lamports")
    return balance


async def new_account_with_lamports(
        client: SolanaClient,
        lamports: int = config.LAMPORTS_PER_SOL,
        **poll_kwargs,
) -> Keypair:
    """Fresh keypair funded through the faucet."""
    account = Keypair()
    await fund_account(client, account.pubkey(), lamports, **poll_kwargs)
    return account
