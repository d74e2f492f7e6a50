# stableswap/cli.py

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv
from solders.pubkey import Pubkey

from . import config
from .bootstrap import run_bootstrap
from .core.client import SolanaClient
from .core.exceptions import StableSwapClientError
from .utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Stable swap pool tooling")
    sub = parser.add_subparsers(dest="command", required=True)

    boot = sub.add_parser("bootstrap", help="Create a fully configured pool on a test cluster")
    boot.add_argument("--url", default=config.CLUSTER_URL, help="Cluster RPC endpoint")
    boot.add_argument("--commitment", default=config.COMMITMENT, help="Commitment level (single, confirmed, ...)")
    boot.add_argument("--program-id", help="Already deployed stable swap program")
    boot.add_argument("--program-path", default=config.STABLE_SWAP_PROGRAM_PATH,
                      help="Compiled program to deploy when no program id is known")
    boot.add_argument("--fixture", default=config.ADDRESS_FIXTURE_PATH, help="JSON file of deployed addresses")
    boot.add_argument("--deposit", type=int, help="Initial deposit of each token, in base units")
    boot.add_argument("--timeout", type=float, default=config.BOOTSTRAP_TIMEOUT_SECONDS,
                      help="Overall deadline in seconds")
    boot.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


async def bootstrap_command(args: argparse.Namespace) -> int:
    program_id = Pubkey.from_string(args.program_id) if args.program_id else None
    client = SolanaClient(args.url, commitment=args.commitment, timeout_seconds=config.RPC_TIMEOUT_SECONDS)
    async with client:
        try:
            pool = await run_bootstrap(
                client,
                timeout_seconds=args.timeout,
                initial_deposit=args.deposit,
                program_id=program_id,
                program_path=args.program_path,
                fixture_path=args.fixture,
            )
        except (StableSwapClientError, asyncio.TimeoutError, ValueError) as e:
            logger.critical(f"Bootstrap failed: {e}")
            return 1

    print(f"program:         {pool.program_id}")
    print(f"stable swap:     {pool.state_account.pubkey()}")
    print(f"authority:       {pool.authority.pubkey} (nonce {pool.authority.nonce})")
    print(f"pool mint:       {pool.pool_mint}")
    print(f"token A reserve: {pool.token_account_a} (mint {pool.mint_a})")
    print(f"token B reserve: {pool.token_account_b} (mint {pool.mint_b})")
    if pool.initial_deposit:
        print(f"initial deposit: {pool.initial_deposit.signature}")
    return 0


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    if args.command == "bootstrap":
        return asyncio.run(bootstrap_command(args))
    return 2


if __name__ == "__main__":
    sys.exit(main())
