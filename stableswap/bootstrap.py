# stableswap/bootstrap.py

import asyncio
import json
import os
from dataclasses import dataclass, field
from typing import Awaitable, List, Optional, TypeVar

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from . import config
from .core.client import SolanaClient
from .core.deployer import deploy_program, load_program_binary
from .core.exceptions import BootstrapStepError, StableSwapClientError
from .core.funding import fund_account
from .core.pda import ProgramDerivedAddress, derive_program_address
from .core.pubkeys import TOKEN_PROGRAM_ID
from .core.token import create_mint, create_token_account, mint_tokens_to
from .core.transactions import DEFAULT_POLICY, SubmitPolicy
from .stable_swap import StableSwap
from .utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_POOL_NAME = "stableSwap"

T = TypeVar("T")


# --- Address fixture ---
def load_program_address(path: str, pool_name: str = DEFAULT_POOL_NAME) -> Optional[Pubkey]:
    """Program address recorded for `pool_name`, or None when the file or entry is missing."""
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        addresses = json.load(f)
    address = addresses.get(pool_name)
    if not address:
        return None
    return Pubkey.from_string(address)


def save_program_address(path: str, program_id: Pubkey, pool_name: str = DEFAULT_POOL_NAME) -> None:
    addresses = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            addresses = json.load(f)
    addresses[pool_name] = str(program_id)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(addresses, f, indent=2)
    logger.info(f"Recorded {pool_name} program {program_id} in {path}")


@dataclass
class InitialDeposit:
    user_account_a: Pubkey
    user_account_b: Pubkey
    pool_account: Pubkey
    amount_a: int
    amount_b: int
    signature: str


@dataclass
class BootstrappedPool:
    program_id: Pubkey
    payer: Keypair
    owner: Keypair
    state_account: Keypair
    authority: ProgramDerivedAddress
    pool_mint: Pubkey
    pool_token_account: Pubkey
    mint_a: Pubkey
    mint_b: Pubkey
    token_account_a: Pubkey
    token_account_b: Pubkey
    stable_swap: StableSwap
    initial_deposit: Optional[InitialDeposit] = None
    completed_steps: List[str] = field(default_factory=list)


class PoolBootstrapper:
    """
    Stands up a complete pool on a disposable cluster, one dependent step at a time.

    The first failing step aborts the run with BootstrapStepError. Nothing is
    rolled back: accounts created by earlier steps stay on the ledger.
    """

    def __init__(
            self,
            client: SolanaClient,
            program_id: Optional[Pubkey] = None,
            program_path: Optional[str] = config.STABLE_SWAP_PROGRAM_PATH,
            fixture_path: Optional[str] = config.ADDRESS_FIXTURE_PATH,
            pool_name: str = DEFAULT_POOL_NAME,
            token_program_id: Pubkey = TOKEN_PROGRAM_ID,
            amp_factor: int = config.AMP_FACTOR,
            fee_numerator: int = config.FEE_NUMERATOR,
            fee_denominator: int = config.FEE_DENOMINATOR,
            decimals: int = config.TOKEN_DECIMALS,
            funding_lamports: int = config.LAMPORTS_PER_SOL,
            policy: SubmitPolicy = DEFAULT_POLICY,
    ):
        self.client = client
        self.program_id = program_id
        self.program_path = program_path
        self.fixture_path = fixture_path
        self.pool_name = pool_name
        self.token_program_id = token_program_id
        self.amp_factor = amp_factor
        self.fee_numerator = fee_numerator
        self.fee_denominator = fee_denominator
        self.decimals = decimals
        self.funding_lamports = funding_lamports
        self.policy = policy
        self.completed_steps: List[str] = []

    async def _step(self, name: str, action: Awaitable[T]) -> T:
        logger.info(f"Bootstrap: {name}...")
        try:
            result = await action
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Bootstrap step '{name}' failed: {type(e).__name__}: {e}")
            if self.completed_steps:
                logger.warning(
                    f"No rollback: accounts from completed steps {self.completed_steps} remain on the ledger"
                )
            raise BootstrapStepError(name, e, self.completed_steps) from e
        self.completed_steps.append(name)
        return result

    async def _resolve_program_id(self) -> Pubkey:
        if self.program_id is not None:
            return self.program_id
        if self.fixture_path:
            recorded = load_program_address(self.fixture_path, self.pool_name)
            if recorded is not None:
                logger.info(f"Reusing {self.pool_name} program {recorded} from {self.fixture_path}")
                return recorded
        if not self.program_path:
            raise ValueError(
                f"No program id given, none recorded for '{self.pool_name}', and no program binary to deploy"
            )
        program_id = await deploy_program(self.client, load_program_binary(self.program_path), policy=self.policy)
        if self.fixture_path:
            save_program_address(self.fixture_path, program_id, self.pool_name)
        return program_id

    async def _create_pool_mint(self, payer: Keypair, authority: ProgramDerivedAddress) -> Pubkey:
        """Pool mint owned by the derived authority, checked on chain before the pool uses it."""
        pool_mint = await create_mint(
            self.client, payer, authority, self.decimals, token_program_id=self.token_program_id, policy=self.policy
        )
        mint = await self.client.get_mint(pool_mint)
        if mint.mint_authority != authority.pubkey:
            raise StableSwapClientError(
                f"Pool mint {pool_mint} authority is {mint.mint_authority}, expected {authority.pubkey}"
            )
        if mint.supply != 0:
            raise StableSwapClientError(f"Pool mint {pool_mint} already has a supply of {mint.supply}")
        return pool_mint

    async def _derive_authority(self, state_account: Keypair, program_id: Pubkey) -> ProgramDerivedAddress:
        authority = derive_program_address([bytes(state_account.pubkey())], program_id)
        logger.info(f"Pool authority {authority.pubkey} (nonce {authority.nonce})")
        return authority

    async def _initial_deposit(self, pool: BootstrappedPool, payer: Keypair, owner: Keypair,
                               amount: int) -> InitialDeposit:
        user_account_a = await create_token_account(
            self.client, payer, pool.mint_a, owner.pubkey(), self.token_program_id, self.policy
        )
        await mint_tokens_to(
            self.client, payer, pool.mint_a, user_account_a, owner, amount, self.token_program_id, self.policy
        )
        user_account_b = await create_token_account(
            self.client, payer, pool.mint_b, owner.pubkey(), self.token_program_id, self.policy
        )
        await mint_tokens_to(
            self.client, payer, pool.mint_b, user_account_b, owner, amount, self.token_program_id, self.policy
        )
        pool_account = await create_token_account(
            self.client, payer, pool.pool_mint, owner.pubkey(), self.token_program_id, self.policy
        )
        signature = await pool.stable_swap.deposit(
            user_account_a, user_account_b, pool_account, amount, amount, 0, owner
        )
        return InitialDeposit(user_account_a, user_account_b, pool_account, amount, amount, signature)

    async def run(self, initial_deposit: Optional[int] = None) -> BootstrappedPool:
        """
        Runs every step in order and returns the bound pool. `initial_deposit`, when
        given, is minted to fresh owner accounts for both tokens and deposited.
        """
        self.completed_steps = []
        client, policy, token_program_id = self.client, self.policy, self.token_program_id

        program_id = await self._step("resolve program", self._resolve_program_id())

        payer = Keypair()
        owner = Keypair()
        state_account = Keypair()
        await self._step("fund payer", fund_account(client, payer.pubkey(), self.funding_lamports))
        await self._step("fund owner", fund_account(client, owner.pubkey(), self.funding_lamports))

        authority = await self._step("derive authority", self._derive_authority(state_account, program_id))

        pool_mint = await self._step("create pool mint", self._create_pool_mint(payer, authority))
        pool_token_account = await self._step(
            "create pool token account",
            create_token_account(client, payer, pool_mint, owner.pubkey(), token_program_id, policy),
        )
        mint_a = await self._step(
            "create mint A",
            create_mint(client, payer, owner.pubkey(), self.decimals, token_program_id=token_program_id,
                        policy=policy),
        )
        token_account_a = await self._step(
            "create token account A",
            create_token_account(client, payer, mint_a, authority, token_program_id, policy),
        )
        mint_b = await self._step(
            "create mint B",
            create_mint(client, payer, owner.pubkey(), self.decimals, token_program_id=token_program_id,
                        policy=policy),
        )
        token_account_b = await self._step(
            "create token account B",
            create_token_account(client, payer, mint_b, authority, token_program_id, policy),
        )

        stable_swap = await self._step(
            "create stable swap",
            StableSwap.create_stable_swap(
                client,
                payer,
                state_account,
                authority,
                token_account_a,
                token_account_b,
                pool_mint,
                mint_a,
                mint_b,
                pool_token_account,
                program_id,
                token_program_id,
                authority.nonce,
                self.amp_factor,
                self.fee_numerator,
                self.fee_denominator,
                policy=policy,
            ),
        )

        pool = BootstrappedPool(
            program_id=program_id,
            payer=payer,
            owner=owner,
            state_account=state_account,
            authority=authority,
            pool_mint=pool_mint,
            pool_token_account=pool_token_account,
            mint_a=mint_a,
            mint_b=mint_b,
            token_account_a=token_account_a,
            token_account_b=token_account_b,
            stable_swap=stable_swap,
        )

        if initial_deposit:
            pool.initial_deposit = await self._step(
                "initial deposit", self._initial_deposit(pool, payer, owner, initial_deposit)
            )

        pool.completed_steps = list(self.completed_steps)
        logger.info(f"Bootstrap complete: stable swap {state_account.pubkey()} on program {program_id}")
        return pool


async def run_bootstrap(
        client: SolanaClient,
        timeout_seconds: float = config.BOOTSTRAP_TIMEOUT_SECONDS,
        initial_deposit: Optional[int] = None,
        **bootstrapper_kwargs,
) -> BootstrappedPool:
    """Runs a PoolBootstrapper under one overall deadline."""
    bootstrapper = PoolBootstrapper(client, **bootstrapper_kwargs)
    try:
        return await asyncio.wait_for(bootstrapper.run(initial_deposit=initial_deposit), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(
            f"Bootstrap exceeded {timeout_seconds}s after steps {bootstrapper.completed_steps}; "
            f"created accounts remain on the ledger"
        )
        raise
