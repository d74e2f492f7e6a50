# stableswap/stable_swap.py

from typing import Optional, Tuple, Union

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account

from .core.client import SolanaClient
from .core.exceptions import AccountNotFound, AlreadyInitialized, DecodeError, InvalidSeeds
from .core.instructions import InstructionBuilder
from .core.layouts import STABLE_SWAP_STATE_SIZE, StableSwapState, check_u64, decode_stable_swap_state
from .core.pda import ProgramDerivedAddress, as_pubkey, create_program_address
from .core.pubkeys import TOKEN_PROGRAM_ID
from .core.token import approve_instruction
from .core.transactions import DEFAULT_POLICY, SubmitPolicy, send_and_confirm_transaction
from .utils.logger import get_logger

logger = get_logger(__name__)


def _authority_for(stable_swap: Pubkey, nonce: int, program_id: Pubkey) -> Pubkey:
    return create_program_address([bytes(stable_swap), bytes([nonce])], program_id)


def _check_amounts(**amounts: int) -> None:
    for name, value in amounts.items():
        check_u64(name, value)


class StableSwap:
    """
    A stable swap pool bound to its on-chain state account.

    Instances come from create_stable_swap() or load_stable_swap(); the
    configuration read at that point never changes afterwards. Only token
    balances move, through deposit/withdraw/swap.
    """

    def __init__(
            self,
            client: SolanaClient,
            stable_swap: Pubkey,
            program_id: Pubkey,
            token_program_id: Pubkey,
            authority: Pubkey,
            state: StableSwapState,
            payer: Keypair,
            policy: SubmitPolicy = DEFAULT_POLICY,
    ):
        self.client = client
        self.stable_swap = stable_swap
        self.program_id = program_id
        self.token_program_id = token_program_id
        self.authority = authority
        self.state = state
        self.payer = payer
        self.policy = policy

    # Configuration, straight from the immutable state
    @property
    def token_account_a(self) -> Pubkey:
        return self.state.token_account_a

    @property
    def token_account_b(self) -> Pubkey:
        return self.state.token_account_b

    @property
    def pool_token(self) -> Pubkey:
        return self.state.pool_mint

    @property
    def mint_a(self) -> Pubkey:
        return self.state.mint_a

    @property
    def mint_b(self) -> Pubkey:
        return self.state.mint_b

    @property
    def nonce(self) -> int:
        return self.state.nonce

    @property
    def amp_factor(self) -> int:
        return self.state.amp_factor

    @property
    def fee_numerator(self) -> int:
        return self.state.fee_numerator

    @property
    def fee_denominator(self) -> int:
        return self.state.fee_denominator

    @classmethod
    async def create_stable_swap(
            cls,
            client: SolanaClient,
            payer: Keypair,
            state_account: Keypair,
            authority: Union[Pubkey, ProgramDerivedAddress],
            token_account_a: Pubkey,
            token_account_b: Pubkey,
            pool_mint: Pubkey,
            mint_a: Pubkey,
            mint_b: Pubkey,
            pool_token_account: Pubkey,
            program_id: Pubkey,
            token_program_id: Pubkey,
            nonce: int,
            amp_factor: int,
            fee_numerator: int,
            fee_denominator: int,
            policy: SubmitPolicy = DEFAULT_POLICY,
    ) -> "StableSwap":
        """
        Creates the state account and initializes the pool in one transaction.

        Raises AlreadyInitialized, without submitting anything, when the state
        account already exists. The authority must re-derive from
        (state account, nonce, program id).
        """
        for name, value in (("amp_factor", amp_factor), ("fee_numerator", fee_numerator),
                            ("fee_denominator", fee_denominator)):
            check_u64(name, value)
        if fee_denominator == 0:
            raise ValueError("fee_denominator must be non-zero")

        stable_swap = state_account.pubkey()
        authority_pubkey = as_pubkey(authority)
        try:
            expected_authority = _authority_for(stable_swap, nonce, program_id)
        except InvalidSeeds as e:
            raise ValueError(f"Nonce {nonce} does not yield a program address for {stable_swap}") from e
        if expected_authority != authority_pubkey:
            raise ValueError(
                f"Authority {authority_pubkey} does not match {expected_authority} derived with nonce {nonce}"
            )

        existing = await client.get_account_info(stable_swap)
        if existing is not None:
            raise AlreadyInitialized(
                "createAccount and InitializeSwap",
                f"Stable swap account {stable_swap} already exists (owner {existing.owner}, "
                f"{len(existing.data)} bytes)"
            )

        lamports = await client.get_minimum_balance_for_rent_exemption(STABLE_SWAP_STATE_SIZE)
        instructions = [
            create_account(
                CreateAccountParams(
                    from_pubkey=payer.pubkey(),
                    to_pubkey=stable_swap,
                    lamports=lamports,
                    space=STABLE_SWAP_STATE_SIZE,
                    owner=program_id,
                )
            ),
            InstructionBuilder.initialize(
                program_id=program_id,
                stable_swap=stable_swap,
                authority=authority_pubkey,
                token_account_a=token_account_a,
                token_account_b=token_account_b,
                pool_mint=pool_mint,
                pool_token_account=pool_token_account,
                token_program_id=token_program_id,
                nonce=nonce,
                amp_factor=amp_factor,
                fee_numerator=fee_numerator,
                fee_denominator=fee_denominator,
            ),
        ]
        await send_and_confirm_transaction(
            "createAccount and InitializeSwap", client, instructions, [payer, state_account], policy,
            program_id=program_id,
        )

        state = StableSwapState(
            nonce=nonce,
            amp_factor=amp_factor,
            token_account_a=token_account_a,
            token_account_b=token_account_b,
            pool_mint=pool_mint,
            mint_a=mint_a,
            mint_b=mint_b,
            fee_numerator=fee_numerator,
            fee_denominator=fee_denominator,
        )
        logger.info(f"Stable swap {stable_swap} initialized (program {program_id})")
        return cls(client, stable_swap, program_id, token_program_id, authority_pubkey, state, payer, policy)

    @classmethod
    async def load_stable_swap(
            cls,
            client: SolanaClient,
            address: Pubkey,
            program_id: Pubkey,
            payer: Keypair,
            token_program_id: Optional[Pubkey] = None,
            policy: SubmitPolicy = DEFAULT_POLICY,
    ) -> "StableSwap":
        """Fetches and decodes an existing pool. Wrong owner, size or layout raise DecodeError."""
        account = await client.get_account_info(address)
        if account is None:
            raise AccountNotFound(f"Stable swap account {address} not found")
        if account.owner != program_id:
            raise DecodeError(f"Account {address} is owned by {account.owner}, not {program_id}")

        state = decode_stable_swap_state(bytes(account.data))
        try:
            authority = _authority_for(address, state.nonce, program_id)
        except InvalidSeeds as e:
            raise DecodeError(f"Stored nonce {state.nonce} does not derive an authority for {address}") from e

        return cls(client, address, program_id, token_program_id or TOKEN_PROGRAM_ID, authority, state, payer, policy)

    async def deposit(
            self,
            user_account_a: Pubkey,
            user_account_b: Pubkey,
            destination_pool_account: Pubkey,
            amount_a: int,
            amount_b: int,
            minimum_pool_tokens_out: int,
            user_authority: Keypair,
    ) -> str:
        """
        Approves the pool authority on both user accounts and deposits, atomically.
        Raises SlippageExceeded when fewer than `minimum_pool_tokens_out` would be minted.
        """
        _check_amounts(amount_a=amount_a, amount_b=amount_b, minimum_pool_tokens_out=minimum_pool_tokens_out)
        instructions = [
            approve_instruction(user_account_a, self.authority, user_authority.pubkey(), amount_a,
                                self.token_program_id),
            approve_instruction(user_account_b, self.authority, user_authority.pubkey(), amount_b,
                                self.token_program_id),
            InstructionBuilder.deposit(
                program_id=self.program_id,
                stable_swap=self.stable_swap,
                authority=self.authority,
                source_a=user_account_a,
                source_b=user_account_b,
                token_account_a=self.token_account_a,
                token_account_b=self.token_account_b,
                pool_mint=self.pool_token,
                destination=destination_pool_account,
                token_program_id=self.token_program_id,
                token_amount_a=amount_a,
                token_amount_b=amount_b,
                min_mint_amount=minimum_pool_tokens_out,
            ),
        ]
        return await send_and_confirm_transaction(
            "deposit", self.client, instructions, [self.payer, user_authority], self.policy,
            program_id=self.program_id,
        )

    async def withdraw(
            self,
            user_account_a: Pubkey,
            user_account_b: Pubkey,
            source_pool_account: Pubkey,
            pool_token_amount: int,
            minimum_token_a: int,
            minimum_token_b: int,
            user_authority: Keypair,
    ) -> str:
        _check_amounts(pool_token_amount=pool_token_amount, minimum_token_a=minimum_token_a,
                       minimum_token_b=minimum_token_b)
        instructions = [
            approve_instruction(source_pool_account, self.authority, user_authority.pubkey(), pool_token_amount,
                                self.token_program_id),
            InstructionBuilder.withdraw(
                program_id=self.program_id,
                stable_swap=self.stable_swap,
                authority=self.authority,
                pool_mint=self.pool_token,
                source_pool_account=source_pool_account,
                token_account_a=self.token_account_a,
                token_account_b=self.token_account_b,
                user_account_a=user_account_a,
                user_account_b=user_account_b,
                token_program_id=self.token_program_id,
                pool_token_amount=pool_token_amount,
                minimum_token_a_amount=minimum_token_a,
                minimum_token_b_amount=minimum_token_b,
            ),
        ]
        return await send_and_confirm_transaction(
            "withdraw", self.client, instructions, [self.payer, user_authority], self.policy,
            program_id=self.program_id,
        )

    async def swap(
            self,
            user_source: Pubkey,
            pool_source: Pubkey,
            pool_destination: Pubkey,
            user_destination: Pubkey,
            amount_in: int,
            minimum_amount_out: int,
            user_authority: Keypair,
    ) -> str:
        _check_amounts(amount_in=amount_in, minimum_amount_out=minimum_amount_out)
        reserves = {self.token_account_a, self.token_account_b}
        if pool_source not in reserves or pool_destination not in reserves or pool_source == pool_destination:
            raise ValueError("pool_source and pool_destination must be the two different pool reserves")

        instructions = [
            approve_instruction(user_source, self.authority, user_authority.pubkey(), amount_in,
                                self.token_program_id),
            InstructionBuilder.swap(
                program_id=self.program_id,
                stable_swap=self.stable_swap,
                authority=self.authority,
                user_source=user_source,
                pool_source=pool_source,
                pool_destination=pool_destination,
                user_destination=user_destination,
                token_program_id=self.token_program_id,
                amount_in=amount_in,
                minimum_amount_out=minimum_amount_out,
            ),
        ]
        return await send_and_confirm_transaction(
            "swap", self.client, instructions, [self.payer, user_authority], self.policy,
            program_id=self.program_id,
        )

    async def get_reserves(self) -> Tuple[int, int]:
        amount_a = await self.client.get_token_balance(self.token_account_a)
        amount_b = await self.client.get_token_balance(self.token_account_b)
        return amount_a, amount_b
