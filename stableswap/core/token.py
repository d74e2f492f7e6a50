# stableswap/core/token.py

from typing import Optional, Union

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account
from spl.token.constants import ACCOUNT_LEN, MINT_LEN
from spl.token.instructions import (
    ApproveParams,
    InitializeAccountParams,
    InitializeMintParams,
    MintToParams,
    approve,
    initialize_account,
    initialize_mint,
    mint_to,
)

from ..utils.logger import get_logger
from .client import SolanaClient
from .pda import ProgramDerivedAddress, as_pubkey
from .pubkeys import TOKEN_PROGRAM_ID
from .transactions import DEFAULT_POLICY, SubmitPolicy, send_and_confirm_transaction

logger = get_logger(__name__)

Address = Union[Pubkey, ProgramDerivedAddress]


def approve_instruction(
        source: Pubkey,
        delegate: Address,
        owner: Pubkey,
        amount: int,
        token_program_id: Pubkey = TOKEN_PROGRAM_ID,
) -> Instruction:
    return approve(
        ApproveParams(
            program_id=token_program_id,
            source=source,
            delegate=as_pubkey(delegate),
            owner=owner,
            amount=amount,
            signers=[],
        )
    )


async def create_mint(
        client: SolanaClient,
        payer: Keypair,
        mint_authority: Address,
        decimals: int,
        freeze_authority: Optional[Address] = None,
        token_program_id: Pubkey = TOKEN_PROGRAM_ID,
        policy: SubmitPolicy = DEFAULT_POLICY,
) -> Pubkey:
    """Creates and initializes a new mint. The mint authority may be a program derived address."""
    mint = Keypair()
    lamports = await client.get_minimum_balance_for_rent_exemption(MINT_LEN)
    instructions = [
        create_account(
            CreateAccountParams(
                from_pubkey=payer.pubkey(),
                to_pubkey=mint.pubkey(),
                lamports=lamports,
                space=MINT_LEN,
                owner=token_program_id,
            )
        ),
        initialize_mint(
            InitializeMintParams(
                decimals=decimals,
                program_id=token_program_id,
                mint=mint.pubkey(),
                mint_authority=as_pubkey(mint_authority),
                freeze_authority=as_pubkey(freeze_authority) if freeze_authority else None,
            )
        ),
    ]
    await send_and_confirm_transaction("createMint", client, instructions, [payer, mint], policy)
    logger.info(f"Created mint {mint.pubkey()} (authority {as_pubkey(mint_authority)}, decimals {decimals})")
    return mint.pubkey()


async def create_token_account(
        client: SolanaClient,
        payer: Keypair,
        mint: Pubkey,
        owner: Address,
        token_program_id: Pubkey = TOKEN_PROGRAM_ID,
        policy: SubmitPolicy = DEFAULT_POLICY,
) -> Pubkey:
    """Creates a plain (non-associated) token account so one owner can hold several per mint."""
    account = Keypair()
    lamports = await client.get_minimum_balance_for_rent_exemption(ACCOUNT_LEN)
    instructions = [
        create_account(
            CreateAccountParams(
                from_pubkey=payer.pubkey(),
                to_pubkey=account.pubkey(),
                lamports=lamports,
                space=ACCOUNT_LEN,
                owner=token_program_id,
            )
        ),
        initialize_account(
            InitializeAccountParams(
                program_id=token_program_id,
                account=account.pubkey(),
                mint=mint,
                owner=as_pubkey(owner),
            )
        ),
    ]
    await send_and_confirm_transaction("createAccount", client, instructions, [payer, account], policy)
    logger.info(f"Created token account {account.pubkey()} for mint {mint}, owner {as_pubkey(owner)}")
    return account.pubkey()


async def mint_tokens_to(
        client: SolanaClient,
        payer: Keypair,
        mint: Pubkey,
        destination: Pubkey,
        mint_authority: Keypair,
        amount: int,
        token_program_id: Pubkey = TOKEN_PROGRAM_ID,
        policy: SubmitPolicy = DEFAULT_POLICY,
) -> str:
    ix = mint_to(
        MintToParams(
            program_id=token_program_id,
            mint=mint,
            dest=destination,
            mint_authority=mint_authority.pubkey(),
            amount=amount,
            signers=[],
        )
    )
    return await send_and_confirm_transaction("mintTo", client, [ix], [payer, mint_authority], policy)


async def approve_delegate(
        client: SolanaClient,
        payer: Keypair,
        source: Pubkey,
        delegate: Address,
        owner: Keypair,
        amount: int,
        token_program_id: Pubkey = TOKEN_PROGRAM_ID,
        policy: SubmitPolicy = DEFAULT_POLICY,
) -> str:
    ix = approve_instruction(source, delegate, owner.pubkey(), amount, token_program_id)
    return await send_and_confirm_transaction("approve", client, [ix], [payer, owner], policy)
