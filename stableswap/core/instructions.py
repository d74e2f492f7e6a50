# stableswap/core/instructions.py

from enum import IntEnum

from borsh_construct import CStruct, U8, U64
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .layouts import check_u64


class StableSwapInstruction(IntEnum):
    INITIALIZE = 0
    SWAP = 1
    DEPOSIT = 2
    WITHDRAW = 3


# --- Instruction Data Layouts (tag byte first, then little-endian fields) ---
INITIALIZE_LAYOUT = CStruct(
    "instruction" / U8,
    "nonce" / U8,
    "amp_factor" / U64,
    "fee_numerator" / U64,
    "fee_denominator" / U64,
)

SWAP_LAYOUT = CStruct(
    "instruction" / U8,
    "amount_in" / U64,
    "minimum_amount_out" / U64,
)

DEPOSIT_LAYOUT = CStruct(
    "instruction" / U8,
    "token_amount_a" / U64,
    "token_amount_b" / U64,
    "min_mint_amount" / U64,
)

WITHDRAW_LAYOUT = CStruct(
    "instruction" / U8,
    "pool_token_amount" / U64,
    "minimum_token_a_amount" / U64,
    "minimum_token_b_amount" / U64,
)


def _ro(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=False)


def _rw(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=True)


class InstructionBuilder:
    """Builds stable swap program instructions. Account order is fixed by the program."""

    @staticmethod
    def initialize(
            program_id: Pubkey,
            stable_swap: Pubkey,
            authority: Pubkey,
            token_account_a: Pubkey,
            token_account_b: Pubkey,
            pool_mint: Pubkey,
            pool_token_account: Pubkey,
            token_program_id: Pubkey,
            nonce: int,
            amp_factor: int,
            fee_numerator: int,
            fee_denominator: int,
    ) -> Instruction:
        if not 0 <= nonce <= 255:
            raise ValueError(f"nonce must fit in a u8, got {nonce}")
        data = INITIALIZE_LAYOUT.build({
            "instruction": StableSwapInstruction.INITIALIZE,
            "nonce": nonce,
            "amp_factor": check_u64("amp_factor", amp_factor),
            "fee_numerator": check_u64("fee_numerator", fee_numerator),
            "fee_denominator": check_u64("fee_denominator", fee_denominator),
        })
        accounts = [
            _rw(stable_swap),  # 0. stable swap state
            _ro(authority),  # 1. derived authority
            _ro(token_account_a),  # 2. reserve A
            _ro(token_account_b),  # 3. reserve B
            _rw(pool_mint),  # 4. pool token mint
            _rw(pool_token_account),  # 5. destination for initial pool tokens
            _ro(token_program_id),  # 6. token program
        ]
        return Instruction(program_id=program_id, data=data, accounts=accounts)

    @staticmethod
    def deposit(
            program_id: Pubkey,
            stable_swap: Pubkey,
            authority: Pubkey,
            source_a: Pubkey,
            source_b: Pubkey,
            token_account_a: Pubkey,
            token_account_b: Pubkey,
            pool_mint: Pubkey,
            destination: Pubkey,
            token_program_id: Pubkey,
            token_amount_a: int,
            token_amount_b: int,
            min_mint_amount: int,
    ) -> Instruction:
        data = DEPOSIT_LAYOUT.build({
            "instruction": StableSwapInstruction.DEPOSIT,
            "token_amount_a": check_u64("token_amount_a", token_amount_a),
            "token_amount_b": check_u64("token_amount_b", token_amount_b),
            "min_mint_amount": check_u64("min_mint_amount", min_mint_amount),
        })
        accounts = [
            _ro(stable_swap),
            _ro(authority),
            _rw(source_a),  # user A, delegated to authority
            _rw(source_b),  # user B, delegated to authority
            _rw(token_account_a),
            _rw(token_account_b),
            _rw(pool_mint),
            _rw(destination),
            _ro(token_program_id),
        ]
        return Instruction(program_id=program_id, data=data, accounts=accounts)

    @staticmethod
    def withdraw(
            program_id: Pubkey,
            stable_swap: Pubkey,
            authority: Pubkey,
            pool_mint: Pubkey,
            source_pool_account: Pubkey,
            token_account_a: Pubkey,
            token_account_b: Pubkey,
            user_account_a: Pubkey,
            user_account_b: Pubkey,
            token_program_id: Pubkey,
            pool_token_amount: int,
            minimum_token_a_amount: int,
            minimum_token_b_amount: int,
    ) -> Instruction:
        data = WITHDRAW_LAYOUT.build({
            "instruction": StableSwapInstruction.WITHDRAW,
            "pool_token_amount": check_u64("pool_token_amount", pool_token_amount),
            "minimum_token_a_amount": check_u64("minimum_token_a_amount", minimum_token_a_amount),
            "minimum_token_b_amount": check_u64("minimum_token_b_amount", minimum_token_b_amount),
        })
        accounts = [
            _ro(stable_swap),
            _ro(authority),
            _rw(pool_mint),
            _rw(source_pool_account),  # delegated to authority
            _rw(token_account_a),
            _rw(token_account_b),
            _rw(user_account_a),
            _rw(user_account_b),
            _ro(token_program_id),
        ]
        return Instruction(program_id=program_id, data=data, accounts=accounts)

    @staticmethod
    def swap(
            program_id: Pubkey,
            stable_swap: Pubkey,
            authority: Pubkey,
            user_source: Pubkey,
            pool_source: Pubkey,
            pool_destination: Pubkey,
            user_destination: Pubkey,
            token_program_id: Pubkey,
            amount_in: int,
            minimum_amount_out: int,
    ) -> Instruction:
        data = SWAP_LAYOUT.build({
            "instruction": StableSwapInstruction.SWAP,
            "amount_in": check_u64("amount_in", amount_in),
            "minimum_amount_out": check_u64("minimum_amount_out", minimum_amount_out),
        })
        accounts = [
            _ro(stable_swap),
            _ro(authority),
            _rw(user_source),
            _rw(pool_source),
            _rw(pool_destination),
            _rw(user_destination),
            _ro(token_program_id),
        ]
        return Instruction(program_id=program_id, data=data, accounts=accounts)
