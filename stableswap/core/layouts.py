# stableswap/core/layouts.py

from dataclasses import dataclass
from typing import Optional

from borsh_construct import CStruct, U8, U32, U64
from construct import Adapter, Bytes, ConstructError
from solders.pubkey import Pubkey

from .exceptions import DecodeError

U64_MAX = 2 ** 64 - 1


class _PubkeyAdapter(Adapter):
    """32 raw bytes <-> solders Pubkey."""

    def _decode(self, obj, context, path):
        return Pubkey.from_bytes(obj)

    def _encode(self, obj, context, path):
        return bytes(obj)


PUBKEY = _PubkeyAdapter(Bytes(32))


def check_u64(name: str, value: int) -> int:
    """Amounts, amp factor and fees are plain ints on the wire as little-endian u64."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise ValueError(f"{name} out of u64 range: {value}")
    return value


# --- Stable Swap State Layout ---
STABLE_SWAP_LAYOUT = CStruct(
    "is_initialized" / U8,
    "nonce" / U8,
    "amp_factor" / U64,
    "token_account_a" / PUBKEY,
    "token_account_b" / PUBKEY,
    "pool_mint" / PUBKEY,
    "mint_a" / PUBKEY,
    "mint_b" / PUBKEY,
    "fee_numerator" / U64,
    "fee_denominator" / U64,
)
STABLE_SWAP_STATE_SIZE = STABLE_SWAP_LAYOUT.sizeof()  # 186


@dataclass(frozen=True)
class StableSwapState:
    nonce: int
    amp_factor: int
    token_account_a: Pubkey
    token_account_b: Pubkey
    pool_mint: Pubkey
    mint_a: Pubkey
    mint_b: Pubkey
    fee_numerator: int
    fee_denominator: int
    is_initialized: bool = True


def encode_stable_swap_state(state: StableSwapState) -> bytes:
    return STABLE_SWAP_LAYOUT.build({
        "is_initialized": 1 if state.is_initialized else 0,
        "nonce": state.nonce,
        "amp_factor": check_u64("amp_factor", state.amp_factor),
        "token_account_a": state.token_account_a,
        "token_account_b": state.token_account_b,
        "pool_mint": state.pool_mint,
        "mint_a": state.mint_a,
        "mint_b": state.mint_b,
        "fee_numerator": check_u64("fee_numerator", state.fee_numerator),
        "fee_denominator": check_u64("fee_denominator", state.fee_denominator),
    })


def decode_stable_swap_state(raw_data: bytes) -> StableSwapState:
    """Decodes stable swap account data. Raises DecodeError instead of returning partial state."""
    if len(raw_data) != STABLE_SWAP_STATE_SIZE:
        raise DecodeError(
            f"Unexpected stable swap account data length: {len(raw_data)} (expected {STABLE_SWAP_STATE_SIZE})"
        )
    try:
        parsed = STABLE_SWAP_LAYOUT.parse(raw_data)
    except ConstructError as e:
        raise DecodeError(f"Could not decode stable swap state: {e}") from e
    if parsed.is_initialized != 1:
        raise DecodeError("Stable swap account is not initialized")
    return StableSwapState(
        nonce=parsed.nonce,
        amp_factor=parsed.amp_factor,
        token_account_a=parsed.token_account_a,
        token_account_b=parsed.token_account_b,
        pool_mint=parsed.pool_mint,
        mint_a=parsed.mint_a,
        mint_b=parsed.mint_b,
        fee_numerator=parsed.fee_numerator,
        fee_denominator=parsed.fee_denominator,
    )


# --- SPL Token Layouts (only the fields this client reads) ---
TOKEN_ACCOUNT_LAYOUT = CStruct(
    "mint" / PUBKEY,
    "owner" / PUBKEY,
    "amount" / U64,
    "delegate_option" / U32,
    "delegate" / PUBKEY,
    "state" / U8,
    "is_native_option" / U32,
    "is_native" / U64,
    "delegated_amount" / U64,
    "close_authority_option" / U32,
    "close_authority" / PUBKEY,
)
TOKEN_ACCOUNT_SIZE = TOKEN_ACCOUNT_LAYOUT.sizeof()  # 165

MINT_LAYOUT = CStruct(
    "mint_authority_option" / U32,
    "mint_authority" / PUBKEY,
    "supply" / U64,
    "decimals" / U8,
    "is_initialized" / U8,
    "freeze_authority_option" / U32,
    "freeze_authority" / PUBKEY,
)
MINT_SIZE = MINT_LAYOUT.sizeof()  # 82


@dataclass(frozen=True)
class TokenAccountInfo:
    address: Pubkey
    mint: Pubkey
    owner: Pubkey
    amount: int
    delegate: Optional[Pubkey]
    delegated_amount: int
    state: int


@dataclass(frozen=True)
class MintInfo:
    address: Pubkey
    mint_authority: Optional[Pubkey]
    supply: int
    decimals: int
    is_initialized: bool


def decode_token_account(address: Pubkey, raw_data: bytes) -> TokenAccountInfo:
    if len(raw_data) != TOKEN_ACCOUNT_SIZE:
        raise DecodeError(f"Token account {address} has {len(raw_data)} bytes, expected {TOKEN_ACCOUNT_SIZE}")
    try:
        parsed = TOKEN_ACCOUNT_LAYOUT.parse(raw_data)
    except ConstructError as e:
        raise DecodeError(f"Could not decode token account {address}: {e}") from e
    return TokenAccountInfo(
        address=address,
        mint=parsed.mint,
        owner=parsed.owner,
        amount=parsed.amount,
        delegate=parsed.delegate if parsed.delegate_option else None,
        delegated_amount=parsed.delegated_amount,
        state=parsed.state,
    )


def decode_mint(address: Pubkey, raw_data: bytes) -> MintInfo:
    if len(raw_data) != MINT_SIZE:
        raise DecodeError(f"Mint {address} has {len(raw_data)} bytes, expected {MINT_SIZE}")
    try:
        parsed = MINT_LAYOUT.parse(raw_data)
    except ConstructError as e:
        raise DecodeError(f"Could not decode mint {address}: {e}") from e
    return MintInfo(
        address=address,
        mint_authority=parsed.mint_authority if parsed.mint_authority_option else None,
        supply=parsed.supply,
        decimals=parsed.decimals,
        is_initialized=parsed.is_initialized == 1,
    )
