"""
SolanaClient Unit Tests
=======================
The connection handle must raise typed errors instead of returning None.
"""

import httpx
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from solana.rpc.core import RPCException

from stableswap.core.client import (
    SolanaClient,
    extract_custom_error_code,
    extract_instruction_index,
    normalize_commitment,
)
from stableswap.core.exceptions import AccountNotFound, DecodeError, NetworkError, SubmissionError
from stableswap.core.layouts import MINT_LAYOUT, TOKEN_ACCOUNT_LAYOUT


@pytest.fixture
def rpc():
    return AsyncMock()


@pytest.fixture
def client(rpc):
    return SolanaClient("http://localhost:8899", commitment="single", async_client=rpc)


class _SignedTx:
    def __bytes__(self):
        return b"\x01signed"


class TestCommitment:

    @pytest.mark.parametrize("legacy,expected", [
        ("recent", "processed"),
        ("single", "confirmed"),
        ("singleGossip", "confirmed"),
        ("max", "finalized"),
        ("root", "finalized"),
        ("Confirmed", "confirmed"),
    ])
    def test_legacy_names(self, legacy, expected):
        assert normalize_commitment(legacy) == expected

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            normalize_commitment("eventually")

    def test_client_normalises(self, client):
        assert client.commitment == "confirmed"


class TestCustomErrorCode:

    def test_hex_from_simulation_log(self):
        msg = "Transaction simulation failed: Error processing Instruction 2: custom program error: 0xe"
        assert extract_custom_error_code(msg) == 14

    def test_decimal_from_status(self):
        assert extract_custom_error_code("InstructionError(2, Custom(14))") == 14
        assert extract_custom_error_code({"InstructionError": [0, {"Custom": 0}]}) == 0

    def test_absent(self):
        assert extract_custom_error_code("Blockhash not found") is None


class TestInstructionIndex:

    def test_from_simulation_log(self):
        msg = "Transaction simulation failed: Error processing Instruction 2: custom program error: 0xe"
        assert extract_instruction_index(msg) == 2

    def test_from_status(self):
        assert extract_instruction_index("InstructionError(1, Custom(14))") == 1
        assert extract_instruction_index({"InstructionError": [0, {"Custom": 0}]}) == 0

    def test_structured_error(self):
        assert extract_instruction_index(SimpleNamespace(index=3, err="Custom(14)")) == 3

    def test_absent(self):
        assert extract_instruction_index("Blockhash not found") is None


class TestReads:

    @pytest.mark.asyncio
    async def test_get_balance(self, client, rpc):
        rpc.get_balance.return_value = SimpleNamespace(value=1_000_000_000)
        assert await client.get_balance(Pubkey.new_unique()) == 1_000_000_000

    @pytest.mark.asyncio
    async def test_transport_error_is_network_error(self, client, rpc):
        rpc.get_balance.side_effect = httpx.ConnectError("connection refused")
        with pytest.raises(NetworkError):
            await client.get_balance(Pubkey.new_unique())

    @pytest.mark.asyncio
    async def test_rpc_error_is_network_error(self, client, rpc):
        rpc.get_minimum_balance_for_rent_exemption.side_effect = RPCException("invalid params")
        with pytest.raises(NetworkError):
            await client.get_minimum_balance_for_rent_exemption(165)

    @pytest.mark.asyncio
    async def test_missing_blockhash_is_network_error(self, client, rpc):
        rpc.get_latest_blockhash.return_value = SimpleNamespace(value=None)
        with pytest.raises(NetworkError):
            await client.get_latest_blockhash()

    @pytest.mark.asyncio
    async def test_fee_per_signature(self, client, rpc):
        rpc.get_latest_blockhash.return_value = SimpleNamespace(value=SimpleNamespace(blockhash=Hash.default()))
        rpc.get_fee_for_message.return_value = SimpleNamespace(value=5000)

        assert await client.get_fee_per_signature() == 5000
        rpc.get_fee_for_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_signature_status_empty(self, client, rpc):
        rpc.get_signature_statuses.return_value = SimpleNamespace(value=[None])
        assert await client.get_signature_status(Signature.default()) is None

    @pytest.mark.asyncio
    async def test_token_account_decoded(self, client, rpc):
        mint, owner, address = Pubkey.new_unique(), Pubkey.new_unique(), Pubkey.new_unique()
        data = TOKEN_ACCOUNT_LAYOUT.build({
            "mint": mint, "owner": owner, "amount": 42,
            "delegate_option": 0, "delegate": Pubkey.default(), "state": 1,
            "is_native_option": 0, "is_native": 0, "delegated_amount": 0,
            "close_authority_option": 0, "close_authority": Pubkey.default(),
        })
        rpc.get_account_info.return_value = SimpleNamespace(value=SimpleNamespace(data=data))

        info = await client.get_token_account(address)

        assert info.mint == mint
        assert info.owner == owner
        assert info.amount == 42
        assert info.delegate is None

    @pytest.mark.asyncio
    async def test_token_account_missing(self, client, rpc):
        rpc.get_account_info.return_value = SimpleNamespace(value=None)
        with pytest.raises(AccountNotFound):
            await client.get_token_account(Pubkey.new_unique())

    @pytest.mark.asyncio
    async def test_token_account_wrong_size(self, client, rpc):
        rpc.get_account_info.return_value = SimpleNamespace(value=SimpleNamespace(data=b"\x00" * 10))
        with pytest.raises(DecodeError):
            await client.get_token_account(Pubkey.new_unique())

    @pytest.mark.asyncio
    async def test_mint_decoded(self, client, rpc):
        authority, address = Pubkey.new_unique(), Pubkey.new_unique()
        data = MINT_LAYOUT.build({
            "mint_authority_option": 1, "mint_authority": authority, "supply": 0,
            "decimals": 2, "is_initialized": 1,
            "freeze_authority_option": 0, "freeze_authority": Pubkey.default(),
        })
        rpc.get_account_info.return_value = SimpleNamespace(value=SimpleNamespace(data=data))

        mint = await client.get_mint(address)

        assert mint.mint_authority == authority
        assert mint.supply == 0
        assert mint.decimals == 2
        assert mint.is_initialized

    @pytest.mark.asyncio
    async def test_mint_missing(self, client, rpc):
        rpc.get_account_info.return_value = SimpleNamespace(value=None)
        with pytest.raises(AccountNotFound):
            await client.get_mint(Pubkey.new_unique())


class TestSend:

    @pytest.fixture
    def signed_tx(self):
        return _SignedTx()

    @pytest.mark.asyncio
    async def test_returns_signature(self, client, rpc, signed_tx):
        sig = Signature.default()
        rpc.send_raw_transaction.return_value = SimpleNamespace(value=sig)

        assert await client.send_transaction(signed_tx) == sig
        opts = rpc.send_raw_transaction.await_args.kwargs["opts"]
        assert opts.skip_confirmation is True
        assert opts.skip_preflight is False

    @pytest.mark.asyncio
    async def test_preflight_rejection_carries_code(self, client, rpc, signed_tx):
        rpc.send_raw_transaction.side_effect = RPCException(
            "Transaction simulation failed: Error processing Instruction 2: custom program error: 0xe"
        )

        with pytest.raises(SubmissionError) as exc_info:
            await client.send_transaction(signed_tx, label="deposit")

        assert exc_info.value.code == 14
        assert exc_info.value.label == "deposit"
        assert exc_info.value.instruction_index == 2

    @pytest.mark.asyncio
    async def test_transport_failure(self, client, rpc, signed_tx):
        rpc.send_raw_transaction.side_effect = httpx.ReadTimeout("timed out")
        with pytest.raises(NetworkError):
            await client.send_transaction(signed_tx)


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, rpc):
        async with SolanaClient("http://localhost:8899", async_client=rpc):
            pass
        rpc.close.assert_awaited_once()
