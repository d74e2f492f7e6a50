"""
Transaction Submitter Unit Tests
================================
Single submit+confirm path: signer handling, commitment policy, typed failures.
"""

import pytest
from unittest.mock import AsyncMock
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer

from stableswap.core.exceptions import (
    AlreadyInitialized,
    ConfirmationTimeout,
    NetworkError,
    SlippageExceeded,
    SubmissionError,
)
from stableswap.core.pda import derive_program_address
from stableswap.core.transactions import SubmitPolicy, confirm_transaction, send_and_confirm_transaction
from tests.conftest import make_status


def _transfer(payer: Keypair) -> list:
    return [transfer(TransferParams(from_pubkey=payer.pubkey(), to_pubkey=Keypair().pubkey(), lamports=1000))]


def _with_pool_ix(payer: Keypair, program_id: Pubkey) -> list:
    """A system transfer followed by one instruction addressed to the pool program."""
    return _transfer(payer) + [Instruction(program_id, bytes([1]), [])]


class TestSendAndConfirm:

    @pytest.mark.asyncio
    async def test_happy_path_returns_signature(self, mock_client, payer, fast_policy):
        sig = await send_and_confirm_transaction("transfer", mock_client, _transfer(payer), [payer], fast_policy)

        assert sig == str(Signature.default())
        mock_client.get_latest_blockhash.assert_awaited_once()
        mock_client.send_transaction.assert_awaited_once()
        mock_client.get_signature_status.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sent_transaction_is_signed_by_payer(self, mock_client, payer, fast_policy):
        await send_and_confirm_transaction("transfer", mock_client, _transfer(payer), [payer], fast_policy)

        tx = mock_client.send_transaction.await_args.args[0]
        assert tx.message.account_keys[0] == payer.pubkey()
        assert len(tx.signatures) == 1

    @pytest.mark.asyncio
    async def test_policy_drives_preflight(self, mock_client, payer):
        policy = SubmitPolicy(commitment="recent", skip_preflight=True, confirm_max_attempts=1,
                              confirm_interval_seconds=0)
        mock_client.get_signature_status.return_value = make_status("processed")

        await send_and_confirm_transaction("transfer", mock_client, _transfer(payer), [payer], policy)

        kwargs = mock_client.send_transaction.await_args.kwargs
        assert kwargs["skip_preflight"] is True
        assert kwargs["preflight_commitment"] == "processed"

    @pytest.mark.asyncio
    async def test_duplicate_signers_dropped(self, mock_client, payer, fast_policy):
        await send_and_confirm_transaction("transfer", mock_client, _transfer(payer), [payer, payer], fast_policy)
        tx = mock_client.send_transaction.await_args.args[0]
        assert len(tx.signatures) == 1

    @pytest.mark.asyncio
    async def test_pda_cannot_sign(self, mock_client, payer, program_id, fast_policy):
        pda = derive_program_address([b"authority"], program_id)

        with pytest.raises(TypeError):
            await send_and_confirm_transaction("transfer", mock_client, _transfer(payer), [payer, pda], fast_policy)
        mock_client.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_needs_a_signer(self, mock_client, payer, fast_policy):
        with pytest.raises(ValueError):
            await send_and_confirm_transaction("transfer", mock_client, _transfer(payer), [], fast_policy)

    @pytest.mark.asyncio
    async def test_network_error_not_retried(self, mock_client, payer, fast_policy):
        mock_client.send_transaction.side_effect = NetworkError("refused")

        with pytest.raises(NetworkError):
            await send_and_confirm_transaction("transfer", mock_client, _transfer(payer), [payer], fast_policy)
        assert mock_client.send_transaction.await_count == 1

    @pytest.mark.asyncio
    async def test_rejection_with_slippage_code(self, mock_client, payer, program_id, fast_policy):
        mock_client.send_transaction.side_effect = SubmissionError(
            "deposit", "simulation failed", code=14, instruction_index=1
        )

        with pytest.raises(SlippageExceeded) as exc_info:
            await send_and_confirm_transaction("deposit", mock_client, _with_pool_ix(payer, program_id), [payer],
                                               fast_policy, program_id=program_id)
        assert isinstance(exc_info.value, SubmissionError)
        assert exc_info.value.code == 14

    @pytest.mark.asyncio
    async def test_rejection_with_in_use_code(self, mock_client, payer, program_id, fast_policy):
        mock_client.send_transaction.side_effect = SubmissionError(
            "init", "simulation failed", code=0, instruction_index=1
        )

        with pytest.raises(AlreadyInitialized):
            await send_and_confirm_transaction("init", mock_client, _with_pool_ix(payer, program_id), [payer],
                                               fast_policy, program_id=program_id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [0, 14])
    async def test_other_program_codes_stay_untyped(self, mock_client, payer, program_id, fast_policy, code):
        # instruction 0 is the system transfer, not the pool program
        mock_client.send_transaction.side_effect = SubmissionError(
            "deposit", "simulation failed", code=code, instruction_index=0
        )

        with pytest.raises(SubmissionError) as exc_info:
            await send_and_confirm_transaction("deposit", mock_client, _with_pool_ix(payer, program_id), [payer],
                                               fast_policy, program_id=program_id)
        assert type(exc_info.value) is SubmissionError
        assert exc_info.value.code == code

    @pytest.mark.asyncio
    async def test_codes_untyped_without_pool_program(self, mock_client, payer, fast_policy):
        mock_client.send_transaction.side_effect = SubmissionError(
            "transfer", "simulation failed", code=14, instruction_index=0
        )

        with pytest.raises(SubmissionError) as exc_info:
            await send_and_confirm_transaction("transfer", mock_client, _transfer(payer), [payer], fast_policy)
        assert type(exc_info.value) is SubmissionError

    @pytest.mark.asyncio
    async def test_rejection_without_code(self, mock_client, payer, fast_policy):
        mock_client.send_transaction.side_effect = SubmissionError("transfer", "Blockhash not found")

        with pytest.raises(SubmissionError) as exc_info:
            await send_and_confirm_transaction("transfer", mock_client, _transfer(payer), [payer], fast_policy)
        assert exc_info.value.code is None


class TestConfirm:

    @pytest.mark.asyncio
    async def test_waits_for_commitment(self, mock_client, fast_policy):
        mock_client.get_signature_status = AsyncMock(side_effect=[
            None,
            make_status("processed"),
            make_status("confirmed"),
        ])

        status = await confirm_transaction("transfer", mock_client, Signature.default(), fast_policy)

        assert status.err is None
        assert mock_client.get_signature_status.await_count == 3

    @pytest.mark.asyncio
    async def test_finalized_satisfies_confirmed(self, mock_client, fast_policy):
        mock_client.get_signature_status.return_value = make_status("finalized", confirmations=None)
        await confirm_transaction("transfer", mock_client, Signature.default(), fast_policy)
        assert mock_client.get_signature_status.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout(self, mock_client, fast_policy):
        mock_client.get_signature_status.return_value = make_status("processed")

        with pytest.raises(ConfirmationTimeout) as exc_info:
            await confirm_transaction("transfer", mock_client, Signature.default(), fast_policy)

        assert exc_info.value.attempts == fast_policy.confirm_max_attempts
        assert mock_client.get_signature_status.await_count == fast_policy.confirm_max_attempts

    @pytest.mark.asyncio
    async def test_landed_with_error(self, mock_client, fast_policy):
        mock_client.get_signature_status.return_value = make_status(
            "confirmed", err="InstructionError(2, Custom(14))"
        )

        with pytest.raises(SubmissionError) as exc_info:
            await confirm_transaction("deposit", mock_client, Signature.default(), fast_policy)

        assert exc_info.value.code == 14
        assert exc_info.value.instruction_index == 2

    @pytest.mark.asyncio
    async def test_landed_slippage_surfaces_typed(self, mock_client, payer, program_id, fast_policy):
        mock_client.get_signature_status.return_value = make_status(
            "confirmed", err="InstructionError(1, Custom(14))"
        )

        with pytest.raises(SlippageExceeded):
            await send_and_confirm_transaction("deposit", mock_client, _with_pool_ix(payer, program_id), [payer],
                                               fast_policy, program_id=program_id)
