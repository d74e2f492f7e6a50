"""
Stable Swap Client Test Configuration
=====================================
Shared fixtures and pytest markers for the test suite.
"""

import os
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# ============================================================================
# PYTEST MARKERS
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: needs a local validator (set STABLE_SWAP_E2E=1)"
    )


# ============================================================================
# SHARED FIXTURES
# ============================================================================

def make_status(confirmation: str = "confirmed", err=None, confirmations=1):
    """Signature status as returned by getSignatureStatuses."""
    from solders.transaction_status import TransactionConfirmationStatus

    levels = {
        "processed": TransactionConfirmationStatus.Processed,
        "confirmed": TransactionConfirmationStatus.Confirmed,
        "finalized": TransactionConfirmationStatus.Finalized,
    }
    return SimpleNamespace(
        err=err,
        confirmation_status=levels[confirmation],
        confirmations=confirmations,
    )


@pytest.fixture
def mock_client():
    """SolanaClient stand-in with every RPC call mocked."""
    client = MagicMock()
    client.rpc_endpoint = "http://localhost:8899"
    client.get_latest_blockhash = AsyncMock(return_value=Hash.default())
    client.send_transaction = AsyncMock(return_value=Signature.default())
    client.get_signature_status = AsyncMock(return_value=make_status("confirmed"))
    client.request_airdrop = AsyncMock(return_value=Signature.default())
    client.get_balance = AsyncMock(return_value=0)
    client.get_minimum_balance_for_rent_exemption = AsyncMock(return_value=2_039_280)
    client.get_fee_per_signature = AsyncMock(return_value=5000)
    client.get_account_info = AsyncMock(return_value=None)
    client.get_token_balance = AsyncMock(return_value=0)
    return client


@pytest.fixture
def payer():
    return Keypair()


@pytest.fixture
def program_id():
    return Pubkey.new_unique()


@pytest.fixture
def fast_policy():
    """Submit policy with no waiting between status checks."""
    from stableswap.core.transactions import SubmitPolicy
    return SubmitPolicy(commitment="single", confirm_max_attempts=5, confirm_interval_seconds=0)
