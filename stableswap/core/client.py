# stableswap/core/client.py

import re
from typing import Awaitable, Optional, TypeVar

import httpx
from solders.account import Account
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction
from solders.transaction_status import TransactionStatus

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed, Finalized, Processed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts

from .exceptions import AccountNotFound, NetworkError, SubmissionError
from .layouts import MintInfo, TokenAccountInfo, decode_mint, decode_token_account
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30

# Pre-1.6 cluster names still used by test fixtures
_LEGACY_COMMITMENTS = {
    "recent": Processed,
    "processed": Processed,
    "single": Confirmed,
    "singlegossip": Confirmed,
    "confirmed": Confirmed,
    "max": Finalized,
    "root": Finalized,
    "finalized": Finalized,
}

_CUSTOM_HEX_RE = re.compile(r"custom program error: 0x([0-9a-fA-F]+)")
_CUSTOM_DEC_RE = re.compile(r"Custom\D{0,12}?(\d+)")
# "Error processing Instruction 2: ..." (preflight) or InstructionError(2, ...) (status)
_INSTRUCTION_INDEX_RE = re.compile(r"(?:[Ii]nstruction |InstructionError\W{0,6})(\d+)")

T = TypeVar("T")


def normalize_commitment(commitment: str) -> Commitment:
    """Maps legacy and current commitment names onto processed/confirmed/finalized."""
    try:
        return _LEGACY_COMMITMENTS[str(commitment).lower()]
    except KeyError:
        raise ValueError(f"Unknown commitment level: {commitment}") from None


def extract_custom_error_code(error: object) -> Optional[int]:
    """Pulls a program's custom error code out of an RPC or transaction error."""
    text = str(error)
    match = _CUSTOM_HEX_RE.search(text)
    if match:
        return int(match.group(1), 16)
    match = _CUSTOM_DEC_RE.search(text)
    if match:
        return int(match.group(1))
    return None


def extract_instruction_index(error: object) -> Optional[int]:
    """Position of the failing instruction in a transaction error, when reported."""
    index = getattr(error, "index", None)
    if isinstance(index, int):
        return index
    match = _INSTRUCTION_INDEX_RE.search(str(error))
    if match:
        return int(match.group(1))
    return None


class SolanaClient:
    """
    Connection handle for one cluster. Passed explicitly to everything that talks
    to the ledger; there is no module-level connection.
    """

    def __init__(
            self,
            rpc_endpoint: str,
            commitment: str = "confirmed",
            timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
            async_client: Optional[AsyncClient] = None,
    ) -> None:
        self.rpc_endpoint = rpc_endpoint
        self.commitment = normalize_commitment(commitment)
        self.timeout_seconds = timeout_seconds
        self.async_client = async_client or AsyncClient(
            rpc_endpoint, commitment=self.commitment, timeout=timeout_seconds
        )
        logger.info(f"SolanaClient initialized: {rpc_endpoint} @ {self.commitment}")

    async def __aenter__(self) -> "SolanaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.async_client.close()
        logger.info("SolanaClient connection closed.")

    async def _rpc(self, method: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except RPCException as e:
            raise NetworkError(f"RPC error {method}: {e}") from e
        except (SolanaRpcException, httpx.HTTPError) as e:
            raise NetworkError(f"RPC {method} failed against {self.rpc_endpoint}: {e}") from e

    async def request_airdrop(self, pubkey: Pubkey, lamports: int) -> Signature:
        resp = await self._rpc(
            "request_airdrop", self.async_client.request_airdrop(pubkey, lamports, self.commitment)
        )
        logger.debug(f"Airdrop of {lamports} lamports to {pubkey} requested: {resp.value}")
        return resp.value

    async def get_balance(self, pubkey: Pubkey) -> int:
        resp = await self._rpc("get_balance", self.async_client.get_balance(pubkey, self.commitment))
        return resp.value

    async def get_latest_blockhash(self) -> Hash:
        resp = await self._rpc(
            "get_latest_blockhash", self.async_client.get_latest_blockhash(self.commitment)
        )
        if resp.value is None:
            raise NetworkError("get_latest_blockhash returned no value")
        return resp.value.blockhash

    async def get_fee_per_signature(self) -> int:
        """Fee the cluster charges for a message carrying a single signature."""
        blockhash = await self.get_latest_blockhash()
        message = Message.new_with_blockhash([], Keypair().pubkey(), blockhash)
        resp = await self._rpc(
            "get_fee_for_message", self.async_client.get_fee_for_message(message, self.commitment)
        )
        if resp.value is None:
            raise NetworkError("get_fee_for_message returned no value (blockhash expired?)")
        return resp.value

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        resp = await self._rpc(
            "get_minimum_balance_for_rent_exemption",
            self.async_client.get_minimum_balance_for_rent_exemption(size, self.commitment),
        )
        return resp.value

    async def get_account_info(self, pubkey: Pubkey) -> Optional[Account]:
        """Raw account (base64 decoded by solders), or None when the account does not exist."""
        resp = await self._rpc(
            "get_account_info",
            self.async_client.get_account_info(pubkey, self.commitment, encoding="base64"),
        )
        return resp.value

    async def get_signature_status(self, signature: Signature) -> Optional[TransactionStatus]:
        resp = await self._rpc(
            "get_signature_statuses", self.async_client.get_signature_statuses([signature])
        )
        if not resp.value:
            return None
        return resp.value[0]

    async def send_transaction(
            self,
            transaction: VersionedTransaction,
            label: str = "Transaction",
            skip_preflight: bool = False,
            preflight_commitment: Optional[Commitment] = None,
    ) -> Signature:
        """
        Sends a signed transaction without waiting for confirmation.
        Rejections (simulation failure, stale blockhash) raise SubmissionError.
        """
        opts = TxOpts(
            skip_confirmation=True,
            skip_preflight=skip_preflight,
            preflight_commitment=preflight_commitment or self.commitment,
        )
        try:
            resp = await self.async_client.send_raw_transaction(bytes(transaction), opts=opts)
        except RPCException as e:
            raise SubmissionError(
                label,
                f"rejected by cluster: {e}",
                code=extract_custom_error_code(e),
                instruction_index=extract_instruction_index(e),
            ) from e
        except (SolanaRpcException, httpx.HTTPError) as e:
            raise NetworkError(f"send_transaction failed against {self.rpc_endpoint}: {e}") from e
        return resp.value

    async def get_token_account(self, pubkey: Pubkey) -> TokenAccountInfo:
        account = await self.get_account_info(pubkey)
        if account is None:
            raise AccountNotFound(f"Token account {pubkey} not found")
        return decode_token_account(pubkey, bytes(account.data))

    async def get_token_balance(self, pubkey: Pubkey) -> int:
        return (await self.get_token_account(pubkey)).amount

    async def get_mint(self, pubkey: Pubkey) -> MintInfo:
        account = await self.get_account_info(pubkey)
        if account is None:
            raise AccountNotFound(f"Mint {pubkey} not found")
        return decode_mint(pubkey, bytes(account.data))
