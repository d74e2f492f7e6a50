# stableswap/core/__init__.py

# Import directly available classes/modules via relative imports
from .client import SolanaClient, normalize_commitment
from .pda import ProgramDerivedAddress, derive_program_address, create_program_address
from .transactions import SubmitPolicy, DEFAULT_POLICY, send_and_confirm_transaction
from .funding import fund_account, new_account_with_lamports
from .deployer import deploy_program
from .instructions import InstructionBuilder
from .layouts import StableSwapState, TokenAccountInfo, MintInfo
from .pubkeys import SolanaProgramAddresses, TOKEN_PROGRAM_ID

__all__ = [
    "SolanaClient",
    "normalize_commitment",
    "ProgramDerivedAddress",
    "derive_program_address",
    "create_program_address",
    "SubmitPolicy",
    "DEFAULT_POLICY",
    "send_and_confirm_transaction",
    "fund_account",
    "new_account_with_lamports",
    "deploy_program",
    "InstructionBuilder",
    "StableSwapState",
    "TokenAccountInfo",
    "MintInfo",
    "SolanaProgramAddresses",
    "TOKEN_PROGRAM_ID",
]
