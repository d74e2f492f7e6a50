# stableswap/core/pubkeys.py

from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID_SOLDERS  # Renamed to avoid conflict
from solders.sysvar import RENT
from spl.token.constants import TOKEN_PROGRAM_ID as TOKEN_PROGRAM_ID_SPL  # Renamed to avoid conflict


class SolanaProgramAddresses:
    SYSTEM_PROGRAM_ID: Pubkey = SYSTEM_PROGRAM_ID_SOLDERS
    TOKEN_PROGRAM_ID: Pubkey = TOKEN_PROGRAM_ID_SPL
    RENT_SYSVAR_PUBKEY: Pubkey = RENT
    # Loader used for uploading the stable swap program binary
    BPF_LOADER_ID: Pubkey = Pubkey.from_string(
        "BPFLoader2111111111111111111111111111111111"
    )


# for convenience, re-export the token program ID at module scope
TOKEN_PROGRAM_ID = SolanaProgramAddresses.TOKEN_PROGRAM_ID
