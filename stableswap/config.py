# stableswap/config.py

import os
from dotenv import load_dotenv

# Load .env from the project root
script_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(script_dir)
dotenv_path = os.path.join(project_root, '.env')
load_dotenv(dotenv_path=dotenv_path)

# --- Cluster Connection ---
CLUSTER_URL = os.getenv("CLUSTER_URL", "http://localhost:8899")
# Legacy names ("single", "recent", "max") are accepted and normalised
COMMITMENT = os.getenv("COMMITMENT", "single")
RPC_TIMEOUT_SECONDS = float(os.getenv("RPC_TIMEOUT_SECONDS", "30"))

# --- Funding (faucet) ---
FUND_MAX_ATTEMPTS = int(os.getenv("FUND_MAX_ATTEMPTS", "30"))
FUND_POLL_INTERVAL_SECONDS = float(os.getenv("FUND_POLL_INTERVAL_SECONDS", "0.5"))

# --- Transaction Settings ---
CONFIRM_MAX_ATTEMPTS = int(os.getenv("CONFIRM_MAX_ATTEMPTS", "60"))
CONFIRM_POLL_INTERVAL_SECONDS = float(os.getenv("CONFIRM_POLL_INTERVAL_SECONDS", "0.5"))
SKIP_PREFLIGHT = os.getenv("SKIP_PREFLIGHT", "false").lower() in ("1", "true", "yes")

# --- Program Deployment ---
DEPLOY_CHUNK_MAX_RETRIES = int(os.getenv("DEPLOY_CHUNK_MAX_RETRIES", "3"))
DEPLOY_FUND_MARGIN_LAMPORTS = int(os.getenv("DEPLOY_FUND_MARGIN_LAMPORTS", "100000000"))
ADDRESS_FIXTURE_PATH = os.getenv("ADDRESS_FIXTURE_PATH", "localnet-address.json")
STABLE_SWAP_PROGRAM_PATH = os.getenv("STABLE_SWAP_PROGRAM_PATH")  # compiled .so, optional

# --- Bootstrap ---
BOOTSTRAP_TIMEOUT_SECONDS = float(os.getenv("BOOTSTRAP_TIMEOUT_SECONDS", "300"))

# --- Pool Parameters ---
AMP_FACTOR = int(os.getenv("AMP_FACTOR", "100"))
FEE_NUMERATOR = int(os.getenv("FEE_NUMERATOR", "1"))
FEE_DENOMINATOR = int(os.getenv("FEE_DENOMINATOR", "4"))
TOKEN_DECIMALS = int(os.getenv("TOKEN_DECIMALS", "2"))

# --- Solana-wide constants ---
LAMPORTS_PER_SOL = 1_000_000_000
