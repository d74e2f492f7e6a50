# stableswap/__init__.py

from .stable_swap import StableSwap
from .bootstrap import BootstrappedPool, PoolBootstrapper, run_bootstrap

__all__ = [
    "StableSwap",
    "BootstrappedPool",
    "PoolBootstrapper",
    "run_bootstrap",
]
