from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("dbchain")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .bigint import BigInt
from .chain import BestChain, ChainResult, SearchStats, Term
from .config import has_profile, load_settings
from .engine import ChainSearch, SearchPolicy, max_columns, optimal_chain
from .reconstruct import reconstruct
from .runtime import APPLY, CFG
from .utility import CapacityExceeded, InconsistentTrace, InvalidDigit, UserInputError, chain_value

__all__ = [
    "APPLY",
    "CFG",
    "BestChain",
    "BigInt",
    "CapacityExceeded",
    "ChainResult",
    "ChainSearch",
    "InconsistentTrace",
    "InvalidDigit",
    "SearchPolicy",
    "SearchStats",
    "Term",
    "UserInputError",
    "__version__",
    "chain_value",
    "has_profile",
    "load_settings",
    "max_columns",
    "optimal_chain",
    "reconstruct",
]
