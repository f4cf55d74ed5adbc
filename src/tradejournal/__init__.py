"""
Trade Journal - Trade Lot Accounting Engine

Public API for recomputing journal trades: FIFO lot matching, valuation,
reward:risk, holding period and portfolio impact.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tradejournal")
except PackageNotFoundError:
    __version__ = "0.0.0.dev"


__all__ = [
    "__version__",
]
