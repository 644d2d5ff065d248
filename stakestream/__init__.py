"""In-memory staking derivative and token streaming contracts, with a token ledger and mock chain."""

__version__ = "0.1.0"