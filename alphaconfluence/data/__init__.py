"""Option chain data model for AlphaConfluence."""

from .option_chain import (
    InvalidChainError,
    OptionChainSnapshot,
    OptionContract,
    validate_option_chain,
)

__all__ = [
    'InvalidChainError',
    'OptionChainSnapshot',
    'OptionContract',
    'validate_option_chain',
]
