"""Per-chain transfer adapters."""

from custodex.adapters.base import ChainAdapter
from custodex.adapters.factory import build_options, get_transfer_adapter, reset_adapter_cache
from custodex.adapters.options import OPTIONS_BY_CHAIN, ChainOptions

__all__ = [
    "ChainAdapter",
    "ChainOptions",
    "OPTIONS_BY_CHAIN",
    "build_options",
    "get_transfer_adapter",
    "reset_adapter_cache",
]
