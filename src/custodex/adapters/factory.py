"""Factory for chain transfer adapters.

Options come from the defaults table for the configured network, with
any endpoint overrides from settings applied on top.
"""

import logging
from typing import Optional, Union

import httpx

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import OPTIONS_BY_CHAIN, ChainOptions
from custodex.chains import ChainType, parse_chain_type
from custodex.config import Settings, get_settings
from custodex.signing.base import SignerBackend
from custodex.signing.factory import get_signer

logger = logging.getLogger(__name__)

# Adapters built from global settings and the global signer, one per chain
_adapter_cache: dict[ChainType, ChainAdapter] = {}


def _adapter_class(chain: ChainType) -> type[ChainAdapter]:
    if chain == ChainType.BITCOIN_SEGWIT:
        from custodex.adapters.btc import BitcoinAdapter
        return BitcoinAdapter
    if chain == ChainType.NEAR:
        from custodex.adapters.near import NearAdapter
        return NearAdapter
    if chain == ChainType.STARKNET:
        from custodex.adapters.starknet import StarknetAdapter
        return StarknetAdapter
    if chain == ChainType.TON:
        from custodex.adapters.ton import TonAdapter
        return TonAdapter
    if chain == ChainType.SOLANA:
        from custodex.adapters.solana import SolanaAdapter
        return SolanaAdapter
    if chain == ChainType.SUI:
        from custodex.adapters.sui import SuiAdapter
        return SuiAdapter
    if chain == ChainType.APTOS:
        from custodex.adapters.aptos import AptosAdapter
        return AptosAdapter
    if chain == ChainType.STELLAR:
        from custodex.adapters.stellar import StellarAdapter
        return StellarAdapter
    if chain == ChainType.COSMOS:
        from custodex.adapters.cosmos import CosmosAdapter
        return CosmosAdapter
    if chain == ChainType.TRON:
        from custodex.adapters.trx import TronAdapter
        return TronAdapter
    if chain == ChainType.ETHEREUM:
        from custodex.adapters.eth import EthereumAdapter
        return EthereumAdapter
    raise ValueError(f"Unsupported chain: {chain}")


def build_options(chain: ChainType, settings: Optional[Settings] = None) -> ChainOptions:
    """Typed options for a chain from settings (network flag plus overrides)."""
    settings = settings or get_settings()
    overrides: dict[ChainType, dict] = {
        ChainType.BITCOIN_SEGWIT: {
            "explorer_url": settings.btc_explorer_url,
            "fee_rate": settings.btc_fee_rate,
            "max_parallel_signatures": settings.btc_max_parallel_signatures,
            "spend_unconfirmed": settings.btc_spend_unconfirmed,
        },
        ChainType.NEAR: {"rpc_url": settings.near_rpc_url},
        ChainType.STARKNET: {"rpc_url": settings.starknet_rpc_url},
        ChainType.TON: {"api_url": settings.ton_api_url, "api_key": settings.ton_api_key or None},
        ChainType.SOLANA: {"rpc_url": settings.solana_rpc_url},
        ChainType.SUI: {"rpc_url": settings.sui_rpc_url},
        ChainType.APTOS: {"node_url": settings.aptos_node_url},
        ChainType.STELLAR: {"horizon_url": settings.stellar_horizon_url},
        ChainType.COSMOS: {"rest_url": settings.cosmos_rest_url},
        ChainType.TRON: {"api_url": settings.tron_api_url, "api_key": settings.tron_api_key or None},
        ChainType.ETHEREUM: {"chain_id": settings.ethereum_chain_id},
    }
    return OPTIONS_BY_CHAIN[chain].for_network(settings.testnet, **overrides[chain])


def get_transfer_adapter(
    chain: Union[ChainType, str],
    signer: Optional[SignerBackend] = None,
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ChainAdapter:
    """Get the transfer adapter for a chain.

    Args:
        chain: Chain type or alias (e.g. "btc", "bitcoin-segwit")
        signer: Signing backend; defaults to the configured custody signer
        settings: Settings to build options from; defaults to get_settings()
        transport: Optional httpx transport for chain RPC calls

    Returns:
        ChainAdapter for the chain. Adapters built entirely from the
        global configuration are cached per chain.

    Raises:
        ValueError: If the chain is not supported
    """
    chain_type = chain if isinstance(chain, ChainType) else parse_chain_type(chain)
    if chain_type is None:
        raise ValueError(f"Unsupported chain: {chain}")

    use_cache = signer is None and settings is None and transport is None
    if use_cache and chain_type in _adapter_cache:
        return _adapter_cache[chain_type]

    options = build_options(chain_type, settings)
    adapter = _adapter_class(chain_type)(signer or get_signer(), options, transport=transport)
    logger.info(f"Created {adapter.name} adapter (testnet={options.testnet})")

    if use_cache:
        _adapter_cache[chain_type] = adapter
    return adapter


def reset_adapter_cache() -> None:
    """Drop cached adapters (after settings or signer changes, and in tests)."""
    _adapter_cache.clear()
