"""Typed per-chain adapter options and the network defaults table.

Every adapter takes its own options model. ``for_network(testnet)``
starts from the table below; keyword overrides win over defaults.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from custodex.chains import (
    ETHEREUM_MAINNET_CHAIN_ID,
    ETHEREUM_SEPOLIA_CHAIN_ID,
    SOLANA_DEVNET_CAIP2,
    SOLANA_MAINNET_CAIP2,
    ChainType,
)

STELLAR_PUBLIC_PASSPHRASE = "Public Global Stellar Network ; September 2015"
STELLAR_TESTNET_PASSPHRASE = "Test SDF Network ; September 2015"


# ======================
# Defaults Table
# ======================

NETWORK_DEFAULTS: dict[ChainType, dict[str, dict[str, Any]]] = {
    ChainType.BITCOIN_SEGWIT: {
        "mainnet": {"explorer_url": "https://blockstream.info/api", "network": "mainnet"},
        "testnet": {"explorer_url": "https://blockstream.info/testnet/api", "network": "testnet"},
    },
    ChainType.NEAR: {
        "mainnet": {"rpc_url": "https://rpc.mainnet.near.org"},
        "testnet": {"rpc_url": "https://rpc.testnet.near.org"},
    },
    ChainType.STARKNET: {
        "mainnet": {"rpc_url": "https://starknet-mainnet.public.blastapi.io", "chain_id": "SN_MAIN"},
        "testnet": {"rpc_url": "https://starknet-sepolia.public.blastapi.io", "chain_id": "SN_SEPOLIA"},
    },
    ChainType.TON: {
        "mainnet": {"api_url": "https://toncenter.com/api/v2"},
        "testnet": {"api_url": "https://testnet.toncenter.com/api/v2"},
    },
    ChainType.SOLANA: {
        "mainnet": {"rpc_url": "https://api.mainnet-beta.solana.com", "caip2": SOLANA_MAINNET_CAIP2},
        "testnet": {"rpc_url": "https://api.devnet.solana.com", "caip2": SOLANA_DEVNET_CAIP2},
    },
    ChainType.SUI: {
        "mainnet": {"rpc_url": "https://fullnode.mainnet.sui.io:443"},
        "testnet": {"rpc_url": "https://fullnode.testnet.sui.io:443"},
    },
    ChainType.APTOS: {
        "mainnet": {"node_url": "https://fullnode.mainnet.aptoslabs.com/v1"},
        "testnet": {"node_url": "https://fullnode.devnet.aptoslabs.com/v1"},
    },
    ChainType.STELLAR: {
        "mainnet": {"horizon_url": "https://horizon.stellar.org",
                    "network_passphrase": STELLAR_PUBLIC_PASSPHRASE},
        "testnet": {"horizon_url": "https://horizon-testnet.stellar.org",
                    "network_passphrase": STELLAR_TESTNET_PASSPHRASE},
    },
    ChainType.COSMOS: {
        "mainnet": {"rest_url": "https://rest.cosmos.directory/cosmoshub", "chain_id": "cosmoshub-4"},
        "testnet": {"rest_url": "https://rest.cosmos.directory/theta-testnet-001",
                    "chain_id": "theta-testnet-001"},
    },
    ChainType.TRON: {
        "mainnet": {"api_url": "https://api.trongrid.io"},
        "testnet": {"api_url": "https://api.shasta.trongrid.io"},
    },
    ChainType.ETHEREUM: {
        "mainnet": {"chain_id": ETHEREUM_MAINNET_CHAIN_ID},
        "testnet": {"chain_id": ETHEREUM_SEPOLIA_CHAIN_ID},
    },
}


class ChainOptions(BaseModel):
    """Options shared by every adapter."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    chain: ChainType
    testnet: bool = False
    timeout: float = Field(default=30.0, description="HTTP timeout for chain RPC calls (seconds)")

    @classmethod
    def for_network(cls, testnet: bool = False, **overrides: Any):
        """Build options from the defaults table, then apply non-None overrides."""
        chain = cls.model_fields["chain"].default
        values = dict(NETWORK_DEFAULTS[chain]["testnet" if testnet else "mainnet"])
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(testnet=testnet, **values)


class BitcoinOptions(ChainOptions):
    chain: ChainType = ChainType.BITCOIN_SEGWIT
    explorer_url: str
    network: str = "mainnet"
    fee_rate: int = Field(default=10, gt=0, description="Fee rate in sat/vB")
    dust_threshold: int = 546
    max_parallel_signatures: int = Field(default=1, ge=1, description="Concurrent raw-sign calls")
    spend_unconfirmed: bool = Field(default=True, description="Select outputs still in the mempool")


class NearOptions(ChainOptions):
    chain: ChainType = ChainType.NEAR
    rpc_url: str


class StarknetOptions(ChainOptions):
    chain: ChainType = ChainType.STARKNET
    rpc_url: str
    chain_id: str = "SN_MAIN"
    max_fee: int = 10**16
    eth_contract: str = "0x049d36570d4e46f48e99674bd3fcc84644ddd6b96f7c741b1562b82f9e004dc7"
    strict_signature_length: bool = Field(
        default=False, description="Reject short signatures instead of left-padding them"
    )


class TonOptions(ChainOptions):
    chain: ChainType = ChainType.TON
    api_url: str
    wallet_id: int = 698983191
    send_mode: int = 3
    valid_for_seconds: int = 300
    api_key: Optional[str] = None


class SolanaOptions(ChainOptions):
    chain: ChainType = ChainType.SOLANA
    rpc_url: str
    caip2: str = SOLANA_MAINNET_CAIP2


class SuiOptions(ChainOptions):
    chain: ChainType = ChainType.SUI
    rpc_url: str
    gas_budget: int = 10_000_000


class AptosOptions(ChainOptions):
    chain: ChainType = ChainType.APTOS
    node_url: str
    max_gas_amount: int = 100_000
    gas_unit_price: Optional[int] = Field(
        default=None, description="Fixed gas price; None queries /estimate_gas_price"
    )
    expiration_seconds: int = 300


class StellarOptions(ChainOptions):
    chain: ChainType = ChainType.STELLAR
    horizon_url: str
    network_passphrase: str = STELLAR_PUBLIC_PASSPHRASE
    base_fee: int = 100
    timeout_seconds: int = 300


class CosmosOptions(ChainOptions):
    chain: ChainType = ChainType.COSMOS
    rest_url: str
    chain_id: str = "cosmoshub-4"
    denom: str = "uatom"
    gas_limit: int = 200_000
    fee_amount: int = 5000


class TronOptions(ChainOptions):
    chain: ChainType = ChainType.TRON
    api_url: str
    api_key: Optional[str] = None


class EthereumOptions(ChainOptions):
    chain: ChainType = ChainType.ETHEREUM
    chain_id: int = ETHEREUM_MAINNET_CHAIN_ID
    sponsor: bool = False


OPTIONS_BY_CHAIN: dict[ChainType, type[ChainOptions]] = {
    ChainType.BITCOIN_SEGWIT: BitcoinOptions,
    ChainType.NEAR: NearOptions,
    ChainType.STARKNET: StarknetOptions,
    ChainType.TON: TonOptions,
    ChainType.SOLANA: SolanaOptions,
    ChainType.SUI: SuiOptions,
    ChainType.APTOS: AptosOptions,
    ChainType.STELLAR: StellarOptions,
    ChainType.COSMOS: CosmosOptions,
    ChainType.TRON: TronOptions,
    ChainType.ETHEREUM: EthereumOptions,
}
