"""Supported chain types and network identifiers.

Chain type strings match the custody API's ``chain_type`` field.
"""

from enum import Enum
from typing import Optional


class ChainType(str, Enum):
    """Chain type as reported by the custody wallet directory."""
    ETHEREUM = "ethereum"
    SOLANA = "solana"
    STELLAR = "stellar"
    COSMOS = "cosmos"
    SUI = "sui"
    TRON = "tron"
    BITCOIN_SEGWIT = "bitcoin-segwit"
    NEAR = "near"
    TON = "ton"
    STARKNET = "starknet"
    APTOS = "aptos"


# ======================
# CAIP-2 Network Identifiers
# ======================

SOLANA_MAINNET_CAIP2 = "solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp"
SOLANA_DEVNET_CAIP2 = "solana:EtWTRABZaYq6iMfeYKouRu166VU2xqa1"

ETHEREUM_MAINNET_CHAIN_ID = 1
ETHEREUM_SEPOLIA_CHAIN_ID = 11155111


def eip155_caip2(chain_id: int) -> str:
    """CAIP-2 identifier for an EVM chain id (e.g. ``eip155:1``)."""
    return f"eip155:{chain_id}"


# Unit names for the integer/decimal amount each adapter's transfer() takes
AMOUNT_UNITS: dict[ChainType, str] = {
    ChainType.ETHEREUM: "wei",
    ChainType.SOLANA: "lamports",
    ChainType.STELLAR: "XLM (decimal)",
    ChainType.COSMOS: "base denom (uatom)",
    ChainType.SUI: "MIST",
    ChainType.TRON: "sun",
    ChainType.BITCOIN_SEGWIT: "sats",
    ChainType.NEAR: "yoctoNEAR",
    ChainType.TON: "nanotons",
    ChainType.STARKNET: "wei",
    ChainType.APTOS: "octas",
}


def parse_chain_type(value: str) -> Optional[ChainType]:
    """Parse a chain type string, accepting a few common aliases."""
    aliases = {
        "bitcoin": ChainType.BITCOIN_SEGWIT,
        "btc": ChainType.BITCOIN_SEGWIT,
        "eth": ChainType.ETHEREUM,
        "sol": ChainType.SOLANA,
        "xlm": ChainType.STELLAR,
        "atom": ChainType.COSMOS,
        "trx": ChainType.TRON,
        "apt": ChainType.APTOS,
    }
    normalized = value.strip().lower()
    if normalized in aliases:
        return aliases[normalized]
    try:
        return ChainType(normalized)
    except ValueError:
        return None
