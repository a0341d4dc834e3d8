"""Base interfaces for remote raw signing.

Signing flow:
1. Adapter builds the unsigned transaction and its signing preimage
2. Signer receives the digest (or bytes) plus the wallet id
3. Signer returns a raw signature; no key material is ever local
4. Adapter normalizes the signature and attaches it to the transaction
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from custodex.custody.models import Wallet

logger = logging.getLogger(__name__)


class SignerType(str, Enum):
    """Type of signing backend."""
    CUSTODY = "custody"   # Remote raw-sign oracle


@dataclass
class SigningRequest:
    """Request to sign a preimage.

    Attributes:
        chain: Chain type the preimage belongs to
        wallet_id: Custody wallet id
        message_hash: 0x-prefixed hex digest, when the caller hashed locally
        data: Raw bytes to sign, when the oracle should hash them
        encoding: Encoding of ``data`` ("hex" or "utf-8")
        hash_function: Hash the oracle applies to ``data``
    """
    chain: str
    wallet_id: str
    message_hash: Optional[str] = None
    data: Optional[str] = None
    encoding: Optional[str] = None
    hash_function: Optional[str] = None


@dataclass
class SignatureResult:
    """Raw signature returned by the signer.

    Attributes:
        signature: Signature as returned (hex string, usually 0x-prefixed)
        encoding: Encoding reported by the signer
    """
    signature: str
    encoding: str = "hex"


class SignerBackend(ABC):
    """Abstract base class for signing backends.

    Implementations never expose private keys; they sign and look up
    wallet metadata only.
    """

    def __init__(self, signer_type: SignerType):
        self.signer_type = signer_type

    @abstractmethod
    async def sign(self, request: SigningRequest) -> SignatureResult:
        """Sign a digest or byte string.

        Args:
            request: Signing request with wallet id and preimage

        Returns:
            SignatureResult with the raw signature
        """
        pass

    @abstractmethod
    async def get_wallet(self, wallet_id: str) -> Wallet:
        """Look up wallet address, chain type and public key."""
        pass

    async def rpc(self, wallet_id: str, method: str, params: dict, caip2: Optional[str] = None,
                  chain_type: Optional[str] = None) -> dict:
        """Forward a custody-side wallet RPC call, if the backend supports it."""
        raise NotImplementedError(f"{self.__class__.__name__} does not support wallet RPC")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.signer_type.value})"
