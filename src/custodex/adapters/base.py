"""Base interface for chain transfer adapters.

Transfer flow (every chain):
1. Look up the wallet (address, public key) in the custody directory
2. Query chain state: nonce, sequence, UTXOs, block hash
3. Build the unsigned transaction and its signing preimage
4. Raw-sign the preimage remotely (one call per required signature)
5. Normalize the signature and attach it to the transaction
6. Broadcast and return the transaction id
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from custodex.adapters.options import ChainOptions
from custodex.custody.client import CustodyAPIError
from custodex.custody.models import Wallet
from custodex.errors import (
    BroadcastError,
    InvalidAmountError,
    NotImplementedOperationError,
    RPCError,
    SigningError,
    WalletNotFoundError,
)
from custodex.signing.base import SignatureResult, SignerBackend, SigningRequest
from custodex.signing.codec import SignatureFormatError, decode_hex, to_hex_digest

logger = logging.getLogger(__name__)


class ChainAdapter(ABC):
    """Abstract base class for chain adapters.

    Each chain has its own implementation. Adapters keep no state between
    calls: every transfer fetches fresh wallet and chain data.
    """

    name: str = "chain"

    def __init__(
        self,
        signer: SignerBackend,
        options: ChainOptions,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize adapter.

        Args:
            signer: Remote signing backend (wallet lookup + raw sign)
            options: Typed chain options
            transport: Optional httpx transport for chain RPC calls
        """
        self.signer = signer
        self.options = options
        self._transport = transport

    @property
    def testnet(self) -> bool:
        return self.options.testnet

    @abstractmethod
    async def transfer(self, wallet_id: str, destination: str, amount: Any) -> str:
        """Send the chain's native asset.

        Args:
            wallet_id: Custody wallet id of the sender
            destination: Recipient address
            amount: Amount in the chain's base unit

        Returns:
            Transaction id or hash as reported by the chain
        """
        pass

    # ======================
    # Raw-sign passthroughs
    # ======================

    async def raw_sign(self, wallet_id: str, hash_hex: str) -> SignatureResult:
        """Sign an arbitrary digest with the wallet key."""
        return await self._call_signer(
            SigningRequest(chain=self.name, wallet_id=wallet_id, message_hash=hash_hex)
        )

    async def raw_sign_bytes(
        self, wallet_id: str, data: str, encoding: str, hash_function: str
    ) -> SignatureResult:
        """Sign bytes, letting the oracle hash them with ``hash_function``."""
        return await self._call_signer(
            SigningRequest(
                chain=self.name,
                wallet_id=wallet_id,
                data=data,
                encoding=encoding,
                hash_function=hash_function,
            )
        )

    # ======================
    # Shared steps
    # ======================

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.options.timeout, transport=self._transport)

    async def _get_wallet(self, wallet_id: str) -> Wallet:
        try:
            wallet = await self.signer.get_wallet(wallet_id)
        except CustodyAPIError as e:
            logger.error(f"{self.name}: wallet lookup failed for {wallet_id}: {e}")
            raise WalletNotFoundError(self.name, "get wallet", e.message) from e
        if not wallet.address:
            raise WalletNotFoundError(self.name, "get wallet", f"wallet {wallet_id} has no address")
        return wallet

    def _wallet_public_key(self, wallet: Wallet) -> bytes:
        if not wallet.public_key:
            raise WalletNotFoundError(self.name, "get wallet", f"wallet {wallet.id} has no public key")
        try:
            return decode_hex(wallet.public_key)
        except SignatureFormatError as e:
            raise WalletNotFoundError(self.name, "get wallet", f"bad public key: {e}") from e

    async def _call_signer(self, request: SigningRequest) -> SignatureResult:
        try:
            return await self.signer.sign(request)
        except CustodyAPIError as e:
            logger.error(f"{self.name}: raw sign failed for wallet {request.wallet_id}: {e}")
            raise SigningError(self.name, "sign transaction", e.message) from e

    async def _sign_digest(self, wallet_id: str, digest: bytes) -> bytes:
        """Raw-sign a digest and return the decoded signature bytes."""
        logger.debug(f"{self.name}: signing digest {digest.hex()}")
        result = await self.raw_sign(wallet_id, to_hex_digest(digest))
        try:
            return decode_hex(result.signature)
        except SignatureFormatError as e:
            raise SigningError(self.name, "decode signature", str(e)) from e

    async def _wallet_rpc(
        self,
        wallet_id: str,
        method: str,
        params: dict,
        caip2: Optional[str] = None,
        chain_type: Optional[str] = None,
    ) -> dict:
        """Custody-side sign-and-send; returns the response ``data`` member.

        The oracle signs and submits in one call, so a failure here may
        have happened either before or after signing.
        """
        step = f"custody rpc {method}"
        try:
            response = await self.signer.rpc(wallet_id, method, params, caip2=caip2, chain_type=chain_type)
        except NotImplementedError as e:
            raise SigningError(self.name, step, str(e)) from e
        except CustodyAPIError as e:
            logger.error(f"{self.name}: {method} failed for wallet {wallet_id}: {e}")
            raise BroadcastError(self.name, step, e.message, code=e.code or e.status_code) from e
        return response.get("data") or {}

    def _normalize(self, func, *args, step: str = "decode signature"):
        """Run a codec function, mapping format errors to SigningError."""
        try:
            return func(*args)
        except SignatureFormatError as e:
            raise SigningError(self.name, step, str(e)) from e

    def _not_implemented(self, operation: str):
        raise NotImplementedOperationError(self.name, operation)

    # ======================
    # Input validation
    # ======================

    def _parse_int_amount(self, amount: Any, bits: int = 64, signed: bool = False) -> int:
        """Parse a positive integer amount that fits the chain's integer width."""
        if isinstance(amount, bool):
            raise InvalidAmountError(self.name, "parse amount", f"invalid amount {amount!r}")
        if isinstance(amount, int):
            value = amount
        else:
            text = str(amount).strip()
            if not (text.isascii() and text.isdigit()):
                raise InvalidAmountError(self.name, "parse amount", f"invalid amount {amount!r}")
            value = int(text)

        limit = 1 << (bits - 1 if signed else bits)
        if value <= 0 or value >= limit:
            raise InvalidAmountError(self.name, "parse amount", f"amount out of range: {amount!r}")
        return value

    def _parse_decimal_amount(self, amount: Any, max_places: int) -> Decimal:
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation:
            raise InvalidAmountError(self.name, "parse amount", f"invalid amount {amount!r}")
        if not value.is_finite() or value <= 0:
            raise InvalidAmountError(self.name, "parse amount", f"amount must be positive: {amount!r}")
        if -value.as_tuple().exponent > max_places:
            raise InvalidAmountError(
                self.name, "parse amount", f"at most {max_places} decimal places: {amount!r}"
            )
        return value

    # ======================
    # HTTP helpers
    # ======================

    async def _get_json(self, client: httpx.AsyncClient, url: str, step: str, **kwargs) -> Any:
        try:
            response = await client.get(url, **kwargs)
        except httpx.HTTPError as e:
            raise RPCError(self.name, step, f"request failed: {e}") from e
        if response.status_code != 200:
            logger.error(f"{self.name}: {step} returned {response.status_code}: {response.text}")
            raise RPCError(self.name, step, f"HTTP {response.status_code}: {response.text}",
                           code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise RPCError(self.name, step, f"invalid JSON: {e}") from e

    async def _get_json_object(self, client: httpx.AsyncClient, url: str, step: str, **kwargs) -> dict:
        data = await self._get_json(client, url, step, **kwargs)
        if not isinstance(data, dict):
            raise RPCError(self.name, step, f"expected a JSON object, got {type(data).__name__}")
        return data

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(testnet={self.testnet})"
