"""Sui transfer adapter.

JSON-RPC calls:
- suix_getCoins                  pick a SUI coin object for gas
- unsafe_transferSui             node-built TransactionData (base64 BCS)
- sui_executeTransactionBlock    submit bytes plus serialized signature

Digest is Blake2b-256 over the 3-byte intent prefix and the tx bytes.
"""

import base64
import binascii
import hashlib
import logging
import re

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import SuiOptions
from custodex.adapters.rpc import json_rpc
from custodex.errors import BroadcastError, InvalidAddressError, RPCError
from custodex.signing.codec import sui_serialized_signature

logger = logging.getLogger(__name__)

SUI_COIN_TYPE = "0x2::sui::SUI"

# TransactionData intent: scope, version, app id
INTENT_PREFIX = b"\x00\x00\x00"

SUI_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


def transaction_digest(tx_bytes: bytes) -> bytes:
    """Blake2b-256 of intent prefix || tx bytes."""
    return hashlib.blake2b(INTENT_PREFIX + tx_bytes, digest_size=32).digest()


class SuiAdapter(ChainAdapter):
    """Sui native transfers. Amounts are in MIST (1 SUI = 10^9)."""

    name = "sui"
    options: SuiOptions

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        amount_mist = self._parse_int_amount(amount, bits=64)
        if not SUI_ADDRESS_RE.match(destination):
            raise InvalidAddressError(self.name, "validate destination", f"invalid address {destination!r}")

        wallet = await self._get_wallet(wallet_id)
        public_key = self._wallet_public_key(wallet)

        async with self._http_client() as client:
            coins = await json_rpc(
                client, self.options.rpc_url, "suix_getCoins",
                [wallet.address, SUI_COIN_TYPE, None, 1],
                self.name, "get gas coin",
            )
            try:
                coin_object_id = coins["data"][0]["coinObjectId"]
            except (KeyError, IndexError, TypeError):
                raise RPCError(self.name, "get gas coin", f"no SUI coins for {wallet.address}")

            built = await json_rpc(
                client, self.options.rpc_url, "unsafe_transferSui",
                [wallet.address, coin_object_id, str(self.options.gas_budget), destination, str(amount_mist)],
                self.name, "build transaction",
            )
            try:
                tx_b64 = built["txBytes"]
                tx_bytes = base64.b64decode(tx_b64, validate=True)
            except (KeyError, TypeError, binascii.Error) as e:
                raise RPCError(self.name, "build transaction", f"bad txBytes: {e}") from e

            digest = transaction_digest(tx_bytes)
            logger.info(f"Sui tx: {wallet.address} -> {destination}, gas coin {coin_object_id}")

            signature = await self._sign_digest(wallet_id, digest)
            serialized = self._normalize(sui_serialized_signature, signature, public_key)
            signature_b64 = base64.b64encode(serialized).decode()

            try:
                result = await json_rpc(
                    client, self.options.rpc_url, "sui_executeTransactionBlock",
                    [tx_b64, [signature_b64], {"showEffects": True}, "WaitForLocalExecution"],
                    self.name, "execute transaction",
                )
            except RPCError as e:
                raise BroadcastError(
                    self.name, "execute transaction", e.message,
                    signed_payload={"tx_bytes": tx_b64, "signature": signature_b64}, code=e.code,
                ) from e

        try:
            tx_digest = result["digest"]
        except (KeyError, TypeError):
            raise BroadcastError(
                self.name, "execute transaction", "response has no digest",
                signed_payload={"tx_bytes": tx_b64, "signature": signature_b64},
            )
        logger.info(f"Sui transaction executed: {tx_digest}")
        return tx_digest

    async def transfer_object(self, wallet_id: str, object_id: str, destination: str) -> str:
        """Object transfers are not supported yet."""
        self._not_implemented("transfer object")
