"""NEAR transfer adapter.

JSON-RPC calls:
- query (view_access_key)   current access key nonce
- block (finality final)    recent block hash
- broadcast_tx_commit       submit base64 SignedTransaction
"""

import base64
import hashlib
import logging
import re

import base58

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import NearOptions
from custodex.adapters.rpc import json_rpc
from custodex.encoding.borsh import serialize_signed_transaction, serialize_transfer_transaction
from custodex.errors import BroadcastError, InvalidAddressError, RPCError, WalletNotFoundError
from custodex.signing.codec import normalize_ed25519

logger = logging.getLogger(__name__)

RPC_REQUEST_ID = "custodex"

ACCOUNT_ID_RE = re.compile(r"^(([a-z\d]+[-_])*[a-z\d]+\.)*([a-z\d]+[-_])*[a-z\d]+$")


def is_valid_account_id(account_id: str) -> bool:
    """Named (alice.near) or implicit (64 hex chars) account id."""
    return 2 <= len(account_id) <= 64 and bool(ACCOUNT_ID_RE.match(account_id))


class NearAdapter(ChainAdapter):
    """NEAR native transfers. Amounts are in yoctoNEAR (1 NEAR = 10^24)."""

    name = "near"
    options: NearOptions

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        deposit = self._parse_int_amount(amount, bits=128)
        if not is_valid_account_id(destination):
            raise InvalidAddressError(self.name, "validate destination", f"invalid account id {destination!r}")

        wallet = await self._get_wallet(wallet_id)
        public_key = self._wallet_public_key(wallet)
        if len(public_key) != 32:
            raise WalletNotFoundError(
                self.name, "get wallet", f"expected 32-byte public key, got {len(public_key)} bytes"
            )
        public_key_str = "ed25519:" + base58.b58encode(public_key).decode()

        async with self._http_client() as client:
            access_key = await json_rpc(
                client, self.options.rpc_url, "query",
                {
                    "request_type": "view_access_key",
                    "finality": "final",
                    "account_id": wallet.address,
                    "public_key": public_key_str,
                },
                self.name, "query access key", request_id=RPC_REQUEST_ID,
            )
            block = await json_rpc(
                client, self.options.rpc_url, "block", {"finality": "final"},
                self.name, "get block hash", request_id=RPC_REQUEST_ID,
            )

            try:
                nonce = int(access_key["nonce"]) + 1
                block_hash = base58.b58decode(block["header"]["hash"])
            except (KeyError, TypeError, ValueError) as e:
                raise RPCError(self.name, "parse chain state", f"unexpected response: {e}") from e
            if len(block_hash) != 32:
                raise RPCError(self.name, "parse chain state", "block hash is not 32 bytes")

            tx_bytes = serialize_transfer_transaction(
                wallet.address, public_key, nonce, destination, block_hash, deposit
            )
            digest = hashlib.sha256(tx_bytes).digest()
            logger.info(f"NEAR tx: {wallet.address} -> {destination}, nonce {nonce}")

            signature = self._normalize(normalize_ed25519, await self._sign_digest(wallet_id, digest))
            signed = serialize_signed_transaction(tx_bytes, signature)
            signed_b64 = base64.b64encode(signed).decode()

            try:
                result = await json_rpc(
                    client, self.options.rpc_url, "broadcast_tx_commit", [signed_b64],
                    self.name, "broadcast", request_id=RPC_REQUEST_ID,
                )
            except RPCError as e:
                raise BroadcastError(
                    self.name, "broadcast", e.message, signed_payload=signed_b64, code=e.code
                ) from e

        try:
            tx_hash = result["transaction"]["hash"]
        except (KeyError, TypeError):
            raise BroadcastError(
                self.name, "broadcast", "response has no transaction hash", signed_payload=signed_b64
            )
        logger.info(f"NEAR transaction broadcast: {tx_hash}")
        return tx_hash
