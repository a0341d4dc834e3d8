"""Cosmos SDK transfer adapter (bank MsgSend, SIGN_MODE_DIRECT).

REST calls:
- GET  /cosmos/auth/v1beta1/accounts/{addr}   account number and sequence
- POST /cosmos/tx/v1beta1/txs                 BROADCAST_MODE_SYNC

A non-zero ``tx_response.code`` is a rejection by the chain, reported as
a BroadcastError rather than a transport failure.
"""

import base64
import hashlib
import logging

import httpx
from bip_utils import Bech32ChecksumError, Bech32Decoder

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import CosmosOptions
from custodex.adapters.rpc import json_object
from custodex.encoding.cosmos import build_sign_doc, build_tx_raw
from custodex.errors import BroadcastError, InvalidAddressError, RPCError
from custodex.signing.codec import compress_secp256k1_public_key, normalize_secp256k1

logger = logging.getLogger(__name__)

BROADCAST_MODE = "BROADCAST_MODE_SYNC"


def address_prefix(address: str) -> str:
    """Human-readable part of a bech32 address (``cosmos`` for cosmos1...)."""
    return address.rsplit("1", 1)[0] if "1" in address else ""


class CosmosAdapter(ChainAdapter):
    """Cosmos Hub style bank transfers. Amounts are in the base denom (e.g. uatom)."""

    name = "cosmos"
    options: CosmosOptions

    def _validate_address(self, address: str, hrp: str, step: str) -> None:
        try:
            Bech32Decoder.Decode(hrp, address)
        except (ValueError, Bech32ChecksumError) as e:
            raise InvalidAddressError(self.name, step, f"invalid {hrp} address {address!r}: {e}") from e

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        amount_base = self._parse_int_amount(amount, bits=64)
        if not destination:
            raise InvalidAddressError(self.name, "validate destination", "empty destination")

        wallet = await self._get_wallet(wallet_id)
        hrp = address_prefix(wallet.address)
        self._validate_address(destination, hrp, "validate destination")
        public_key = self._normalize(
            compress_secp256k1_public_key, self._wallet_public_key(wallet), step="decode public key"
        )

        async with self._http_client() as client:
            account_number, sequence = await self.get_account(client, wallet.address)

            parts = build_sign_doc(
                from_address=wallet.address,
                to_address=destination,
                amount=amount_base,
                denom=self.options.denom,
                public_key=public_key,
                sequence=sequence,
                account_number=account_number,
                chain_id=self.options.chain_id,
                gas_limit=self.options.gas_limit,
                fee_amount=self.options.fee_amount,
            )
            digest = hashlib.sha256(parts.sign_doc_bytes).digest()
            logger.info(
                f"Cosmos tx: {wallet.address} -> {destination}, "
                f"account {account_number}, sequence {sequence}"
            )

            signature = self._normalize(normalize_secp256k1, await self._sign_digest(wallet_id, digest))
            tx_bytes = base64.b64encode(build_tx_raw(parts, signature)).decode()

            return await self.broadcast_tx(client, tx_bytes)

    async def get_account(self, client: httpx.AsyncClient, address: str) -> tuple[int, int]:
        """Return (account_number, sequence) for an address."""
        data = await self._get_json_object(
            client, f"{self.options.rest_url}/cosmos/auth/v1beta1/accounts/{address}", "get account"
        )
        try:
            account = data["account"]
            # vesting and module accounts nest the fields under base_account
            if "account_number" not in account and "base_account" in account:
                account = account["base_account"]
            return int(account.get("account_number") or 0), int(account.get("sequence") or 0)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RPCError(self.name, "get account", f"unexpected account response: {e}") from e

    async def broadcast_tx(self, client: httpx.AsyncClient, tx_bytes: str) -> str:
        """Broadcast base64 TxRaw bytes; returns the tx hash."""
        try:
            response = await client.post(
                f"{self.options.rest_url}/cosmos/tx/v1beta1/txs",
                json={"tx_bytes": tx_bytes, "mode": BROADCAST_MODE},
            )
            data = json_object(response)
        except httpx.HTTPError as e:
            raise BroadcastError(self.name, "broadcast", f"request failed: {e}",
                                 signed_payload=tx_bytes) from e
        except ValueError:
            raise BroadcastError(
                self.name, "broadcast", f"HTTP {response.status_code}: {response.text}",
                signed_payload=tx_bytes, code=response.status_code,
            )

        if response.status_code != 200:
            message = data.get("message") or response.text
            logger.error(f"Cosmos broadcast failed: {message}")
            raise BroadcastError(self.name, "broadcast", message,
                                 signed_payload=tx_bytes, code=response.status_code)

        tx_response = data.get("tx_response") or {}
        if not isinstance(tx_response, dict):
            raise BroadcastError(self.name, "broadcast", f"unexpected tx_response: {tx_response!r}",
                                 signed_payload=tx_bytes)
        code = tx_response.get("code", 0)
        if code:
            raw_log = tx_response.get("raw_log", "")
            logger.error(f"Cosmos tx rejected (code {code}): {raw_log}")
            raise BroadcastError(self.name, "broadcast", f"code {code}: {raw_log}",
                                 signed_payload=tx_bytes, code=code)

        tx_hash = tx_response.get("txhash")
        if not tx_hash:
            raise BroadcastError(self.name, "broadcast", "response has no txhash",
                                 signed_payload=tx_bytes)
        logger.info(f"Cosmos transaction broadcast: {tx_hash}")
        return tx_hash

    async def delegate(self, wallet_id: str, validator_address: str, amount) -> str:
        """Staking is not supported yet."""
        self._not_implemented("delegate")

    async def undelegate(self, wallet_id: str, validator_address: str, amount) -> str:
        """Staking is not supported yet."""
        self._not_implemented("undelegate")
