"""Tron transfer adapter.

TronGrid HTTP API:
- POST /wallet/createtransaction      node-built TransferContract
- POST /wallet/broadcasttransaction   transaction plus signature list

The node returns ``txID = sha256(raw_data)``; the adapter recomputes it
from ``raw_data_hex`` before signing so the oracle never signs a digest
that does not match the transaction body.
"""

import hashlib
import logging

import base58
import httpx

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import TronOptions
from custodex.adapters.rpc import json_object
from custodex.errors import BroadcastError, InvalidAddressError, RPCError
from custodex.signing.codec import decode_hex, recoverable_secp256k1

logger = logging.getLogger(__name__)

TRON_ADDRESS_PREFIX = 0x41


def is_valid_tron_address(address: str) -> bool:
    """Base58check address with the 0x41 prefix (T...)."""
    try:
        payload = base58.b58decode_check(address)
    except ValueError:
        return False
    return len(payload) == 21 and payload[0] == TRON_ADDRESS_PREFIX


def decode_tron_message(message: str) -> str:
    """TronGrid hex-encodes most error messages; decode when it does."""
    try:
        return bytes.fromhex(message).decode("utf-8", errors="ignore")
    except ValueError:
        return message


class TronAdapter(ChainAdapter):
    """Tron native (TRX) transfers. Amounts are in sun (int64, 1 TRX = 10^6 sun)."""

    name = "tron"
    options: TronOptions

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.options.api_key:
            headers["TRON-PRO-API-KEY"] = self.options.api_key
        return headers

    def _recoverable_signature(self, signature_hex: str) -> str:
        """Hex R || S || V for the ``signature`` list; the node recovers the signer from V."""
        signature = self._normalize(decode_hex, signature_hex)
        return self._normalize(recoverable_secp256k1, signature).hex()

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        amount_sun = self._parse_int_amount(amount, bits=64, signed=True)
        if not is_valid_tron_address(destination):
            raise InvalidAddressError(self.name, "validate destination", f"invalid address {destination!r}")

        wallet = await self._get_wallet(wallet_id)

        async with self._http_client() as client:
            tx = await self.create_transaction(client, wallet.address, destination, amount_sun)
            tx_id = tx["txID"]
            logger.info(f"Tron tx: {wallet.address} -> {destination}, {amount_sun} sun, txID {tx_id}")

            result = await self.raw_sign(wallet_id, "0x" + tx_id)
            tx["signature"] = [self._recoverable_signature(result.signature)]

            await self.broadcast_transaction(client, tx)

        logger.info(f"Tron transaction broadcast: {tx_id}")
        return tx_id

    async def create_transaction(
        self, client: httpx.AsyncClient, owner: str, to: str, amount_sun: int
    ) -> dict:
        """Ask the node to build a TransferContract; returns it with a verified txID."""
        step = "create transaction"
        try:
            response = await client.post(
                f"{self.options.api_url}/wallet/createtransaction",
                headers=self._headers(),
                json={"owner_address": owner, "to_address": to, "amount": amount_sun, "visible": True},
            )
        except httpx.HTTPError as e:
            raise RPCError(self.name, step, f"request failed: {e}") from e
        if response.status_code != 200:
            logger.error(f"TronGrid error: {response.text}")
            raise RPCError(self.name, step, f"HTTP {response.status_code}: {response.text}",
                           code=response.status_code)
        try:
            tx = json_object(response)
        except ValueError as e:
            raise RPCError(self.name, step, f"invalid JSON: {e}") from e

        if "Error" in tx:
            raise RPCError(self.name, step, str(tx["Error"]))
        tx_id = tx.get("txID") or tx.pop("txid", None)
        if not tx_id:
            raise RPCError(self.name, step, "response has no txID")
        tx["txID"] = tx_id

        raw_data_hex = tx.get("raw_data_hex")
        if raw_data_hex:
            try:
                expected = hashlib.sha256(bytes.fromhex(raw_data_hex)).hexdigest()
            except ValueError as e:
                raise RPCError(self.name, step, f"bad raw_data_hex: {e}") from e
            if expected != tx_id.lower():
                raise RPCError(self.name, step, f"txID {tx_id} does not match raw_data_hex hash {expected}")
        return tx

    async def broadcast_transaction(self, client: httpx.AsyncClient, tx: dict) -> None:
        """Broadcast a signed transaction."""
        try:
            response = await client.post(
                f"{self.options.api_url}/wallet/broadcasttransaction",
                headers=self._headers(),
                json=tx,
            )
            data = json_object(response)
        except httpx.HTTPError as e:
            raise BroadcastError(self.name, "broadcast", f"request failed: {e}", signed_payload=tx) from e
        except ValueError:
            raise BroadcastError(
                self.name, "broadcast", f"HTTP {response.status_code}: {response.text}",
                signed_payload=tx, code=response.status_code,
            )

        if response.status_code != 200 or not data.get("result"):
            message = decode_tron_message(data.get("message", "")) or "broadcast rejected"
            logger.error(f"Tron broadcast failed: {message}")
            raise BroadcastError(self.name, "broadcast", message,
                                 signed_payload=tx, code=data.get("code"))

    async def transfer_trc20(self, wallet_id: str, contract_address: str, destination: str, amount) -> str:
        """TRC20 token transfers are not supported yet."""
        self._not_implemented("transfer trc20")
