"""Aptos transfer adapter.

Fullnode REST calls:
- GET  /accounts/{addr}        sequence_number
- GET  /                       ledger info (chain_id)
- GET  /estimate_gas_price     gas_estimate (unless a fixed price is set)
- POST /transactions           BCS SignedTransaction

The oracle signs the full signing message (salt hash || BCS raw
transaction); Ed25519 hashes internally.
"""

import logging
import time

import httpx

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import AptosOptions
from custodex.encoding.bcs import RawTransaction, coin_transfer_payload, parse_address, signed_transaction
from custodex.errors import BroadcastError, InvalidAddressError, RPCError
from custodex.signing.codec import decode_hex, ed25519_public_key, normalize_ed25519, to_hex_digest

logger = logging.getLogger(__name__)

SIGNED_TRANSACTION_CONTENT_TYPE = "application/x.aptos.signed_transaction+bcs"


class AptosAdapter(ChainAdapter):
    """Aptos coin transfers (0x1::aptos_account::transfer). Amounts are in octas."""

    name = "aptos"
    options: AptosOptions

    def _parse_address(self, address: str, step: str) -> bytes:
        try:
            return parse_address(address)
        except ValueError as e:
            raise InvalidAddressError(self.name, step, str(e)) from e

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        amount_octas = self._parse_int_amount(amount, bits=64)
        recipient = self._parse_address(destination, "validate destination")

        wallet = await self._get_wallet(wallet_id)
        sender = self._parse_address(wallet.address, "decode wallet address")
        public_key = self._normalize(
            ed25519_public_key, self._wallet_public_key(wallet), step="decode public key"
        )

        async with self._http_client() as client:
            account = await self._get_json(
                client, f"{self.options.node_url}/accounts/{wallet.address}", "get account"
            )
            ledger = await self._get_json(client, f"{self.options.node_url}/", "get ledger info")
            gas_unit_price = self.options.gas_unit_price or await self.estimate_gas_price(client)

            try:
                sequence_number = int(account["sequence_number"])
                chain_id = int(ledger["chain_id"])
            except (KeyError, TypeError, ValueError) as e:
                raise RPCError(self.name, "parse chain state", f"unexpected response: {e}") from e

            raw = RawTransaction(
                sender=sender,
                sequence_number=sequence_number,
                payload=coin_transfer_payload(recipient, amount_octas),
                max_gas_amount=self.options.max_gas_amount,
                gas_unit_price=gas_unit_price,
                expiration_timestamp_secs=int(time.time()) + self.options.expiration_seconds,
                chain_id=chain_id,
            )
            logger.info(f"Aptos tx: {wallet.address} -> {destination}, sequence {sequence_number}")

            result = await self.raw_sign(wallet_id, to_hex_digest(raw.signing_message()))
            signature = self._normalize(normalize_ed25519, self._decode_signature(result.signature))
            signed = signed_transaction(raw, public_key, signature)

            return await self.submit_transaction(client, signed)

    def _decode_signature(self, signature_hex: str) -> bytes:
        return self._normalize(decode_hex, signature_hex)

    async def estimate_gas_price(self, client: httpx.AsyncClient) -> int:
        data = await self._get_json(client, f"{self.options.node_url}/estimate_gas_price", "estimate gas")
        try:
            return int(data["gas_estimate"])
        except (KeyError, TypeError, ValueError) as e:
            raise RPCError(self.name, "estimate gas", f"unexpected response: {e}") from e

    async def submit_transaction(self, client: httpx.AsyncClient, signed: bytes) -> str:
        """POST the BCS SignedTransaction; returns the transaction hash."""
        try:
            response = await client.post(
                f"{self.options.node_url}/transactions",
                content=signed,
                headers={"Content-Type": SIGNED_TRANSACTION_CONTENT_TYPE},
            )
        except httpx.HTTPError as e:
            raise BroadcastError(self.name, "submit transaction", f"request failed: {e}",
                                 signed_payload=signed) from e

        if response.status_code not in (200, 202):
            logger.error(f"Aptos submit failed: {response.text}")
            raise BroadcastError(
                self.name, "submit transaction", f"HTTP {response.status_code}: {response.text}",
                signed_payload=signed, code=response.status_code,
            )
        try:
            tx_hash = response.json()["hash"]
        except (ValueError, KeyError, TypeError):
            raise BroadcastError(self.name, "submit transaction", "response has no hash",
                                 signed_payload=signed)
        logger.info(f"Aptos transaction submitted: {tx_hash}")
        return tx_hash
