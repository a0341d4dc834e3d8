"""Stellar transfer adapter.

Horizon REST calls:
- GET  /accounts/{id}     current sequence number
- POST /transactions      form-encoded ``tx`` envelope XDR

The envelope is built with stellar-sdk; its hash is the SHA-256 of the
network id and the transaction signature base.
"""

import logging

import httpx
from stellar_sdk import Account, Asset, Keypair, TransactionBuilder
from stellar_sdk.decorated_signature import DecoratedSignature
from stellar_sdk.exceptions import Ed25519PublicKeyInvalidError

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import StellarOptions
from custodex.adapters.rpc import json_object
from custodex.errors import BroadcastError, InvalidAddressError, RPCError
from custodex.signing.codec import normalize_ed25519

logger = logging.getLogger(__name__)

STROOP_DECIMALS = 7


class StellarAdapter(ChainAdapter):
    """Stellar native (XLM) payments. Amounts are XLM decimal strings (e.g. "100.50")."""

    name = "stellar"
    options: StellarOptions

    def _keypair(self, address: str, step: str) -> Keypair:
        try:
            return Keypair.from_public_key(address)
        except Ed25519PublicKeyInvalidError as e:
            raise InvalidAddressError(self.name, step, f"invalid account id {address!r}: {e}") from e

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        amount_xlm = self._parse_decimal_amount(amount, STROOP_DECIMALS)
        self._keypair(destination, "validate destination")

        wallet = await self._get_wallet(wallet_id)
        source = self._keypair(wallet.address, "decode wallet address")

        async with self._http_client() as client:
            account_data = await self._get_json_object(
                client, f"{self.options.horizon_url}/accounts/{wallet.address}", "load account"
            )
            try:
                sequence = int(account_data["sequence"])
            except (KeyError, TypeError, ValueError) as e:
                raise RPCError(self.name, "load account", f"unexpected account response: {e}") from e

            envelope = (
                TransactionBuilder(
                    source_account=Account(wallet.address, sequence),
                    network_passphrase=self.options.network_passphrase,
                    base_fee=self.options.base_fee,
                )
                .append_payment_op(destination=destination, asset=Asset.native(), amount=str(amount_xlm))
                .set_timeout(self.options.timeout_seconds)
                .build()
            )
            digest = envelope.hash()
            logger.info(f"Stellar tx: {wallet.address} -> {destination}, sequence {sequence + 1}")

            signature = self._normalize(normalize_ed25519, await self._sign_digest(wallet_id, digest))
            envelope.signatures.append(DecoratedSignature(source.signature_hint(), signature))
            xdr = envelope.to_xdr()

            return await self.submit_transaction(client, xdr)

    async def submit_transaction(self, client: httpx.AsyncClient, xdr: str) -> str:
        """Submit an envelope to Horizon; returns the transaction hash."""
        try:
            response = await client.post(f"{self.options.horizon_url}/transactions", data={"tx": xdr})
            data = json_object(response)
        except httpx.HTTPError as e:
            raise BroadcastError(self.name, "submit transaction", f"request failed: {e}",
                                 signed_payload=xdr) from e
        except ValueError:
            raise BroadcastError(
                self.name, "submit transaction", f"HTTP {response.status_code}: {response.text}",
                signed_payload=xdr, code=response.status_code,
            )

        if response.status_code != 200:
            result_codes = (data.get("extras") or {}).get("result_codes")
            message = data.get("title") or data.get("detail") or "submission failed"
            if result_codes:
                message = f"{message}: {result_codes}"
            logger.error(f"Stellar submit failed: {message}")
            raise BroadcastError(self.name, "submit transaction", message,
                                 signed_payload=xdr, code=response.status_code)

        tx_hash = data.get("hash")
        if not tx_hash:
            raise BroadcastError(self.name, "submit transaction", "response has no hash",
                                 signed_payload=xdr)
        logger.info(f"Stellar transaction submitted: {tx_hash}")
        return tx_hash

    async def payment_with_asset(
        self, wallet_id: str, destination: str, amount, asset_code: str, asset_issuer: str
    ) -> str:
        """Non-native asset payments are not supported yet."""
        self._not_implemented("payment with asset")
