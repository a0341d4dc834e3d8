"""TON transfer adapter.

Uses the toncenter HTTP API v2:
- GET  /getWalletInformation?address=   wallet seqno
- POST /sendBoc                         submit the base64 external message

The signing message is a simplified wallet v4r2 body; the returned id is
the hex SHA-256 of the submitted base64 BOC string.
"""

import base64
import hashlib
import logging
import time

import httpx

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import TonOptions
from custodex.adapters.rpc import json_object
from custodex.encoding.ton import (
    build_external_body,
    build_internal_message,
    build_signing_message,
)
from custodex.errors import BroadcastError, InvalidAddressError, RPCError
from custodex.signing.codec import normalize_ed25519

logger = logging.getLogger(__name__)


class TonAdapter(ChainAdapter):
    """TON native transfers. Amounts are in nanotons (u64)."""

    name = "ton"
    options: TonOptions

    def _headers(self) -> dict[str, str]:
        if self.options.api_key:
            return {"X-API-Key": self.options.api_key}
        return {}

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        amount_nano = self._parse_int_amount(amount, bits=64)
        if not destination or not destination.strip():
            raise InvalidAddressError(self.name, "validate destination", "empty destination")

        wallet = await self._get_wallet(wallet_id)

        async with self._http_client() as client:
            seqno = await self.get_seqno(client, wallet.address)

            valid_until = int(time.time()) + self.options.valid_for_seconds
            internal_message = build_internal_message(destination, amount_nano)
            signing_message = build_signing_message(
                self.options.wallet_id,
                seqno,
                valid_until,
                internal_message,
                send_mode=self.options.send_mode,
            )
            digest = hashlib.sha256(signing_message).digest()
            logger.info(f"TON tx: {wallet.address} -> {destination}, seqno {seqno}")

            signature = self._normalize(normalize_ed25519, await self._sign_digest(wallet_id, digest))
            boc = base64.b64encode(build_external_body(signature, signing_message)).decode()
            await self.send_boc(client, boc)

        msg_hash = hashlib.sha256(boc.encode()).hexdigest()
        logger.info(f"TON message sent: {msg_hash}")
        return msg_hash

    async def get_seqno(self, client: httpx.AsyncClient, address: str) -> int:
        """Get the wallet sequence number."""
        data = await self._get_json_object(
            client,
            f"{self.options.api_url}/getWalletInformation",
            "get seqno",
            params={"address": address},
            headers=self._headers(),
        )
        if not data.get("ok"):
            raise RPCError(self.name, "get seqno", f"failed to get wallet info: {data.get('error', data)}")
        try:
            return int(data["result"].get("seqno") or 0)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise RPCError(self.name, "get seqno", f"unexpected wallet info: {e}") from e

    async def send_boc(self, client: httpx.AsyncClient, boc: str) -> None:
        """Submit a base64 BOC."""
        try:
            response = await client.post(
                f"{self.options.api_url}/sendBoc", json={"boc": boc}, headers=self._headers()
            )
            data = json_object(response)
        except httpx.HTTPError as e:
            raise BroadcastError(self.name, "send boc", f"request failed: {e}", signed_payload=boc) from e
        except ValueError:
            raise BroadcastError(
                self.name, "send boc", f"HTTP {response.status_code}: {response.text}",
                signed_payload=boc, code=response.status_code,
            )

        if not data.get("ok"):
            logger.error(f"TON sendBoc failed: {data}")
            raise BroadcastError(
                self.name, "send boc", f"sendBoc failed: {data.get('error', data)}",
                signed_payload=boc, code=data.get("code"),
            )
