"""Solana transfer adapter.

JSON-RPC calls:
- getLatestBlockhash    recent blockhash for the legacy message
- sendTransaction       base64 wire transaction

Ed25519 signs the serialized message itself, so the oracle receives the
message bytes rather than a digest. ``sign_and_send`` instead hands a
prebuilt transaction to the custody API, which signs and submits it.
"""

import base64
import logging

from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import SolanaOptions
from custodex.adapters.rpc import json_rpc
from custodex.errors import BroadcastError, InvalidAddressError, InvalidInputError, RPCError
from custodex.signing.codec import decode_hex, normalize_ed25519, to_hex_digest

logger = logging.getLogger(__name__)


class SolanaAdapter(ChainAdapter):
    """Solana native (SOL) transfers. Amounts are in lamports (u64)."""

    name = "solana"
    options: SolanaOptions

    def _pubkey(self, address: str, step: str) -> Pubkey:
        try:
            return Pubkey.from_string(address)
        except ValueError as e:
            raise InvalidAddressError(self.name, step, f"invalid address {address!r}: {e}") from e

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        lamports = self._parse_int_amount(amount, bits=64)
        to_pubkey = self._pubkey(destination, "validate destination")

        wallet = await self._get_wallet(wallet_id)
        from_pubkey = self._pubkey(wallet.address, "decode wallet address")

        async with self._http_client() as client:
            latest = await json_rpc(
                client, self.options.rpc_url, "getLatestBlockhash",
                [{"commitment": "finalized"}], self.name, "get blockhash",
            )
            try:
                blockhash = Hash.from_string(latest["value"]["blockhash"])
            except (KeyError, TypeError, ValueError) as e:
                raise RPCError(self.name, "get blockhash", f"unexpected response: {e}") from e

            instruction = transfer(
                TransferParams(from_pubkey=from_pubkey, to_pubkey=to_pubkey, lamports=lamports)
            )
            message = Message.new_with_blockhash([instruction], from_pubkey, blockhash)
            message_bytes = bytes(message)
            logger.info(f"Solana tx: {wallet.address} -> {destination}, {lamports} lamports")
            logger.debug(f"Solana message: {message_bytes.hex()}")

            result = await self.raw_sign(wallet_id, to_hex_digest(message_bytes))
            signature = self._normalize(normalize_ed25519, self._decode_signature(result.signature))
            tx = Transaction.populate(message, [Signature.from_bytes(signature)])
            tx_b64 = base64.b64encode(bytes(tx)).decode()

            try:
                tx_signature = await json_rpc(
                    client, self.options.rpc_url, "sendTransaction",
                    [tx_b64, {"encoding": "base64"}], self.name, "send transaction",
                )
            except RPCError as e:
                raise BroadcastError(self.name, "send transaction", e.message,
                                     signed_payload=tx_b64, code=e.code) from e

        logger.info(f"Solana transaction sent: {tx_signature}")
        return tx_signature

    def _decode_signature(self, signature_hex: str) -> bytes:
        return self._normalize(decode_hex, signature_hex)

    async def sign_and_send(self, wallet_id: str, transaction_base64: str) -> str:
        """Sign and submit a prebuilt base64 transaction through the custody API.

        Returns:
            Transaction signature (base58)
        """
        if not transaction_base64:
            raise InvalidInputError(self.name, "validate transaction", "empty transaction")
        data = await self._wallet_rpc(
            wallet_id,
            "signAndSendTransaction",
            {"transaction": transaction_base64, "encoding": "base64"},
            caip2=self.options.caip2,
        )
        tx_signature = data.get("hash") or data.get("signature")
        if not tx_signature:
            raise BroadcastError(self.name, "custody rpc signAndSendTransaction",
                                 "response has no signature")
        logger.info(f"Solana transaction signed and sent: {tx_signature}")
        return tx_signature

    async def transfer_spl(
        self, wallet_id: str, destination: str, mint: str, amount, decimals: int
    ) -> str:
        """SPL token transfers are not supported yet."""
        self._not_implemented("transfer spl")
