"""Bitcoin (P2WPKH) transfer adapter.

Uses an Esplora-compatible explorer (Blockstream by default):
- GET  /address/{addr}/utxo   list spendable outputs
- POST /tx                    broadcast raw hex, returns the txid

Every input is signed separately: its BIP143 digest commits to that
input's previous-output amount.
"""

import asyncio
import logging

import httpx
from bitcoin.core import CMutableTransaction

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import BitcoinOptions
from custodex.adapters.utxo import UTXO, InsufficientUTXOs, Selection, select_utxos
from custodex.custody.models import Wallet
from custodex.encoding.bitcoin import (
    SIGHASH_ALL,
    address_to_script,
    build_transaction,
    hash160,
    make_input,
    make_output,
    p2wpkh_script,
    p2wpkh_script_code,
    set_witnesses,
    transaction_id,
    witness_sighash,
)
from custodex.errors import (
    BroadcastError,
    InsufficientFundsError,
    InvalidAddressError,
    RPCError,
)
from custodex.signing.codec import bitcoin_witness_signature, compress_secp256k1_public_key

logger = logging.getLogger(__name__)


class BitcoinAdapter(ChainAdapter):
    """Native SegWit (P2WPKH) Bitcoin transfers.

    Amounts are in satoshis.
    """

    name = "bitcoin"
    options: BitcoinOptions

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        amount_sats = self._parse_int_amount(amount, bits=63)
        dest_script = self._address_script(destination, "destination")

        wallet = await self._get_wallet(wallet_id)
        public_key = self._normalize(
            compress_secp256k1_public_key, self._wallet_public_key(wallet), step="decode public key"
        )
        pubkey_hash = hash160(public_key)
        change_script = self._change_script(wallet, pubkey_hash)

        async with self._http_client() as client:
            utxos = await self.get_utxos(client, wallet.address)
            selection = self._select(utxos, amount_sats)
            logger.info(
                f"Bitcoin tx: {len(selection.utxos)} inputs, amount {amount_sats}, "
                f"fee {selection.fee}, change {selection.change}"
            )

            tx = self.build_transaction(selection, amount_sats, dest_script, change_script)
            amounts = [utxo.value for utxo in selection.utxos]
            await self.sign_inputs(wallet_id, tx, amounts, public_key, pubkey_hash)

            raw_hex = tx.serialize().hex()
            logger.debug(f"Signed BTC transaction {transaction_id(tx)}")
            return await self.broadcast_transaction(client, raw_hex)

    # ======================
    # Build
    # ======================

    def _address_script(self, address: str, label: str) -> bytes:
        try:
            return address_to_script(address, self.options.network)
        except ValueError as e:
            raise InvalidAddressError(self.name, f"decode {label} address", str(e)) from e

    def _change_script(self, wallet: Wallet, pubkey_hash: bytes) -> bytes:
        script = self._address_script(wallet.address, "wallet")
        if script != p2wpkh_script(pubkey_hash):
            raise InvalidAddressError(
                self.name, "decode wallet address",
                f"wallet address {wallet.address} is not the P2WPKH address of its public key",
            )
        return script

    def _select(self, utxos: list[UTXO], amount: int) -> Selection:
        try:
            return select_utxos(
                utxos, amount, self.options.fee_rate,
                dust_threshold=self.options.dust_threshold,
                confirmed_only=not self.options.spend_unconfirmed,
            )
        except InsufficientUTXOs as e:
            raise InsufficientFundsError(self.name, "select utxos", e.available, e.required) from e

    def build_transaction(
        self, selection: Selection, amount: int, dest_script: bytes, change_script: bytes
    ) -> CMutableTransaction:
        """Unsigned tx: one input per selected UTXO, payment plus optional change."""
        inputs = [make_input(utxo.txid, utxo.vout) for utxo in selection.utxos]
        outputs = [make_output(amount, dest_script)]
        if selection.change > self.options.dust_threshold:
            outputs.append(make_output(selection.change, change_script))
        return build_transaction(inputs, outputs)

    # ======================
    # Sign
    # ======================

    async def sign_inputs(
        self,
        wallet_id: str,
        tx: CMutableTransaction,
        amounts: list[int],
        public_key: bytes,
        pubkey_hash: bytes,
    ) -> None:
        """Compute each input's BIP143 digest, raw-sign it and set the witness.

        Up to ``max_parallel_signatures`` raw-sign calls run at once; the
        resulting transaction is identical for any setting.
        """
        script_code = p2wpkh_script_code(pubkey_hash)
        digests = [
            witness_sighash(tx, i, script_code, amount, SIGHASH_ALL)
            for i, amount in enumerate(amounts)
        ]
        semaphore = asyncio.Semaphore(self.options.max_parallel_signatures)

        async def sign_one(index: int) -> bytes:
            async with semaphore:
                logger.debug(f"Signing input {index}: sighash {digests[index].hex()}")
                signature = await self._sign_digest(wallet_id, digests[index])
            return self._normalize(bitcoin_witness_signature, signature, SIGHASH_ALL)

        if self.options.max_parallel_signatures == 1:
            witness_sigs = [await sign_one(i) for i in range(len(digests))]
        else:
            witness_sigs = await asyncio.gather(*(sign_one(i) for i in range(len(digests))))

        set_witnesses(tx, [[der_sig, public_key] for der_sig in witness_sigs])

    # ======================
    # Explorer
    # ======================

    async def get_utxos(self, client: httpx.AsyncClient, address: str) -> list[UTXO]:
        """Get UTXOs for an address."""
        data = await self._get_json(
            client, f"{self.options.explorer_url}/address/{address}/utxo", "get utxos"
        )
        try:
            return [UTXO.from_esplora(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise RPCError(self.name, "get utxos", f"malformed UTXO list: {e}") from e

    async def broadcast_transaction(self, client: httpx.AsyncClient, raw_tx_hex: str) -> str:
        """Broadcast raw transaction hex; returns the txid."""
        try:
            response = await client.post(
                f"{self.options.explorer_url}/tx",
                content=raw_tx_hex,
                headers={"Content-Type": "text/plain"},
            )
        except httpx.HTTPError as e:
            raise BroadcastError(
                self.name, "broadcast", f"request failed: {e}", signed_payload=raw_tx_hex
            ) from e

        if response.status_code != 200:
            logger.error(f"BTC broadcast failed: {response.text}")
            raise BroadcastError(
                self.name, "broadcast", response.text or f"HTTP {response.status_code}",
                signed_payload=raw_tx_hex, code=response.status_code,
            )

        txid = response.text.strip()
        logger.info(f"BTC transaction broadcast: {txid}")
        return txid
