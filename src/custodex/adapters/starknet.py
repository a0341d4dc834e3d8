"""StarkNet transfer adapter (ETH via INVOKE v1 multicall).

JSON-RPC calls:
- starknet_getNonce               account nonce at "latest"
- starknet_addInvokeTransaction   submit the signed INVOKE v1 transaction

The transaction hash is a Pedersen hash-chain over the INVOKE tuple and
is signed as-is; the oracle returns r || s as one hex string.
"""

import logging

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import StarknetOptions
from custodex.adapters.rpc import json_rpc
from custodex.encoding.pedersen import FIELD_PRIME, invoke_v1_hash, string_to_felt
from custodex.errors import BroadcastError, InvalidAddressError, RPCError
from custodex.signing.codec import starknet_signature_pair, to_hex_digest

logger = logging.getLogger(__name__)

# sn_keccak("transfer")
TRANSFER_SELECTOR = 0x83AFD3F4CAEDC6EEBF44246FE54E38C95E3179A5EC9EA81740ECA5B482D12E

U128_MASK = (1 << 128) - 1


def parse_felt(value: str) -> int:
    """Parse a 0x-prefixed felt (address, selector)."""
    felt = int(value, 16)
    if not 0 <= felt < FIELD_PRIME:
        raise ValueError(f"value out of field range: {value}")
    return felt


def build_eth_transfer_calldata(eth_contract: int, recipient: int, amount: int) -> list[int]:
    """Account __execute__ calldata for a single ERC20 transfer call.

    Layout: call count, to, selector, data offset, data length, calldata
    length, then transfer(recipient, Uint256{low, high}).
    """
    return [
        1,
        eth_contract,
        TRANSFER_SELECTOR,
        0,
        3,
        3,
        recipient,
        amount & U128_MASK,
        amount >> 128,
    ]


class StarknetAdapter(ChainAdapter):
    """StarkNet ETH transfers. Amounts are in wei (u256)."""

    name = "starknet"
    options: StarknetOptions

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        amount_wei = self._parse_int_amount(amount, bits=256)
        try:
            recipient = parse_felt(destination)
        except ValueError as e:
            raise InvalidAddressError(self.name, "validate destination", str(e)) from e

        wallet = await self._get_wallet(wallet_id)
        try:
            sender = parse_felt(wallet.address)
        except ValueError as e:
            raise InvalidAddressError(self.name, "decode wallet address", str(e)) from e

        async with self._http_client() as client:
            nonce_hex = await json_rpc(
                client, self.options.rpc_url, "starknet_getNonce", ["latest", wallet.address],
                self.name, "get nonce",
            )
            try:
                nonce = int(nonce_hex, 16)
            except (TypeError, ValueError) as e:
                raise RPCError(self.name, "get nonce", f"unexpected nonce {nonce_hex!r}") from e

            calldata = build_eth_transfer_calldata(
                parse_felt(self.options.eth_contract), recipient, amount_wei
            )
            tx_hash = invoke_v1_hash(
                sender_address=sender,
                calldata=calldata,
                max_fee=self.options.max_fee,
                chain_id=string_to_felt(self.options.chain_id),
                nonce=nonce,
            )
            logger.info(f"StarkNet tx: {wallet.address} -> {destination}, nonce {nonce}")

            result = await self.raw_sign(wallet_id, to_hex_digest(tx_hash.to_bytes(32, "big")))
            r, s = self._normalize(
                starknet_signature_pair, result.signature, self.options.strict_signature_length
            )

            invoke_tx = {
                "type": "INVOKE",
                "sender_address": wallet.address,
                "calldata": [hex(v) for v in calldata],
                "max_fee": hex(self.options.max_fee),
                "version": "0x1",
                "signature": [r, s],
                "nonce": hex(nonce),
            }
            try:
                submitted = await json_rpc(
                    client, self.options.rpc_url, "starknet_addInvokeTransaction", [invoke_tx],
                    self.name, "submit transaction",
                )
            except RPCError as e:
                raise BroadcastError(
                    self.name, "submit transaction", e.message, signed_payload=invoke_tx, code=e.code
                ) from e

        try:
            result_hash = submitted["transaction_hash"]
        except (KeyError, TypeError):
            raise BroadcastError(
                self.name, "submit transaction", "response has no transaction_hash",
                signed_payload=invoke_tx,
            )
        logger.info(f"StarkNet transaction submitted: {result_hash}")
        return result_hash

    async def transfer_erc20(self, wallet_id: str, token_contract: str, destination: str, amount) -> str:
        """ERC20 transfers are not supported yet."""
        self._not_implemented("transfer erc20")
