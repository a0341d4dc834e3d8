"""Ethereum transfer adapter.

The custody API builds, signs and submits EVM transactions itself
(``eth_sendTransaction`` over the wallet RPC endpoint), so there is no
local preimage: the adapter validates input and forwards the request
with the CAIP-2 network id.
"""

import logging
import re

from custodex.adapters.base import ChainAdapter
from custodex.adapters.options import EthereumOptions
from custodex.chains import ChainType, eip155_caip2
from custodex.errors import BroadcastError, InvalidAddressError

logger = logging.getLogger(__name__)

ETH_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class EthereumAdapter(ChainAdapter):
    """Native ETH transfers through custody RPC. Amounts are in wei."""

    name = "ethereum"
    options: EthereumOptions

    @property
    def caip2(self) -> str:
        return eip155_caip2(self.options.chain_id)

    async def transfer(self, wallet_id: str, destination: str, amount) -> str:
        amount_wei = self._parse_int_amount(amount, bits=256)
        if not ETH_ADDRESS_RE.match(destination):
            raise InvalidAddressError(self.name, "validate destination", f"invalid address {destination!r}")

        logger.info(f"ETH tx via custody RPC: wallet {wallet_id} -> {destination}, {amount_wei} wei ({self.caip2})")
        params = {
            "transaction": {
                "to": destination,
                "value": hex(amount_wei),
                "chain_id": self.options.chain_id,
            }
        }
        if self.options.sponsor:
            params["sponsor"] = True

        data = await self._wallet_rpc(
            wallet_id, "eth_sendTransaction", params,
            caip2=self.caip2, chain_type=ChainType.ETHEREUM.value,
        )
        tx_hash = data.get("hash")
        if not tx_hash:
            raise BroadcastError(self.name, "custody rpc eth_sendTransaction", "response has no hash")
        logger.info(f"ETH transaction sent: {tx_hash}")
        return tx_hash

    async def transfer_erc20(self, wallet_id: str, token_address: str, destination: str, amount) -> str:
        """ERC20 transfers are not supported yet."""
        self._not_implemented("transfer erc20")
