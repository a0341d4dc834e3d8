"""Signer backed by the custody API's raw_sign endpoint."""

import logging
from typing import Optional

from custodex.custody.client import CustodyClient
from custodex.custody.models import Wallet
from custodex.signing.base import SignatureResult, SignerBackend, SignerType, SigningRequest

logger = logging.getLogger(__name__)


class CustodySigner(SignerBackend):
    """Signs through ``POST /wallets/{id}/raw_sign``.

    Errors from the API propagate as CustodyAPIError; adapters translate
    them into the chain error taxonomy.
    """

    def __init__(self, client: CustodyClient):
        super().__init__(SignerType.CUSTODY)
        self.client = client

    async def sign(self, request: SigningRequest) -> SignatureResult:
        if request.message_hash is not None:
            logger.info(f"Raw-signing {request.chain} digest for wallet {request.wallet_id}")
            response = await self.client.raw_sign(request.wallet_id, request.message_hash)
        elif request.data is not None:
            logger.info(f"Raw-signing {request.chain} bytes for wallet {request.wallet_id}")
            response = await self.client.raw_sign_bytes(
                request.wallet_id,
                request.data,
                request.encoding or "hex",
                request.hash_function or "sha256",
            )
        else:
            raise ValueError("signing request needs message_hash or data")

        return SignatureResult(signature=response.data.signature, encoding=response.data.encoding)

    async def get_wallet(self, wallet_id: str) -> Wallet:
        return await self.client.get_wallet(wallet_id)

    async def rpc(self, wallet_id: str, method: str, params: dict, caip2: Optional[str] = None,
                  chain_type: Optional[str] = None) -> dict:
        response = await self.client.rpc(
            wallet_id, method, params, caip2=caip2, chain_type=chain_type
        )
        return response.model_dump()
