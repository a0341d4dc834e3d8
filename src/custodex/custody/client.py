"""HTTP client for the custody API.

Only the calls the chain adapters need:
- GET  /wallets/{id}            wallet directory lookup
- POST /wallets/{id}/raw_sign   raw-sign oracle (hash or bytes)
- POST /wallets/{id}/rpc        custody-side sign-and-send (EVM, Solana)

Auth is HTTP Basic with appId:appSecret plus the ``privy-app-id`` header.
"""

import base64
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from custodex.custody.models import (
    APIError,
    RawSignBytesParams,
    RawSignHashParams,
    RawSignRequest,
    RawSignResponse,
    RpcRequest,
    RpcResponse,
    Wallet,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.privy.io/v1"
DEFAULT_TIMEOUT = 30.0


class CustodyAPIError(Exception):
    """Non-2xx response or unreadable body from the custody API."""

    def __init__(self, status_code: int, message: str, code: str = "", error: str = ""):
        self.status_code = status_code
        self.message = message
        self.code = code
        self.error = error
        super().__init__(f"custody API error (status {status_code}): {message}")


class CustodyClient:
    """Authenticated client for wallet lookup and raw signing."""

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.app_id = app_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._app_secret = app_secret
        self._transport = transport

    @classmethod
    def from_settings(cls, settings=None) -> "CustodyClient":
        """Build a client from application settings."""
        from custodex.config import get_settings

        settings = settings or get_settings()
        return cls(
            app_id=settings.custody_app_id,
            app_secret=settings.custody_app_secret,
            base_url=settings.custody_api_url,
            timeout=settings.custody_timeout,
        )

    def _headers(self) -> dict[str, str]:
        token = base64.b64encode(f"{self.app_id}:{self._app_secret}".encode()).decode()
        return {
            "Authorization": f"Basic {token}",
            "privy-app-id": self.app_id,
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, body: Optional[dict] = None) -> dict:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, json=body, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Custody API request failed: {method} {path}: {e}")
            raise CustodyAPIError(0, f"request failed: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            try:
                api_error = APIError.model_validate(response.json())
                message = api_error.message or api_error.error or response.text
                raise CustodyAPIError(
                    response.status_code, message, code=api_error.code, error=api_error.error
                )
            except (ValueError, ValidationError):
                raise CustodyAPIError(response.status_code, response.text or "unknown error")

        try:
            return response.json()
        except ValueError as e:
            raise CustodyAPIError(response.status_code, f"invalid JSON response: {e}") from e

    # ======================
    # Wallet directory
    # ======================

    async def get_wallet(self, wallet_id: str) -> Wallet:
        """Fetch a wallet snapshot (address, chain type, public key)."""
        data = await self._request("GET", f"/wallets/{wallet_id}")
        try:
            return Wallet.model_validate(data)
        except ValidationError as e:
            raise CustodyAPIError(200, f"malformed wallet response: {e}") from e

    # ======================
    # Raw-sign oracle
    # ======================

    async def raw_sign(self, wallet_id: str, hash_hex: str) -> RawSignResponse:
        """Sign a pre-computed digest.

        Args:
            wallet_id: Custody wallet id
            hash_hex: 0x-prefixed hex digest, passed through unchanged

        Returns:
            RawSignResponse with the hex signature
        """
        request = RawSignRequest(params=RawSignHashParams(hash=hash_hex))
        data = await self._request(
            "POST", f"/wallets/{wallet_id}/raw_sign", request.model_dump()
        )
        return self._parse_sign_response(data)

    async def raw_sign_bytes(
        self, wallet_id: str, data: str, encoding: str, hash_function: str
    ) -> RawSignResponse:
        """Sign bytes, letting the oracle apply ``hash_function`` first."""
        request = RawSignRequest(
            params=RawSignBytesParams(bytes=data, encoding=encoding, hash_function=hash_function)
        )
        body = await self._request(
            "POST", f"/wallets/{wallet_id}/raw_sign", request.model_dump()
        )
        return self._parse_sign_response(body)

    @staticmethod
    def _parse_sign_response(data: dict) -> RawSignResponse:
        try:
            return RawSignResponse.model_validate(data)
        except ValidationError as e:
            raise CustodyAPIError(200, f"malformed raw_sign response: {e}") from e

    # ======================
    # Wallet RPC
    # ======================

    async def rpc(
        self,
        wallet_id: str,
        method: str,
        params: dict[str, Any],
        caip2: Optional[str] = None,
        chain_type: Optional[str] = None,
    ) -> RpcResponse:
        """Call a custody-side wallet RPC method (e.g. eth_sendTransaction)."""
        request = RpcRequest(method=method, caip2=caip2, chain_type=chain_type, params=params)
        data = await self._request(
            "POST", f"/wallets/{wallet_id}/rpc", request.model_dump(exclude_none=True)
        )
        try:
            return RpcResponse.model_validate(data)
        except ValidationError as e:
            raise CustodyAPIError(200, f"malformed rpc response: {e}") from e

    def __repr__(self) -> str:
        return f"CustodyClient(app_id={self.app_id!r}, base_url={self.base_url!r})"
