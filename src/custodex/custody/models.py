"""Wire models for the custody API."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Wallet(BaseModel):
    """Wallet snapshot returned by ``GET /wallets/{id}``.

    Fetched fresh for every operation and never cached.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    address: str
    chain_type: str
    public_key: Optional[str] = None
    owner_id: Optional[str] = None
    policy_ids: list[str] = Field(default_factory=list)
    created_at: Optional[int] = None


class RawSignHashParams(BaseModel):
    hash: str


class RawSignBytesParams(BaseModel):
    bytes: str
    encoding: str
    hash_function: str


class RawSignRequest(BaseModel):
    """Body for ``POST /wallets/{id}/raw_sign``."""

    params: RawSignHashParams | RawSignBytesParams


class RawSignData(BaseModel):
    signature: str
    encoding: str = "hex"


class RawSignResponse(BaseModel):
    """Oracle response: ``{"method": "raw_sign", "data": {...}}``."""

    model_config = ConfigDict(extra="ignore")

    method: str = "raw_sign"
    data: RawSignData

    @property
    def signature(self) -> str:
        return self.data.signature


class RpcRequest(BaseModel):
    """Body for ``POST /wallets/{id}/rpc``."""

    method: str
    caip2: Optional[str] = None
    chain_type: Optional[str] = None
    params: dict[str, Any]


class APIError(BaseModel):
    """Error body returned on non-2xx custody responses."""

    model_config = ConfigDict(extra="ignore")

    message: str = ""
    error: str = ""
    code: str = ""


class RpcResponseData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    signature: Optional[str] = None
    signed_transaction: Optional[str] = None
    hash: Optional[str] = None
    encoding: Optional[str] = None
    caip2: Optional[str] = None


class RpcResponse(BaseModel):
    """Response of ``POST /wallets/{id}/rpc``."""

    model_config = ConfigDict(extra="ignore")

    method: str
    data: RpcResponseData
