"""Custody API client: wallet directory and raw-sign oracle."""

from custodex.custody.client import CustodyAPIError, CustodyClient
from custodex.custody.models import RawSignResponse, RpcResponse, Wallet

__all__ = [
    "CustodyAPIError",
    "CustodyClient",
    "RawSignResponse",
    "RpcResponse",
    "Wallet",
]
