"""Remote signing backends and signature normalization."""

from custodex.signing.base import (
    SignatureResult,
    SignerBackend,
    SignerType,
    SigningRequest,
)
from custodex.signing.factory import get_signer, reset_signer, set_signer

__all__ = [
    "SignatureResult",
    "SignerBackend",
    "SignerType",
    "SigningRequest",
    "get_signer",
    "reset_signer",
    "set_signer",
]
