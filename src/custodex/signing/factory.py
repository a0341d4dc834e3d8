"""Signer factory.

Builds the process-wide signing backend from settings.
"""

import logging
from typing import Optional

from custodex.config import get_settings
from custodex.custody.client import CustodyClient
from custodex.signing.base import SignerBackend

logger = logging.getLogger(__name__)

_signer_instance: Optional[SignerBackend] = None


def get_signer() -> SignerBackend:
    """Get the configured signer instance.

    Returns:
        SignerBackend singleton backed by the custody API

    Raises:
        RuntimeError: If custody credentials are not configured
    """
    global _signer_instance

    if _signer_instance is not None:
        return _signer_instance

    settings = get_settings()
    if not settings.has_credentials:
        raise RuntimeError("CUSTODY_APP_ID and CUSTODY_APP_SECRET must be set to sign transactions")

    from custodex.signing.custody import CustodySigner

    logger.info(f"Initializing custody signer ({settings.custody_api_url})")
    _signer_instance = CustodySigner(CustodyClient.from_settings(settings))
    return _signer_instance


def set_signer(signer: SignerBackend) -> None:
    """Install a signer instance (custom backends, testing)."""
    global _signer_instance
    _signer_instance = signer


def reset_signer():
    """Reset the signer instance (for testing)."""
    global _signer_instance
    _signer_instance = None
