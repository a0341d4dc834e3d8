"""custodex - multi-chain transfers signed by a remote raw-sign custody API."""

__version__ = "0.1.0"
