"""Error taxonomy for chain transfers.

Every error carries the chain name and the step that failed, rendered as
``"<chain>: <step>: <message>"``. Nothing here is retried internally.
"""

from typing import Optional, Union


class ChainError(Exception):
    """Base class for all transfer failures."""

    def __init__(self, chain: str, step: str, message: str):
        self.chain = chain
        self.step = step
        self.message = message
        super().__init__(f"{chain}: {step}: {message}")


# ======================
# Rejected before any network call
# ======================

class InvalidInputError(ChainError):
    """Malformed amount or address."""
    pass


class InvalidAmountError(InvalidInputError):
    """Amount is not a valid positive value in the chain's base unit."""
    pass


class InvalidAddressError(InvalidInputError):
    """Destination or wallet address cannot be decoded for this chain."""
    pass


# ======================
# Upstream lookups
# ======================

class UpstreamLookupError(ChainError):
    """Wallet, account, nonce or UTXO query failed."""
    pass


class WalletNotFoundError(UpstreamLookupError):
    """Wallet directory lookup failed."""
    pass


class RPCError(UpstreamLookupError):
    """Chain RPC/REST call failed or returned an error object."""

    def __init__(self, chain: str, step: str, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(chain, step, message)


class InsufficientFundsError(ChainError):
    """UTXO selection could not cover amount plus fee."""

    def __init__(self, chain: str, step: str, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            chain, step, f"insufficient funds: have {available}, need {required}"
        )


# ======================
# Signing and broadcast
# ======================

class SigningError(ChainError):
    """Oracle call failed or returned a malformed signature."""
    pass


class BroadcastError(ChainError):
    """Chain rejected the signed transaction.

    The transaction was signed; ``signed_payload`` holds exactly what was
    submitted so the caller can retry the broadcast without signing again.
    """

    def __init__(
        self,
        chain: str,
        step: str,
        message: str,
        signed_payload: Union[bytes, str, dict, None] = None,
        code: Union[int, str, None] = None,
    ):
        self.signed_payload = signed_payload
        self.code = code
        super().__init__(chain, step, message)


class NotImplementedOperationError(ChainError, NotImplementedError):
    """Operation exists on the adapter but is not supported yet."""

    def __init__(self, chain: str, operation: str):
        self.operation = operation
        super().__init__(chain, operation, "not yet implemented")
