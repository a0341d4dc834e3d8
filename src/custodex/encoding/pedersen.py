"""StarkNet INVOKE v1 transaction hash."""

from typing import Sequence

from starknet_py.hash.utils import compute_hash_on_elements

# 2**251 + 17 * 2**192 + 1
FIELD_PRIME = 0x800000000000011000000000000000000000000000000000000000000000001

INVOKE_PREFIX = "invoke"
TRANSACTION_VERSION = 1


def string_to_felt(value: str) -> int:
    """Encode a short ASCII string (<= 31 chars) as a felt."""
    encoded = value.encode("ascii")
    if len(encoded) > 31:
        raise ValueError(f"short string too long for a felt: {value!r}")
    return int.from_bytes(encoded, "big")


def invoke_v1_hash(
    sender_address: int,
    calldata: Sequence[int],
    max_fee: int,
    chain_id: int,
    nonce: int,
) -> int:
    """Transaction hash of an INVOKE v1 transaction.

    The entry point selector slot is zero for v1; the account's
    ``__execute__`` is implied.
    """
    for value in (sender_address, max_fee, nonce, *calldata):
        if not 0 <= value < FIELD_PRIME:
            raise ValueError(f"value out of field range: {value:#x}")
    return compute_hash_on_elements(
        [
            string_to_felt(INVOKE_PREFIX),
            TRANSACTION_VERSION,
            sender_address,
            0,
            compute_hash_on_elements(calldata),
            max_fee,
            chain_id,
            nonce,
        ]
    )
