"""Borsh subset used by NEAR transactions.

Little-endian fixed-width integers, u32 length-prefixed strings and
vectors. Only the types a NEAR native transfer needs.
"""

import struct

ED25519_KEY_TYPE = 0
TRANSFER_ACTION = 3


class BorshWriter:
    """Append-only Borsh serializer."""

    def __init__(self):
        self._buf = bytearray()

    def u8(self, value: int) -> "BorshWriter":
        self._buf += struct.pack("<B", value)
        return self

    def u32(self, value: int) -> "BorshWriter":
        self._buf += struct.pack("<I", value)
        return self

    def u64(self, value: int) -> "BorshWriter":
        self._buf += struct.pack("<Q", value)
        return self

    def u128(self, value: int) -> "BorshWriter":
        if value < 0 or value >= 1 << 128:
            raise ValueError(f"u128 out of range: {value}")
        self._buf += value.to_bytes(16, "little")
        return self

    def fixed_bytes(self, data: bytes, size: int) -> "BorshWriter":
        if len(data) != size:
            raise ValueError(f"expected {size} bytes, got {len(data)}")
        self._buf += data
        return self

    def string(self, value: str) -> "BorshWriter":
        encoded = value.encode("utf-8")
        self.u32(len(encoded))
        self._buf += encoded
        return self

    def to_bytes(self) -> bytes:
        return bytes(self._buf)


def serialize_transfer_transaction(
    signer_id: str,
    public_key: bytes,
    nonce: int,
    receiver_id: str,
    block_hash: bytes,
    deposit: int,
) -> bytes:
    """Borsh-encode a NEAR Transaction with a single Transfer action."""
    writer = BorshWriter()
    writer.string(signer_id)
    writer.u8(ED25519_KEY_TYPE).fixed_bytes(public_key, 32)
    writer.u64(nonce)
    writer.string(receiver_id)
    writer.fixed_bytes(block_hash, 32)
    writer.u32(1)
    writer.u8(TRANSFER_ACTION).u128(deposit)
    return writer.to_bytes()


def serialize_signed_transaction(transaction: bytes, signature: bytes) -> bytes:
    """SignedTransaction = Transaction || Signature{key type, 64 bytes}."""
    writer = BorshWriter()
    writer.u8(ED25519_KEY_TYPE).fixed_bytes(signature, 64)
    return transaction + writer.to_bytes()
