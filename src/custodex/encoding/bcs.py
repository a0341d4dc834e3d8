"""BCS subset used by Aptos transactions.

ULEB128 lengths, little-endian integers, and the RawTransaction /
SignedTransaction layouts for an entry function payload.
"""

import hashlib
import struct
from dataclasses import dataclass, field

RAW_TRANSACTION_SALT = b"APTOS::RawTransaction"

# Enum variant indexes
PAYLOAD_ENTRY_FUNCTION = 2
AUTHENTICATOR_ED25519 = 0


class Serializer:
    """Append-only BCS serializer."""

    def __init__(self):
        self._buf = bytearray()

    def uleb128(self, value: int) -> "Serializer":
        if value < 0:
            raise ValueError("uleb128 cannot encode negative values")
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                self._buf.append(byte | 0x80)
            else:
                self._buf.append(byte)
                return self

    def u8(self, value: int) -> "Serializer":
        self._buf += struct.pack("<B", value)
        return self

    def u64(self, value: int) -> "Serializer":
        self._buf += struct.pack("<Q", value)
        return self

    def fixed_bytes(self, data: bytes) -> "Serializer":
        self._buf += data
        return self

    def to_bytes(self, data: bytes) -> "Serializer":
        """Length-prefixed byte vector."""
        self.uleb128(len(data))
        self._buf += data
        return self

    def string(self, value: str) -> "Serializer":
        return self.to_bytes(value.encode("utf-8"))

    def output(self) -> bytes:
        return bytes(self._buf)


def encode_u64(value: int) -> bytes:
    return Serializer().u64(value).output()


def parse_address(address: str) -> bytes:
    """Parse a 0x-prefixed account address into 32 bytes (short forms are left-padded)."""
    value = address[2:] if address.startswith("0x") else address
    if not value or len(value) > 64:
        raise ValueError(f"invalid Aptos address: {address!r}")
    return bytes.fromhex(value.rjust(64, "0"))


@dataclass
class EntryFunction:
    module_address: bytes
    module_name: str
    function: str
    args: list[bytes] = field(default_factory=list)
    type_args: list[bytes] = field(default_factory=list)

    def serialize(self, ser: Serializer) -> None:
        ser.fixed_bytes(self.module_address)
        ser.string(self.module_name)
        ser.string(self.function)
        ser.uleb128(len(self.type_args))
        for tag in self.type_args:
            ser.fixed_bytes(tag)
        ser.uleb128(len(self.args))
        for arg in self.args:
            ser.to_bytes(arg)


@dataclass
class RawTransaction:
    sender: bytes
    sequence_number: int
    payload: EntryFunction
    max_gas_amount: int
    gas_unit_price: int
    expiration_timestamp_secs: int
    chain_id: int

    def serialize(self) -> bytes:
        ser = Serializer()
        ser.fixed_bytes(self.sender)
        ser.u64(self.sequence_number)
        ser.uleb128(PAYLOAD_ENTRY_FUNCTION)
        self.payload.serialize(ser)
        ser.u64(self.max_gas_amount)
        ser.u64(self.gas_unit_price)
        ser.u64(self.expiration_timestamp_secs)
        ser.u8(self.chain_id)
        return ser.output()

    def signing_message(self) -> bytes:
        """sha3_256("APTOS::RawTransaction") || BCS(raw transaction)."""
        return hashlib.sha3_256(RAW_TRANSACTION_SALT).digest() + self.serialize()


def coin_transfer_payload(recipient: bytes, amount: int) -> EntryFunction:
    """0x1::aptos_account::transfer(recipient, amount)."""
    return EntryFunction(
        module_address=parse_address("0x1"),
        module_name="aptos_account",
        function="transfer",
        args=[recipient, encode_u64(amount)],
    )


def signed_transaction(raw: RawTransaction, public_key: bytes, signature: bytes) -> bytes:
    """SignedTransaction = raw || TransactionAuthenticator::Ed25519{pubkey, sig}."""
    if len(public_key) != 32 or len(signature) != 64:
        raise ValueError("Ed25519 authenticator needs a 32-byte key and 64-byte signature")
    ser = Serializer()
    ser.fixed_bytes(raw.serialize())
    ser.uleb128(AUTHENTICATOR_ED25519)
    ser.to_bytes(public_key)
    ser.to_bytes(signature)
    return ser.output()
