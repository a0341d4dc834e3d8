"""Simplified TON wallet message encoding.

Fixed-width big-endian fields of a v4r2-style external message body:

    wallet_id:u32 | valid_until:u32 | seqno:u32 | op:u8 | send_mode:u8 | internal message

The internal message is the destination address bytes followed by the
amount as u64. This is not a full cell/BOC serialization.
"""

import struct

DEFAULT_WALLET_ID = 698983191
SIMPLE_TRANSFER_OP = 0
PAY_FEES_SEPARATELY = 3


def build_internal_message(destination: str, amount: int) -> bytes:
    """Destination address bytes followed by the nanoton amount (u64 BE)."""
    return destination.encode("utf-8") + struct.pack(">Q", amount)


def build_signing_message(
    wallet_id: int,
    seqno: int,
    valid_until: int,
    internal_message: bytes,
    op: int = SIMPLE_TRANSFER_OP,
    send_mode: int = PAY_FEES_SEPARATELY,
) -> bytes:
    header = struct.pack(
        ">IIIBB",
        wallet_id & 0xFFFFFFFF,
        valid_until & 0xFFFFFFFF,
        seqno & 0xFFFFFFFF,
        op,
        send_mode,
    )
    return header + internal_message


def build_external_body(signature: bytes, signing_message: bytes) -> bytes:
    """External message body: signature || signing message."""
    return signature + signing_message
