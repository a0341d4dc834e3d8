"""DER encoding of ECDSA (r, s) signatures for Bitcoin script.

    SEQUENCE  0x30 <len>
      INTEGER 0x02 <len> <r>
      INTEGER 0x02 <len> <s>

Encoding and parsing go through python-ecdsa, which emits minimal
non-negative INTEGERs and rejects negative or zero-padded ones.
"""

from typing import Union

from ecdsa import SECP256k1
from ecdsa.der import UnexpectedDER
from ecdsa.util import sigdecode_der, sigencode_der


class DERError(ValueError):
    """Malformed DER signature."""
    pass


def _as_int(value: Union[bytes, int]) -> int:
    if isinstance(value, int):
        return value
    return int.from_bytes(value, "big")


def encode_der_signature(r: Union[bytes, int], s: Union[bytes, int]) -> bytes:
    """DER-encode an (r, s) pair given as big-endian bytes or ints."""
    r, s = _as_int(r), _as_int(s)
    if r < 0 or s < 0:
        raise DERError("signature components must be non-negative")
    return sigencode_der(r, s, SECP256k1.order)


def decode_der_signature(der: bytes) -> tuple[int, int]:
    """Decode a DER signature (without sighash byte) into (r, s)."""
    try:
        return sigdecode_der(der, SECP256k1.order)
    except UnexpectedDER as e:
        raise DERError(str(e)) from e
