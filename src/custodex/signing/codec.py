"""Signature codec.

Normalizes raw oracle output into the exact shape each chain envelope
expects. Functions raise SignatureFormatError; adapters wrap it into
SigningError with the chain and step attached.
"""

import logging

from ecdsa import SECP256k1, VerifyingKey
from ecdsa.errors import MalformedPointError

from custodex.encoding.der import encode_der_signature

logger = logging.getLogger(__name__)

ED25519_SIGNATURE_SIZE = 64
SECP256K1_SIGNATURE_SIZE = 64
SECP256K1_RECOVERABLE_SIZE = 65

SIGHASH_ALL = 0x01

# Sui signature scheme flags
SUI_ED25519_FLAG = 0x00


class SignatureFormatError(ValueError):
    """Oracle output cannot be turned into a chain signature."""
    pass


def strip_hex_prefix(value: str) -> str:
    return value[2:] if value[:2] in ("0x", "0X") else value


def decode_hex(value: str) -> bytes:
    """Decode hex with an optional 0x prefix."""
    try:
        return bytes.fromhex(strip_hex_prefix(value.strip()))
    except ValueError as e:
        raise SignatureFormatError(f"invalid hex: {e}") from e


def to_hex_digest(digest: bytes) -> str:
    """Format a digest the way the oracle expects it (0x-prefixed lowercase hex)."""
    return "0x" + digest.hex()


# ======================
# Ed25519
# ======================

def normalize_ed25519(signature: bytes) -> bytes:
    """Return exactly 64 signature bytes.

    Short signatures are zero-padded on the right. A single trailing byte
    (65-byte output) is dropped; anything longer is rejected.
    """
    if not signature:
        raise SignatureFormatError("empty signature")
    if len(signature) < ED25519_SIGNATURE_SIZE:
        logger.warning(f"Short Ed25519 signature ({len(signature)} bytes), zero-padding to 64")
        return signature.ljust(ED25519_SIGNATURE_SIZE, b"\x00")
    if len(signature) == ED25519_SIGNATURE_SIZE + 1:
        return signature[:ED25519_SIGNATURE_SIZE]
    if len(signature) > ED25519_SIGNATURE_SIZE:
        raise SignatureFormatError(f"Ed25519 signature too long: {len(signature)} bytes")
    return signature


def ed25519_public_key(public_key: bytes) -> bytes:
    """Strip a 1-byte scheme prefix (0x00) from a 33-byte Ed25519 public key."""
    if len(public_key) == 33 and public_key[0] == 0x00:
        return public_key[1:]
    if len(public_key) != 32:
        raise SignatureFormatError(f"expected 32-byte Ed25519 public key, got {len(public_key)} bytes")
    return public_key


def sui_serialized_signature(signature: bytes, public_key: bytes) -> bytes:
    """Sui signature: flag(1) || signature(64) || public key(32)."""
    return bytes([SUI_ED25519_FLAG]) + normalize_ed25519(signature) + ed25519_public_key(public_key)


# ======================
# secp256k1
# ======================

def normalize_secp256k1(signature: bytes) -> bytes:
    """Return the 64-byte R || S, dropping a 65th recovery byte if present."""
    if len(signature) == SECP256K1_RECOVERABLE_SIZE:
        return signature[:SECP256K1_SIGNATURE_SIZE]
    if len(signature) != SECP256K1_SIGNATURE_SIZE:
        raise SignatureFormatError(
            f"expected 64 or 65-byte secp256k1 signature, got {len(signature)} bytes"
        )
    return signature


def recoverable_secp256k1(signature: bytes) -> bytes:
    """Return the 65-byte R || S || V; the recovery byte is required."""
    if len(signature) == SECP256K1_SIGNATURE_SIZE:
        raise SignatureFormatError("64-byte signature is missing the recovery byte")
    if len(signature) != SECP256K1_RECOVERABLE_SIZE:
        raise SignatureFormatError(
            f"expected 65-byte recoverable secp256k1 signature, got {len(signature)} bytes"
        )
    return signature


def split_rs(signature: bytes) -> tuple[bytes, bytes]:
    """Split a 64-byte signature into 32-byte R and S."""
    sig = normalize_secp256k1(signature)
    return sig[:32], sig[32:]


def bitcoin_witness_signature(signature: bytes, sighash_type: int = SIGHASH_ALL) -> bytes:
    """DER-encode R || S and append the sighash type byte."""
    if len(signature) < SECP256K1_SIGNATURE_SIZE:
        raise SignatureFormatError(f"signature too short for DER: {len(signature)} bytes")
    r, s = split_rs(signature[:SECP256K1_SIGNATURE_SIZE])
    return encode_der_signature(r, s) + bytes([sighash_type])


def compress_secp256k1_public_key(public_key: bytes) -> bytes:
    """Return the 33-byte compressed form of a secp256k1 public key.

    Accepts compressed, uncompressed (0x04 prefix) or raw 64-byte x || y
    encodings; the point must lie on the curve.
    """
    try:
        key = VerifyingKey.from_string(public_key, curve=SECP256k1)
    except (MalformedPointError, ValueError) as e:
        raise SignatureFormatError(
            f"unrecognized secp256k1 public key ({len(public_key)} bytes): {e}"
        ) from e
    return key.to_string("compressed")


# ======================
# StarkNet
# ======================

def starknet_signature_pair(signature_hex: str, strict: bool = False) -> tuple[str, str]:
    """Split a concatenated hex signature into 0x-prefixed (r, s) felts.

    Output shorter than 128 hex characters is left-padded with zeros and
    logged; with ``strict`` it is rejected instead. A 130-character value
    (trailing recovery byte) is truncated to 128.
    """
    sig = strip_hex_prefix(signature_hex.strip()).lower()
    try:
        int(sig, 16)
    except ValueError as e:
        raise SignatureFormatError(f"invalid hex signature: {e}") from e

    if len(sig) == 130:
        sig = sig[:128]
    elif len(sig) > 128:
        raise SignatureFormatError(f"StarkNet signature too long: {len(sig)} hex chars")
    elif len(sig) < 128:
        if strict:
            raise SignatureFormatError(f"StarkNet signature too short: {len(sig)} hex chars")
        logger.warning(f"Short StarkNet signature ({len(sig)} hex chars), left-padding to 128")
        sig = sig.rjust(128, "0")

    return "0x" + sig[:64], "0x" + sig[64:]
