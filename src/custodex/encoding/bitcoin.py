"""Bitcoin transaction building and BIP143 witness sighash.

Covers what a P2WPKH spend needs on top of python-bitcoinlib: outpoints,
outputs to any standard address, witness stacks and the per-input
BIP143 digest.
"""

import hashlib

import bitcoin
from bip_utils import SegwitBech32Decoder
from bitcoin import SelectParams
from bitcoin.base58 import Base58Error
from bitcoin.core import (
    CMutableTransaction,
    CMutableTxIn,
    CMutableTxOut,
    COutPoint,
    CTransaction,
    CTxInWitness,
    CTxWitness,
    b2lx,
    lx,
)
from bitcoin.core.script import (
    OP_0,
    OP_CHECKSIG,
    OP_DUP,
    OP_EQUALVERIFY,
    OP_HASH160,
    SIGHASH_ALL,
    SIGVERSION_WITNESS_V0,
    CScript,
    CScriptOp,
    CScriptWitness,
    SignatureHash,
)
from bitcoin.wallet import CBase58BitcoinAddress
from Crypto.Hash import RIPEMD160

TX_VERSION = 2
DEFAULT_SEQUENCE = 0xFFFFFFFF

# python-bitcoinlib parameter sets; signet shares testnet's prefixes
CHAIN_PARAMS = {
    "mainnet": "mainnet",
    "testnet": "testnet",
    "signet": "testnet",
    "regtest": "regtest",
}


def hash160(data: bytes) -> bytes:
    return RIPEMD160.new(hashlib.sha256(data).digest()).digest()


# ======================
# Scripts
# ======================

def p2wpkh_script(pubkey_hash: bytes) -> CScript:
    return CScript([OP_0, pubkey_hash])


def p2wpkh_script_code(pubkey_hash: bytes) -> CScript:
    """BIP143 scriptCode for P2WPKH: the P2PKH script of the key hash."""
    return CScript([OP_DUP, OP_HASH160, pubkey_hash, OP_EQUALVERIFY, OP_CHECKSIG])


def address_to_script(address: str, network: str = "mainnet") -> CScript:
    """scriptPubKey for a bech32/bech32m segwit or base58check address.

    Raises:
        ValueError: If the address is not valid for the network
    """
    if network not in CHAIN_PARAMS:
        raise ValueError(f"unknown network: {network}")
    SelectParams(CHAIN_PARAMS[network])
    hrp = bitcoin.params.BECH32_HRP

    if address.lower().startswith(hrp + "1"):
        # bip_utils decodes bech32m too, so taproot outputs are accepted
        try:
            witness_version, program = SegwitBech32Decoder.Decode(hrp, address)
        except Exception as e:
            raise ValueError(f"invalid segwit address {address!r}: {e}") from e
        return CScript([CScriptOp.encode_op_n(witness_version), bytes(program)])

    try:
        decoded = CBase58BitcoinAddress(address)
    except (Base58Error, ValueError) as e:
        raise ValueError(f"invalid base58 address {address!r}: {e}") from e
    if len(decoded) != 20:
        raise ValueError(f"invalid address payload length: {len(decoded)}")
    return decoded.to_scriptPubKey()


# ======================
# Transaction
# ======================

def make_input(txid: str, vout: int, sequence: int = DEFAULT_SEQUENCE) -> CMutableTxIn:
    """Input spending ``txid:vout``; ``txid`` is in display (big-endian) hex."""
    return CMutableTxIn(COutPoint(lx(txid), vout), nSequence=sequence)


def make_output(value: int, script_pubkey: bytes) -> CMutableTxOut:
    return CMutableTxOut(value, CScript(script_pubkey))


def build_transaction(
    inputs: list[CMutableTxIn],
    outputs: list[CMutableTxOut],
    version: int = TX_VERSION,
    locktime: int = 0,
) -> CMutableTransaction:
    return CMutableTransaction(inputs, outputs, nLockTime=locktime, nVersion=version)


def witness_sighash(
    tx: CMutableTransaction,
    index: int,
    script_code: CScript,
    amount: int,
    sighash_type: int = SIGHASH_ALL,
) -> bytes:
    """BIP143 signature hash for input ``index`` spending ``amount`` sats.

    Only SIGHASH_ALL is supported; every input gets its own digest since
    the previous-output amount is committed per input.
    """
    if sighash_type != SIGHASH_ALL:
        raise ValueError("only SIGHASH_ALL is supported")
    if not 0 <= index < len(tx.vin):
        raise IndexError(f"input index {index} out of range")
    return SignatureHash(
        script_code, tx, index, sighash_type, amount=amount, sigversion=SIGVERSION_WITNESS_V0
    )


def set_witnesses(tx: CMutableTransaction, stacks: list[list[bytes]]) -> None:
    """Attach one witness stack per input."""
    if len(stacks) != len(tx.vin):
        raise ValueError(f"expected {len(tx.vin)} witness stacks, got {len(stacks)}")
    tx.wit = CTxWitness([CTxInWitness(CScriptWitness(stack)) for stack in stacks])


def transaction_id(tx: CTransaction) -> str:
    """Display txid; the witness is not committed."""
    return b2lx(tx.GetTxid())