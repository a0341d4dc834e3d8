"""Cosmos SDK protobuf SignDoc and TxRaw construction (SIGN_MODE_DIRECT)."""

from dataclasses import dataclass

from cosmpy.protos.cosmos.bank.v1beta1.tx_pb2 import MsgSend
from cosmpy.protos.cosmos.base.v1beta1.coin_pb2 import Coin
from cosmpy.protos.cosmos.crypto.secp256k1.keys_pb2 import PubKey
from cosmpy.protos.cosmos.tx.signing.v1beta1.signing_pb2 import SignMode
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import (
    AuthInfo,
    Fee,
    ModeInfo,
    SignDoc,
    SignerInfo,
    TxBody,
    TxRaw,
)
from google.protobuf.any_pb2 import Any

MSG_SEND_TYPE_URL = "/cosmos.bank.v1beta1.MsgSend"
SECP256K1_PUBKEY_TYPE_URL = "/cosmos.crypto.secp256k1.PubKey"


@dataclass
class SignDocParts:
    """Marshaled pieces shared by the SignDoc and the final TxRaw."""
    body_bytes: bytes
    auth_info_bytes: bytes
    sign_doc_bytes: bytes


def pack_any(type_url: str, message) -> Any:
    """Wrap a message in Any with a bare ``/`` type URL, as the SDK expects."""
    return Any(type_url=type_url, value=message.SerializeToString())


def build_sign_doc(
    from_address: str,
    to_address: str,
    amount: int,
    denom: str,
    public_key: bytes,
    sequence: int,
    account_number: int,
    chain_id: str,
    gas_limit: int,
    fee_amount: int,
    memo: str = "",
) -> SignDocParts:
    """Marshal TxBody{MsgSend}, AuthInfo and SignDoc."""
    msg = MsgSend(
        from_address=from_address,
        to_address=to_address,
        amount=[Coin(denom=denom, amount=str(amount))],
    )
    body = TxBody(messages=[pack_any(MSG_SEND_TYPE_URL, msg)], memo=memo)
    body_bytes = body.SerializeToString()

    signer_info = SignerInfo(
        public_key=pack_any(SECP256K1_PUBKEY_TYPE_URL, PubKey(key=public_key)),
        mode_info=ModeInfo(single=ModeInfo.Single(mode=SignMode.SIGN_MODE_DIRECT)),
        sequence=sequence,
    )
    auth_info = AuthInfo(
        signer_infos=[signer_info],
        fee=Fee(amount=[Coin(denom=denom, amount=str(fee_amount))], gas_limit=gas_limit),
    )
    auth_info_bytes = auth_info.SerializeToString()

    sign_doc = SignDoc(
        body_bytes=body_bytes,
        auth_info_bytes=auth_info_bytes,
        chain_id=chain_id,
        account_number=account_number,
    )
    return SignDocParts(
        body_bytes=body_bytes,
        auth_info_bytes=auth_info_bytes,
        sign_doc_bytes=sign_doc.SerializeToString(),
    )


def build_tx_raw(parts: SignDocParts, signature: bytes) -> bytes:
    """Marshal TxRaw{body, auth info, [signature]}."""
    tx_raw = TxRaw(
        body_bytes=parts.body_bytes,
        auth_info_bytes=parts.auth_info_bytes,
        signatures=[signature],
    )
    return tx_raw.SerializeToString()
