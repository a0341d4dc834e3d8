"""Tests for the Cosmos, Tron and Ethereum adapters."""

import base64
import hashlib
import json

import base58
import ecdsa
import httpx
import pytest
from bip_utils import Bech32Encoder
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import SignDoc, TxRaw

from conftest import (
    PATTERN_SIGNATURE,
    FakeSigner,
    Router,
    compressed_public_key,
    make_wallet,
    secp256k1_digest_signer,
)
from custodex.adapters.cosmos import CosmosAdapter, address_prefix
from custodex.adapters.eth import EthereumAdapter
from custodex.adapters.options import CosmosOptions, EthereumOptions, TronOptions
from custodex.adapters.trx import TronAdapter, decode_tron_message, is_valid_tron_address
from custodex.custody.client import CustodyAPIError
from custodex.encoding.bitcoin import hash160
from custodex.errors import (
    BroadcastError,
    InvalidAddressError,
    InvalidAmountError,
    NotImplementedOperationError,
    RPCError,
    SigningError,
)


# ======================
# Cosmos
# ======================

COSMOS_DESTINATION = Bech32Encoder.Encode("cosmos", bytes([5] * 20))


def cosmos_wallet(key):
    pubkey = compressed_public_key(key)
    address = Bech32Encoder.Encode("cosmos", hash160(pubkey))
    # custody reports the uncompressed key
    uncompressed = key.get_verifying_key().to_string("uncompressed")
    return make_wallet(address, "0x" + uncompressed.hex(), "cosmos")


def cosmos_node(address: str, account=None, broadcast=None) -> Router:
    router = Router()
    router.add("GET", f"/cosmos/auth/v1beta1/accounts/{address}", account or {
        "account": {
            "@type": "/cosmos.auth.v1beta1.BaseAccount",
            "address": address,
            "account_number": "42",
            "sequence": "3",
        }
    })
    router.add("POST", "/cosmos/tx/v1beta1/txs", broadcast or {
        "tx_response": {"code": 0, "txhash": "COSMOSHASH", "raw_log": "[]"}
    })
    return router


def cosmos_adapter(signer, router) -> CosmosAdapter:
    return CosmosAdapter(signer, CosmosOptions.for_network(False), transport=router.transport())


class TestCosmosAdapter:
    """Tests for Cosmos bank transfers."""

    @pytest.mark.asyncio
    async def test_transfer(self, secp256k1_key):
        """Test the SignDoc digest is signed and TxRaw carries a verifying signature."""
        wallet = cosmos_wallet(secp256k1_key)
        signer = FakeSigner(wallet, sign_fn=secp256k1_digest_signer(secp256k1_key, recovery_byte=True))
        router = cosmos_node(wallet.address)

        tx_hash = await cosmos_adapter(signer, router).transfer("wallet-1", COSMOS_DESTINATION, "1000000")

        assert tx_hash == "COSMOSHASH"
        body = json.loads(router.calls[-1].content)
        assert body["mode"] == "BROADCAST_MODE_SYNC"

        tx_raw = TxRaw.FromString(base64.b64decode(body["tx_bytes"]))
        sign_doc = SignDoc(
            body_bytes=tx_raw.body_bytes,
            auth_info_bytes=tx_raw.auth_info_bytes,
            chain_id="cosmoshub-4",
            account_number=42,
        )
        digest = hashlib.sha256(sign_doc.SerializeToString()).digest()
        assert signer.requests[0].message_hash == "0x" + digest.hex()

        signature = tx_raw.signatures[0]
        assert len(signature) == 64
        secp256k1_key.get_verifying_key().verify_digest(
            signature, digest, sigdecode=ecdsa.util.sigdecode_string
        )

    @pytest.mark.asyncio
    async def test_nested_base_account(self, secp256k1_key):
        """Test account fields nested under base_account are read."""
        wallet = cosmos_wallet(secp256k1_key)
        router = cosmos_node(wallet.address, account={
            "account": {
                "@type": "/cosmos.auth.v1beta1.ModuleAccount",
                "base_account": {"address": wallet.address, "account_number": "7", "sequence": "9"},
            }
        })

        async with httpx.AsyncClient(transport=router.transport()) as client:
            assert await cosmos_adapter(FakeSigner(wallet), router).get_account(client, wallet.address) == (7, 9)

    @pytest.mark.asyncio
    async def test_nonzero_code_is_broadcast_error(self, secp256k1_key):
        """Test a chain rejection (code != 0) is a BroadcastError with raw_log."""
        wallet = cosmos_wallet(secp256k1_key)
        router = cosmos_node(wallet.address, broadcast={
            "tx_response": {"code": 32, "txhash": "X", "raw_log": "account sequence mismatch"}
        })

        with pytest.raises(BroadcastError) as exc:
            await cosmos_adapter(FakeSigner(wallet), router).transfer("wallet-1", COSMOS_DESTINATION, 1)

        assert exc.value.code == 32
        assert "account sequence mismatch" in exc.value.message
        assert exc.value.signed_payload == json.loads(router.calls[-1].content)["tx_bytes"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("destination", [
        COSMOS_DESTINATION[:-1] + ("q" if COSMOS_DESTINATION[-1] != "q" else "p"),
        Bech32Encoder.Encode("osmo", bytes([5] * 20)),
    ])
    async def test_invalid_destination(self, secp256k1_key, destination):
        """Test bad checksums and foreign prefixes are rejected before any lookup."""
        wallet = cosmos_wallet(secp256k1_key)
        router = cosmos_node(wallet.address)

        with pytest.raises(InvalidAddressError):
            await cosmos_adapter(FakeSigner(wallet), router).transfer("wallet-1", destination, 1)
        assert router.calls == []

    @pytest.mark.asyncio
    async def test_malformed_signature(self, secp256k1_key):
        """Test a 63-byte signature is a SigningError and nothing is broadcast."""
        wallet = cosmos_wallet(secp256k1_key)
        router = cosmos_node(wallet.address)

        with pytest.raises(SigningError):
            await cosmos_adapter(FakeSigner(wallet, signature="0x" + "11" * 63), router).transfer(
                "wallet-1", COSMOS_DESTINATION, 1
            )
        assert all(call.method == "GET" for call in router.calls)

    @pytest.mark.asyncio
    async def test_account_not_an_object(self, secp256k1_key):
        """Test a JSON array from the account query is an RPCError."""
        wallet = cosmos_wallet(secp256k1_key)
        router = cosmos_node(wallet.address, account=[{"account_number": "42"}])
        signer = FakeSigner(wallet)

        with pytest.raises(RPCError) as exc:
            await cosmos_adapter(signer, router).transfer("wallet-1", COSMOS_DESTINATION, 1)
        assert exc.value.step == "get account"
        assert signer.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["accepted", ["tx_response"], {"tx_response": ["COSMOSHASH"]}])
    async def test_broadcast_body_not_an_object(self, secp256k1_key, body):
        """Test unexpected broadcast bodies are BroadcastErrors carrying the tx bytes."""
        wallet = cosmos_wallet(secp256k1_key)
        router = cosmos_node(wallet.address, broadcast=lambda request: httpx.Response(200, json=body))

        with pytest.raises(BroadcastError) as exc:
            await cosmos_adapter(FakeSigner(wallet), router).transfer("wallet-1", COSMOS_DESTINATION, 1)
        assert exc.value.signed_payload == json.loads(router.calls[-1].content)["tx_bytes"]

    @pytest.mark.asyncio
    async def test_staking_not_implemented(self, secp256k1_key):
        """Test delegate and undelegate raise an explicit not-implemented error."""
        adapter = cosmos_adapter(FakeSigner(cosmos_wallet(secp256k1_key)), Router())
        with pytest.raises(NotImplementedOperationError):
            await adapter.delegate("wallet-1", "cosmosvaloper1xyz", 1)
        with pytest.raises(NotImplementedOperationError):
            await adapter.undelegate("wallet-1", "cosmosvaloper1xyz", 1)

    def test_address_prefix(self):
        """Test the human-readable part is taken before the last separator."""
        assert address_prefix(COSMOS_DESTINATION) == "cosmos"
        assert address_prefix("nothing") == ""


# ======================
# Tron
# ======================

TRON_OWNER = base58.b58encode_check(b"\x41" + bytes([1] * 20)).decode()
TRON_DESTINATION = base58.b58encode_check(b"\x41" + bytes([2] * 20)).decode()
RAW_DATA_HEX = "0a02a1b22208c3d4e5f601020340" + "5a67" + "08011263"
TX_ID = hashlib.sha256(bytes.fromhex(RAW_DATA_HEX)).hexdigest()
# r || s || v
TRON_SIGNATURE = PATTERN_SIGNATURE + "1b"


def tron_node(created=None, broadcast=None) -> Router:
    router = Router()
    router.add("POST", "/wallet/createtransaction", created or {
        "visible": True,
        "txID": TX_ID,
        "raw_data": {"contract": [{"type": "TransferContract"}]},
        "raw_data_hex": RAW_DATA_HEX,
    })
    router.add("POST", "/wallet/broadcasttransaction", broadcast or {"result": True, "txid": TX_ID})
    return router


def tron_adapter(signer, router, **options) -> TronAdapter:
    return TronAdapter(signer, TronOptions.for_network(False, **options), transport=router.transport())


def tron_signer(**kwargs) -> FakeSigner:
    kwargs.setdefault("signature", TRON_SIGNATURE)
    return FakeSigner(make_wallet(TRON_OWNER, None, "tron"), **kwargs)


class TestTronAdapter:
    """Tests for Tron transfers."""

    @pytest.mark.asyncio
    async def test_transfer(self):
        """Test txID is signed and the signature list is attached for broadcast."""
        signer = tron_signer()
        router = tron_node()

        tx_id = await tron_adapter(signer, router, api_key="trongrid-key").transfer(
            "wallet-1", TRON_DESTINATION, 1_000_000
        )

        assert tx_id == TX_ID
        assert signer.requests[0].message_hash == "0x" + TX_ID

        create = json.loads(router.calls[0].content)
        assert create == {"owner_address": TRON_OWNER, "to_address": TRON_DESTINATION,
                          "amount": 1_000_000, "visible": True}

        broadcast = json.loads(router.calls[1].content)
        assert broadcast["txID"] == TX_ID
        assert broadcast["signature"] == [TRON_SIGNATURE[2:]]
        assert all(call.headers["TRON-PRO-API-KEY"] == "trongrid-key" for call in router.calls)

    @pytest.mark.asyncio
    async def test_lowercase_txid_accepted(self):
        """Test a node reply spelling the id as ``txid`` is normalized."""
        signer = tron_signer()
        router = tron_node(created={"txid": TX_ID, "raw_data": {}, "raw_data_hex": RAW_DATA_HEX})

        assert await tron_adapter(signer, router).transfer("wallet-1", TRON_DESTINATION, 1) == TX_ID
        assert "txid" not in json.loads(router.calls[1].content)

    @pytest.mark.asyncio
    async def test_txid_mismatch_not_signed(self):
        """Test a txID that is not sha256(raw_data_hex) is refused before signing."""
        signer = tron_signer()
        router = tron_node(created={"txID": "00" * 32, "raw_data": {}, "raw_data_hex": RAW_DATA_HEX})

        with pytest.raises(RPCError):
            await tron_adapter(signer, router).transfer("wallet-1", TRON_DESTINATION, 1)
        assert signer.requests == []

    @pytest.mark.asyncio
    async def test_node_error(self):
        """Test an ``Error`` member from createtransaction is an RPCError."""
        router = tron_node(created={"Error": "class org.tron.core.exception.ContractValidateException : "
                                             "Validate TransferContract error, no OwnerAccount."})
        with pytest.raises(RPCError) as exc:
            await tron_adapter(tron_signer(), router).transfer(
                "wallet-1", TRON_DESTINATION, 1
            )
        assert "no OwnerAccount" in exc.value.message

    @pytest.mark.asyncio
    async def test_broadcast_rejected(self):
        """Test hex-encoded broadcast messages are decoded into the error."""
        router = tron_node(broadcast={
            "result": False,
            "code": "SIGERROR",
            "message": b"validate signature error".hex(),
        })

        with pytest.raises(BroadcastError) as exc:
            await tron_adapter(tron_signer(), router).transfer(
                "wallet-1", TRON_DESTINATION, 1
            )

        assert exc.value.code == "SIGERROR"
        assert exc.value.message == "validate signature error"
        assert exc.value.signed_payload["signature"] == [TRON_SIGNATURE[2:]]

    @pytest.mark.asyncio
    async def test_broadcast_body_not_an_object(self):
        """Test a JSON array from broadcasttransaction is a BroadcastError with the signed tx."""
        router = tron_node(broadcast=lambda request: httpx.Response(200, json=[{"result": True}]))

        with pytest.raises(BroadcastError) as exc:
            await tron_adapter(tron_signer(), router).transfer("wallet-1", TRON_DESTINATION, 1)
        assert exc.value.signed_payload["signature"] == [TRON_SIGNATURE[2:]]

    @pytest.mark.asyncio
    async def test_create_body_not_an_object(self):
        """Test a JSON array from createtransaction is an RPCError and nothing is signed."""
        signer = tron_signer()
        router = tron_node(created=lambda request: httpx.Response(200, json=[TX_ID]))

        with pytest.raises(RPCError):
            await tron_adapter(signer, router).transfer("wallet-1", TRON_DESTINATION, 1)
        assert signer.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("signature", ["0x" + "ab" * 40, "0x" + "ab" * 66, "0x" + "zz" * 65])
    async def test_signature_length_checked(self, signature):
        """Test a signature that is not 65 hex-encoded bytes is a SigningError."""
        router = tron_node()

        with pytest.raises(SigningError):
            await tron_adapter(tron_signer(signature=signature), router).transfer("wallet-1", TRON_DESTINATION, 1)
        assert len(router.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_recovery_byte(self):
        """Test a 64-byte R || S is refused: the node recovers the signer from v."""
        router = tron_node()

        with pytest.raises(SigningError) as exc:
            await tron_adapter(tron_signer(signature=PATTERN_SIGNATURE), router).transfer(
                "wallet-1", TRON_DESTINATION, 1
            )

        assert "recovery byte" in exc.value.message
        assert [call.url.path for call in router.calls] == ["/wallet/createtransaction"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, 1 << 63, "1e6"])
    async def test_invalid_amount(self, amount):
        """Test amounts must be positive int64 values."""
        with pytest.raises(InvalidAmountError):
            await tron_adapter(tron_signer(), tron_node()).transfer(
                "wallet-1", TRON_DESTINATION, amount
            )

    def test_address_validation(self):
        """Test base58check, length and 0x41 prefix checks."""
        assert is_valid_tron_address(TRON_DESTINATION)
        assert not is_valid_tron_address(base58.b58encode_check(b"\x00" + bytes(20)).decode())
        assert not is_valid_tron_address(TRON_DESTINATION[:-1] + "x")
        assert not is_valid_tron_address("0x" + "41" * 21)

    def test_decode_message(self):
        """Test hex messages are decoded and plain ones pass through."""
        assert decode_tron_message("6f6b") == "ok"
        assert decode_tron_message("already text") == "already text"

    @pytest.mark.asyncio
    async def test_trc20_not_implemented(self):
        """Test TRC20 transfers raise an explicit not-implemented error."""
        adapter = tron_adapter(tron_signer(), tron_node())
        with pytest.raises(NotImplementedOperationError):
            await adapter.transfer_trc20("wallet-1", TRON_DESTINATION, TRON_DESTINATION, 1)


# ======================
# Ethereum
# ======================

ETH_DESTINATION = "0x" + "ab" * 20


class FailingRpcSigner(FakeSigner):
    """Signer whose custody RPC call fails with an API error."""

    async def rpc(self, wallet_id, method, params, caip2=None, chain_type=None) -> dict:
        raise CustodyAPIError(400, "insufficient funds for gas", code="insufficient_funds")


def eth_adapter(signer, testnet=False, **options) -> EthereumAdapter:
    return EthereumAdapter(signer, EthereumOptions.for_network(testnet, **options))


def eth_signer() -> FakeSigner:
    return FakeSigner(
        make_wallet("0x" + "cd" * 20, None, "ethereum"),
        rpc_result={"method": "eth_sendTransaction", "data": {"hash": "0xethhash"}},
    )


class TestEthereumAdapter:
    """Tests for custody-side ETH transfers."""

    @pytest.mark.asyncio
    async def test_transfer(self):
        """Test the RPC request carries hex value, chain id and CAIP-2 id."""
        signer = eth_signer()

        tx_hash = await eth_adapter(signer).transfer("wallet-1", ETH_DESTINATION, 10**18)

        assert tx_hash == "0xethhash"
        assert signer.rpc_calls == [{
            "wallet_id": "wallet-1",
            "method": "eth_sendTransaction",
            "params": {"transaction": {"to": ETH_DESTINATION, "value": "0xde0b6b3a7640000", "chain_id": 1}},
            "caip2": "eip155:1",
            "chain_type": "ethereum",
        }]
        assert signer.requests == []

    @pytest.mark.asyncio
    async def test_sepolia_and_sponsor(self):
        """Test testnet switches to Sepolia and sponsor is forwarded."""
        signer = eth_signer()
        adapter = eth_adapter(signer, testnet=True, sponsor=True)

        assert adapter.caip2 == "eip155:11155111"
        await adapter.transfer("wallet-1", ETH_DESTINATION, 1)

        params = signer.rpc_calls[0]["params"]
        assert params["sponsor"] is True
        assert params["transaction"]["chain_id"] == 11155111

    @pytest.mark.asyncio
    @pytest.mark.parametrize("destination", ["0x1234", "ab" * 20, "0x" + "zz" * 20])
    async def test_invalid_destination(self, destination):
        """Test malformed addresses never reach the custody API."""
        signer = eth_signer()
        with pytest.raises(InvalidAddressError):
            await eth_adapter(signer).transfer("wallet-1", destination, 1)
        assert signer.rpc_calls == []

    @pytest.mark.asyncio
    async def test_custody_error(self):
        """Test a custody API failure is a BroadcastError with the API code."""
        signer = FailingRpcSigner(make_wallet("0x" + "cd" * 20, None, "ethereum"))

        with pytest.raises(BroadcastError) as exc:
            await eth_adapter(signer).transfer("wallet-1", ETH_DESTINATION, 1)

        assert exc.value.code == "insufficient_funds"
        assert exc.value.step == "custody rpc eth_sendTransaction"

    @pytest.mark.asyncio
    async def test_missing_hash(self):
        """Test a response without a hash is a BroadcastError."""
        signer = FakeSigner(make_wallet("0x" + "cd" * 20, None, "ethereum"))
        with pytest.raises(BroadcastError):
            await eth_adapter(signer).transfer("wallet-1", ETH_DESTINATION, 1)

    @pytest.mark.asyncio
    async def test_erc20_not_implemented(self):
        """Test ERC20 transfers raise an explicit not-implemented error."""
        with pytest.raises(NotImplementedOperationError):
            await eth_adapter(eth_signer()).transfer_erc20("wallet-1", ETH_DESTINATION, ETH_DESTINATION, 1)
