"""Pytest configuration and fixtures."""

import json
import os
from typing import Callable, Optional

import httpx
import pytest

# Set test environment
os.environ["CUSTODY_APP_ID"] = "test-app"
os.environ["CUSTODY_APP_SECRET"] = "test-secret"
os.environ["TESTNET"] = "false"
os.environ["DEBUG"] = "true"

from custodex.adapters.factory import reset_adapter_cache
from custodex.config import get_settings
from custodex.custody.models import Wallet
from custodex.signing.base import SignatureResult, SignerBackend, SignerType, SigningRequest
from custodex.signing.codec import decode_hex
from custodex.signing.factory import reset_signer

# 64 bytes of a repeating pattern
PATTERN_SIGNATURE = "0x" + "aabb" * 32


class FakeSigner(SignerBackend):
    """In-memory signer: returns a fixed wallet and signs with a callback.

    ``sign_fn`` receives the bytes the oracle would sign (decoded digest or
    data) and returns signature bytes. Without it, ``signature`` is
    returned verbatim. Every request is recorded in ``requests``.
    """

    def __init__(
        self,
        wallet: Wallet,
        sign_fn: Optional[Callable[[bytes], bytes]] = None,
        signature: str = PATTERN_SIGNATURE,
        rpc_result: Optional[dict] = None,
    ):
        super().__init__(SignerType.CUSTODY)
        self.wallet = wallet
        self.sign_fn = sign_fn
        self.signature = signature
        self.rpc_result = rpc_result
        self.requests: list[SigningRequest] = []
        self.rpc_calls: list[dict] = []

    async def sign(self, request: SigningRequest) -> SignatureResult:
        self.requests.append(request)
        if self.sign_fn is None:
            return SignatureResult(signature=self.signature)
        payload = decode_hex(request.message_hash if request.message_hash is not None else request.data)
        return SignatureResult(signature="0x" + self.sign_fn(payload).hex())

    async def get_wallet(self, wallet_id: str) -> Wallet:
        return self.wallet

    async def rpc(self, wallet_id, method, params, caip2=None, chain_type=None) -> dict:
        self.rpc_calls.append(
            {"wallet_id": wallet_id, "method": method, "params": params, "caip2": caip2,
             "chain_type": chain_type}
        )
        return self.rpc_result or {"method": method, "data": {}}


def make_wallet(address: str, public_key: Optional[str], chain_type: str, wallet_id: str = "wallet-1") -> Wallet:
    return Wallet(id=wallet_id, address=address, chain_type=chain_type, public_key=public_key)


class Router:
    """httpx.MockTransport handler dispatching on (method, path suffix).

    Handlers are callables taking the request and returning a response, or
    plain dicts/strings returned as JSON/text with status 200. Requests are
    recorded in ``calls``.
    """

    def __init__(self):
        self.routes: list[tuple[str, str, object]] = []
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, handler) -> "Router":
        self.routes.append((method, path, handler))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        for method, path, handler in self.routes:
            if request.method == method and request.url.path.endswith(path):
                if callable(handler):
                    return handler(request)
                if isinstance(handler, str):
                    return httpx.Response(200, text=handler)
                return httpx.Response(200, json=handler)
        return httpx.Response(404, json={"error": f"no route for {request.method} {request.url.path}"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class JsonRpcRouter:
    """httpx.MockTransport handler for JSON-RPC, dispatching on method name."""

    def __init__(self, results: dict):
        self.results = results
        self.calls: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.calls.append(body)
        result = self.results.get(body["method"])
        if result is None:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"],
                                             "error": {"code": -32601, "message": "Method not found"}})
        if callable(result):
            result = result(body["params"])
        if isinstance(result, dict) and "__error__" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": result["__error__"]})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def methods(self) -> list[str]:
        return [call["method"] for call in self.calls]


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset cached settings, signer and adapters around each test."""
    get_settings.cache_clear()
    reset_signer()
    reset_adapter_cache()
    yield
    get_settings.cache_clear()
    reset_signer()
    reset_adapter_cache()


@pytest.fixture
def ed25519_key():
    """Deterministic Ed25519 test key (PyNaCl)."""
    from nacl.signing import SigningKey

    return SigningKey(bytes(range(32)))


@pytest.fixture
def secp256k1_key():
    """Deterministic secp256k1 test key (ecdsa)."""
    import ecdsa

    return ecdsa.SigningKey.from_string(bytes.fromhex("11" * 32), curve=ecdsa.SECP256k1)


def ed25519_signer(key) -> Callable[[bytes], bytes]:
    return lambda payload: key.sign(payload).signature


def secp256k1_digest_signer(key, recovery_byte: bool = False) -> Callable[[bytes], bytes]:
    """Sign a 32-byte digest as raw R || S (optionally with a trailing recovery byte)."""
    import ecdsa

    def sign(digest: bytes) -> bytes:
        sig = key.sign_digest_deterministic(digest, sigencode=ecdsa.util.sigencode_string_canonize)
        return sig + b"\x01" if recovery_byte else sig

    return sign


def compressed_public_key(key) -> bytes:
    return key.get_verifying_key().to_string("compressed")
