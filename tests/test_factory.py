"""Tests for the signer and adapter factories."""

import pytest

from conftest import PATTERN_SIGNATURE, FakeSigner, make_wallet
from custodex.adapters import build_options, get_transfer_adapter, reset_adapter_cache
from custodex.adapters.btc import BitcoinAdapter
from custodex.adapters.eth import EthereumAdapter
from custodex.adapters.options import (
    BitcoinOptions,
    NearOptions,
    SolanaOptions,
    TonOptions,
    TronOptions,
)
from custodex.adapters.trx import TronAdapter
from custodex.chains import AMOUNT_UNITS, SOLANA_DEVNET_CAIP2, ChainType, parse_chain_type
from custodex.config import Settings, get_settings
from custodex.custody.client import CustodyAPIError
from custodex.errors import SigningError, WalletNotFoundError
from custodex.signing import get_signer, reset_signer, set_signer
from custodex.signing.custody import CustodySigner


def fake_signer() -> FakeSigner:
    return FakeSigner(make_wallet("addr", None, "ethereum"))


class TestChainTypes:
    """Tests for chain type parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("btc", ChainType.BITCOIN_SEGWIT),
        ("Bitcoin", ChainType.BITCOIN_SEGWIT),
        ("bitcoin-segwit", ChainType.BITCOIN_SEGWIT),
        (" sol ", ChainType.SOLANA),
        ("trx", ChainType.TRON),
        ("starknet", ChainType.STARKNET),
    ])
    def test_aliases(self, value, expected):
        """Test canonical names and aliases resolve."""
        assert parse_chain_type(value) == expected

    def test_unknown(self):
        """Test unknown names resolve to None."""
        assert parse_chain_type("dogecoin") is None

    def test_every_chain_has_units_and_options(self):
        """Test each chain type has an amount unit and network defaults."""
        for chain in ChainType:
            assert chain in AMOUNT_UNITS
            assert build_options(chain).chain == chain


class TestSignerFactory:
    """Tests for the signer singleton."""

    def test_custody_signer_from_settings(self):
        """Test credentials in the environment produce a custody signer."""
        signer = get_signer()

        assert isinstance(signer, CustodySigner)
        assert signer.client.app_id == "test-app"
        assert get_signer() is signer

    def test_missing_credentials(self, monkeypatch):
        """Test a RuntimeError when credentials are not configured."""
        monkeypatch.setenv("CUSTODY_APP_ID", "")
        get_settings.cache_clear()

        with pytest.raises(RuntimeError):
            get_signer()

    def test_set_and_reset(self):
        """Test an installed signer is returned until reset."""
        signer = fake_signer()
        set_signer(signer)
        assert get_signer() is signer

        reset_signer()
        assert get_signer() is not signer


class TestBuildOptions:
    """Tests for options built from settings."""

    def test_mainnet_defaults(self):
        """Test mainnet endpoints when testnet is off."""
        options = build_options(ChainType.NEAR, Settings(testnet=False))

        assert isinstance(options, NearOptions)
        assert options.rpc_url == "https://rpc.mainnet.near.org"
        assert options.testnet is False

    def test_testnet_defaults(self):
        """Test the testnet switch selects testnet endpoints and identifiers."""
        settings = Settings(testnet=True)

        bitcoin = build_options(ChainType.BITCOIN_SEGWIT, settings)
        solana = build_options(ChainType.SOLANA, settings)

        assert isinstance(bitcoin, BitcoinOptions)
        assert bitcoin.network == "testnet"
        assert bitcoin.explorer_url == "https://blockstream.info/testnet/api"
        assert bitcoin.spend_unconfirmed is True
        assert isinstance(solana, SolanaOptions)
        assert solana.caip2 == SOLANA_DEVNET_CAIP2

    def test_overrides_win(self):
        """Test endpoint and parameter overrides replace defaults."""
        settings = Settings(
            btc_explorer_url="https://esplora.example/api",
            btc_fee_rate=3,
            btc_max_parallel_signatures=5,
            btc_spend_unconfirmed=False,
            tron_api_key="key",
        )

        bitcoin = build_options(ChainType.BITCOIN_SEGWIT, settings)
        tron = build_options(ChainType.TRON, settings)

        assert bitcoin.explorer_url == "https://esplora.example/api"
        assert bitcoin.fee_rate == 3
        assert bitcoin.max_parallel_signatures == 5
        assert bitcoin.spend_unconfirmed is False
        assert isinstance(tron, TronOptions)
        assert tron.api_key == "key"

    def test_empty_api_key_is_none(self):
        """Test an unset API key leaves the option empty."""
        options = build_options(ChainType.TON, Settings(ton_api_key=""))

        assert isinstance(options, TonOptions)
        assert options.api_key is None

    def test_ethereum_chain_id_override(self):
        """Test the EVM chain id can be overridden."""
        options = build_options(ChainType.ETHEREUM, Settings(ethereum_chain_id=8453))
        assert options.chain_id == 8453


class TestAdapterFactory:
    """Tests for get_transfer_adapter."""

    def test_alias_resolves(self):
        """Test aliases produce the right adapter class."""
        adapter = get_transfer_adapter("btc", signer=fake_signer())
        assert isinstance(adapter, BitcoinAdapter)
        assert isinstance(get_transfer_adapter(ChainType.TRON, signer=fake_signer()), TronAdapter)

    def test_every_chain_builds(self):
        """Test an adapter exists for every chain type."""
        for chain in ChainType:
            adapter = get_transfer_adapter(chain, signer=fake_signer())
            assert adapter.name == chain.value.split("-")[0]

    def test_unknown_chain(self):
        """Test unsupported chains raise ValueError."""
        with pytest.raises(ValueError):
            get_transfer_adapter("dogecoin", signer=fake_signer())

    def test_global_adapters_cached(self):
        """Test adapters built from global configuration are cached per chain."""
        adapter = get_transfer_adapter("eth")

        assert isinstance(adapter, EthereumAdapter)
        assert get_transfer_adapter("ethereum") is adapter

        reset_adapter_cache()
        assert get_transfer_adapter("ethereum") is not adapter

    def test_explicit_signer_not_cached(self):
        """Test adapters with an explicit signer are built fresh."""
        signer = fake_signer()
        first = get_transfer_adapter("near", signer=signer)

        assert first.signer is signer
        assert get_transfer_adapter("near", signer=signer) is not first

    def test_settings_testnet(self):
        """Test explicit settings select the network."""
        adapter = get_transfer_adapter("sol", signer=fake_signer(), settings=Settings(testnet=True))

        assert adapter.testnet is True
        assert adapter.options.rpc_url == "https://api.devnet.solana.com"


class FailingSigner(FakeSigner):
    """Signer whose custody calls fail with an API error."""

    async def get_wallet(self, wallet_id):
        raise CustodyAPIError(404, "wallet not found", code="not_found")

    async def sign(self, request):
        raise CustodyAPIError(403, "policy denied", code="policy_violation")


class TestAdapterSignerCalls:
    """Tests for the raw-sign passthroughs and custody error mapping."""

    @pytest.mark.asyncio
    async def test_raw_sign_passthrough(self):
        """Test raw_sign forwards the digest unchanged."""
        signer = fake_signer()
        adapter = get_transfer_adapter("sui", signer=signer)

        result = await adapter.raw_sign("wallet-1", "0x" + "ab" * 32)

        assert result.signature == PATTERN_SIGNATURE
        request = signer.requests[0]
        assert (request.chain, request.wallet_id, request.message_hash) == ("sui", "wallet-1", "0x" + "ab" * 32)

    @pytest.mark.asyncio
    async def test_raw_sign_bytes_passthrough(self):
        """Test raw_sign_bytes forwards data, encoding and hash function."""
        signer = fake_signer()
        adapter = get_transfer_adapter("aptos", signer=signer)

        await adapter.raw_sign_bytes("wallet-1", "68656c6c6f", "hex", "sha256")

        request = signer.requests[0]
        assert request.message_hash is None
        assert (request.data, request.encoding, request.hash_function) == ("68656c6c6f", "hex", "sha256")

    @pytest.mark.asyncio
    async def test_wallet_lookup_failure(self):
        """Test a custody lookup failure becomes WalletNotFoundError."""
        adapter = get_transfer_adapter("near", signer=FailingSigner(make_wallet("a.near", None, "near")))

        with pytest.raises(WalletNotFoundError) as exc:
            await adapter.transfer("wallet-1", "bob.near", 1)
        assert str(exc.value) == "near: get wallet: wallet not found"

    @pytest.mark.asyncio
    async def test_sign_failure(self):
        """Test a custody signing failure becomes SigningError."""
        adapter = get_transfer_adapter("ton", signer=FailingSigner(make_wallet("EQa", None, "ton")))

        with pytest.raises(SigningError) as exc:
            await adapter.raw_sign("wallet-1", "0x00")
        assert exc.value.step == "sign transaction"
