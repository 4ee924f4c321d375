"""Tests for configuration loading and validation"""

import json

import base58
import pytest
from solders.keypair import Keypair

from netbuy.config import (
    JITO_ENDPOINTS,
    PumpSession,
    RelayConfig,
    load_wallets_from_env,
    parse_secret_key,
)
from netbuy.errors import ConfigurationError
from netbuy.models import ProtectionLevel


class TestPumpSession:
    """Test PumpSession validation"""

    def test_defaults_not_configured(self):
        session = PumpSession()
        assert not session.is_configured
        with pytest.raises(ConfigurationError):
            session.validate()

    def test_valid(self):
        PumpSession(token="mint", buy_amount_per_round=0.1, sell_fraction_percent=100).validate()

    @pytest.mark.parametrize("field,value", [
        ("buy_amount_per_round", 0),
        ("sell_fraction_percent", -1),
        ("sell_fraction_percent", 101),
        ("inter_round_delay_sec", -5),
        ("buy_growth_factor", 0.9),
        ("buys_per_round", 0),
        ("max_rounds", -1),
        ("slippage_bps", 6000),
    ])
    def test_invalid(self, field, value):
        session = PumpSession(token="mint").copy(**{field: value})
        with pytest.raises(ConfigurationError) as exc_info:
            session.validate()
        assert field in str(exc_info.value)

    def test_shape_differs(self):
        session = PumpSession(token="mint")
        assert session.shape_differs(session.copy(inter_round_delay_sec=1, slippage_bps=50)) == []
        assert session.shape_differs(session.copy(buys_per_round=3, token="other")) == ["token", "buys_per_round"]

    def test_to_dict(self):
        data = PumpSession(token="mint", protection_override=ProtectionLevel.HIGH).to_dict()
        assert data["token"] == "mint"
        assert data["protection_override"] == "high"


class TestRelayConfig:
    """Test RelayConfig.from_env"""

    def test_defaults(self, monkeypatch):
        for name in ("RELAY_ENDPOINTS", "RPC_URL", "JITO_TIP_LAMPORTS"):
            monkeypatch.delenv(name, raising=False)
        config = RelayConfig.from_env()
        assert config.private_endpoints == JITO_ENDPOINTS
        assert config.tip_lamports == 1_000_000

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("RELAY_ENDPOINTS", "https://a/tx, https://b/tx,")
        monkeypatch.setenv("RPC_URL", "https://rpc.example")
        monkeypatch.setenv("JITO_TIP_LAMPORTS", "5000")
        config = RelayConfig.from_env()
        assert config.private_endpoints == ["https://a/tx", "https://b/tx"]
        assert config.public_rpc_url == "https://rpc.example"
        assert config.tip_lamports == 5000

    @pytest.mark.parametrize("tip", ["lots", "-1"])
    def test_bad_tip(self, monkeypatch, tip):
        monkeypatch.setenv("JITO_TIP_LAMPORTS", tip)
        with pytest.raises(ConfigurationError):
            RelayConfig.from_env()


class TestSecretKeys:
    """Test key parsing and wallet loading"""

    def test_base58(self):
        kp = Keypair()
        assert parse_secret_key(base58.b58encode(bytes(kp)).decode()).pubkey() == kp.pubkey()

    def test_json_array(self):
        kp = Keypair()
        assert parse_secret_key(json.dumps(list(bytes(kp)))).pubkey() == kp.pubkey()

    @pytest.mark.parametrize("secret", ["not!base58", "[1, 2"])
    def test_invalid(self, secret):
        with pytest.raises(ConfigurationError):
            parse_secret_key(secret)

    def test_load_wallets(self, monkeypatch):
        main, second, third = Keypair(), Keypair(), Keypair()
        monkeypatch.setenv("MAIN_PRIVATE_KEY", base58.b58encode(bytes(main)).decode())
        monkeypatch.setenv(
            "EXTRA_PRIVATE_KEYS",
            f"{base58.b58encode(bytes(second)).decode()};{base58.b58encode(bytes(third)).decode()}",
        )
        wallets = load_wallets_from_env()

        assert [w.role for w in wallets] == ["main", "wallet2", "wallet3"]
        assert wallets[0].pubkey == main.pubkey()
        assert wallets[2].pubkey == third.pubkey()

    def test_main_key_required(self, monkeypatch):
        monkeypatch.delenv("MAIN_PRIVATE_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            load_wallets_from_env()
