"""
Tests for environment-based configuration
"""

from token_ledger import config as config_module
from token_ledger.config import TokenLedgerConfig, NULL_ACCOUNT, get_config, reload_config


class TestTokenLedgerConfig:

    def test_defaults(self):
        cfg = TokenLedgerConfig(_env_file=None)

        assert cfg.null_account == NULL_ACCOUNT
        assert cfg.integer_bits == 256
        assert cfg.max_value == 2 ** 256 - 1
        assert cfg.token_decimals == 18
        assert cfg.get_mint_authorities() == []

    def test_unbounded(self):
        assert TokenLedgerConfig(integer_bits=None).max_value is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TOKEN_LEDGER_INTEGER_BITS", "64")
        monkeypatch.setenv("TOKEN_LEDGER_NULL_ACCOUNT", "nobody")
        monkeypatch.setenv("TOKEN_LEDGER_MINT_AUTHORITIES", "owner, treasury ,")

        cfg = TokenLedgerConfig(_env_file=None)

        assert cfg.max_value == 2 ** 64 - 1
        assert cfg.null_account == "nobody"
        assert cfg.get_mint_authorities() == ["owner", "treasury"]

    def test_reload_config(self, monkeypatch):
        original = get_config()
        monkeypatch.setenv("TOKEN_LEDGER_TOKEN_SYMBOL", "TST")
        try:
            reloaded = reload_config()
            assert reloaded.token_symbol == "TST"
            assert get_config() is reloaded
        finally:
            config_module.config = original
