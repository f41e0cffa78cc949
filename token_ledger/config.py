"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


NULL_ACCOUNT = "0x0000000000000000000000000000000000000000"


class TokenLedgerConfig(BaseSettings):
    """Token ledger configuration"""
    
    # Token metadata
    token_name: str = "MyToken"
    token_symbol: str = "MTK"
    token_decimals: int = 18
    
    # Accounting rules
    null_account: str = NULL_ACCOUNT
    integer_bits: Optional[int] = 256  # None = unbounded integers
    
    # Journal configuration
    enable_journal: bool = True
    journal_backend: str = "memory"  # memory or sqlite
    journal_path: str = "token_ledger.db"
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    
    # Comma-separated identities allowed to mint/burn; empty = no gate
    mint_authorities: str = ""
    
    class Config:
        env_prefix = "TOKEN_LEDGER_"
        env_file = ".env"
        case_sensitive = False
    
    @property
    def max_value(self) -> Optional[int]:
        """Largest representable balance/supply, or None when unbounded"""
        if self.integer_bits is None:
            return None
        return (1 << self.integer_bits) - 1
    
    def get_mint_authorities(self) -> List[str]:
        """Parse the mint authority list"""
        return [item.strip() for item in self.mint_authorities.split(",") if item.strip()]


# Global configuration instance
config = TokenLedgerConfig()


def get_config() -> TokenLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> TokenLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = TokenLedgerConfig()
    return config
