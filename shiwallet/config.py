"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class ShiwalletConfig(BaseSettings):
    """ShiWallet configuration"""

    # Profit rules
    default_annual_rate: str = "0.24"  # 24% when a wallet has no rate of its own
    profit_trigger_day: int = 15  # Shamsi day of month
    timezone: str = "Asia/Tehran"  # Clock used for Shamsi day boundaries

    # Storage configuration
    storage_backend: str = "json"  # json, sqlite or memory
    storage_path: str = "shiwallet.json"
    storage_key: str = "walletData"

    # Import/export
    backup_prefix: str = "shiwallet-backup"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    model_config = SettingsConfigDict(
        env_prefix="SHIWALLET_",
        env_file=".env",
        case_sensitive=False
    )


# Global configuration instance
config = ShiwalletConfig()


def get_config() -> ShiwalletConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> ShiwalletConfig:
    """Reload configuration from environment"""
    global config
    config = ShiwalletConfig()
    return config
