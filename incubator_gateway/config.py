"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Ledger source
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    rpc_commitment: str = "confirmed"
    max_supported_transaction_version: int = 0

    # Incubator
    incubator_wallet: str = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"
    usdt_mint: str = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
    incubator_goal_amount: int = 33_000

    # Scan window
    signature_scan_limit: int = 1000
    detail_batch_size: int = 10

    # Deposit cache
    cache_ttl_seconds: float = 300.0
    cache_retention_seconds: float = 86_400.0  # Stale fallback horizon
    cache_max_entries: int = 10_000

    # Pipeline retry
    pipeline_max_attempts: int = 2
    pipeline_backoff_base: float = 0.5  # Exponential backoff base in seconds

    # Service
    service_name: str = "incubator-gateway"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 10.0


settings = Settings()
