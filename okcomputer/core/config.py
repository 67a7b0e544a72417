"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support (OKC_ prefix)"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="OKC_",
        extra="ignore",
    )

    # Server identity
    SERVER_NAME: str = "ok-computer"
    SERVER_VERSION: str = "1.5.0"
    SERVER_DESCRIPTION: str = "A self-improving MCP server that any AI can connect to"

    # Bounded collection caps (oldest entries evicted first)
    MAX_HISTORY_SIZE: int = 1000
    MAX_FEEDBACK_SIZE: int = 500
    MAX_FACTS_SIZE: int = 200
    MAX_PATTERNS_SIZE: int = 100
    MAX_GOALS_SIZE: int = 50

    # Input sanitization
    SANITIZE_MAX_DEPTH: int = 10

    # Auto-optimization
    AUTO_OPTIMIZE_ENABLED: bool = True
    AUTO_OPTIMIZE_INTERVAL_MS: int = 300_000
    AUTO_OPTIMIZE_STARTUP_DELAY_S: float = 5.0
    AUTO_OPTIMIZE_FAILURE_THRESHOLD: int = 5

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()
