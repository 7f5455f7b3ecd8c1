"""
Configuration settings for the ESG advisor backend.

Uses environment variables (or a local .env file) with sensible defaults.
"""

from pydantic_settings import BaseSettings

from esg_core.utils.logging import configure_logging


class Settings(BaseSettings):
    """Application settings."""

    # Logging
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # LLM (any OpenAI-compatible endpoint; OpenRouter by default)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENAI_MODEL: str = "anthropic/claude-3.5-sonnet"
    OPENAI_MAX_TOKENS: int = 2000
    OPENAI_TEMPERATURE: float = 0.7

    # Orchestration
    MAX_TOOL_ITERATIONS: int = 5
    HISTORY_WINDOW: int = 10  # previous messages sent with each turn
    MAX_MESSAGES_PER_SESSION: int = 200  # 0 disables the quota

    # queue | auto | trusted
    ACTION_EXECUTION_POLICY: str = "auto"

    # Financial Modeling Prep
    FMP_API_KEY: str = ""
    FMP_BASE_URL: str = "https://financialmodelingprep.com/stable"
    FMP_TIMEOUT_SECONDS: float = 10.0
    USE_MOCK_FMP: bool = False

    # Cache
    ESG_CACHE_TTL_SECONDS: int = 86400  # 24 hours, ratings change rarely
    QUOTE_CACHE_TTL_SECONDS: int = 300  # 5 minutes

    # All tool results are reported in this currency
    BASE_CURRENCY: str = "USD"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


settings = Settings()


def setup_logging(config: Settings = settings) -> None:
    """Apply LOG_LEVEL, and DEBUG for the project loggers."""
    configure_logging(config.LOG_LEVEL, debug=config.DEBUG)
