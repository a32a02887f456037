"""Configuration settings for the application."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = True
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # LLM Configuration
    MODEL_PROVIDER: str = "openai"  # Options: openai, anthropic, tgi
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str = "https://openrouter.ai/api/v1"  # Any OpenAI-compatible endpoint
    OPENAI_MODEL: str = "tngtech/deepseek-r1t2-chimera:free"
    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-latest"
    TGI_ENDPOINT: str = "http://tgi:8080"
    TEMPERATURE: float = 0.7
    MAX_TOKENS: int = 4096

    # ReACT loop
    MAX_ITERATIONS: int = 10
    TOOL_TIMEOUT_SECONDS: float = 30.0
    MAX_HISTORY_LENGTH: int = 50
    TOOL_RESULT_PREVIEW_CHARS: int = 2000
    STREAM_CHUNK_WORDS: int = 10
    STREAM_CHUNK_DELAY: float = 0.02  # seconds between final-answer chunks
    CLASSIFY_REQUESTS: bool = True

    # Tool stores
    SEARCH_CACHE_SIZE: int = 100
    SEARCH_CACHE_TTL: float = 3600.0  # seconds
    MAX_NOTES: int = 500

    # Other API Keys
    SERPER_API_KEY: str | None = None

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
