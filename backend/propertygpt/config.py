"""
Configuration settings for the PropertyGPT core.
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    OPENAI_API_KEY: str = ""

    # OpenAI Model Settings
    OPENAI_MODEL: str = "gpt-4-turbo-preview"
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_MAX_TOKENS: int = 1500
    OPENAI_TIMEOUT: float = 30.0
    OPENAI_REQUESTS_PER_MINUTE: int = 60

    # Use the language model for intent routing when a key is configured
    USE_LLM_ROUTER: bool = True

    # Cache Settings
    REDIS_URL: str = ""  # Empty means in-process memory cache
    REDIS_CONNECT_TIMEOUT: float = 5.0
    MARKET_ANALYSIS_CACHE_TTL: int = 1800  # 30 minutes

    # Market Data Provider
    MARKET_DATA_API_URL: str = ""  # Empty means bundled sample data
    MARKET_DATA_API_KEY: str = ""
    MARKET_DATA_TIMEOUT: float = 10.0
    DEFAULT_MARKET_LOCATION: str = "Los Angeles, CA"

    # Chat Settings
    MAX_MESSAGE_LENGTH: int = 1000
    HISTORY_WINDOW: int = 5  # Turns sent to the model with each utterance

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent
    PROMPTS_DIR: Path = BASE_DIR / "prompts"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def llm_configured(self) -> bool:
        """Whether a usable OpenAI key is present."""
        return bool(self.OPENAI_API_KEY) and self.OPENAI_API_KEY != "demo-key-for-build"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience function to load prompt files
def load_system_prompt(agent_name: str) -> str:
    """
    Load a system prompt from the prompts directory.

    Args:
        agent_name: Name of the agent (e.g., 'conversation_router')

    Returns:
        The prompt text content
    """
    settings = get_settings()
    prompt_file = settings.PROMPTS_DIR / f"{agent_name}_prompt.txt"

    if prompt_file.exists():
        return prompt_file.read_text(encoding="utf-8")
    else:
        return f"[PLACEHOLDER] System prompt for {agent_name} not found at {prompt_file}"
