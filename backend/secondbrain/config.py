"""
SecondBrain Configuration

Environment-based configuration with fail-fast validation.
API keys are required and must not be hardcoded.
"""
from typing import Literal
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM Provider Selection
    llm_provider: Literal["openai", "gemini"] = "openai"

    # API Keys - Required based on provider
    openai_api_key: str = ""
    gemini_api_key: str = ""

    # OpenAI-compatible gateway (e.g. https://openrouter.ai/api/v1)
    openai_base_url: str = ""

    # Database
    database_url: str = "sqlite+aiosqlite:///./secondbrain.db"

    # Debug mode (verbose low-level logging)
    debug: bool = False

    # Follow-through mode (structured step-by-step execution tracing)
    follow_through: bool = False

    # Model configurations
    openai_mid_model: str = "gpt-4o"
    openai_cheap_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-3-small"

    gemini_mid_model: str = "gemini-2.5-flash"
    gemini_cheap_model: str = "gemini-2.0-flash"
    gemini_embedding_model: str = "models/text-embedding-004"

    # Conversation state
    persistence_strategy: Literal[
        "thresholded-autosave", "idle-timeout-autosave", "memory-only"
    ] = "thresholded-autosave"
    max_conversation_length: int = 200
    save_message_threshold: int = 10
    save_interval_seconds: float = 300.0
    idle_timeout_seconds: float = 300.0
    grace_period_seconds: float = 3600.0

    # Embedding retry policy
    embedding_max_attempts: int = 3
    embedding_base_delay: float = 1.0

    # Search defaults
    search_threshold: float = 0.5
    search_limit: int = 10

    # Markdown vault mirror (GitHub repository, "owner/repo")
    vault_github_token: str = ""
    vault_github_repo: str = ""
    vault_branch: str = "main"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @field_validator("openai_api_key", "gemini_api_key", "vault_github_token", mode="before")
    @classmethod
    def validate_not_placeholder(cls, v: str) -> str:
        """Ensure API keys are not placeholder values."""
        if v and "your-" in v.lower():
            return ""
        return v

    def validate_provider_key(self) -> None:
        """Validate that the required API key for the selected provider is set."""
        if self.llm_provider == "openai" and not self.openai_api_key:
            raise ValueError(
                "OPENAI_API_KEY environment variable is required when LLM_PROVIDER=openai. "
                "Please set it in your .env file or environment."
            )
        if self.llm_provider == "gemini" and not self.gemini_api_key:
            raise ValueError(
                "GEMINI_API_KEY environment variable is required when LLM_PROVIDER=gemini. "
                "Please set it in your .env file or environment."
            )

    def get_model(self, tier: Literal["cheap", "mid"]) -> str:
        """Get the model name for the specified tier and current provider."""
        if self.llm_provider == "openai":
            return {
                "cheap": self.openai_cheap_model,
                "mid": self.openai_mid_model,
            }[tier]
        else:
            return {
                "cheap": self.gemini_cheap_model,
                "mid": self.gemini_mid_model,
            }[tier]

    def get_embedding_model(self) -> str:
        """Get the embedding model for the current provider."""
        if self.llm_provider == "openai":
            return self.openai_embedding_model
        else:
            return self.gemini_embedding_model


# Global settings instance
settings = Settings()
