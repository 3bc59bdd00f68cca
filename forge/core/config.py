import logging
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }

    # Generation service
    MODEL_PROVIDER: str = Field(default="anthropic")
    MODEL_NAME: str | None = Field(default=None, description="Overrides the provider default model")

    ANTHROPIC_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    OPENROUTER_API_KEY: str | None = None
    OPENROUTER_BASE_URL: str = Field(default="https://openrouter.ai/api/v1")

    # Google Vertex AI
    GOOGLE_PROJECT_ID: str | None = Field(default=None, description="Google Cloud project ID for Vertex AI")
    GOOGLE_LOCATION: str = Field(default="us-central1", description="Google Cloud region for Vertex AI")

    # Amazon Bedrock
    AWS_REGION: str = Field(default="us-east-1", description="AWS region for Bedrock")

    # Microsoft Azure OpenAI
    AZURE_OPENAI_API_KEY: str | None = Field(default=None, description="Azure OpenAI API key")
    AZURE_OPENAI_ENDPOINT: str | None = Field(default=None, description="Azure OpenAI endpoint URL")
    AZURE_OPENAI_API_VERSION: str = Field(default="2024-02-15-preview", description="Azure OpenAI API version")
    AZURE_OPENAI_DEPLOYMENT: str | None = Field(default=None, description="Azure OpenAI deployment name")

    GENERATION_TEMPERATURE: float = Field(default=0.2)
    GENERATION_TIMEOUT_SECONDS: float = Field(default=120.0)
    GENERATION_STREAM: bool = Field(default=False, description="Stream tokens and re-assemble before extraction")

    # Orchestration
    PLAN_MAX_TOKENS: int = Field(default=4096)
    TASK_MAX_TOKENS: int = Field(default=8192)
    PLAN_HISTORY_WINDOW: int = Field(default=6, description="History entries included in the planning prompt")
    PLAN_HISTORY_ENTRY_CHARS: int = Field(default=500, description="Per-entry truncation of planning history")
    RELEVANT_FILE_LIMIT: int = Field(default=5, description="Owned files shown with content per task")
    RELEVANT_FILE_MAX_CHARS: int = Field(default=2000, description="Content truncation for owned files")
    EVENT_QUEUE_SIZE: int = Field(default=1000, description="Capacity of the per-request event channel")

    # CORS / Console integration
    CORS_ALLOW_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Runtime
    FORGE_ENV: str = Field(default="dev")
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    def validate_production_config(self) -> None:
        """Validate configuration for production environments.

        Raises:
            RuntimeError: If the configuration is unusable in production
        """
        if self.FORGE_ENV != "production":
            return

        if "*" in self.CORS_ALLOW_ORIGINS:
            raise RuntimeError(
                "CRITICAL: CORS_ALLOW_ORIGINS cannot be '*' in production. "
                "Specify exact origins."
            )

        if self.DEBUG:
            logger.warning("WARNING: DEBUG mode is enabled in production")


settings = Settings()
