from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # Discord
    DISCORD_BOT_TOKEN: str | None = Field(None, description="Discord bot token")

    # Chat model (OpenAI-compatible endpoint)
    DEEPSEEK_API_KEY: str | None = None
    DEEPSEEK_API_URL: str = "https://api.deepseek.com"
    DEEPSEEK_MODEL: str = "deepseek-chat"

    # OpenAI images
    OPENAI_API_KEY: str | None = None
    OPENAI_IMAGE_MODEL: str = "dall-e-3"
    OPENAI_EDIT_MODEL: str = "gpt-image-1"

    # Vertex (Imagen)
    VERTEX_PROJECT_ID: str | None = None
    VERTEX_LOCATION: str = "us-central1"
    VERTEX_IMAGE_MODEL: str = "imagen-3.0-generate-002"

    # Stability / Recraft
    STABILITY_API_KEY: str | None = None
    STABILITY_API_URL: str = "https://api.stability.ai"
    RECRAFT_API_KEY: str | None = None
    RECRAFT_API_URL: str = "https://external.api.recraft.ai/v1"

    # Web search (optional)
    PERPLEXITY_API_KEY: str | None = None
    PERPLEXITY_API_URL: str = "https://api.perplexity.ai"
    PERPLEXITY_MODEL: str = "sonar"

    # Conversation
    MAX_MESSAGES: int = 20
    CONVERSATION_TIMEOUT_SECONDS: float = 2 * 60 * 60
    MESSAGE_CHUNK_SIZE: int = 1500
    DEFAULT_SYSTEM_MESSAGE: str = (
        "You are a helpful assistant in a Discord server. Answer concisely and use "
        "Discord markdown where it helps readability."
    )

    # Video polling
    VIDEO_POLL_INTERVAL_SECONDS: float = 5.0
    VIDEO_POLL_MAX_ATTEMPTS: int = 60

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def missing_required(self) -> list[str]:
        required = ("DISCORD_BOT_TOKEN", "DEEPSEEK_API_KEY")
        return [name for name in required if not getattr(self, name)]


settings = Settings()  # singleton
