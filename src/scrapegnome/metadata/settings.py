# WARNING: This settings loader is for LOCAL DEVELOPMENT ONLY.
# Never commit your .env file or share your API keys.
# Ensure .env is listed in .gitignore!

"""Settings loader for the metadata provider and the language model.

Loads the TMDB credentials and LLM endpoint from environment variables or a
.env file.

Recognised keys:
- TMDB_API_KEY (required for any lookup)
- TMDB_LANGUAGE (optional, default zh-CN)
- TMDB_BASE_URL (optional)
- LLM_HOST / LLM_MODEL (optional, Ollama endpoint and model)
- USE_LLM (optional, enable the natural-language path)
- HTTP_TIMEOUT (optional, seconds)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from scrapegnome.core.resolver import ResolverConfig

TMDB_API_URL = "https://api.themoviedb.org/3"


class MissingAPIKeyError(Exception):
    """Raised when a required API key is missing from the environment or .env file."""

    def __init__(self, key: str) -> None:
        """Initialize the error with the missing key name."""
        super().__init__(
            f"Missing required API key: {key}\n"
            "Set it in the environment or in a .env file."
        )
        self.key = key


class Settings(BaseSettings):
    """Settings for the metadata provider and the LLM backend."""

    TMDB_API_KEY: str | None = None
    TMDB_LANGUAGE: str = "zh-CN"
    TMDB_BASE_URL: str = TMDB_API_URL
    LLM_HOST: str = "http://localhost:11434"
    LLM_MODEL: str = "qwen2.5"
    USE_LLM: bool = False
    HTTP_TIMEOUT: float = 30.0

    model_config = SettingsConfigDict(extra="allow", env_file=".env")

    def require_keys(self) -> None:
        """Raise MissingAPIKeyError if any required key is missing."""
        required = ["TMDB_API_KEY"]
        for key in required:
            if not getattr(self, key, None):
                raise MissingAPIKeyError(key)

    def resolver_config(
        self, *, language: str | None = None, use_llm: bool | None = None
    ) -> ResolverConfig:
        """Build the explicit configuration handed to the resolver."""
        return ResolverConfig(
            language=language or self.TMDB_LANGUAGE,
            use_llm=self.USE_LLM if use_llm is None else use_llm,
        )
