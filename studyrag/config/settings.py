"""Application settings loaded from environment variables via pydantic-settings.

Configuration is read from two sources, in priority order:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123`` (always win)
  2. A ``.env`` file in the working directory (local development)

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults apply
when neither source sets a value.  ``.env.example`` lists every variable.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """studyrag settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # === Embedding ===
    # "auto" uses OpenAI when both a key and OPENAI_EMBEDDING_MODEL are set,
    # else fastembed, else sentence-transformers.  "openai", "fastembed" or
    # "sentence_transformers" pins one backend.
    embedding_backend: str = "auto"
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    openai_embedding_model: str = ""

    # === Generation ===
    # Empty string = "not configured"; provider selection in main.py skips
    # backends with empty keys and falls through to Ollama.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (Gemini, TogetherAI, Groq)
    openai_text_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = ""
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1"
    generation_temperature: float = 0.3
    generation_max_tokens: int = 1500

    # === Vector store ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_host: str = ""  # set to talk to a `chroma run` server instead
    chromadb_port: int = 8000
    chromadb_collection: str = "academic_documents"

    # === Pipeline tuning ===
    chunk_size: int = Field(default=500, gt=0)
    chunk_overlap: int = Field(default=100, ge=0)
    retrieval_top_k: int = Field(default=5, gt=0)
    fallback_excerpt_count: int = Field(default=2, gt=0)
    embedding_concurrency: int = Field(default=4, gt=0)
    embedding_timeout_seconds: float = Field(default=30.0, gt=0)
    generation_timeout_seconds: float = Field(default=25.0, gt=0)
    provider_max_retries: int = Field(default=2, ge=0)

    # === App config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_generation_providers(self) -> list[str]:
        """Return generation backends that have their credentials configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
