import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Phrases that mark a summary sentence rather than a task line
DEFAULT_COMMENTARY_PHRASES = (
    "your top",
    "looking at",
    "here's",
    "let me",
    "based on",
    "priority right now",
    "focus on",
    "i recommend",
    "you should",
    "the key",
    "most important",
    "start with",
)

# One glyph per classification, used by the marked-line fallback grammar
DEFAULT_MARKERS = {
    "SIGNAL": "\U0001F7E2",     # green circle
    "NECESSARY": "\U0001F7E1",  # yellow circle
    "NOISE": "\U0001F534",      # red circle
}


class TriageConfig(BaseModel):
    """Tunables for extraction and reconciliation."""
    match_threshold: float = 0.75
    min_name_length: int = 3
    commentary_phrases: tuple[str, ...] = DEFAULT_COMMENTARY_PHRASES
    markers: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_MARKERS))


class Settings(BaseModel):
    anthropic_api_key: str | None = None
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1024
    max_retries: int = 2
    retry_backoff: float = 1.0
    database_path: str = "triage.db"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173"]
    triage: TriageConfig = Field(default_factory=TriageConfig)


def load_settings() -> Settings:
    """Read settings from the environment (and .env if present)."""
    load_dotenv()

    api_key = os.getenv("ANTHROPIC_API_KEY")
    # Placeholder from the example .env counts as unset
    if api_key == "your-api-key-here":
        api_key = None

    origins = os.getenv("TRIAGE_CORS_ORIGINS", "http://localhost:5173")

    return Settings(
        anthropic_api_key=api_key or None,
        model=os.getenv("TRIAGE_MODEL", "claude-sonnet-4-20250514"),
        max_tokens=int(os.getenv("TRIAGE_MAX_TOKENS", "1024")),
        max_retries=int(os.getenv("TRIAGE_MAX_RETRIES", "2")),
        retry_backoff=float(os.getenv("TRIAGE_RETRY_BACKOFF", "1.0")),
        database_path=os.getenv("TRIAGE_DATABASE_PATH", "triage.db"),
        log_level=os.getenv("TRIAGE_LOG_LEVEL", "INFO").upper(),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        triage=TriageConfig(
            match_threshold=float(os.getenv("TRIAGE_MATCH_THRESHOLD", "0.75")),
        ),
    )
