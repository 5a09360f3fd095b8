"""
Loads and handles config from config.yml
Secrets (EMAIL_USERNAME, EMAIL_PASSWORD, GITHUB_TOKEN) are loaded from .env
"""
import logging
import os
from typing import List, Dict, Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# DynamoDB BatchWriteItem accepts at most 25 put requests.
MAX_BATCH_SIZE = 25


class SourceConfig(BaseModel):
    """Configuration for a single ingestion source."""
    type: str  # hackernews, github_trending, arxiv
    enabled: bool = True
    limit: int = Field(default=5, ge=0)
    category: Optional[str] = None  # For arxiv


class AudioConfig(BaseModel):
    enabled: bool = True
    voice: str = "Joanna"
    engine: str = "neural"
    ceiling: int = Field(default=3000, gt=0)


class ObjectStoreConfig(BaseModel):
    backend: str = "s3"  # s3, file
    bucket: Optional[str] = None
    public_base_url: Optional[str] = None
    output_dir: str = "output"


class RecommendationsConfig(BaseModel):
    backend: str = "dynamodb"  # dynamodb, sqlite
    table_name: str = "newsagent-recommendations"
    sqlite_path: str = "data/recommendations.db"
    retention_days: int = Field(default=30, gt=0)
    batch_size: int = Field(default=MAX_BATCH_SIZE, gt=0)

    @field_validator("batch_size")
    @classmethod
    def _check_batch_size(cls, value: int) -> int:
        if value > MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be <= {MAX_BATCH_SIZE}")
        return value

    @field_validator("sqlite_path")
    @classmethod
    def _check_sqlite_path(cls, value: str) -> str:
        # each store operation opens its own connection
        if value.strip() == ":memory:" or value.startswith("file::memory:"):
            raise ValueError("sqlite_path must be a file path, not an in-memory database")
        return value


class EmailColorsConfig(BaseModel):
    """Configuration for email template colors."""
    primary: str = "#ff6600"
    primary_dark: str = "#e65c00"
    background: str = "#f8fafc"
    card_bg: str = "#ffffff"
    text_primary: str = "#1e293b"
    text_secondary: str = "#64748b"
    border: str = "#e2e8f0"
    accent: str = "#f59e0b"
    cta_bg: str = "#4f46e5"


class EmailConfig(BaseModel):
    enabled: bool = False
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None
    colors: EmailColorsConfig = EmailColorsConfig()


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, ge=0.0)


def _default_sources() -> List[SourceConfig]:
    return [
        SourceConfig(type="hackernews", limit=5),
        SourceConfig(type="github_trending", limit=5),
        SourceConfig(type="arxiv", enabled=False, limit=3, category="cs.AI"),
    ]


class Config(BaseModel):
    LOG_LEVEL: str = "INFO"
    AWS_REGION: str = "us-west-2"

    # Ollama
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.1:8b"
    LLM_TIMEOUT: float = 60.0
    LLM_MAX_RETRIES: int = 1

    # Fetching
    FETCH_TIMEOUT: float = 10.0
    EXTRACT_MAX_CHARS: int = 4000
    GITHUB_TOKEN: Optional[str] = None

    sources: List[SourceConfig] = Field(default_factory=_default_sources)
    audio: AudioConfig = AudioConfig()
    object_store: ObjectStoreConfig = ObjectStoreConfig()
    recommendations: RecommendationsConfig = RecommendationsConfig()
    email: EmailConfig = EmailConfig()
    retry: RetryConfig = RetryConfig()


def _bool(value: str | bool) -> bool:
    """Convert string or bool to boolean."""
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes", "on")


def _get_config_path() -> Optional[str]:
    """Get the path to config.yml, handling different working directories."""
    explicit = os.getenv("NEWSAGENT_CONFIG")
    if explicit:
        if not os.path.exists(explicit):
            raise FileNotFoundError(f"NEWSAGENT_CONFIG points to missing file: {explicit}")
        return explicit

    if os.path.exists('resources/config.yml'):
        return 'resources/config.yml'

    # Try from project root (src/newsagent/services -> project root)
    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
    config_path = os.path.join(project_root, 'resources', 'config.yml')
    if os.path.exists(config_path):
        return config_path

    return None


def _parse_sources(data: List[Dict[str, Any]]) -> List[SourceConfig]:
    """Parse source configuration from YAML data."""
    sources = []
    for src in data:
        try:
            sources.append(SourceConfig(
                type=str(src.get("type", "")).lower(),
                enabled=_bool(src.get("enabled", True)),
                limit=int(src.get("limit", 5)),
                category=src.get("category"),
            ))
        except Exception as e:
            logger.error(f"Failed to parse source config {src!r}: {e}")
    return sources


def parse_config(config: Dict[str, Any]) -> Config:
    """Build a Config from parsed YAML, filling secrets from the environment."""
    email = dict(config.get("email") or {})
    if "enabled" in email:
        email["enabled"] = _bool(email["enabled"])
    email["username"] = os.getenv("EMAIL_USERNAME", email.get("username"))
    email["password"] = os.getenv("EMAIL_PASSWORD", email.get("password"))

    audio = dict(config.get("audio") or {})
    if "enabled" in audio:
        audio["enabled"] = _bool(audio["enabled"])

    values: Dict[str, Any] = {
        "LOG_LEVEL": str(config.get("LOG_LEVEL", "INFO")).upper(),
        "AWS_REGION": os.getenv("AWS_REGION", config.get("AWS_REGION", "us-west-2")),
        "OLLAMA_BASE_URL": config.get("OLLAMA_BASE_URL", "http://localhost:11434"),
        "OLLAMA_MODEL": config.get("OLLAMA_MODEL", "llama3.1:8b"),
        "LLM_TIMEOUT": float(config.get("LLM_TIMEOUT", 60)),
        "LLM_MAX_RETRIES": int(config.get("LLM_MAX_RETRIES", 1)),
        "FETCH_TIMEOUT": float(config.get("FETCH_TIMEOUT", 10)),
        "EXTRACT_MAX_CHARS": int(config.get("EXTRACT_MAX_CHARS", 4000)),
        "GITHUB_TOKEN": os.getenv("GITHUB_TOKEN"),
        "audio": AudioConfig(**audio),
        "object_store": ObjectStoreConfig(**(config.get("object_store") or {})),
        "recommendations": RecommendationsConfig(**(config.get("recommendations") or {})),
        "email": EmailConfig(**email),
        "retry": RetryConfig(**(config.get("retry") or {})),
    }
    if "sources" in config:
        values["sources"] = _parse_sources(config.get("sources") or [])

    return Config(**values)


def load_config() -> Config:
    """Load configuration from config.yml and secrets from .env."""
    load_dotenv()

    config_path = _get_config_path()
    if config_path is None:
        logger.warning("No resources/config.yml found, using defaults")
        return parse_config({})

    with open(config_path, 'r') as file:
        config = yaml.safe_load(file) or {}

    return parse_config(config)


def get_enabled_sources(config: Config) -> List[SourceConfig]:
    """Get only enabled sources from the config."""
    return [src for src in config.sources if src.enabled]
