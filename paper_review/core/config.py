"""Application configuration."""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)


def find_env_file() -> Optional[Path]:
    """Find .env file in the package directory or its parents."""
    current_dir = os.path.dirname(os.path.abspath(__file__))

    possible_paths = [
        os.path.join(current_dir, ".env"),
        os.path.join(os.path.dirname(current_dir), ".env"),
        os.path.join(os.path.dirname(os.path.dirname(current_dir)), ".env"),
    ]

    for path_str in possible_paths:
        if os.path.exists(path_str):
            path = Path(path_str)
            LOGGER.info(f"Found .env file at: {path}")
            return path

    LOGGER.debug("No .env file found in expected locations")
    return None


ENV_FILE = find_env_file()

_MODEL_CONFIG = SettingsConfigDict(
    env_file=str(ENV_FILE) if ENV_FILE else None,
    env_file_encoding="utf-8",
    case_sensitive=False,
    extra="ignore",
    env_prefix="",
)


class DatabaseSettings(BaseSettings):
    """Artifact Store database settings."""
    url: str = Field(default="sqlite+aiosqlite:///./data/paper_review.db", validation_alias="DATABASE_URL")
    pool_size: int = Field(default=10, validation_alias="DATABASE_POOL_SIZE")
    max_overflow: int = Field(default=20, validation_alias="DATABASE_MAX_OVERFLOW")
    echo: bool = Field(default=False, validation_alias="DATABASE_ECHO")

    @property
    def connection_url(self) -> str:
        """Get the connection URL with an async driver prefix."""
        raw_url = self.url
        if raw_url.startswith("postgres://") or raw_url.startswith("postgresql://"):
            _, rest = raw_url.split("://", 1)
            return f"postgresql+asyncpg://{rest}"
        return raw_url

    @property
    def is_sqlite(self) -> bool:
        return self.connection_url.startswith("sqlite")

    model_config = _MODEL_CONFIG


class StorageSettings(BaseSettings):
    """Filesystem locations for original documents and page artifacts."""
    storage_dir: str = Field(default="./data", validation_alias="STORAGE_DIR")

    model_config = _MODEL_CONFIG


class OracleSettings(BaseSettings):
    """Analysis Oracle (chat-completions endpoint) settings."""
    api_key: str = Field(default="", validation_alias="ORACLE_API_KEY")
    api_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="ORACLE_API_URL")
    model: str = Field(default="google/gemini-2.0-flash-001", validation_alias="ORACLE_MODEL")
    timeout: int = Field(default=90, validation_alias="ORACLE_TIMEOUT")
    max_retries: int = Field(default=3, validation_alias="ORACLE_MAX_RETRIES")
    retry_delay: float = Field(default=2.0, validation_alias="ORACLE_RETRY_DELAY")
    temperature: float = Field(default=0.0, validation_alias="ORACLE_TEMPERATURE")
    enabled: bool = Field(default=True, validation_alias="ORACLE_ENABLED")

    model_config = _MODEL_CONFIG


class PipelineSettings(BaseSettings):
    """Orchestration and segmentation settings."""
    max_retries_per_stage: int = Field(default=2, validation_alias="MAX_RETRIES_PER_STAGE")
    segmentation_max_workers: int = Field(default=1, validation_alias="SEGMENTATION_MAX_WORKERS")

    model_config = _MODEL_CONFIG


class CitationSettings(BaseSettings):
    """Tuned heuristics for reference-section detection and citation counting."""
    heading_keywords: List[str] = Field(
        default=["references", "bibliography", "works cited", "reference list", "bibliographie"],
        validation_alias="CITATION_HEADING_KEYWORDS",
    )
    heading_min_position: float = Field(default=0.6, validation_alias="CITATION_HEADING_MIN_POSITION")
    list_scan_start: float = Field(default=0.7, validation_alias="CITATION_LIST_SCAN_START")
    min_list_run: int = Field(default=3, validation_alias="CITATION_MIN_LIST_RUN")
    list_entry_min_chars: int = Field(default=20, validation_alias="CITATION_LIST_ENTRY_MIN_CHARS")
    leak_scan_lines: int = Field(default=200, validation_alias="CITATION_LEAK_SCAN_LINES")
    leak_min_run: int = Field(default=5, validation_alias="CITATION_LEAK_MIN_RUN")
    entry_min_chars: int = Field(default=15, validation_alias="CITATION_ENTRY_MIN_CHARS")
    min_section_chars: int = Field(default=100, validation_alias="CITATION_MIN_SECTION_CHARS")

    max_reference_ordinal: int = Field(default=10000, validation_alias="CITATION_MAX_REFERENCE_ORDINAL")
    sanity_ceiling: int = Field(default=500, validation_alias="CITATION_SANITY_CEILING")
    sequence_min_distinct: int = Field(default=10, validation_alias="CITATION_SEQUENCE_MIN_DISTINCT")
    sequence_min_ratio: float = Field(default=0.3, validation_alias="CITATION_SEQUENCE_MIN_RATIO")
    strict_min_candidates: int = Field(default=5, validation_alias="CITATION_STRICT_MIN_CANDIDATES")

    max_citation_ordinal: int = Field(default=1000, validation_alias="CITATION_MAX_CITATION_ORDINAL")
    max_range_span: int = Field(default=100, validation_alias="CITATION_MAX_RANGE_SPAN")

    reference_sample_chars: int = Field(default=15000, validation_alias="CITATION_REFERENCE_SAMPLE_CHARS")
    body_sample_chars: int = Field(default=15000, validation_alias="CITATION_BODY_SAMPLE_CHARS")

    model_config = _MODEL_CONFIG


class Settings(BaseSettings):
    """Unified application settings with nested models."""

    app_name: str = Field(default="Paper Review Core", validation_alias="APP_NAME")
    app_version: str = Field(default="0.1.0", validation_alias="APP_VERSION")
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    db: DatabaseSettings = Field(default_factory=lambda: DatabaseSettings())
    storage: StorageSettings = Field(default_factory=lambda: StorageSettings())
    oracle: OracleSettings = Field(default_factory=lambda: OracleSettings())
    pipeline: PipelineSettings = Field(default_factory=lambda: PipelineSettings())
    citation: CitationSettings = Field(default_factory=lambda: CitationSettings())

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        return self.db.connection_url

    @property
    def max_retries_per_stage(self) -> int:
        return self.pipeline.max_retries_per_stage


settings = Settings()

LOGGER.info(f"Settings initialized with environment: {settings.environment}")
LOGGER.info(f"Oracle enabled: {settings.oracle.enabled}, API key loaded: {bool(settings.oracle.api_key)}")
