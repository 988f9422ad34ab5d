from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
        env_prefix="RKIVE_"
    )


    # ------------------------------------------------------------------
    # Core paths
    # ------------------------------------------------------------------
    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Base data directory for graph snapshots and uploaded PDFs.",
    )

    GRAPH_DEFAULT_NAME: str = Field(
        default="graph",
        description="Default graph name for data/graph/{name}.pkl",
    )

    API_KEY: Optional[SecretStr] = Field(
        default=None,
        description="API key for header-based auth. If None, auth is disabled.",
    )

    # ------------------------------------------------------------------
    # Related-paper ranking
    # ------------------------------------------------------------------
    SIMILARITY_THRESHOLD: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Default minimum similarity for a paper to count as related.",
    )

    SIMILARITY_MIN: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Lowest threshold a client may request.",
    )

    SIMILARITY_MAX: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Highest threshold a client may request.",
    )

    CANDIDATE_LIMIT: int = Field(
        default=50,
        description="How many candidate papers are fetched for one related-papers pass.",
    )

    RELATED_TOP_K: int = Field(
        default=10,
        description="How many related papers are kept after ranking.",
    )

    RELATED_DISPLAY_COUNT: int = Field(
        default=5,
        description="How many related papers are attached to a citation tree.",
    )

    SEARCH_LIMIT: int = Field(
        default=10,
        description="Maximum number of hits returned by a title search.",
    )

    # ------------------------------------------------------------------
    # Citation extraction
    # ------------------------------------------------------------------
    MIN_EXTRACTED_TEXT_CHARS: int = Field(
        default=10,
        description=(
            "Extracted PDF text shorter than this is treated as a failed "
            "extraction and no citations are detected."
        ),
    )

    PDF_DOWNLOAD_TIMEOUT: float = Field(
        default=60.0,
        description="Timeout in seconds when downloading a paper's PDF from its file_url.",
    )

    # ------------------------------------------------------------------
    # Convenience derived paths
    # ------------------------------------------------------------------
    @property
    def graph_dir(self) -> Path:
        return self.DATA_DIR / "graph"

    @property
    def uploads_dir(self) -> Path:
        return self.DATA_DIR / "uploads"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Singleton-style accessor so we only construct Settings once and
    ensure directories exist on first access.
    """
    global _settings
    if _settings is None:
        _settings = Settings()

        _settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
        _settings.graph_dir.mkdir(parents=True, exist_ok=True)
        _settings.uploads_dir.mkdir(parents=True, exist_ok=True)

    return _settings


settings = get_settings()
