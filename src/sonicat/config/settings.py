"""Application settings loaded from environment variables.

Hey future me - everything is nested! Environment variables use the SONICAT_ prefix
and "__" as the nested delimiter, e.g.:

    SONICAT_LIBRARY__MUSIC_FOLDERS='["/music", "/mnt/more-music"]'
    SONICAT_LIBRARY__ARTIST_SEPARATORS='[";", "/"]'
    SONICAT_SWEEP__BATCH_SIZE=100
    SONICAT_DATABASE__URL=sqlite+aiosqlite:////config/sonicat.db

List values are parsed as JSON by pydantic-settings.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_AUDIO_EXTENSIONS: tuple[str, ...] = (
    ".flac",
    ".mp3",
    ".wav",
    ".ogg",
    ".m4a",
    ".opus",
)


class LibrarySettings(BaseModel):
    """Music library locations and tag parsing options."""

    music_folders: list[Path] = Field(
        default_factory=lambda: [Path("/music")],
        description="Root directories scanned for audio files",
    )
    artist_separators: list[str] = Field(
        default_factory=lambda: [";", "/"],
        description="Characters that split multi-artist tag strings",
    )
    genre_separators: list[str] = Field(
        default_factory=lambda: [";", "/", ","],
        description="Characters that split multi-genre tag strings",
    )
    supported_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_AUDIO_EXTENSIONS),
        description="Audio file extensions picked up by discovery",
    )
    data_folder: Path = Field(
        default=Path("./data"),
        description="Folder for generated data (extracted cover art)",
    )
    scan_on_start: bool = Field(
        default=False, description="Start a library scan when the app boots"
    )

    @field_validator("supported_extensions")
    @classmethod
    def normalize_extensions(cls, value: list[str]) -> list[str]:
        """Lowercase extensions and make sure they start with a dot."""
        normalized = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return normalized

    @field_validator("artist_separators", "genre_separators")
    @classmethod
    def drop_empty_separators(cls, value: list[str]) -> list[str]:
        """Empty separators would split on every character."""
        return [sep for sep in value if sep]

    @property
    def covers_path(self) -> Path:
        """Directory where extracted cover art files are written."""
        return self.data_folder / "covers"


class SweepSettings(BaseModel):
    """Consistency sweep tuning."""

    batch_size: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Maximum keys deleted per atomic commit",
    )


class DatabaseSettings(BaseModel):
    """Database configuration."""

    url: str = Field(
        default="sqlite+aiosqlite:///./sonicat.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")
    pool_pre_ping: bool = Field(default=True, description="Check connections")


class ObservabilitySettings(BaseModel):
    """Logging configuration."""

    log_level: str = Field(default="INFO", description="Root logging level")
    log_json_format: bool = Field(
        default=False, description="Emit JSON logs (production)"
    )
    shutdown_timeout: float = Field(
        default=10.0, gt=0, description="Seconds to wait for a running scan on shutdown"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Only accept the standard logging level names."""
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="SONICAT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="sonicat")
    library: LibrarySettings = Field(default_factory=LibrarySettings)
    sweep: SweepSettings = Field(default_factory=SweepSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()
