"""Configuration models for metadata extraction."""

from pathlib import Path
from typing import Optional

import platformdirs
from pydantic import BaseModel, Field, ConfigDict

from mediameta.common import LoggingConfig

APP_NAME = "mediameta"

# Index = geocoding.precision; lower index = fewer, larger places
GEOCODING_PRECISION_LEVELS = ("cities15000", "cities5000", "cities1000", "cities500")


class GeocodingConfig(BaseModel):
    """Offline reverse geocoding configuration."""

    model_config = ConfigDict(extra='forbid')

    disabled: bool = Field(
        default=False,
        description="Disable reverse geocoding entirely (index is never loaded)"
    )
    precision: int = Field(
        default=2,
        ge=0,
        le=len(GEOCODING_PRECISION_LEVELS) - 1,
        description="Gazetteer density: 0=cities15000, 1=cities5000, 2=cities1000, 3=cities500"
    )
    dump_directory: Optional[str] = Field(
        default=None,
        description="Directory holding the GeoNames dump files (default: user cache dir)"
    )

    @property
    def cities_file_stem(self) -> str:
        return GEOCODING_PRECISION_LEVELS[self.precision]

    @property
    def dump_path(self) -> Path:
        if self.dump_directory:
            return Path(self.dump_directory)
        return Path(platformdirs.user_cache_dir(APP_NAME, appauthor=False)) / "reverse-geocoding-dump"


class ExtractionConfig(BaseModel):
    """External tools and job concurrency."""

    model_config = ConfigDict(extra='forbid')

    exiftool_path: str = Field(default="exiftool", description="exiftool binary name or path")
    ffprobe_path: str = Field(default="ffprobe", description="ffprobe binary name or path")
    tool_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single exiftool/ffprobe invocation"
    )
    video_concurrency: int = Field(
        default=2,
        ge=1,
        description="Maximum number of video extraction jobs running at once"
    )


class DatabaseConfig(BaseModel):
    """SQLite database location."""

    model_config = ConfigDict(extra='forbid')

    path: Optional[str] = Field(
        default=None,
        description="Path to SQLite database file (default: user data dir/mediameta.db)"
    )

    @property
    def resolved_path(self) -> Path:
        if self.path:
            return Path(self.path)
        return Path(platformdirs.user_data_dir(APP_NAME, appauthor=False)) / "mediameta.db"


class MediaMetaConfig(BaseModel):
    """Root configuration."""

    model_config = ConfigDict(extra='forbid')

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
