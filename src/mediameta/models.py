"""Asset references, the canonical metadata record and job payloads."""

from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class AssetType(str, Enum):
    """Kind of ingested asset."""

    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


@dataclass
class AssetRef:
    """Snapshot of an ingested asset as handed over by the dispatcher.

    Only ``is_visible``, ``live_photo_video_id``, ``file_created_at`` and
    ``duration`` are ever written back by this package.
    """
    id: str
    type: AssetType
    original_path: str
    is_visible: bool = True
    file_created_at: Optional[datetime] = None
    file_modified_at: Optional[datetime] = None
    duration: Optional[str] = None
    live_photo_video_id: Optional[str] = None


@dataclass
class MetadataRecord:
    """Canonical metadata for one asset (unique key: asset_id)."""
    asset_id: str
    image_name: Optional[str] = None
    description: Optional[str] = None
    file_size_in_byte: Optional[int] = None

    # Camera
    make: Optional[str] = None
    model: Optional[str] = None
    lens_model: Optional[str] = None
    exposure_time: Optional[str] = None
    f_number: Optional[float] = None
    focal_length: Optional[float] = None
    iso: Optional[int] = None

    # Dimensions
    exif_image_width: Optional[int] = None
    exif_image_height: Optional[int] = None
    orientation: Optional[str] = None

    # Timestamps
    date_time_original: Optional[datetime] = None
    modify_date: Optional[datetime] = None

    # Location
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    # Live photo / video
    live_photo_cid: Optional[str] = None
    fps: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for database writes."""
        return asdict(self)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class AssetJob:
    """Payload of the image and video extraction jobs."""
    asset: AssetRef
    file_name: str


@dataclass(frozen=True)
class ReverseGeocodingJob:
    """Payload of the standalone reverse-geocoding job."""
    asset_id: str
    latitude: float
    longitude: float
