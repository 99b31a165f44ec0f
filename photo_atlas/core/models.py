from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

# Bump to force every catalogued item through processing again.
CURRENT_SCHEMA_VERSION = 2

MediaKind = Literal["image", "video"]


def _field(name: str, *legacy: str, default: Any = None) -> Any:
    """Camel-case JSON name, also accepting older manifest field names on read."""
    return Field(
        default=default,
        validation_alias=AliasChoices(name, *legacy),
        serialization_alias=name,
    )


def valid_coordinates(latitude: Optional[float], longitude: Optional[float]) -> bool:
    if latitude is None or longitude is None:
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


class CatalogModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class MediaMetadata(BaseModel):
    latitude: float
    longitude: float
    captured_at: Optional[datetime] = None


class MediaFile(BaseModel):
    """A recognised file found while scanning the source tree."""

    path: str
    name: str  # relative to the source root, POSIX separators
    kind: MediaKind


class MediaItem(CatalogModel):
    id: str
    original_name: str = _field("originalName")
    content_hash: Optional[str] = _field("contentHash", "fileHash")
    kind: MediaKind = _field("kind", "type", default="image")
    latitude: Optional[float] = _field("latitude", "lat")
    longitude: Optional[float] = _field("longitude", "lng")
    captured_at: Optional[datetime] = _field("capturedAt", "timestamp")
    location_url: Optional[str] = _field("locationUrl", "url")
    processed: bool = False
    error: Optional[str] = None
    schema_version: int = _field("schemaVersion", "processingVersion", default=1)
    duplicate_of: Optional[str] = _field("duplicateOf")
    optimized_size: Optional[int] = _field("optimizedSize")

    @model_validator(mode="after")
    def _videos_have_no_coordinates(self) -> "MediaItem":
        if self.kind == "video" and (self.latitude is not None or self.longitude is not None):
            raise ValueError(f"video {self.original_name!r} cannot carry coordinates")
        return self

    @property
    def has_coordinates(self) -> bool:
        return valid_coordinates(self.latitude, self.longitude)

    @property
    def is_clusterable(self) -> bool:
        return (
            self.has_coordinates
            and self.processed
            and not self.error
            and self.duplicate_of is None
        )


class LocationGroup(CatalogModel):
    id: str
    latitude: float = _field("latitude", "lat", default=...)
    longitude: float = _field("longitude", "lng", default=...)
    place_name: str = _field("locationName", "placeName", default="")
    photos: list[MediaItem] = Field(default_factory=list)
    count: int = 0

    @model_validator(mode="after")
    def _members_are_geotagged(self) -> "LocationGroup":
        if not self.photos:
            raise ValueError(f"location group {self.id} has no members")
        if any(not photo.has_coordinates for photo in self.photos):
            raise ValueError(f"location group {self.id} has members without coordinates")
        self.count = len(self.photos)
        return self


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Catalog(CatalogModel):
    photos: list[MediaItem] = Field(default_factory=list)
    groups: list[LocationGroup] = Field(default_factory=list)
    last_updated: datetime = Field(
        default_factory=_utcnow,
        validation_alias=AliasChoices("lastUpdated"),
        serialization_alias="lastUpdated",
    )
    version: int = 1

    @model_validator(mode="after")
    def _names_are_unique(self) -> "Catalog":
        seen: set[str] = set()
        for photo in self.photos:
            if photo.original_name in seen:
                raise ValueError(f"duplicate catalog entry for {photo.original_name!r}")
            seen.add(photo.original_name)
        member_ids: set[str] = set()
        for group in self.groups:
            for photo in group.photos:
                if photo.id in member_ids:
                    raise ValueError(f"item {photo.id} belongs to more than one group")
                member_ids.add(photo.id)
        return self

    def by_name(self) -> dict[str, MediaItem]:
        return {photo.original_name: photo for photo in self.photos}

    def by_hash(self) -> dict[str, MediaItem]:
        """First successfully processed item per content hash, ignoring duplicate records."""
        index: dict[str, MediaItem] = {}
        for photo in self.photos:
            if not photo.content_hash or photo.duplicate_of is not None:
                continue
            if photo.processed and not photo.error:
                index.setdefault(photo.content_hash, photo)
        return index

    def by_id(self) -> dict[str, MediaItem]:
        return {photo.id: photo for photo in self.photos}
