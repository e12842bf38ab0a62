"""Skin catalog models"""

from dataclasses import dataclass, field
from datetime import datetime, timezone


DEFAULT_AUTHOR = "Anonymous"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-01T12:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class SkinRecord:
    """An uploaded skin texture. Records are immutable once cataloged."""
    id: int
    name: str
    filename: str
    url: str
    author: str = DEFAULT_AUTHOR
    uploaded_at: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict:
        """Convert to the public wire representation"""
        return {
            "id": self.id,
            "name": self.name,
            "author": self.author,
            "filename": self.filename,
            "url": self.url,
            "uploadedAt": self.uploaded_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SkinRecord":
        """Create record from dictionary"""
        return cls(
            id=int(data["id"]),
            name=data["name"],
            author=data.get("author") or DEFAULT_AUTHOR,
            filename=data["filename"],
            url=data["url"],
            uploaded_at=data.get("uploadedAt") or utc_timestamp(),
        )


@dataclass(frozen=True)
class ResolvedSkin:
    """Result of a username -> skin texture lookup. Never stored."""
    username: str
    uuid: str
    skin_url: str

    def to_dict(self) -> dict:
        return {"username": self.username, "uuid": self.uuid, "skinUrl": self.skin_url}
