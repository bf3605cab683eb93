"""
Gallery metadata model.

The metadata document is the single JSON object (``metadata.json``) that
tracks gallery-wide state: the post counter and the profile fields.
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

METADATA_KEY = "metadata.json"


def _to_epoch_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def _parse_timestamp(value: Any) -> datetime:
    """Accept epoch milliseconds or an ISO-8601 string."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    if isinstance(value, str):
        if value.endswith("Z"):
            value = value.replace("Z", "+00:00")
        return datetime.fromisoformat(value)
    raise ValueError(f"Unsupported createdOn value: {value!r}")


@dataclass
class GalleryMetadata:
    """
    In-memory form of ``metadata.json``.

    ``latest_index`` is the index of the most recently created post and never
    decreases. Fields this model does not know about are kept in ``extra`` so
    that rewriting the document does not drop them.
    """

    latest_index: int
    created_on: datetime
    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def default(cls) -> "GalleryMetadata":
        """Metadata for a gallery that has no document yet."""
        return cls(latest_index=0, created_on=datetime.now(UTC))

    @property
    def display_name(self) -> str:
        """First and last name when a first name is set, otherwise the plain name."""
        if self.first_name is not None:
            return f"{self.first_name or ''} {self.last_name or ''}".strip()
        return (self.name or "").strip()

    def next_index(self) -> int:
        return self.latest_index + 1

    def advance_to(self, index: int) -> None:
        """Move the counter forward to ``index``; moving backwards is refused."""
        if index < self.latest_index:
            raise ValueError(f"latestIndex cannot decrease ({self.latest_index} -> {index})")
        self.latest_index = index

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        data["latestIndex"] = self.latest_index
        data["createdOn"] = _to_epoch_millis(self.created_on)
        if self.name is not None:
            data["name"] = self.name
        if self.first_name is not None:
            data["firstName"] = self.first_name
        if self.last_name is not None:
            data["lastName"] = self.last_name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GalleryMetadata":
        """
        Build metadata from a decoded document.

        Raises:
            ValueError: If ``latestIndex`` is missing or not a non-negative integer
        """
        known = {"latestIndex", "createdOn", "name", "firstName", "lastName"}

        latest_index = data.get("latestIndex")
        if isinstance(latest_index, bool) or not isinstance(latest_index, int) or latest_index < 0:
            raise ValueError(f"Invalid latestIndex: {latest_index!r}")

        created_on = data.get("createdOn")
        return cls(
            latest_index=latest_index,
            created_on=_parse_timestamp(created_on) if created_on is not None else datetime.now(UTC),
            name=data.get("name"),
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            extra={key: value for key, value in data.items() if key not in known},
        )

    def to_json_bytes(self) -> bytes:
        return json.dumps(self.to_dict()).encode("utf-8")

    @classmethod
    def from_json_bytes(cls, raw: bytes) -> "GalleryMetadata":
        data = json.loads(raw.decode("utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Metadata document must be a JSON object")
        return cls.from_dict(data)
