"""Image candidate model - an image the user can pick for a batch."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ImageCandidate:
    """An image available for selection. Produced by an image source."""

    url: str
    thumbnail: str | None = None
    name: str | None = None
    last_modified: str | None = None

    @staticmethod
    def from_api(item: Any) -> "ImageCandidate":
        """Build from an API entry: either {"url", "thumbnail"?} or a bare URL string."""
        if isinstance(item, str):
            return ImageCandidate(url=item, thumbnail=item)
        url = item.get("url") or ""
        return ImageCandidate(
            url=url,
            thumbnail=item.get("thumbnail") or url,
            name=item.get("name"),
            last_modified=item.get("date"),
        )
