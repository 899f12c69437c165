"""Selection model - ordered, bounded set of chosen image URLs."""

from dataclasses import dataclass, field

from ..config import MAX_SELECTED_IMAGES
from ..errors import ValidationError


class SelectionLimitError(ValidationError):
    """Tried to select more than the allowed number of images."""
    pass


@dataclass
class Selection:
    """Up to 4 distinct image URLs. Order decides the generation slot."""

    urls: list[str] = field(default_factory=list)
    limit: int = MAX_SELECTED_IMAGES

    def add(self, url: str):
        if url in self.urls:
            raise ValidationError(f"Image already selected: {url}")
        if len(self.urls) >= self.limit:
            raise SelectionLimitError(f"Maximum {self.limit} images can be selected!")
        self.urls.append(url)

    def remove(self, url: str):
        if url in self.urls:
            self.urls.remove(url)

    def toggle(self, url: str) -> bool:
        """Deselect if selected, else select. Returns True if the URL is now selected."""
        if url in self.urls:
            self.remove(url)
            return False
        self.add(url)
        return True

    def slot_of(self, url: str) -> int | None:
        """1-based position shown on the thumbnail, or None."""
        return self.urls.index(url) + 1 if url in self.urls else None

    def clear(self):
        self.urls.clear()

    def __contains__(self, url: str) -> bool:
        return url in self.urls

    def __len__(self) -> int:
        return len(self.urls)
