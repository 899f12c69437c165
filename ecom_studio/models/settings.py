"""Per-slot generation settings."""

from dataclasses import dataclass, field, fields, replace
from typing import Any

from ..config import MAX_SELECTED_IMAGES
from ..errors import ValidationError

DURATIONS = ("5", "10")

# Field name -> payload key expected by the generation webhook
PAYLOAD_KEYS = {
    "image_url": "imageUrl",
    "duration": "duration",
    "prompt": "prompt",
    "negative_prompt": "negativePrompt",
    "creativity": "creativity",
}


@dataclass(frozen=True)
class ImageSettings:
    """Settings for one selected image (one slot)."""

    image_url: str
    duration: str = "5"
    prompt: str = ""
    negative_prompt: str = ""
    creativity: float = 0.5

    def __post_init__(self):
        if self.duration not in DURATIONS:
            raise ValidationError(f"Invalid duration: {self.duration}. Valid: {list(DURATIONS)}")
        if not 0 <= self.creativity <= 1:
            raise ValidationError(f"Invalid creativity: {self.creativity}. Valid: 0-1")

    def to_payload(self) -> dict[str, Any]:
        return {PAYLOAD_KEYS[f.name]: getattr(self, f.name) for f in fields(self)}


@dataclass
class SlotSettings:
    """
    Fixed four-slot settings record.

    Slot i holds the settings of the i-th selected image; slots past the
    selection length are None.
    """

    slots: list[ImageSettings | None] = field(
        default_factory=lambda: [None] * MAX_SELECTED_IMAGES
    )

    @staticmethod
    def from_urls(urls: list[str], previous: "SlotSettings | None" = None) -> "SlotSettings":
        """
        Default-construct one entry per URL, in slot order.

        Args:
            urls: Selected image URLs (max 4).
            previous: Earlier settings; entries whose image is still selected are kept.
        """
        if len(urls) > MAX_SELECTED_IMAGES:
            raise ValidationError(f"Maximum {MAX_SELECTED_IMAGES} images allowed")

        kept = {}
        if previous:
            kept = {s.image_url: s for s in previous.active()}

        settings = SlotSettings()
        for i, url in enumerate(urls):
            settings.slots[i] = kept.get(url) or ImageSettings(image_url=url)
        return settings

    def get(self, slot: int) -> ImageSettings:
        self._check_slot(slot)
        return self.slots[slot]

    def update(self, slot: int, **changes: Any) -> ImageSettings:
        """Change fields of one slot. Unknown fields and bad values are rejected."""
        current = self.get(slot)
        unknown = set(changes) - set(PAYLOAD_KEYS) - {"image_url"}
        if unknown or "image_url" in changes:
            raise ValidationError(f"Cannot update fields: {sorted(unknown or {'image_url'})}")
        if "creativity" in changes:
            changes["creativity"] = float(changes["creativity"])
        if "duration" in changes:
            changes["duration"] = str(changes["duration"])
        updated = replace(current, **changes)
        self.slots[slot] = updated
        return updated

    def active(self) -> list[ImageSettings]:
        return [s for s in self.slots if s is not None]

    def to_payload(self) -> dict[str, dict[str, Any]]:
        """Webhook shape: {"0": {...}, "1": {...}} keyed by slot index."""
        return {str(i): s.to_payload() for i, s in enumerate(self.slots) if s is not None}

    def __len__(self) -> int:
        return len(self.active())

    def _check_slot(self, slot: int):
        if not 0 <= slot < MAX_SELECTED_IMAGES:
            raise ValidationError(f"Invalid slot: {slot}. Valid: 0-{MAX_SELECTED_IMAGES - 1}")
        if self.slots[slot] is None:
            raise ValidationError(f"Slot {slot} has no selected image")
