"""Generation request / response models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .settings import SlotSettings


@dataclass
class GenerationPayload:
    """Body sent to /api/generate-video. One per batch unit."""

    user_id: str
    ref_no: str
    selected_images: list[str]
    settings: SlotSettings

    @property
    def image_count(self) -> int:
        return len(self.selected_images)

    def to_dict(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "refNo": self.ref_no,
            "selectedImages": self.selected_images,
            "imageCount": self.image_count,
            "settings": self.settings.to_payload(),
        }


@dataclass
class SubmissionResult:
    """Either a finished video or a URL to poll."""

    video_url: str | None = None
    status_url: str | None = None

    @property
    def is_immediate(self) -> bool:
        return bool(self.video_url)


class PollOutcome(Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    STATUS_UNAVAILABLE = "status_unavailable"
    AUTH_EXPIRED = "auth_expired"
    CANCELLED = "cancelled"


# User-facing text per terminal outcome
OUTCOME_MESSAGES: dict[PollOutcome, str] = {
    PollOutcome.COMPLETED: "Video successfully created!",
    PollOutcome.FAILED: "Video generation failed.",
    PollOutcome.TIMED_OUT: "Process took too long.",
    PollOutcome.STATUS_UNAVAILABLE: "Cannot check video status.",
    PollOutcome.AUTH_EXPIRED: "Authentication expired",
    PollOutcome.CANCELLED: "Status check cancelled.",
}


@dataclass
class PollResult:
    outcome: PollOutcome
    video_url: str | None = None
    attempts: int = 0

    @property
    def message(self) -> str:
        return OUTCOME_MESSAGES[self.outcome]
