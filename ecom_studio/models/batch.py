"""Batch unit - one image source with its selection and settings."""

from dataclasses import dataclass, field
from enum import Enum

from .image import ImageCandidate
from .selection import Selection
from .settings import SlotSettings


class WorkflowState(Enum):
    BROWSING = "browsing"
    SELECTION_IN_PROGRESS = "selection_in_progress"
    SETTINGS_CONFIGURATION = "settings_configuration"
    SUBMITTING = "submitting"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BatchUnit:
    """
    One unit of work: candidates, selection, product code and slot settings.

    Single-method flows use one unit; batch mode uses one per spreadsheet row.
    """

    url: str = ""
    images: list[ImageCandidate] = field(default_factory=list)
    selection: Selection = field(default_factory=Selection)
    product_code: str = ""
    settings: SlotSettings | None = None
    is_fetching: bool = False
    is_fetched: bool = False
    state: WorkflowState = WorkflowState.BROWSING

    @property
    def selected_images(self) -> list[str]:
        return list(self.selection.urls)

    @property
    def is_completed(self) -> bool:
        """Selection confirmed and settings built."""
        return self.settings is not None and self.state not in (
            WorkflowState.BROWSING,
            WorkflowState.SELECTION_IN_PROGRESS,
        )
