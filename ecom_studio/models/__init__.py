"""Data models."""

from .batch import BatchUnit, WorkflowState
from .billing import BillingAddress
from .generation import GenerationPayload, PollOutcome, PollResult, SubmissionResult
from .image import ImageCandidate
from .ledger import PriceSettings, Transaction
from .notification import Notification, UserProfile
from .selection import Selection, SelectionLimitError
from .settings import ImageSettings, SlotSettings
from .user_file import UserFile

__all__ = [
    "BatchUnit",
    "WorkflowState",
    "BillingAddress",
    "GenerationPayload",
    "PollOutcome",
    "PollResult",
    "SubmissionResult",
    "ImageCandidate",
    "PriceSettings",
    "Transaction",
    "Notification",
    "UserProfile",
    "Selection",
    "SelectionLimitError",
    "ImageSettings",
    "SlotSettings",
    "UserFile",
]
