from .admin import AdminService, ProductStats, TransactionLog
from .billing import BillingService
from .credits import CreditService
from .gallery import AssetGallery, GalleryKind
from .generation import ElapsedTimer, GenerationService, StatusPoller
from .notifications import NotificationService
from .profile import ProfileService
from .sources import (
    ComputerUploadSource,
    ExcelBatchSource,
    ImageSource,
    LibrarySource,
    SpreadsheetError,
    UrlSource,
)
from .workflow import BatchWorkflow, GenerationWorkflow

__all__ = [
    "AdminService",
    "ProductStats",
    "TransactionLog",
    "BillingService",
    "CreditService",
    "AssetGallery",
    "GalleryKind",
    "ElapsedTimer",
    "GenerationService",
    "StatusPoller",
    "NotificationService",
    "ProfileService",
    "ComputerUploadSource",
    "ExcelBatchSource",
    "ImageSource",
    "LibrarySource",
    "SpreadsheetError",
    "UrlSource",
    "BatchWorkflow",
    "GenerationWorkflow",
]
