"""Asset galleries - video assets, image assets and favorites."""

import logging
from enum import Enum

from ..clients.supabase import SupabaseClient
from ..config import BUNNY_CDN_URL, PAGE_SIZE
from ..errors import RECOVERABLE_ERRORS, ValidationError, handle_error
from ..models import UserFile
from ..toast import Toaster
from ..utils import paginate, parse_timestamp

logger = logging.getLogger(__name__)


class GalleryKind(Enum):
    VIDEO = "video"
    IMAGE = "image"
    FAVORITES = "favorites"


# user_files filters per gallery (user_id is added at load time)
GALLERY_FILTERS: dict[GalleryKind, dict] = {
    GalleryKind.VIDEO: {"folder": "video-assets", "file_type": "video"},
    GalleryKind.IMAGE: {"folder": "image-assets", "file_type": "image"},
    GalleryKind.FAVORITES: {"is_favorite": True},
}

SORT_KEYS = {
    "newest": (lambda f: parse_timestamp(f.created_at), True),
    "oldest": (lambda f: parse_timestamp(f.created_at), False),
    "name_asc": (lambda f: f.file_name.casefold(), False),
    "name_desc": (lambda f: f.file_name.casefold(), True),
    "size_desc": (lambda f: f.file_size, True),
    "size_asc": (lambda f: f.file_size, False),
}


class AssetGallery:
    """
    One gallery page: load, sort, paginate, favorite, mark viewed, lightbox.

    Toggles update the local list first and then persist. A failed write
    shows a toast and the local change is kept.
    """

    def __init__(
        self,
        db: SupabaseClient,
        user_id: str,
        kind: GalleryKind,
        toaster: Toaster | None = None,
        cdn_url: str = BUNNY_CDN_URL,
        page_size: int = PAGE_SIZE,
    ):
        self.db = db
        self.user_id = user_id
        self.kind = kind
        self.toaster = toaster or Toaster()
        self.cdn_base = cdn_url.rstrip("/")
        self.page_size = page_size
        self.items: list[UserFile] = []
        self.sort_by = "newest"
        self.page = 0
        self.lightbox: UserFile | None = None

    @property
    def visible(self) -> list[UserFile]:
        return paginate(self.items, self.page, self.page_size)

    @property
    def has_more(self) -> bool:
        return len(self.visible) < len(self.items)

    def load(self, sort_by: str | None = None) -> list[UserFile]:
        """Fetch the gallery's files. On failure the list is empty and a toast is shown."""
        filters = {"user_id": self.user_id, **GALLERY_FILTERS[self.kind]}
        try:
            rows = self.db.select("user_files", filters=filters)
        except RECOVERABLE_ERRORS as e:
            self.toaster.error(handle_error(e, f"load_{self.kind.value}").user_message)
            self.items = []
            self.page = 0
            return self.visible

        self.items = [UserFile.from_row(row) for row in rows]
        return self.sort(sort_by or self.sort_by)

    def sort(self, sort_by: str) -> list[UserFile]:
        """Re-sort everything and go back to the first page."""
        if sort_by not in SORT_KEYS:
            raise ValidationError(f"Invalid sort: {sort_by}. Valid: {list(SORT_KEYS)}")
        key, reverse = SORT_KEYS[sort_by]
        self.items = sorted(self.items, key=key, reverse=reverse)
        self.sort_by = sort_by
        self.page = 0
        return self.visible

    def load_more(self) -> list[UserFile]:
        if self.has_more:
            self.page += 1
        return self.visible

    def toggle_favorite(self, file_id: str) -> bool | None:
        """Flip is_favorite. Returns the new value, or None if the item isn't listed."""
        item = self._find(file_id)
        if item is None:
            return None

        item.is_favorite = not item.is_favorite
        if self.kind == GalleryKind.FAVORITES and not item.is_favorite:
            self.items = [f for f in self.items if f.id != file_id]
            if self.lightbox and self.lightbox.id == file_id:
                self.lightbox = None

        try:
            self.db.update("user_files", {"is_favorite": item.is_favorite}, {"id": file_id})
        except RECOVERABLE_ERRORS as e:
            self.toaster.error(handle_error(e, "toggle_favorite").user_message)
            return item.is_favorite

        self.toaster.success("Added to favorites!" if item.is_favorite else "Removed from favorites!")
        return item.is_favorite

    def mark_viewed(self, file_id: str):
        item = self._find(file_id)
        if item is None or item.is_viewed:
            return
        item.is_viewed = True
        try:
            self.db.update("user_files", {"is_viewed": True}, {"id": file_id})
        except RECOVERABLE_ERRORS as e:
            self.toaster.error(handle_error(e, "mark_viewed").user_message)

    def open_lightbox(self, file_id: str) -> str | None:
        """Show an item full-size. Returns its CDN URL."""
        item = self._find(file_id)
        if item is None:
            return None
        self.lightbox = item
        if not item.is_viewed:
            self.mark_viewed(file_id)
        return self.cdn_url(item)

    def close_lightbox(self):
        self.lightbox = None

    def cdn_url(self, item: UserFile) -> str:
        return f"{self.cdn_base}/user-{self.user_id}/{item.folder}/{item.basename}"

    def unviewed_video_count(self) -> int:
        return sum(1 for f in self.items if f.file_type == "video" and not f.is_viewed)

    def _find(self, file_id: str) -> UserFile | None:
        return next((f for f in self.items if f.id == file_id), None)
