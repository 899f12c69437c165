"""Image source adapters - turn each input method into image candidates."""

import logging
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..clients.studio import StudioClient
from ..config import BATCH_URL_LIMIT, MAX_SELECTED_IMAGES, PAGE_SIZE
from ..errors import ValidationError
from ..models import ImageCandidate, SlotSettings
from ..utils import paginate, parse_timestamp

logger = logging.getLogger(__name__)


class SpreadsheetError(ValidationError):
    """Spreadsheet could not be read or holds no usable URLs."""
    pass


class ImageSource(ABC):
    """Base class for the four input methods."""

    name = "source"
    # Uploaded images go straight into the selection in slot order
    auto_select = False

    @abstractmethod
    def fetch_candidates(self, **params) -> list[ImageCandidate]:
        """Return the images the user can pick from."""
        pass

    def apply_settings_defaults(
        self, urls: list[str], previous: SlotSettings | None = None
    ) -> SlotSettings:
        return SlotSettings.from_urls(urls, previous)


class ComputerUploadSource(ImageSource):
    """Local files uploaded through /api/upload-image (four fixed slots)."""

    name = "computer"
    auto_select = True

    def __init__(self, studio: StudioClient, user_id: str):
        self.studio = studio
        self.user_id = user_id

    def fetch_candidates(self, files: list[tuple[str, bytes, str]] | None = None, **params) -> list[ImageCandidate]:
        """
        Upload local files.

        Args:
            files: (filename, bytes, content_type) per file, at most 4.

        Returns:
            One candidate per uploaded file, in upload order.
        """
        files = files or []
        if len(files) > MAX_SELECTED_IMAGES:
            raise ValidationError(f"Maximum {MAX_SELECTED_IMAGES} images can be uploaded!")
        for filename, _, content_type in files:
            if not (content_type or "").startswith("image/"):
                raise ValidationError(f"Please select an image file! ({filename})")

        candidates = []
        for filename, file_bytes, content_type in files:
            url = self.studio.upload_image(self.user_id, file_bytes, filename, content_type)
            logger.info(f"Uploaded {filename} -> {url}")
            candidates.append(ImageCandidate(url=url, thumbnail=url, name=filename))
        return candidates


class LibrarySource(ImageSource):
    """Images the user uploaded earlier, newest first."""

    name = "library"

    def __init__(self, studio: StudioClient, user_id: str, page_size: int = PAGE_SIZE):
        self.studio = studio
        self.user_id = user_id
        self.page_size = page_size

    def fetch_candidates(self, **params) -> list[ImageCandidate]:
        images = self.studio.list_library_images(self.user_id)
        return sorted(images, key=lambda img: parse_timestamp(img.last_modified), reverse=True)

    def page(self, candidates: list[ImageCandidate], page: int) -> list[ImageCandidate]:
        """Visible candidates after `page` load-more clicks."""
        return paginate(candidates, page, self.page_size)


class UrlSource(ImageSource):
    """Images scraped from a product page."""

    name = "url"

    def __init__(self, studio: StudioClient):
        self.studio = studio

    def fetch_candidates(self, product_url: str = "", **params) -> list[ImageCandidate]:
        product_url = (product_url or "").strip()
        if not product_url:
            raise ValidationError("Please enter a product URL!")
        return self.studio.fetch_product_images(product_url)


class ExcelBatchSource(UrlSource):
    """Product URLs from column A of a spreadsheet, fetched one at a time."""

    name = "batch"

    def __init__(self, studio: StudioClient, limit: int = BATCH_URL_LIMIT):
        super().__init__(studio)
        self.limit = limit

    def read_urls(self, source: str | Path | bytes) -> list[str]:
        """
        Read product URLs from the first sheet.

        Only column A of the first `limit` rows is read. Values that are not
        strings or don't contain "http" / "www" are skipped.

        Raises SpreadsheetError if the file can't be opened or has no URLs.
        """
        stream = BytesIO(source) if isinstance(source, bytes) else source
        try:
            workbook = load_workbook(stream, read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
            raise SpreadsheetError(f"Could not read spreadsheet: {e}")

        try:
            sheet = workbook.worksheets[0]
            urls = []
            for row in sheet.iter_rows(min_row=1, max_row=self.limit, max_col=1, values_only=True):
                value = row[0] if row else None
                if not isinstance(value, str) or not value.strip():
                    continue
                if "http" in value or "www" in value:
                    urls.append(value.strip())
        finally:
            workbook.close()

        if not urls:
            raise SpreadsheetError("No valid URLs found in column A!")
        logger.info(f"Read {len(urls)} URLs from spreadsheet")
        return urls
