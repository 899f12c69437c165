"""Create-video workflows - selection, settings, credits and submission."""

import logging
from concurrent.futures import Future
from pathlib import Path
from typing import Callable

from ..errors import RECOVERABLE_ERRORS, ValidationError, handle_error
from ..models import (
    BatchUnit,
    ImageCandidate,
    ImageSettings,
    PollOutcome,
    PollResult,
    SelectionLimitError,
    WorkflowState,
)
from ..toast import Toaster
from .credits import CreditService
from .generation import ElapsedTimer, GenerationService, StatusPoller
from .sources import ExcelBatchSource, ImageSource, SpreadsheetError

logger = logging.getLogger(__name__)

SELECTING = (WorkflowState.BROWSING, WorkflowState.SELECTION_IN_PROGRESS)
EDITABLE = (WorkflowState.SETTINGS_CONFIGURATION, WorkflowState.COMPLETED, WorkflowState.FAILED)


class _UnitWorkflow:
    """Selection and settings steps shared by the single and batch workflows."""

    def __init__(
        self,
        source: ImageSource,
        generation: GenerationService,
        credits: CreditService,
        toaster: Toaster | None = None,
    ):
        self.source = source
        self.generation = generation
        self.credits = credits
        self.toaster = toaster or Toaster()

    def _report(self, error: BaseException, context: str, prefix: str = ""):
        """Toast a failed step. Validation messages are shown as-is."""
        if isinstance(error, ValidationError):
            message = str(error)
            logger.info(f"[{context}] {message}")
        else:
            message = handle_error(error, context).user_message
        self.toaster.error(f"{prefix}{message}")

    def _toggle(self, unit: BatchUnit, url: str) -> bool:
        if unit.state not in SELECTING:
            self.toaster.error("Click 'Edit again' to change the selection")
            return url in unit.selection
        try:
            selected = unit.selection.toggle(url)
        except SelectionLimitError as e:
            self.toaster.error(str(e))
            return False
        unit.state = WorkflowState.SELECTION_IN_PROGRESS if len(unit.selection) else WorkflowState.BROWSING
        return selected

    def _confirm(self, unit: BatchUnit) -> bool:
        if unit.state not in SELECTING:
            return unit.state == WorkflowState.SETTINGS_CONFIGURATION
        if len(unit.selection) < 1:
            self.toaster.error("Please select at least 1 image!")
            return False
        unit.settings = self.source.apply_settings_defaults(unit.selected_images, unit.settings)
        unit.state = WorkflowState.SETTINGS_CONFIGURATION
        return True

    def _update_setting(self, unit: BatchUnit, slot: int, **changes) -> ImageSettings:
        if unit.state != WorkflowState.SETTINGS_CONFIGURATION or unit.settings is None:
            raise ValidationError("Confirm the selection before changing settings")
        return unit.settings.update(slot, **changes)

    def _edit_again(self, unit: BatchUnit) -> bool:
        """Back to browsing from settings, completed or failed. Selection and settings are kept."""
        if unit.state not in EDITABLE:
            return False
        unit.state = WorkflowState.BROWSING
        return True

    def _charge(self, image_count: int) -> bool:
        """Credit pre-check then deduction. Toasts and returns False on failure."""
        if not self.credits.check_credits(image_count):
            self.toaster.error(self.credits.insufficient_message(image_count))
            return False
        try:
            deducted = self.credits.deduct_credits(image_count)
        except RECOVERABLE_ERRORS as e:
            handle_error(e, "deduct_credits")
            self.toaster.error("Failed to deduct credits. Please try again.")
            return False
        if not deducted:
            self.toaster.error(self.credits.insufficient_message(image_count))
            return False
        return True


class GenerationWorkflow(_UnitWorkflow):
    """
    One batch unit from any image source, through to a finished video.

    States: browsing -> selection_in_progress -> settings_configuration
    -> submitting -> processing -> completed | failed.
    """

    def __init__(
        self,
        source: ImageSource,
        generation: GenerationService,
        credits: CreditService,
        toaster: Toaster | None = None,
        poll_sleep: Callable[[float], object] | None = None,
        on_tick: Callable[[str], None] | None = None,
    ):
        super().__init__(source, generation, credits, toaster)
        self.unit = BatchUnit()
        self.video_url: str | None = None
        self.poll_result: PollResult | None = None
        self.poller: StatusPoller | None = None
        self.timer = ElapsedTimer(on_tick=on_tick)
        self._poll_sleep = poll_sleep
        self._disposed = False

    @property
    def state(self) -> WorkflowState:
        return self.unit.state

    @property
    def candidates(self) -> list[ImageCandidate]:
        return self.unit.images

    def load(self, **params) -> list[ImageCandidate]:
        """Fetch candidates from the source. Failures toast and leave an empty list."""
        try:
            candidates = self.source.fetch_candidates(**params)
        except RECOVERABLE_ERRORS as e:
            self._report(e, f"load_{self.source.name}")
            return []

        if not candidates:
            if self.source.name in ("url", "batch"):
                self.toaster.error("No images found for this URL")
            return []

        if self.source.auto_select:
            # Upload slots accumulate
            self.unit.images = self.unit.images + candidates
            for candidate in candidates:
                if candidate.url not in self.unit.selection and len(self.unit.selection) < self.unit.selection.limit:
                    self.unit.selection.add(candidate.url)
            self.toaster.success("Image uploaded successfully!")
        else:
            self.unit.images = candidates
            if self.source.name == "url":
                self.toaster.success(f"Found {len(candidates)} images")

        self.unit.state = WorkflowState.SELECTION_IN_PROGRESS if len(self.unit.selection) else WorkflowState.BROWSING
        return candidates

    def toggle(self, url: str) -> bool:
        return self._toggle(self.unit, url)

    def remove(self, url: str):
        """Drop an image (upload slot cleared). Its settings go with it on the next confirm."""
        if self.unit.state in SELECTING:
            self.unit.selection.remove(url)
            self.unit.images = [c for c in self.unit.images if c.url != url]
            if not len(self.unit.selection):
                self.unit.state = WorkflowState.BROWSING

    def set_product_code(self, code: str):
        self.unit.product_code = code

    def confirm_selection(self) -> bool:
        return self._confirm(self.unit)

    def update_setting(self, slot: int, **changes) -> ImageSettings:
        return self._update_setting(self.unit, slot, **changes)

    def edit_again(self):
        if self._edit_again(self.unit):
            self.video_url = None
            self.poll_result = None
            self.poller = None

    def submit(self, background: bool = False) -> WorkflowState | Future:
        """
        Charge credits and submit the unit.

        With background=True and a status URL to poll, returns the poller's
        Future; otherwise polls in the calling thread and returns the final state.
        Insufficient credits leave the state unchanged.
        """
        if self.unit.state in SELECTING:
            if not self._confirm(self.unit):
                return self.unit.state
        if self.unit.state != WorkflowState.SETTINGS_CONFIGURATION:
            self.toaster.error("Nothing to submit")
            return self.unit.state

        if not self._charge(len(self.unit.selection)):
            return self.unit.state

        self.unit.state = WorkflowState.SUBMITTING
        self.timer.start()
        payload = self.generation.build_payload(self.unit)
        try:
            result = self.generation.submit(payload)
        except RECOVERABLE_ERRORS as e:
            # Settings stay on screen so Generate can be clicked again
            self._report(e, "generate_video")
            self.timer.stop()
            self.unit.state = WorkflowState.SETTINGS_CONFIGURATION
            return self.unit.state

        if result.video_url:
            self._finish(PollResult(PollOutcome.COMPLETED, result.video_url))
            return self.unit.state

        if not result.status_url:
            # Queued without a status URL; the video shows up in Video Assets later
            self.timer.stop()
            self.unit.state = WorkflowState.COMPLETED
            self.toaster.success("Video generation started! It will appear in Video Assets when ready.")
            return self.unit.state

        self.unit.state = WorkflowState.PROCESSING
        self.poller = self.generation.poller(payload, result.status_url, sleep=self._poll_sleep)
        if background:
            future = self.poller.start()
            future.add_done_callback(self._on_poll_done)
            return future
        try:
            result = self.poller.run()
        except Exception as e:
            self._poll_crashed(e)
            return self.unit.state
        self._finish(result)
        return self.unit.state

    def dispose(self):
        """Stop polling and the timer. Results arriving afterwards are dropped."""
        self._disposed = True
        if self.poller:
            self.poller.cancel()
        self.timer.stop()

    def _on_poll_done(self, future: Future):
        try:
            result = future.result()
        except Exception as e:
            self._poll_crashed(e)
            return
        self._finish(result)

    def _poll_crashed(self, error: Exception):
        """The poller itself raised. Stop the timer and fail the unit."""
        logger.exception(f"Status polling crashed: {error}")
        if self._disposed:
            return
        self.timer.stop()
        self.unit.state = WorkflowState.FAILED
        self.toaster.error(handle_error(error, "check_video_status").user_message)

    def _finish(self, result: PollResult):
        if self._disposed or result.outcome == PollOutcome.CANCELLED:
            logger.info("Discarding poll result after cancel")
            return
        self.timer.stop()
        self.poll_result = result
        if result.outcome == PollOutcome.COMPLETED:
            self.video_url = result.video_url
            self.unit.state = WorkflowState.COMPLETED
            self.toaster.success(result.message)
        else:
            self.unit.state = WorkflowState.FAILED
            self.toaster.error(result.message)


class BatchWorkflow(_UnitWorkflow):
    """
    Spreadsheet import: one unit per URL.

    Units are fetched strictly in order; unit i+1 is fetched only after unit i
    is confirmed. Completed units are submitted sequentially without polling.
    """

    def __init__(
        self,
        source: ExcelBatchSource,
        generation: GenerationService,
        credits: CreditService,
        toaster: Toaster | None = None,
    ):
        super().__init__(source, generation, credits, toaster)
        self.units: list[BatchUnit] = []
        self.submitted: list[str] = []

    @property
    def completed_count(self) -> int:
        return sum(1 for u in self.units if u.is_completed and len(u.selection))

    def import_spreadsheet(self, spreadsheet: str | Path | bytes) -> list[str]:
        """Read URLs, create one unit each, and fetch the first."""
        try:
            urls = self.source.read_urls(spreadsheet)
        except SpreadsheetError as e:
            self.toaster.error(str(e))
            return []

        self.units = [BatchUnit(url=url) for url in urls]
        self.submitted = []
        self.toaster.success(f"{len(urls)} URL(s) imported successfully!")
        self.fetch_unit(0)
        return urls

    def fetch_unit(self, index: int) -> list[ImageCandidate]:
        unit = self._unit(index)
        if index > 0 and not self.units[index - 1].is_completed:
            raise ValidationError(f"URL {index} must be confirmed before fetching URL {index + 1}")

        unit.is_fetching = True
        try:
            candidates = self.source.fetch_candidates(product_url=unit.url)
        except RECOVERABLE_ERRORS as e:
            self._report(e, "fetch_images_for_url", prefix=f"Failed to fetch URL {index + 1}: ")
            candidates = []
        else:
            self.toaster.success(f"Fetched {len(candidates)} images for URL {index + 1}")
        finally:
            unit.is_fetching = False
            unit.is_fetched = True

        unit.images = candidates
        return candidates

    def toggle(self, index: int, url: str) -> bool:
        return self._toggle(self._unit(index), url)

    def set_product_code(self, index: int, code: str):
        self._unit(index).product_code = code

    def confirm(self, index: int) -> bool:
        """Confirm one unit's selection, then fetch the next unit if it hasn't been."""
        if not self._confirm(self._unit(index)):
            return False
        next_index = index + 1
        if next_index < len(self.units) and not self.units[next_index].is_fetched:
            self.fetch_unit(next_index)
        return True

    def edit_again(self, index: int):
        self._edit_again(self._unit(index))

    def update_setting(self, index: int, slot: int, **changes) -> ImageSettings:
        return self._update_setting(self._unit(index), slot, **changes)

    def generate_all(self) -> int:
        """
        Charge for every selected image and submit one payload per unit.

        A failed submission is logged and the loop continues. Returns the
        number of payloads accepted.
        """
        if not self.units or self.completed_count != len(self.units):
            self.toaster.error("Please complete all URL selections first!")
            return 0

        total_images = sum(len(u.selection) for u in self.units)
        if not self._charge(total_images):
            return 0

        accepted = 0
        for unit in self.units:
            unit.state = WorkflowState.SUBMITTING
            payload = self.generation.build_payload(unit)
            try:
                self.generation.submit(payload)
            except RECOVERABLE_ERRORS as e:
                logger.error(f"Failed to send payload {payload.ref_no}: {e}")
                unit.state = WorkflowState.FAILED
                continue
            unit.state = WorkflowState.COMPLETED
            self.submitted.append(payload.ref_no)
            accepted += 1

        self.toaster.success(f"{len(self.units)} videos are being processed! You can leave this page.")
        return accepted

    def _unit(self, index: int) -> BatchUnit:
        if not 0 <= index < len(self.units):
            raise ValidationError(f"Invalid batch index: {index}")
        return self.units[index]
