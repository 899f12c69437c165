"""Generation service - submit payloads and poll for the finished video."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

import requests

from ..clients.studio import StudioClient
from ..config import MAX_POLL_ATTEMPTS, MAX_TRANSPORT_ERRORS, POLL_INTERVAL_SECONDS
from ..errors import ApiError, AuthenticationError, ValidationError
from ..models import (
    BatchUnit,
    GenerationPayload,
    PollOutcome,
    PollResult,
    SlotSettings,
    SubmissionResult,
)
from ..utils import format_elapsed, generate_ref_no

logger = logging.getLogger(__name__)


class GenerationService:
    """Builds payloads and submits them to /api/generate-video."""

    def __init__(self, studio: StudioClient, user_id: str):
        self.studio = studio
        self.user_id = user_id

    def build_payload(self, unit: BatchUnit) -> GenerationPayload:
        urls = unit.selected_images
        if not urls:
            raise ValidationError("Please select at least 1 image!")
        settings = unit.settings or SlotSettings.from_urls(urls)
        return GenerationPayload(
            user_id=self.user_id,
            ref_no=generate_ref_no(unit.product_code),
            selected_images=urls,
            settings=settings,
        )

    def submit(self, payload: GenerationPayload) -> SubmissionResult:
        """Submit one payload. No retries."""
        print(f"Submitting {payload.ref_no} ({payload.image_count} images)", flush=True)
        result = self.studio.generate_video(payload)
        if result.is_immediate:
            logger.info(f"{payload.ref_no}: video ready immediately")
        elif result.status_url:
            logger.info(f"{payload.ref_no}: queued, status at {result.status_url}")
        else:
            logger.info(f"{payload.ref_no}: accepted without status URL")
        return result

    def poller(self, payload: GenerationPayload, status_url: str, **kwargs) -> "StatusPoller":
        return StatusPoller(self.studio, status_url, payload.ref_no, self.user_id, **kwargs)


class StatusPoller:
    """
    Polls /api/check-video-status at a fixed interval until a terminal state.

    Stops on: completed with a video URL, failed, `max_attempts` checks,
    `max_transport_errors` consecutive failed checks, or an expired session.
    cancel() stops it at the next wake-up; a check that returns after
    cancel() is discarded.
    """

    def __init__(
        self,
        studio: StudioClient,
        status_url: str,
        ref_no: str,
        user_id: str,
        interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        max_transport_errors: int = MAX_TRANSPORT_ERRORS,
        sleep: Callable[[float], object] | None = None,
    ):
        self.studio = studio
        self.status_url = status_url
        self.ref_no = ref_no
        self.user_id = user_id
        self.interval = interval
        self.max_attempts = max_attempts
        self.max_transport_errors = max_transport_errors
        self._cancelled = threading.Event()
        self._sleep = sleep or self._cancelled.wait
        self._executor: ThreadPoolExecutor | None = None
        self.attempts = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def run(self) -> PollResult:
        """Poll in the calling thread. Returns the terminal result."""
        consecutive_errors = 0

        while self.attempts < self.max_attempts:
            self._sleep(self.interval)
            if self.cancelled:
                return self._result(PollOutcome.CANCELLED)

            self.attempts += 1
            try:
                status = self.studio.check_video_status(self.status_url, self.ref_no, self.user_id)
            except AuthenticationError:
                return self._result(PollOutcome.AUTH_EXPIRED)
            except (requests.RequestException, ApiError) as e:
                consecutive_errors += 1
                logger.warning(
                    f"{self.ref_no}: status check {self.attempts} failed "
                    f"({consecutive_errors}/{self.max_transport_errors}): {e}"
                )
                if consecutive_errors >= self.max_transport_errors:
                    return self._result(PollOutcome.STATUS_UNAVAILABLE)
                continue

            consecutive_errors = 0
            if self.cancelled:
                return self._result(PollOutcome.CANCELLED)

            state = status.get("status")
            if state == "completed" and status.get("video_url"):
                return self._result(PollOutcome.COMPLETED, status["video_url"])
            if state == "failed":
                return self._result(PollOutcome.FAILED)
            print(f"  {self.ref_no}: {state or 'pending'} (check {self.attempts}/{self.max_attempts})", flush=True)

        return self._result(PollOutcome.TIMED_OUT)

    def start(self) -> Future:
        """Run on a background worker. The Future resolves to the PollResult."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="status-poller")
        return self._executor.submit(self.run)

    def cancel(self):
        self._cancelled.set()
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def _result(self, outcome: PollOutcome, video_url: str | None = None) -> PollResult:
        logger.info(f"{self.ref_no}: polling stopped ({outcome.value}) after {self.attempts} checks")
        return PollResult(outcome=outcome, video_url=video_url, attempts=self.attempts)


class ElapsedTimer:
    """Cosmetic mm:ss counter shown while a video is processing."""

    def __init__(self, on_tick: Callable[[str], None] | None = None, interval: float = 1.0):
        self.on_tick = on_tick
        self.interval = interval
        self.seconds = 0
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def display(self) -> str:
        return format_elapsed(self.seconds)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        self.seconds = 0
        self._stopped.clear()
        self._thread = threading.Thread(target=self._loop, name="elapsed-timer", daemon=True)
        self._thread.start()

    def tick(self) -> str:
        self.seconds += 1
        if self.on_tick:
            self.on_tick(self.display)
        return self.display

    def stop(self):
        self._stopped.set()
        self._thread = None

    def _loop(self):
        while not self._stopped.wait(self.interval):
            self.tick()
