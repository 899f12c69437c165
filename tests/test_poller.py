import pytest
import requests

from ecom_studio.errors import ApiError, AuthenticationError
from ecom_studio.models import PollOutcome
from ecom_studio.services import ElapsedTimer, StatusPoller
from ecom_studio.utils import format_elapsed


def make_poller(studio, sleep=None, **kwargs):
    delays = []
    poller = StatusPoller(studio, "https://status.test/1", "SKU_12345", "user-1", sleep=sleep or delays.append, **kwargs)
    return poller, delays


def test_completed_stops_with_video_url(studio):
    studio.statuses = [{"status": "processing"}, {"status": "completed", "video_url": "https://cdn.test/v.mp4"}]
    poller, delays = make_poller(studio)

    result = poller.run()

    assert result.outcome == PollOutcome.COMPLETED
    assert result.video_url == "https://cdn.test/v.mp4"
    assert result.attempts == 2
    assert delays == [10, 10]


def test_completed_without_url_keeps_polling(studio):
    studio.statuses = [{"status": "completed"}, {"status": "failed"}]
    poller, _ = make_poller(studio)

    result = poller.run()

    assert result.outcome == PollOutcome.FAILED
    assert result.message == "Video generation failed."
    assert studio.status_checks == 2


def test_times_out_after_max_attempts(studio):
    poller, delays = make_poller(studio)

    result = poller.run()

    assert result.outcome == PollOutcome.TIMED_OUT
    assert result.message == "Process took too long."
    assert studio.status_checks == 60
    assert len(delays) == 60


def test_three_consecutive_transport_errors(studio, transport_error):
    studio.statuses = [transport_error, requests.ConnectionError("down"), transport_error]
    poller, _ = make_poller(studio)

    result = poller.run()

    assert result.outcome == PollOutcome.STATUS_UNAVAILABLE
    assert result.message == "Cannot check video status."
    assert result.attempts == 3


def test_successful_check_resets_error_count(studio, transport_error):
    studio.statuses = [
        transport_error, transport_error, {"status": "processing"},
        transport_error, transport_error,
        {"status": "completed", "video_url": "https://cdn.test/v.mp4"},
    ]
    poller, _ = make_poller(studio)

    result = poller.run()

    assert result.outcome == PollOutcome.COMPLETED
    assert result.attempts == 6


def test_expired_session_stops_polling(studio):
    studio.statuses = [{"status": "processing"}, AuthenticationError("Authentication expired")]
    poller, _ = make_poller(studio)

    result = poller.run()

    assert result.outcome == PollOutcome.AUTH_EXPIRED
    assert result.message == "Authentication expired"


def test_cancel_before_next_check(studio):
    poller = None

    def cancel_on_second_sleep(seconds):
        if studio.status_checks == 1:
            poller.cancel()

    poller, _ = make_poller(studio, sleep=cancel_on_second_sleep)
    result = poller.run()

    assert result.outcome == PollOutcome.CANCELLED
    assert studio.status_checks == 1


def test_result_arriving_after_cancel_is_discarded(studio):
    poller = None

    class CancellingStudio:
        def check_video_status(self, *args):
            poller.cancel()
            return {"status": "completed", "video_url": "https://cdn.test/late.mp4"}

    poller, _ = make_poller(CancellingStudio())
    result = poller.run()

    assert result.outcome == PollOutcome.CANCELLED
    assert result.video_url is None


def test_start_runs_in_background(studio):
    studio.statuses = [{"status": "completed", "video_url": "https://cdn.test/v.mp4"}]
    poller, _ = make_poller(studio)

    future = poller.start()

    assert future.result(timeout=5).outcome == PollOutcome.COMPLETED
    poller.cancel()


def test_api_error_counts_as_transport_error(studio):
    studio.statuses = [ApiError("bad gateway", 502)] * 3
    poller, _ = make_poller(studio, max_transport_errors=3)

    assert poller.run().outcome == PollOutcome.STATUS_UNAVAILABLE


class TestElapsedTimer:
    def test_tick_formats_mm_ss(self):
        ticks = []
        timer = ElapsedTimer(on_tick=ticks.append)

        for _ in range(75):
            timer.tick()

        assert timer.display == "01:15"
        assert ticks[0] == "00:01"
        assert ticks[-1] == "01:15"

    def test_stop_ends_thread(self):
        timer = ElapsedTimer(interval=0.01)
        timer.start()
        assert timer.running
        timer.stop()
        assert not timer.running

    def test_format_elapsed(self):
        assert format_elapsed(0) == "00:00"
        assert format_elapsed(599) == "09:59"
        assert format_elapsed(3600) == "60:00"


def test_pending_twice_then_completed(studio):
    studio.statuses = [
        {"status": "pending"}, {"status": "pending"},
        {"status": "completed", "video_url": "y"},
    ]
    poller, delays = make_poller(studio)

    result = poller.run()

    assert result.video_url == "y"
    assert studio.status_checks == 3
    assert delays == [10, 10, 10]


def test_unexpected_error_propagates(studio):
    studio.statuses = [RuntimeError("boom")]
    poller, _ = make_poller(studio)

    with pytest.raises(RuntimeError):
        poller.run()
    assert studio.status_checks == 1
