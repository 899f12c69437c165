import math
import random
from datetime import datetime, timezone
from typing import TypeVar

T = TypeVar("T")


def js_round(value: float) -> int:
    """Round half up, the way the browser's Math.round does.

    Example: 2.5 -> 3, -2.5 -> -2 (Python's round() would give 2 and -2)
    """
    return math.floor(value + 0.5)


def format_elapsed(seconds: int) -> str:
    """Format elapsed seconds as mm:ss.

    Example: 75 -> "01:15"
    """
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def generate_ref_no(product_code: str = "") -> str:
    """Build the reference number that ties a submission to its status checks.

    Example: "SKU1" -> "SKU1_48213", "" -> "Ecom_Studio_video_4821390124"
    """
    code = product_code.strip()
    if code:
        return f"{code}_{random.randint(10000, 99999)}"
    return f"Ecom_Studio_video_{random.randint(1000000000, 9999999999)}"


def paginate(items: list[T], page: int, page_size: int) -> list[T]:
    """Return everything shown after `page` load-more clicks (page 0 = first page)."""
    return items[: (page + 1) * page_size]


def parse_timestamp(value: str | None) -> datetime:
    """Parse an ISO timestamp from the store; missing values sort as oldest."""
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO string."""
    return datetime.now(timezone.utc).isoformat()
