"""Admin console - users, usage stats, pricing, credit usage and the transaction log."""

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from ..clients.supabase import SupabaseClient
from ..config import TRANSACTIONS_PAGE_SIZE
from ..errors import ValidationError
from ..models import Transaction, UserProfile
from ..models.ledger import PRICE_SETTING_KEYS
from ..utils import js_round, paginate, parse_timestamp, utc_now_iso
from .credits import CreditService

logger = logging.getLogger(__name__)

# Rolling periods shown on the credit usage cards
USAGE_PERIODS = {
    "weekly": timedelta(days=7),
    "monthly": timedelta(days=30),
    "quarterly": timedelta(days=90),
    "yearly": timedelta(days=365),
}


@dataclass
class UserStats:
    favorite_videos: int = 0
    videos: int = 0
    generated_images: int = 0
    uploaded_images: int = 0
    total_spend: int = 0


@dataclass
class ProductStats:
    """Site-wide totals across every user."""

    favorite_videos: int = 0
    videos: int = 0
    generated_images: int = 0
    uploaded_images: int = 0
    total_credits: int = 0


@dataclass
class UsageStats:
    amount: int
    previous_amount: int
    change: int  # percent vs the previous period
    change_type: str  # "positive" | "negative" | "neutral"


def percent_change(current: int, previous: int) -> tuple[int, str]:
    """Rounded percent change and its direction. No previous amount counts as +100%."""
    if previous == 0:
        return (100, "positive") if current > 0 else (0, "neutral")
    change = (current - previous) / previous * 100
    if change > 0:
        return js_round(change), "positive"
    if change < 0:
        return js_round(change), "negative"
    return 0, "neutral"


class AdminService:
    """Admin-only reads and writes across all users."""

    def __init__(self, db: SupabaseClient):
        self.db = db

    def list_users(self) -> list[UserProfile]:
        rows = self.db.select("profiles", order="created_at", desc=True)
        return [UserProfile.from_row(row) for row in rows]

    def user_stats(self, user_id: str) -> UserStats:
        spend_rows = self.db.select(
            "transactions", "amount", {"user_id": user_id, "amount": ("lt", 0)}
        )
        return UserStats(
            favorite_videos=self.db.count(
                "user_files", {"user_id": user_id, "is_favorite": True, "file_type": "video"}
            ),
            videos=self.db.count("user_files", {"user_id": user_id, "folder": "video-assets"}),
            generated_images=self.db.count("user_files", {"user_id": user_id, "folder": "image-assets"}),
            uploaded_images=self.db.count("user_files", {"user_id": user_id, "folder": "uploads"}),
            total_spend=abs(sum(int(row.get("amount") or 0) for row in spend_rows)),
        )

    def product_usage_stats(self) -> ProductStats:
        credit_rows = self.db.select("profiles", "credits")
        return ProductStats(
            favorite_videos=self.db.count("user_files", {"is_favorite": True, "file_type": "video"}),
            videos=self.db.count("user_files", {"folder": "video-assets", "file_type": "video"}),
            generated_images=self.db.count("user_files", {"folder": "image-assets", "file_type": "image"}),
            uploaded_images=self.db.count("user_files", {"folder": "uploads", "file_type": "image"}),
            total_credits=sum(int(row.get("credits") or 0) for row in credit_rows),
        )

    def add_credits(self, user_id: str, amount: int) -> int:
        """Manual top-up for a user. Returns their new balance."""
        return CreditService(self.db, user_id).add_credits(amount, "Manual Credit Addition")

    def update_price_setting(self, key: str, value: float):
        if key not in PRICE_SETTING_KEYS:
            raise ValidationError(f"Unknown setting: {key}. Valid: {list(PRICE_SETTING_KEYS)}")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid value for {key}: {value}")
        if number < 0:
            raise ValidationError(f"Invalid value for {key}: {value}")

        self.db.update(
            "admin_settings",
            {"setting_value": f"{number:g}", "updated_at": utc_now_iso()},
            {"setting_key": key},
        )
        logger.info(f"Updated {key} = {number:g}")

    def credit_usage(self, start: datetime, end: datetime, spend: bool = True) -> UsageStats:
        """
        Credits spent (or topped up) in [start, end] vs the preceding period of equal length.

        Args:
            start: Period start (inclusive).
            end: Period end (inclusive).
            spend: True sums negative amounts, False sums positive amounts.
        """
        if end <= start:
            raise ValidationError("Period end must be after its start")
        return self._compare_periods(start, end, start - (end - start), start, spend)

    def daily_usage(self, spend: bool = True, now: datetime | None = None) -> UsageStats:
        """Today (UTC calendar day) vs yesterday."""
        now = now or datetime.now(timezone.utc)
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        yesterday = today - timedelta(days=1)
        day_end = timedelta(days=1, microseconds=-1)
        return self._compare_periods(today, today + day_end, yesterday, yesterday + day_end, spend)

    def credit_usage_overview(self, spend: bool = True, now: datetime | None = None) -> dict[str, UsageStats]:
        now = now or datetime.now(timezone.utc)
        overview = {"daily": self.daily_usage(spend, now)}
        for name, length in USAGE_PERIODS.items():
            overview[name] = self.credit_usage(now - length, now, spend)
        return overview

    def all_transactions(self, page_size: int = TRANSACTIONS_PAGE_SIZE) -> "TransactionLog":
        """Every user's transactions, newest first, shown page_size at a time."""
        rows = self.db.select("transactions", order="created_at", desc=True)
        return TransactionLog([Transaction.from_row(row) for row in rows], page_size)

    def _compare_periods(
        self, start: datetime, end: datetime, previous_start: datetime, previous_end: datetime, spend: bool
    ) -> UsageStats:
        current = self._sum_amounts(start, end, spend)
        previous = self._sum_amounts(previous_start, previous_end, spend)
        change, change_type = percent_change(current, previous)
        return UsageStats(current, previous, change, change_type)

    def _sum_amounts(self, start: datetime, end: datetime, spend: bool) -> int:
        rows = self.db.select(
            "transactions",
            "amount",
            {"created_at": [("gte", start.isoformat()), ("lte", end.isoformat())]},
        )
        amounts = [int(row.get("amount") or 0) for row in rows]
        if spend:
            return sum(abs(a) for a in amounts if a < 0)
        return sum(a for a in amounts if a > 0)


class TransactionLog:
    """The admin transaction table: everything loaded once, revealed a page at a time."""

    def __init__(self, transactions: list[Transaction], page_size: int = TRANSACTIONS_PAGE_SIZE):
        self.transactions = transactions
        self.page_size = page_size
        self.page = 0

    @property
    def visible(self) -> list[Transaction]:
        return paginate(self.transactions, self.page, self.page_size)

    @property
    def has_more(self) -> bool:
        return len(self.visible) < len(self.transactions)

    def load_more(self) -> list[Transaction]:
        if self.has_more:
            self.page += 1
        return self.visible

    def to_csv(self) -> str:
        """#, User ID, Description, Date / Time, Amount. Cells are quoted only when needed."""
        if not self.transactions:
            raise ValidationError("No transactions to download")

        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(["#", "User ID", "Description", "Date / Time", "Amount"])
        for index, t in enumerate(self.transactions, start=1):
            created = parse_timestamp(t.created_at)
            writer.writerow([index, t.user_id, t.label, created.strftime("%d.%m.%Y %H:%M"), t.amount])
        return output.getvalue()
