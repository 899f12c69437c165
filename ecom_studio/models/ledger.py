"""Credit ledger models - pricing and transactions."""

from dataclasses import dataclass

from ..config import DEFAULT_CREDIT_PER_IMAGE, DEFAULT_DISCOUNT_RATE
from ..utils import js_round

PRICE_SETTING_KEYS = (
    "signup_credit",
    "credit_per_image",
    "discount_rate",
    "credit_topup_bonus_rate",
)

# Listing labels per transaction_type
TRANSACTION_LABELS = {
    "video_generation": "Video Generation",
    "image_generation": "Image Generation",
    "credit_purchase": "Credit Purchase",
    "credit_topup_bonus": "Credit Top-up Bonus",
    "manual_credit_addition": "Manual Credit Addition",
    "signup_bonus": "Sign up Bonus",
}


@dataclass(frozen=True)
class PriceSettings:
    """Admin-configured pricing (admin_settings table)."""

    credit_per_image: float = DEFAULT_CREDIT_PER_IMAGE
    discount_rate: float = DEFAULT_DISCOUNT_RATE
    signup_credit: float = 0
    credit_topup_bonus_rate: float = 0

    @property
    def effective_price_per_image(self) -> int:
        """round(base x (100 - discount) / 100), half up."""
        return js_round(self.credit_per_image * (100 - self.discount_rate) / 100)

    @staticmethod
    def from_rows(rows: list[dict]) -> "PriceSettings":
        """Build from admin_settings rows ({setting_key, setting_value}); unknown keys ignored."""
        values = {}
        for row in rows:
            key = row.get("setting_key")
            if key in PRICE_SETTING_KEYS:
                try:
                    values[key] = float(row.get("setting_value"))
                except (TypeError, ValueError):
                    continue
        return PriceSettings(**values)


@dataclass
class Transaction:
    """A row of the append-only transactions table."""

    user_id: str
    amount: int
    transaction_type: str
    description: str = ""
    images_count: int | None = None
    created_at: str | None = None

    @property
    def label(self) -> str:
        """Human-readable description used in listings and CSV export."""
        if self.transaction_type == "video_generation" and self.images_count:
            return f"Video Generation ({self.images_count} Images)"
        return TRANSACTION_LABELS.get(self.transaction_type) or self.description or "Unknown"

    def to_row(self) -> dict:
        row = {
            "user_id": self.user_id,
            "amount": self.amount,
            "transaction_type": self.transaction_type,
            "description": self.description,
        }
        if self.images_count is not None:
            row["images_count"] = self.images_count
        return row

    @staticmethod
    def from_row(row: dict) -> "Transaction":
        return Transaction(
            user_id=row.get("user_id", ""),
            amount=int(row.get("amount") or 0),
            transaction_type=row.get("transaction_type") or "",
            description=row.get("description") or "",
            images_count=row.get("images_count"),
            created_at=row.get("created_at"),
        )
