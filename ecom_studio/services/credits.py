"""Credit ledger service - balance, pricing and transactions."""

import csv
import io
import logging

from ..clients.supabase import SupabaseClient
from ..errors import RECOVERABLE_ERRORS, ValidationError
from ..models import PriceSettings, Transaction
from ..utils import js_round, parse_timestamp

logger = logging.getLogger(__name__)


class CreditService:
    """
    Reads and writes one user's credit balance.

    Check and deduct are two separate steps and the balance write is not
    atomic with the transaction insert. Two tabs can both pass the check.
    """

    def __init__(self, db: SupabaseClient, user_id: str):
        self.db = db
        self.user_id = user_id
        self.balance = 0
        self.pricing = PriceSettings()

    def load_credits(self) -> int:
        profile = self.db.select_one("profiles", "credits", {"id": self.user_id})
        self.balance = int(profile.get("credits") or 0)
        return self.balance

    def load_pricing(self) -> PriceSettings:
        """Read admin_settings. On failure the defaults stay in place."""
        try:
            rows = self.db.select("admin_settings", "setting_key,setting_value")
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Could not load pricing, using defaults: {e}")
            return self.pricing
        self.pricing = PriceSettings.from_rows(rows)
        return self.pricing

    @property
    def effective_price_per_image(self) -> int:
        return self.pricing.effective_price_per_image

    def required_credits(self, image_count: int) -> int:
        return image_count * self.effective_price_per_image

    def shortfall(self, image_count: int) -> int:
        return max(0, self.required_credits(image_count) - self.balance)

    def check_credits(self, image_count: int) -> bool:
        return self.required_credits(image_count) <= self.balance

    def insufficient_message(self, image_count: int) -> str:
        discount = ""
        if self.pricing.discount_rate > 0:
            discount = f" ({self.pricing.discount_rate:g}% discount applied)"
        return (
            f"Insufficient credits! You need {self.required_credits(image_count)} credits{discount}. "
            f"You are {self.shortfall(image_count)} credits short. "
            "Please go to user settings to add credits."
        )

    def deduct_credits(self, image_count: int) -> bool:
        """
        Charge for `image_count` images.

        Returns False (nothing written) when the balance is too low. A failed
        balance write raises; a failed transaction insert is logged and the
        deduction stands.
        """
        if image_count < 1:
            raise ValidationError("Image count must be at least 1")
        if not self.check_credits(image_count):
            return False

        cost = self.required_credits(image_count)
        new_balance = self.balance - cost
        self.db.update("profiles", {"credits": new_balance}, {"id": self.user_id})
        self.balance = new_balance
        logger.info(f"Deducted {cost} credits from {self.user_id} ({image_count} images)")

        transaction = Transaction(
            user_id=self.user_id,
            amount=-cost,
            transaction_type="video_generation",
            description=f"Video Generation ({image_count} Images)",
            images_count=image_count,
        )
        try:
            self.db.insert("transactions", transaction.to_row())
        except RECOVERABLE_ERRORS as e:
            logger.error(f"Transaction insert failed after deducting {cost} credits: {e}")
        return True

    def add_credits(
        self, amount: int, description: str = "Manual Credit Addition", user_id: str | None = None
    ) -> int:
        """Admin top-up. Writes the balance, then the transaction. Returns the new balance."""
        if amount <= 0:
            raise ValidationError("Please enter a valid amount")
        return self._credit(user_id or self.user_id, [(amount, "manual_credit_addition", description)])

    def top_up(self, amount: int) -> int:
        """
        Credit purchase plus the admin-configured top-up bonus.

        The bonus is round(amount x credit_topup_bonus_rate / 100), half up, and is
        written as its own credit_topup_bonus transaction. Returns the new balance.
        """
        if amount <= 0:
            raise ValidationError("Please enter a valid amount")
        entries = [(amount, "credit_purchase", "Credit Purchase")]
        bonus = js_round(amount * self.pricing.credit_topup_bonus_rate / 100)
        if bonus > 0:
            entries.append((bonus, "credit_topup_bonus", f"Credit Top-up Bonus ({self.pricing.credit_topup_bonus_rate:g}%)"))
        return self._credit(self.user_id, entries)

    def grant_signup_bonus(self) -> int:
        """Credit the configured signup_credit once. Returns the new balance."""
        amount = js_round(self.pricing.signup_credit)
        if amount <= 0:
            return self.balance
        if self.db.count("transactions", {"user_id": self.user_id, "transaction_type": "signup_bonus"}):
            logger.info(f"Signup bonus already granted to {self.user_id}")
            return self.balance
        return self._credit(self.user_id, [(amount, "signup_bonus", "Sign up Bonus")])

    def _credit(self, target: str, entries: list[tuple[int, str, str]]) -> int:
        """Add (amount, transaction_type, description) entries to a balance, one transaction each."""
        total = sum(amount for amount, _, _ in entries)
        profile = self.db.select_one("profiles", "credits", {"id": target})
        new_balance = int(profile.get("credits") or 0) + total
        self.db.update("profiles", {"credits": new_balance}, {"id": target})
        self.db.insert(
            "transactions",
            [
                Transaction(
                    user_id=target,
                    amount=amount,
                    transaction_type=transaction_type,
                    description=description,
                ).to_row()
                for amount, transaction_type, description in entries
            ],
        )
        if target == self.user_id:
            self.balance = new_balance
        logger.info(f"Added {total} credits to {target}")
        return new_balance

    def list_transactions(self, limit: int = 50) -> list[Transaction]:
        """Newest first. limit=0 loads everything."""
        rows = self.db.select(
            "transactions",
            filters={"user_id": self.user_id},
            order="created_at",
            desc=True,
            limit=limit or None,
        )
        return [Transaction.from_row(row) for row in rows]

    @staticmethod
    def transactions_csv(transactions: list[Transaction]) -> str:
        """Render transactions as the downloadable CSV (Description, Date, Time, Amount)."""
        if not transactions:
            raise ValidationError("No transactions to download")

        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
        output.write("Description,Date,Time,Amount\n")
        for t in transactions:
            created = parse_timestamp(t.created_at)
            amount = f"+{t.amount}" if t.amount > 0 else str(t.amount)
            writer.writerow([
                t.description or t.label,
                created.strftime("%d/%m/%Y"),
                created.strftime("%H:%M:%S"),
                f"{amount} Credits",
            ])
        return output.getvalue()
