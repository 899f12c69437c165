"""Profile settings - contact details and password change."""

import logging

from ..clients.supabase import SupabaseClient
from ..errors import AuthenticationError, ValidationError
from ..models import UserProfile

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class ProfileService:
    def __init__(self, db: SupabaseClient, user_id: str, email: str = ""):
        self.db = db
        self.user_id = user_id
        self.email = email

    def load(self) -> UserProfile:
        row = self.db.select_one(
            "profiles", "id,full_name,email,company_name,phone_number,credits", {"id": self.user_id}
        )
        profile = UserProfile.from_row(row)
        self.email = self.email or profile.email
        return profile

    def update_profile(self, full_name: str, company_name: str | None = None, phone_number: str | None = None) -> dict:
        """Full name is required. Blank optional fields are stored as null."""
        full_name = (full_name or "").strip()
        if not full_name:
            raise ValidationError("Full name is required")
        values = {
            "full_name": full_name,
            "company_name": (company_name or "").strip() or None,
            "phone_number": (phone_number or "").strip() or None,
        }
        self.db.update("profiles", values, {"id": self.user_id})
        logger.info(f"Updated profile for {self.user_id}")
        return values

    def change_password(self, current_password: str, new_password: str, confirm_password: str):
        """
        Re-check the current password, then set the new one.

        Raises:
            ValidationError: Missing fields, mismatch, too short, or wrong current password.
        """
        if not current_password or not new_password or not confirm_password:
            raise ValidationError("All password fields are required")
        if new_password != confirm_password:
            raise ValidationError("New passwords do not match")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        if not self.email:
            raise ValidationError("Email address is unknown")

        try:
            session = self.db.sign_in_with_password(self.email, current_password)
        except AuthenticationError:
            raise ValidationError("Current password is incorrect")

        self.db.update_user({"password": new_password}, access_token=session.get("access_token"))
        logger.info(f"Password changed for {self.user_id}")
