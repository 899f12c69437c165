"""Notification and profile models."""

from dataclasses import dataclass


@dataclass
class Notification:
    id: str
    message: str
    user_id: str | None = None
    is_read: bool = False
    read_at: str | None = None
    created_at: str | None = None

    @staticmethod
    def from_row(row: dict) -> "Notification":
        return Notification(
            id=str(row.get("id")),
            message=row.get("message") or "",
            user_id=row.get("user_id"),
            is_read=bool(row.get("is_read") or False),
            read_at=row.get("read_at"),
            created_at=row.get("created_at"),
        )


@dataclass
class UserProfile:
    id: str
    full_name: str = ""
    email: str = ""
    credits: int = 0
    company_name: str | None = None
    phone_number: str | None = None
    created_at: str | None = None

    @staticmethod
    def from_row(row: dict) -> "UserProfile":
        return UserProfile(
            id=str(row.get("id")),
            full_name=row.get("full_name") or "",
            email=row.get("email") or "",
            credits=int(row.get("credits") or 0),
            company_name=row.get("company_name"),
            phone_number=row.get("phone_number"),
            created_at=row.get("created_at"),
        )
