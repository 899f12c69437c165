"""Billing addresses saved for invoices."""

import logging

from ..clients.supabase import SupabaseClient
from ..errors import ValidationError
from ..models.billing import INVOICE_FIELDS, INVOICE_TYPES, BillingAddress

logger = logging.getLogger(__name__)


def clean_address_fields(invoice_type: str, values: dict) -> dict:
    """
    Trim values and check them against the invoice type's form.

    Raises ValidationError for an unknown type, fields that don't belong to it,
    or the first missing required field.
    """
    if invoice_type not in INVOICE_TYPES:
        raise ValidationError(f"Invalid invoice type: {invoice_type}. Valid: {list(INVOICE_TYPES)}")
    known = INVOICE_FIELDS[invoice_type]
    unknown = sorted(set(values) - set(known))
    if unknown:
        raise ValidationError(f"Unknown {invoice_type} invoice fields: {unknown}")

    cleaned = {name: str(value or "").strip() for name, value in values.items()}
    for name, required in known.items():
        if required and not cleaned.get(name):
            raise ValidationError(f"{name.replace('_', ' ').capitalize()} is required")
    return cleaned


class BillingService:
    """One user's billing_addresses rows."""

    def __init__(self, db: SupabaseClient, user_id: str):
        self.db = db
        self.user_id = user_id

    def list_addresses(self) -> list[BillingAddress]:
        rows = self.db.select(
            "billing_addresses", filters={"user_id": self.user_id}, order="created_at", desc=True
        )
        return [BillingAddress.from_row(row) for row in rows]

    def add_address(self, invoice_type: str, **values) -> BillingAddress:
        cleaned = clean_address_fields(invoice_type, values)
        [row] = self.db.insert(
            "billing_addresses",
            {"user_id": self.user_id, "invoice_type": invoice_type, **cleaned},
        )
        logger.info(f"Saved {invoice_type} billing address for {self.user_id}")
        return BillingAddress.from_row(row)

    def update_address(self, address_id: str, **values) -> BillingAddress:
        """Change fields of an existing address. The merged address must still be complete."""
        rows = self.db.select("billing_addresses", filters={"id": address_id, "user_id": self.user_id})
        if not rows:
            raise ValidationError(f"Billing address not found: {address_id}")
        current = BillingAddress.from_row(rows[0])

        cleaned = clean_address_fields(current.invoice_type, {**current.fields, **values})
        [row] = self.db.update("billing_addresses", cleaned, {"id": address_id, "user_id": self.user_id})
        return BillingAddress.from_row(row)

    def delete_address(self, address_id: str) -> bool:
        """Returns False when no address of this user had that id."""
        removed = self.db.delete("billing_addresses", {"id": address_id, "user_id": self.user_id})
        return bool(removed)
