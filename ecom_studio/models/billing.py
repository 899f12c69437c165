"""Saved invoice (billing) addresses."""

from dataclasses import dataclass, field

INVOICE_TYPES = ("individual", "corporate")

# Form fields per invoice type; True = required
INVOICE_FIELDS = {
    "individual": {
        "first_name": True,
        "last_name": True,
        "turkish_id": False,
        "email": True,
        "phone_number": True,
        "address": True,
        "country": True,
        "city": True,
        "state": False,
        "post_code": True,
    },
    "corporate": {
        "company_name": True,
        "tax_office": True,
        "tax_number": True,
        "purchase_order": False,
        "authorized_person": True,
        "email": True,
        "phone_number": True,
        "address": True,
        "country": True,
        "city": True,
        "state": False,
        "post_code": True,
    },
}


@dataclass
class BillingAddress:
    id: str
    user_id: str
    invoice_type: str
    fields: dict[str, str] = field(default_factory=dict)
    created_at: str | None = None

    @property
    def type_label(self) -> str:
        return f"{self.invoice_type.upper()} INVOICE"

    @property
    def display_name(self) -> str:
        if self.invoice_type == "corporate":
            return self.fields.get("company_name") or ""
        return f"{self.fields.get('first_name') or ''} {self.fields.get('last_name') or ''}".strip()

    @staticmethod
    def from_row(row: dict) -> "BillingAddress":
        invoice_type = row.get("invoice_type") or "individual"
        names = INVOICE_FIELDS.get(invoice_type, {})
        return BillingAddress(
            id=str(row.get("id")),
            user_id=row.get("user_id") or "",
            invoice_type=invoice_type,
            fields={name: row[name] for name in names if row.get(name)},
            created_at=row.get("created_at"),
        )
