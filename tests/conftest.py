import itertools
from datetime import datetime, timedelta, timezone

import pytest

from ecom_studio.clients.supabase import SupabaseError
from ecom_studio.errors import ApiError, AuthenticationError
from ecom_studio.models import ImageCandidate, SubmissionResult
from ecom_studio.toast import Toaster
from ecom_studio.utils import parse_timestamp

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def ts(minutes: float = 0) -> str:
    """ISO timestamp `minutes` after BASE_TIME."""
    return (BASE_TIME + timedelta(minutes=minutes)).isoformat()


def _compare(op: str, actual, expected) -> bool:
    if op == "eq":
        return actual == expected
    if op == "is":
        return actual is expected
    if op == "neq":
        return actual != expected
    if actual is None:
        return False
    if isinstance(expected, str) and isinstance(actual, str):
        actual, expected = parse_timestamp(actual), parse_timestamp(expected)
    return {
        "lt": actual < expected,
        "lte": actual <= expected,
        "gt": actual > expected,
        "gte": actual >= expected,
    }[op]


def _matches(row: dict, filters: dict | None) -> bool:
    for column, condition in (filters or {}).items():
        conditions = condition if isinstance(condition, list) else [condition]
        for cond in conditions:
            op, value = cond if isinstance(cond, tuple) else ("eq", cond)
            if not _compare(op, row.get(column), value):
                return False
    return True


class FakeSupabase:
    """In-memory stand-in for SupabaseClient (same method signatures)."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.failures: dict[tuple[str, str], Exception] = {}
        self.calls: list[tuple[str, str]] = []
        self._ids = itertools.count(1)
        self.passwords: dict[str, str] = {}

    def seed(self, table: str, *rows: dict):
        for row in rows:
            row = dict(row)
            row.setdefault("id", str(next(self._ids)))
            self.tables.setdefault(table, []).append(row)

    def fail_on(self, method: str, table: str, error: Exception | None = None):
        self.failures[(method, table)] = error or SupabaseError("boom", code="08006", status_code=503)

    def _enter(self, method: str, table: str):
        self.calls.append((method, table))
        if (method, table) in self.failures:
            raise self.failures[(method, table)]

    def rows(self, table: str) -> list[dict]:
        return self.tables.setdefault(table, [])

    def select(self, table, columns="*", filters=None, order=None, desc=False, limit=None):
        self._enter("select", table)
        rows = [dict(r) for r in self.rows(table) if _matches(r, filters)]
        if order:
            rows.sort(key=lambda r: r.get(order) or "", reverse=desc)
        return rows[:limit] if limit else rows

    def select_one(self, table, columns="*", filters=None, order=None, desc=False):
        rows = self.select(table, columns, filters, order, desc, limit=1)
        if not rows:
            raise SupabaseError("JSON object requested, multiple (or no) rows returned", code="PGRST116", status_code=406)
        return rows[0]

    def count(self, table, filters=None):
        self._enter("count", table)
        return sum(1 for r in self.rows(table) if _matches(r, filters))

    def update(self, table, values, filters):
        self._enter("update", table)
        updated = []
        for row in self.rows(table):
            if _matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated

    def insert(self, table, rows):
        self._enter("insert", table)
        inserted = []
        for row in rows if isinstance(rows, list) else [rows]:
            row = dict(row)
            row.setdefault("id", str(next(self._ids)))
            row.setdefault("created_at", ts())
            self.rows(table).append(row)
            inserted.append(row)
        return inserted

    def delete(self, table, filters):
        self._enter("delete", table)
        removed = [r for r in self.rows(table) if _matches(r, filters)]
        self.tables[table] = [r for r in self.rows(table) if not _matches(r, filters)]
        return removed

    def sign_in_with_password(self, email, password):
        self._enter("sign_in", "auth")
        if self.passwords.get(email) != password:
            raise AuthenticationError("Invalid login credentials")
        return {"access_token": f"session-{email}", "user": {"email": email}}

    def update_user(self, attributes, access_token=None):
        self._enter("update_user", "auth")
        email = (access_token or "").removeprefix("session-")
        if email not in self.passwords:
            raise AuthenticationError("Invalid or expired token")
        if "password" in attributes:
            self.passwords[email] = attributes["password"]
        return {"email": email}


class FakeStudio:
    """In-memory stand-in for StudioClient."""

    def __init__(self):
        self.product_images: dict[str, list[ImageCandidate]] = {}
        self.library: list[ImageCandidate] = []
        self.submit_results: list[SubmissionResult | Exception] = []
        self.statuses: list[dict | Exception] = []
        self.submitted = []
        self.status_checks = 0
        self.fetched_urls: list[str] = []
        self.uploads: list[str] = []

    def upload_image(self, user_id, file_bytes, filename, content_type):
        self.uploads.append(filename)
        return f"https://cdn.test/user-{user_id}/uploads/{filename}"

    def fetch_product_images(self, product_url):
        self.fetched_urls.append(product_url)
        images = self.product_images.get(product_url)
        if isinstance(images, Exception):
            raise images
        return list(images or [])

    def list_library_images(self, user_id):
        return list(self.library)

    def generate_video(self, payload):
        self.submitted.append(payload)
        result = self.submit_results.pop(0) if self.submit_results else SubmissionResult()
        if isinstance(result, Exception):
            raise result
        return result

    def check_video_status(self, status_url, ref_no, user_id):
        self.status_checks += 1
        status = self.statuses.pop(0) if self.statuses else {"status": "processing"}
        if isinstance(status, Exception):
            raise status
        return status


def images(*names: str) -> list[ImageCandidate]:
    return [ImageCandidate(url=f"https://img.test/{n}.jpg") for n in names]


@pytest.fixture
def db():
    fake = FakeSupabase()
    fake.seed("profiles", {"id": "user-1", "full_name": "Ada", "email": "ada@test", "credits": 1000, "created_at": ts(0)})
    return fake


@pytest.fixture
def studio():
    return FakeStudio()


@pytest.fixture
def toaster():
    return Toaster()


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays."""
    delays = []
    return delays.append


@pytest.fixture
def transport_error():
    return ApiError("Status check failed", 500)
