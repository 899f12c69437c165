"""Supabase client (PostgREST tables + auth user lookup)."""

from typing import Any

import requests

from ..errors import ApiError, AuthenticationError

# Filter value: plain value (eq), (operator, value), or a list of those for one column
Filters = dict[str, Any]


class SupabaseError(ApiError):
    """PostgREST answered with an error body ({code, message})."""

    def __init__(self, message: str, code: str | None = None, status_code: int | None = None):
        self.code = code
        super().__init__(message, status_code)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (list, tuple, set)):
        return "(" + ",".join(str(v) for v in value) + ")"
    return str(value)


def build_filter_params(filters: Filters | None) -> list[tuple[str, str]]:
    """
    Turn a filter dict into PostgREST query params.

    Example:
        {"user_id": "u1", "amount": ("lt", 0)} -> [("user_id", "eq.u1"), ("amount", "lt.0")]
        {"created_at": [("gte", a), ("lte", b)]} -> two params on the same column
    """
    params = []
    for column, condition in (filters or {}).items():
        conditions = condition if isinstance(condition, list) else [condition]
        for cond in conditions:
            if isinstance(cond, tuple):
                op, value = cond
            else:
                op, value = ("is" if cond is None else "eq"), cond
            params.append((column, f"{op}.{_format_value(value)}"))
    return params


class SupabaseClient:
    """Low-level PostgREST client. Row-level security applies via the user's token."""

    def __init__(self, url: str, anon_key: str, access_token: str | None = None):
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token

    def _get_headers(self, extra: dict | None = None) -> dict:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _table_url(self, table: str) -> str:
        return f"{self.url}/rest/v1/{table}"

    def _check(self, response: requests.Response) -> Any:
        if response.ok:
            if not response.content:
                return None
            return response.json()
        try:
            data = response.json()
        except ValueError:
            data = {}
        raise SupabaseError(
            data.get("message") or f"Supabase error (HTTP {response.status_code})",
            code=data.get("code"),
            status_code=response.status_code,
        )

    def select(
        self,
        table: str,
        columns: str = "*",
        filters: Filters | None = None,
        order: str | None = None,
        desc: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        params = [("select", columns)] + build_filter_params(filters)
        if order:
            params.append(("order", f"{order}.{'desc' if desc else 'asc'}"))
        if limit:
            params.append(("limit", str(limit)))

        response = requests.get(
            self._table_url(table), params=params, headers=self._get_headers(), timeout=30
        )
        return self._check(response) or []

    def select_one(
        self,
        table: str,
        columns: str = "*",
        filters: Filters | None = None,
        order: str | None = None,
        desc: bool = False,
    ) -> dict:
        """Exactly one row. No rows raises SupabaseError with code PGRST116."""
        params = [("select", columns)] + build_filter_params(filters)
        if order:
            params.append(("order", f"{order}.{'desc' if desc else 'asc'}"))
        params.append(("limit", "1"))

        response = requests.get(
            self._table_url(table),
            params=params,
            headers=self._get_headers({"Accept": "application/vnd.pgrst.object+json"}),
            timeout=30,
        )
        return self._check(response)

    def count(self, table: str, filters: Filters | None = None) -> int:
        params = [("select", "id")] + build_filter_params(filters)
        response = requests.head(
            self._table_url(table),
            params=params,
            headers=self._get_headers({"Prefer": "count=exact"}),
            timeout=30,
        )
        self._check(response)
        # Content-Range: "0-9/42" or "*/0"
        content_range = response.headers.get("Content-Range", "*/0")
        return int(content_range.split("/")[-1] or 0)

    def update(self, table: str, values: dict, filters: Filters) -> list[dict]:
        response = requests.patch(
            self._table_url(table),
            params=build_filter_params(filters),
            json=values,
            headers=self._get_headers({"Prefer": "return=representation"}),
            timeout=30,
        )
        return self._check(response) or []

    def insert(self, table: str, rows: dict | list[dict]) -> list[dict]:
        response = requests.post(
            self._table_url(table),
            json=rows,
            headers=self._get_headers({"Prefer": "return=representation"}),
            timeout=30,
        )
        return self._check(response) or []

    def delete(self, table: str, filters: Filters) -> list[dict]:
        response = requests.delete(
            self._table_url(table),
            params=build_filter_params(filters),
            headers=self._get_headers({"Prefer": "return=representation"}),
            timeout=30,
        )
        return self._check(response) or []

    def get_user(self, access_token: str) -> dict:
        """Resolve a session token to its auth user. Raises AuthenticationError if rejected."""
        response = requests.get(
            f"{self.url}/auth/v1/user",
            headers={"apikey": self.anon_key, "Authorization": f"Bearer {access_token}"},
            timeout=30,
        )
        if response.status_code in (401, 403):
            raise AuthenticationError("Invalid or expired token")
        user = self._check(response)
        if not user or not user.get("id"):
            raise AuthenticationError("Invalid or expired token")
        return user

    def sign_in_with_password(self, email: str, password: str) -> dict:
        """Password grant. Returns the session ({access_token, user, ...}); wrong credentials raise."""
        response = requests.post(
            f"{self.url}/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers={"apikey": self.anon_key, "Content-Type": "application/json"},
            timeout=30,
        )
        if response.status_code in (400, 401):
            raise AuthenticationError("Invalid login credentials")
        return self._check(response)

    def update_user(self, attributes: dict, access_token: str | None = None) -> dict:
        """Change the signed-in user's auth attributes (e.g. {"password": ...})."""
        token = access_token or self.access_token
        if not token:
            raise AuthenticationError("Not authenticated")
        response = requests.put(
            f"{self.url}/auth/v1/user",
            json=attributes,
            headers={
                "apikey": self.anon_key,
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            timeout=30,
        )
        if response.status_code == 401:
            raise AuthenticationError("Invalid or expired token")
        return self._check(response)
