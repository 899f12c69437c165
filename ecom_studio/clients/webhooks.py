"""Generation backend webhooks (save / status / fetch)."""

import requests

from ..errors import ApiError


class WebhookError(ApiError):
    """Webhook answered with a non-2xx status."""
    pass


class WebhookClient:
    """Posts JSON to a webhook URL and returns the JSON answer."""

    def __init__(self, url: str, timeout: int = 60):
        self.url = url
        self.timeout = timeout

    def post(self, payload: dict) -> dict:
        response = requests.post(
            self.url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        if not response.ok:
            raise WebhookError(f"Webhook call failed: {response.text}", response.status_code)
        try:
            return response.json() or {}
        except ValueError:
            return {}
