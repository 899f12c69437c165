"""First-party API client (the app's authenticated /api routes)."""

import requests

from ..errors import ApiError, AuthenticationError
from ..models import GenerationPayload, ImageCandidate, SubmissionResult


class StudioClient:
    """Thin client for /api/upload-image, /api/generate-video and friends."""

    def __init__(self, base_url: str, access_token: str | None):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token

    def _get_headers(self, json_body: bool = True) -> dict:
        if not self.access_token:
            raise AuthenticationError("Not authenticated")
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _check(self, response: requests.Response) -> dict:
        """Return the JSON body, or raise ApiError carrying the server's message."""
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.ok:
            message = data.get("error") if isinstance(data, dict) else None
            if response.status_code == 401:
                raise AuthenticationError(message or "Authentication expired")
            raise ApiError(message or f"HTTP {response.status_code}", response.status_code)
        return data

    def upload_image(self, user_id: str, file_bytes: bytes, filename: str, content_type: str) -> str:
        """Upload one image. Returns its CDN URL."""
        response = requests.post(
            f"{self.base_url}/api/upload-image",
            files={"file": (filename, file_bytes, content_type)},
            data={"userId": user_id},
            headers=self._get_headers(json_body=False),
            timeout=60,
        )
        data = self._check(response)
        if not data.get("url"):
            raise ApiError("Upload failed")
        return data["url"]

    def fetch_product_images(self, product_url: str) -> list[ImageCandidate]:
        """Scrape candidate images from a product page."""
        response = requests.post(
            f"{self.base_url}/api/fetch-product-images",
            json={"productUrl": product_url},
            headers=self._get_headers(),
            timeout=60,
        )
        data = self._check(response)
        return [ImageCandidate.from_api(item) for item in data.get("images") or []]

    def generate_video(self, payload: GenerationPayload) -> SubmissionResult:
        response = requests.post(
            f"{self.base_url}/api/generate-video",
            json=payload.to_dict(),
            headers=self._get_headers(),
            timeout=60,
        )
        data = self._check(response)
        return SubmissionResult(
            video_url=data.get("video_url"),
            status_url=data.get("status_url"),
        )

    def check_video_status(self, status_url: str, ref_no: str, user_id: str) -> dict:
        """One status check. Returns the raw status body ({status, video_url?})."""
        response = requests.post(
            f"{self.base_url}/api/check-video-status",
            json={"status_url": status_url, "refNo": ref_no, "userId": user_id},
            headers=self._get_headers(),
            timeout=30,
        )
        data = self._check(response)
        if not isinstance(data, dict):
            raise ApiError("Unexpected status response", response.status_code)
        return data

    def list_library_images(self, user_id: str) -> list[ImageCandidate]:
        response = requests.get(
            f"{self.base_url}/api/list-library-images",
            params={"userId": user_id},
            headers=self._get_headers(json_body=False),
            timeout=30,
        )
        data = self._check(response)
        return [ImageCandidate.from_api(item) for item in data.get("images") or []]

    def create_user_folders(self, user_id: str) -> list[str]:
        response = requests.post(
            f"{self.base_url}/api/create-user-folders",
            json={"userId": user_id},
            headers=self._get_headers(),
            timeout=30,
        )
        data = self._check(response)
        return data.get("folders") or []
