"""Bunny storage zone client."""

import requests

from ..errors import ApiError


class StorageError(ApiError):
    """Storage zone rejected a request."""
    pass


class BunnyStorageClient:
    """Low-level Bunny storage client. Paths are relative to the storage zone root."""

    def __init__(self, storage_url: str, access_key: str):
        self.storage_url = storage_url.rstrip("/")
        self.access_key = access_key

    def _get_headers(self, content_type: str | None = None) -> dict:
        headers = {"AccessKey": self.access_key}
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def put_file(self, path: str, file_bytes: bytes):
        """Upload raw bytes to `path` (e.g. "user-1/uploads/a.png")."""
        response = requests.put(
            f"{self.storage_url}/{path}",
            data=file_bytes,
            headers=self._get_headers("application/octet-stream"),
            timeout=60,
        )
        if not response.ok:
            raise StorageError(f"Upload failed: {response.text}", response.status_code)

    def list_folder(self, path: str) -> list[dict]:
        """List a folder. Entries carry ObjectName, IsDirectory, LastChanged, Length."""
        response = requests.get(
            f"{self.storage_url}/{path.strip('/')}/",
            headers=self._get_headers(),
            timeout=30,
        )
        if not response.ok:
            raise StorageError(f"List failed: {response.text}", response.status_code)
        return response.json()

    def create_folder(self, path: str):
        response = requests.put(
            f"{self.storage_url}/{path.strip('/')}/",
            headers=self._get_headers("application/json"),
            timeout=30,
        )
        if not response.ok:
            raise StorageError(f"Folder creation failed: {response.text}", response.status_code)
