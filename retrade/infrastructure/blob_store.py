"""Object storage for product images."""
from functools import lru_cache
from pathlib import Path
import httpx

from retrade.core_settings import get_settings

class BlobStore:
    def put(self, filename: str, content: bytes, content_type: str) -> str:
        """Store ``content`` publicly under ``filename`` and return its URL."""
        raise NotImplementedError

    def delete(self, url: str) -> None:
        raise NotImplementedError

class LocalBlobStore(BlobStore):
    """Writes blobs to a directory that the app serves under ``url_prefix``."""

    def __init__(self, directory: str, url_prefix: str = "/uploads"):
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")

    def put(self, filename: str, content: bytes, content_type: str) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / filename).write_bytes(content)
        return f"{self.url_prefix}/{filename}"

    def delete(self, url: str) -> None:
        name = url.rstrip("/").split("/")[-1]
        if not name:
            raise ValueError(f"Invalid blob URL: {url!r}")
        path = self.directory / name
        if path.is_file():
            path.unlink()

class HttpBlobStore(BlobStore):
    """Client for a Vercel-Blob style REST store (PUT to upload, POST /delete)."""

    def __init__(self, base_url: str, token: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}

    def put(self, filename: str, content: bytes, content_type: str) -> str:
        headers = {
            **self._headers(),
            "x-content-type": content_type,
            "x-add-random-suffix": "0",
        }
        with httpx.Client(timeout=self.timeout) as client:
            response = client.put(f"{self.base_url}/{filename}", content=content, headers=headers)
            response.raise_for_status()
            return response.json()["url"]

    def delete(self, url: str) -> None:
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(f"{self.base_url}/delete", json={"urls": [url]}, headers=self._headers())
            response.raise_for_status()

@lru_cache
def get_blob_store() -> BlobStore:
    settings = get_settings()
    if settings.BLOB_BACKEND == "http":
        if not settings.BLOB_READ_WRITE_TOKEN:
            raise RuntimeError("BLOB_READ_WRITE_TOKEN is required for the http blob backend")
        return HttpBlobStore(settings.BLOB_API_URL, settings.BLOB_READ_WRITE_TOKEN)
    return LocalBlobStore(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
