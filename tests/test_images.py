import io
import json
import re

import httpx
from starlette.datastructures import UploadFile

from retrade.application.images import (
    ImageFile,
    delete_images,
    format_file_size,
    non_empty_images,
    upload_image,
    upload_images,
    validate_image,
)
from retrade.infrastructure.blob_store import BlobStore, HttpBlobStore

class RecordingStore(BlobStore):
    def __init__(self, fail_on: int = -1):
        self.fail_on = fail_on
        self.stored = []
        self.deleted = []

    def put(self, filename, content, content_type):
        if len(self.stored) == self.fail_on:
            raise OSError("disk full")
        self.stored.append(filename)
        return f"https://blobs.test/{filename}"

    def delete(self, url):
        self.deleted.append(url)

def _image(size=10, content_type="image/jpeg", filename="pic.jpg"):
    return ImageFile(filename=filename, content_type=content_type, data=b"x" * size)

def test_validate_image_limits():
    assert validate_image(_image()) == (True, None)
    assert validate_image(_image(size=3 * 1024 * 1024 + 1)) == (False, "File size must be less than 3MB")
    assert validate_image(_image(content_type="image/gif")) == (False, "Only JPEG, PNG, and WebP images are allowed")

def test_upload_image_names_blob():
    store = RecordingStore()
    result = upload_image(store, _image(filename="holiday.photo.webp", content_type="image/webp"))
    assert result.success
    assert re.fullmatch(r"product-\d+-[a-z0-9]{11}\.webp", store.stored[0])
    assert result.url == f"https://blobs.test/{store.stored[0]}"

def test_upload_failure_is_reported_not_raised():
    result = upload_image(RecordingStore(fail_on=0), _image())
    assert not result.success
    assert result.error == "Failed to upload image. Please try again."

def test_upload_images_stops_at_first_failure():
    store = RecordingStore(fail_on=1)
    results = upload_images(store, [_image(), _image(), _image()])
    assert [r.success for r in results] == [True, False]

def test_delete_images_reports_failures():
    class Broken(RecordingStore):
        def delete(self, url):
            raise OSError("gone")

    assert delete_images(RecordingStore(), ["a", "b"]) is True
    assert delete_images(Broken(), ["a"]) is False

def test_non_empty_images_skips_blank_parts():
    uploads = [
        UploadFile(io.BytesIO(b""), filename=""),
        "stray text field",
        None,
        UploadFile(io.BytesIO(b"abc"), filename="a.png", headers={"content-type": "image/png"}),
    ]
    images = non_empty_images(uploads)
    assert [(i.filename, i.content_type, i.data) for i in images] == [("a.png", "image/png", b"abc")]

def test_format_file_size():
    assert format_file_size(0) == "0 Bytes"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(3 * 1024 * 1024) == "3 MB"

def test_http_blob_store_protocol(monkeypatch):
    calls = []

    def handler(request: httpx.Request):
        calls.append(request)
        if request.method == "PUT":
            return httpx.Response(200, json={"url": f"https://cdn.test{request.url.path}"})
        return httpx.Response(200, json={})

    transport = httpx.MockTransport(handler)
    real_client = httpx.Client
    monkeypatch.setattr(httpx, "Client", lambda **kw: real_client(transport=transport, **kw))

    store = HttpBlobStore("https://blob.test", "tok")
    url = store.put("product-1-abc.png", b"data", "image/png")
    store.delete(url)

    assert url == "https://cdn.test/product-1-abc.png"
    put, delete = calls
    assert put.headers["authorization"] == "Bearer tok"
    assert put.headers["x-content-type"] == "image/png"
    assert put.content == b"data"
    assert delete.url.path == "/delete"
    assert json.loads(delete.content) == {"urls": ["https://cdn.test/product-1-abc.png"]}
