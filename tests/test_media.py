import io
import os

import pytest

from app.core.errors import UploadError
from app.services.media import LocalMediaStore
from tests.fakes import FakeUpload


@pytest.fixture
def store(tmp_path):
    return LocalMediaStore(root=str(tmp_path / "media"), base_url="/media/", max_bytes=1024)


def test_save_returns_public_url(store, tmp_path):
    url = store.save(FakeUpload(filename="Me.PNG"))
    assert url.startswith("/media/")
    assert url.endswith(".png")
    name = url.rsplit("/", 1)[-1]
    assert os.path.exists(tmp_path / "media" / name)


def test_rejects_wrong_content_type(store):
    with pytest.raises(UploadError):
        store.save(FakeUpload(filename="a.txt", content_type="text/plain"))


def test_rejects_oversized_file(store, tmp_path):
    big = FakeUpload(file=io.BytesIO(b"x" * 2048))
    with pytest.raises(UploadError):
        store.save(big)
    assert os.listdir(tmp_path / "media") == []


def test_rejects_empty_file(store):
    with pytest.raises(UploadError):
        store.save(FakeUpload(file=io.BytesIO(b"")))


class CountingReader(io.BytesIO):
    def __init__(self, data: bytes):
        super().__init__(data)
        self.bytes_read = 0

    def read(self, size=-1):
        chunk = super().read(size)
        self.bytes_read += len(chunk)
        return chunk


def test_oversized_upload_stops_reading_at_limit(store, tmp_path, monkeypatch):
    monkeypatch.setattr("app.services.media.CHUNK_BYTES", 256)
    reader = CountingReader(b"x" * 100 * 1024)
    with pytest.raises(UploadError, match="too large"):
        store.save(FakeUpload(file=reader))
    assert reader.bytes_read <= 1024 + 256
    assert os.listdir(tmp_path / "media") == []


def test_delete_removes_saved_file(store, tmp_path):
    url = store.save(FakeUpload())
    store.delete(url)
    assert os.listdir(tmp_path / "media") == []


def test_delete_ignores_foreign_and_missing_urls(store, tmp_path):
    url = store.save(FakeUpload())
    store.delete("https://elsewhere.example/x.png")
    store.delete(url.rsplit("/", 1)[0] + "/gone.png")
    assert len(os.listdir(tmp_path / "media")) == 1
