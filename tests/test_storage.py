import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from vett.errors import ValidationError
from vett.storage import ImageStorage, is_present


def _fs(data=b"\x89PNG" + b"\x00" * 64, filename="pic.png", content_type="image/png"):
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=content_type)


def test_save_generates_safe_name(tmp_path):
    store = ImageStorage(str(tmp_path), max_bytes=1024)
    url = store.save(_fs(filename="../../etc/passwd.png"), owner_id=7, index=2)
    name = url.rsplit("/", 1)[1]
    assert url.startswith("/uploads/")
    assert name.startswith("7_")
    assert name.endswith("_2.png")
    assert os.path.isfile(tmp_path / name)


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"filename": "doc.pdf", "content_type": "application/pdf"}, "Please select an image file"),
        ({"filename": "sneaky.png", "content_type": "text/html"}, "Please select an image file"),
        ({"data": b""}, "Image file is empty"),
        ({"data": b"x" * 2048}, "Image must be less than 1KB"),
    ],
)
def test_validate_rejects(tmp_path, kwargs, message):
    store = ImageStorage(str(tmp_path), max_bytes=1024)
    with pytest.raises(ValidationError) as ei:
        store.validate(_fs(**kwargs), field="avatar")
    assert ei.value.errors == [{"field": "avatar", "message": message}]


def test_validate_rewinds_stream(tmp_path):
    store = ImageStorage(str(tmp_path), max_bytes=1024)
    f = _fs()
    assert store.validate(f) == "png"
    assert f.stream.tell() == 0


def test_delete_only_touches_upload_folder(tmp_path):
    store = ImageStorage(str(tmp_path), max_bytes=1024)
    url = store.save(_fs(), owner_id=1)
    assert store.delete(url) is True
    assert store.delete(url) is False
    assert store.delete("https://cdn.example/x.png") is False
    assert store.delete(None) is False


def test_is_present():
    assert is_present(_fs())
    assert not is_present(None)
    assert not is_present(FileStorage(stream=io.BytesIO(b""), filename=""))
