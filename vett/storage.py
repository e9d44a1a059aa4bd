"""Image storage for profile photos and avatars.

Files live in a single upload folder and are served back under ``/uploads/``.
Stored names are generated (``<owner>_<millis>_<index>.<ext>``) so client
filenames never reach the filesystem.
"""

from __future__ import annotations

import logging
import os
import time

from flask import Blueprint, current_app, send_from_directory
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .errors import ValidationError

log = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
URL_PREFIX = "/uploads/"

bp = Blueprint("uploads", __name__)


def _extension(filename: str | None) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def _stream_size(file: FileStorage) -> int:
    stream = file.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def _human_size(n: int) -> str:
    if n >= 1024 * 1024:
        return f"{n // (1024 * 1024)}MB"
    return f"{max(n // 1024, 1)}KB"


def is_present(file: FileStorage | None) -> bool:
    """Browsers submit empty file inputs as a part with no filename."""
    return file is not None and bool(file.filename)


class ImageStorage:
    def __init__(self, folder: str, max_bytes: int):
        self.folder = folder
        self.max_bytes = max_bytes

    def validate(self, file: FileStorage, field: str = "image") -> str:
        ext = _extension(file.filename)
        if ext not in ALLOWED_EXTENSIONS or not (file.mimetype or "").startswith("image/"):
            raise ValidationError([{"field": field, "message": "Please select an image file"}])
        size = _stream_size(file)
        if size == 0:
            raise ValidationError([{"field": field, "message": "Image file is empty"}])
        if size > self.max_bytes:
            raise ValidationError([{"field": field, "message": f"Image must be less than {_human_size(self.max_bytes)}"}])
        return ext

    def save(self, file: FileStorage, owner_id: int, index: int = 0, *, field: str = "image") -> str:
        ext = self.validate(file, field)
        name = secure_filename(f"{owner_id}_{int(time.time() * 1000)}_{index}.{ext}")
        os.makedirs(self.folder, exist_ok=True)
        file.save(os.path.join(self.folder, name))
        log.info("Stored upload %s (%s)", name, file.mimetype)
        return URL_PREFIX + name

    def delete(self, url: str | None) -> bool:
        if not url or not url.startswith(URL_PREFIX):
            return False
        name = secure_filename(url[len(URL_PREFIX):])
        path = os.path.join(self.folder, name)
        if not name or not os.path.isfile(path):
            return False
        os.remove(path)
        return True


def init_storage(app) -> ImageStorage:
    folder = app.config.get("UPLOAD_FOLDER") or os.path.join(app.instance_path, "uploads")
    app.config["UPLOAD_FOLDER"] = folder
    storage = ImageStorage(folder, int(app.config.get("MAX_IMAGE_BYTES", 5 * 1024 * 1024)))
    app.extensions["vett_storage"] = storage
    return storage


def get_storage() -> ImageStorage:
    return current_app.extensions["vett_storage"]


@bp.get("/uploads/<path:name>")
def serve_upload(name: str):
    return send_from_directory(get_storage().folder, name)


__all__ = [
    "ALLOWED_EXTENSIONS",
    "ImageStorage",
    "is_present",
    "init_storage",
    "get_storage",
    "bp",
]
