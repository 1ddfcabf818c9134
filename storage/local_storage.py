"""Local filesystem storage implementation."""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import IO

from werkzeug.utils import secure_filename

from config import Config

from .abstract_storage import AbstractStorage


class LocalStorage(AbstractStorage):
    """Persist files under the configured upload directory.

    Keys may contain one level of folders (``avatars/<name>``); every part is
    sanitized so stored paths never escape the base directory.
    """

    def __init__(self, upload_dir: str | None = None, base_url: str = "/files"):
        self.base_directory = Path(upload_dir or Config.UPLOAD_DIR)
        self.base_url = base_url.rstrip("/")
        os.makedirs(self.base_directory, exist_ok=True)

    def _resolve(self, key: str) -> PurePosixPath:
        parts = [secure_filename(part) for part in PurePosixPath(key).parts]
        if not parts or not all(parts):
            raise ValueError("Storage key must contain at least one valid character.")
        return PurePosixPath(*parts)

    def save(self, file_obj: IO[bytes], key: str) -> str:
        """Save a file and return the relative path within the upload directory."""

        relative = self._resolve(key)
        destination = self.base_directory / relative
        destination.parent.mkdir(parents=True, exist_ok=True)
        if hasattr(file_obj, "save"):
            file_obj.save(destination)  # type: ignore[arg-type]
        else:
            with open(destination, "wb") as output:
                output.write(file_obj.read())

        return str(relative)

    def exists(self, path: str) -> bool:
        try:
            return (self.base_directory / self._resolve(path)).is_file()
        except ValueError:
            return False

    def delete(self, path: str) -> bool:
        target = self.base_directory / self._resolve(path)
        if not target.is_file():
            return False
        target.unlink()
        return True

    def absolute_path(self, path: str) -> Path:
        return (self.base_directory / self._resolve(path)).resolve()

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{self._resolve(path)}"
