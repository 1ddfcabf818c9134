"""Storage abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import IO


class AbstractStorage(ABC):
    """Interface for object storage backends."""

    @abstractmethod
    def save(self, file_obj: IO[bytes], key: str) -> str:
        """Persist a file under ``key`` and return the stored (relative) path."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return whether the given relative path exists in storage."""

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Remove a stored file; return False if it did not exist."""

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Return the URL clients use to fetch a stored file."""
