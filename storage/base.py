from abc import ABC, abstractmethod
from typing import Any


class StorageInitError(RuntimeError):
    """Raised when the store cannot be opened or its schema created."""


class StorageBackend(ABC):
    """Abstract storage backend for understanding events."""

    @abstractmethod
    def connect(self):
        """Open the store and create the schema if needed."""

    @abstractmethod
    def insert_event(self, record: dict[str, Any]) -> None:
        """Insert a single understanding event."""

    @abstractmethod
    def close(self):
        """Close the store cleanly."""
