from abc import ABC, abstractmethod


class BlobStore(ABC):
    """Contract for byte storage addressed by key (local disk, object storage)."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Read the bytes stored under ``key``.

        Raises:
            StorageError: if the key does not exist or cannot be read.
        """

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """Store ``data`` under ``key``, replacing any previous value.

        Raises:
            StorageError: if the bytes cannot be written.
        """
