import os
import tempfile
from pathlib import Path

from flipbook.errors.exceptions import StorageError
from flipbook.storage.base import BlobStore


class LocalBlobStore(BlobStore):
    """Stores blobs as files below a root directory."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    @property
    def files_root(self) -> Path:
        return self._files_root

    def get(self, key: str) -> bytes:
        path = self._resolve_path(key)
        if not path.is_file():
            raise StorageError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def put(self, key: str, data: bytes) -> None:
        path = self._resolve_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write-then-rename so readers never see a partial file.
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc

    def exists(self, key: str) -> bool:
        return self._resolve_path(key).is_file()

    def _resolve_path(self, key: str) -> Path:
        root = self._files_root.resolve()
        path = (root / key.lstrip("/")).resolve()
        if not path.is_relative_to(root):
            raise StorageError(f"Storage key escapes the files root: {key}")
        return path
