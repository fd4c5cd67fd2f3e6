from pathlib import Path, PurePosixPath

from flipbook.database.models import DocumentRecord
from flipbook.errors.exceptions import StorageError
from flipbook.logging.logger import Log
from flipbook.storage.base import BlobStore


def file_name_from_storage_key(storage_key: str) -> str:
    return PurePosixPath(storage_key).name


class BlobResolver:
    """Finds a document's PDF bytes across the storage key conventions in use.

    Keys are tried against the blob store first (the key itself, then its
    bare file name). Legacy uploads are then read straight from disk:
    ``uploads/...`` keys relative to ``uploads_root``'s parent, ``temp/...``
    keys under ``temp_uploads_root``, anything else under ``uploads_root``.
    Documents without a key fall back to ``<id>.pdf``.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        uploads_root: Path = Path("uploads"),
        temp_uploads_root: Path = Path("/tmp/uploads"),
    ) -> None:
        self._blob_store = blob_store
        self._uploads_root = uploads_root
        self._temp_uploads_root = temp_uploads_root

    def resolve(self, document: DocumentRecord) -> bytes:
        """Return the PDF bytes for ``document``.

        Raises:
            StorageError: if no candidate location holds the file.
        """
        keys, paths = self._candidates(document)

        for key in keys:
            try:
                return self._blob_store.get(key)
            except StorageError as exc:
                Log.debug(f"Blob key {key!r} unavailable for document {document.id}: {exc}")

        for path in paths:
            if path.is_file():
                Log.info(f"Resolved document {document.id} from legacy path {path}")
                try:
                    return path.read_bytes()
                except OSError as exc:
                    raise StorageError(
                        f"Failed to read {path}: {exc}", document_id=document.id
                    ) from exc

        raise StorageError(
            f"PDF bytes for document {document.id} not found "
            f"(storage key: {document.storage_key!r})",
            document_id=document.id,
        )

    def _candidates(self, document: DocumentRecord) -> tuple[list[str], list[Path]]:
        storage_key = document.storage_key
        if not storage_key:
            file_name = f"{document.id}.pdf"
            return [file_name], [self._uploads_root / file_name]

        file_name = file_name_from_storage_key(storage_key)
        keys = list(dict.fromkeys([storage_key, file_name]))

        if storage_key.startswith("uploads/"):
            path = self._uploads_root.parent / storage_key
        elif storage_key.startswith("temp/"):
            path = self._temp_uploads_root / file_name
        else:
            path = self._uploads_root / file_name
        return keys, [path]
