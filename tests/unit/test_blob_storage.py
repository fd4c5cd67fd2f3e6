from pathlib import Path

import pytest

from flipbook.database.models import DocumentRecord
from flipbook.errors.exceptions import StorageError
from flipbook.storage.local import LocalBlobStore
from flipbook.storage.resolver import BlobResolver, file_name_from_storage_key
from tests.fakes import MemoryBlobStore


def _make_document(storage_key: str | None = "documents/o/abc-123.pdf") -> DocumentRecord:
    return DocumentRecord(id=1, title="Report", owner_id="o", storage_key=storage_key)


class TestLocalBlobStore:
    def test_put_then_get(self, tmp_path: Path) -> None:
        store = LocalBlobStore(files_root=tmp_path)

        store.put("pages/1/1.webp", b"image")

        assert store.get("pages/1/1.webp") == b"image"
        assert (tmp_path / "pages" / "1" / "1.webp").read_bytes() == b"image"

    def test_put_overwrites_without_leftovers(self, tmp_path: Path) -> None:
        store = LocalBlobStore(files_root=tmp_path)

        store.put("a.pdf", b"old")
        store.put("a.pdf", b"new")

        assert store.get("a.pdf") == b"new"
        assert [p.name for p in tmp_path.iterdir()] == ["a.pdf"]

    def test_missing_file_raises_storage_error(self, tmp_path: Path) -> None:
        store = LocalBlobStore(files_root=tmp_path)

        with pytest.raises(StorageError, match="File not found"):
            store.get("missing.pdf")

    def test_exists(self, tmp_path: Path) -> None:
        store = LocalBlobStore(files_root=tmp_path)
        store.put("a.pdf", b"x")

        assert store.exists("a.pdf")
        assert not store.exists("b.pdf")

    def test_key_cannot_escape_root(self, tmp_path: Path) -> None:
        store = LocalBlobStore(files_root=tmp_path / "root")

        with pytest.raises(StorageError, match="escapes"):
            store.put("../outside.pdf", b"x")

    def test_leading_slash_stays_inside_root(self, tmp_path: Path) -> None:
        store = LocalBlobStore(files_root=tmp_path)
        store.put("/a.pdf", b"x")

        assert (tmp_path / "a.pdf").is_file()

    def test_default_root(self) -> None:
        assert LocalBlobStore().files_root == Path("/app/files")


def test_file_name_from_storage_key() -> None:
    assert file_name_from_storage_key("documents/o/abc.pdf") == "abc.pdf"
    assert file_name_from_storage_key("abc.pdf") == "abc.pdf"


class TestBlobResolver:
    def test_uses_storage_key(self) -> None:
        store = MemoryBlobStore({"documents/o/abc-123.pdf": b"%PDF key"})

        assert BlobResolver(store).resolve(_make_document()) == b"%PDF key"

    def test_falls_back_to_file_name(self) -> None:
        store = MemoryBlobStore({"abc-123.pdf": b"%PDF name"})

        assert BlobResolver(store).resolve(_make_document()) == b"%PDF name"

    def test_document_without_key_uses_id(self) -> None:
        store = MemoryBlobStore({"1.pdf": b"%PDF id"})

        assert BlobResolver(store).resolve(_make_document(storage_key=None)) == b"%PDF id"

    def test_legacy_uploads_key(self, tmp_path: Path) -> None:
        uploads = tmp_path / "uploads"
        (uploads / "2024").mkdir(parents=True)
        (uploads / "2024" / "old.pdf").write_bytes(b"%PDF legacy")
        resolver = BlobResolver(MemoryBlobStore(), uploads_root=uploads)

        assert resolver.resolve(_make_document("uploads/2024/old.pdf")) == b"%PDF legacy"

    def test_legacy_temp_key(self, tmp_path: Path) -> None:
        (tmp_path / "tmp.pdf").write_bytes(b"%PDF temp")
        resolver = BlobResolver(MemoryBlobStore(), temp_uploads_root=tmp_path)

        assert resolver.resolve(_make_document("temp/session/tmp.pdf")) == b"%PDF temp"

    def test_other_keys_fall_back_to_uploads_root(self, tmp_path: Path) -> None:
        (tmp_path / "abc-123.pdf").write_bytes(b"%PDF uploads")
        resolver = BlobResolver(MemoryBlobStore(), uploads_root=tmp_path)

        assert resolver.resolve(_make_document()) == b"%PDF uploads"

    def test_missing_everywhere_raises(self, tmp_path: Path) -> None:
        resolver = BlobResolver(MemoryBlobStore(), uploads_root=tmp_path)

        with pytest.raises(StorageError) as exc_info:
            resolver.resolve(_make_document())
        assert exc_info.value.document_id == 1
