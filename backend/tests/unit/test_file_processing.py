"""Unit tests for content hashing, storage filenames and storage keys"""

import re
from datetime import date, datetime, timezone
from uuid import UUID

import pytest

from docingest.domain.documents.file_processing import (
    FileProcessor,
    compute_content_hash,
    generate_storage_filename,
    is_valid_content_hash,
)
from docingest.domain.documents.storage_keys import build_storage_key
from docingest.models import DocumentType

OWNER_ID = UUID("a1b2c3d4-e5f6-7890-abcd-ef1234567890")


class TestContentHash:
    """Test SHA-256 content hashing"""

    def test_known_digest(self):
        assert compute_content_hash(b"") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_identical_bytes_identical_digest(self):
        assert compute_content_hash(b"same bytes") == compute_content_hash(b"same bytes")

    def test_different_bytes_different_digest(self):
        assert compute_content_hash(b"version 1") != compute_content_hash(b"version 2")

    def test_digest_shape(self):
        digest = compute_content_hash(b"%PDF-1.4")
        assert is_valid_content_hash(digest) is True
        assert len(digest) == 64

    @pytest.mark.parametrize("value", [None, "", "abc", "G" * 64, "A" * 64, "a" * 63])
    def test_invalid_digest_shapes(self, value):
        assert is_valid_content_hash(value) is False


class TestStorageFilename:
    """Test generated storage filenames"""

    def test_embeds_correlation_id(self):
        name = generate_storage_filename("rg.pdf", "cid-42")

        assert name.startswith("cid-42-")
        assert name.endswith(".pdf")

    def test_format(self):
        name = generate_storage_filename("Scan.PDF", "cid")
        assert re.fullmatch(r"cid-\d{13}-[0-9a-f]{16}\.pdf", name)

    def test_identical_original_names_do_not_collide(self):
        names = {generate_storage_filename("rg.pdf", "cid") for _ in range(50)}
        assert len(names) == 50

    def test_unsafe_extension_dropped(self):
        name = generate_storage_filename("weird.p df", "cid")
        assert "." not in name

    def test_no_extension(self):
        assert "." not in generate_storage_filename("README", "cid")

    def test_processor_result(self):
        result = FileProcessor().process(b"payload", "rg.pdf", "application/pdf", "cid")

        assert result.content_hash == compute_content_hash(b"payload")
        assert result.size_bytes == 7
        assert result.original_filename == "rg.pdf"
        assert result.mime_type == "application/pdf"
        assert result.stored_filename.startswith("cid-")


class TestStorageKey:
    """Test hierarchical storage keys"""

    def test_key_with_type(self):
        key = build_storage_key(date(2025, 3, 7), OWNER_ID, DocumentType.RG, "abc.pdf")
        assert key == f"documents/2025/03/07/{OWNER_ID}/RG/abc.pdf"

    def test_key_without_type(self):
        key = build_storage_key(date(2025, 12, 31), OWNER_ID, None, "abc.pdf")
        assert key == f"documents/2025/12/31/{OWNER_ID}/abc.pdf"

    def test_key_is_pure(self):
        args = (datetime(2025, 1, 2, 23, 59, tzinfo=timezone.utc), OWNER_ID, DocumentType.CPF, "x.png")
        assert build_storage_key(*args) == build_storage_key(*args)

    def test_datetime_uses_its_date(self):
        key = build_storage_key(datetime(2024, 2, 29, 8, 0, tzinfo=timezone.utc), OWNER_ID, None, "f.txt")
        assert key.startswith("documents/2024/02/29/")

    @pytest.mark.parametrize("filename", ["", "a/b.pdf"])
    def test_invalid_filename(self, filename):
        with pytest.raises(ValueError):
            build_storage_key(date(2025, 1, 1), OWNER_ID, None, filename)
