"""Tests for upload validation and storage path construction."""

from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest

from doc_vault.documents import UploadPolicy, safe_filename, validate_upload
from doc_vault.documents.paths import is_valid_segment, storage_path
from doc_vault.exceptions import ValidationError

MB = 1024 * 1024


@pytest.mark.documents
class TestValidateUpload:
    def test_accepts_pdf(self):
        assert validate_upload("a.pdf", "application/pdf", 10) == "pdf"

    def test_extension_is_lowercased(self):
        assert validate_upload("SCAN.JPG", "image/jpeg", 10) == "jpg"

    def test_rejects_oversize(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_upload("big.pdf", "application/pdf", 51 * MB)
        assert exc_info.value.reasons == [f"file_too_large(max={50 * MB})"]

    def test_limit_is_inclusive(self):
        assert validate_upload("edge.pdf", "application/pdf", 50 * MB) == "pdf"

    def test_rejects_empty(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_upload("a.pdf", "application/pdf", 0)
        assert "empty_file" in exc_info.value.reasons

    def test_executable_rejected_even_with_allowed_mime(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_upload("payload.exe", "application/pdf", 10)
        assert exc_info.value.reasons == ["blocked_extension(exe)"]

    def test_allowed_extension_with_odd_mime(self):
        assert validate_upload("report.docx", "application/octet-stream", 10) == "docx"

    def test_allowed_mime_with_unknown_extension(self):
        assert validate_upload("scan.tiff", "image/png", 10) == "tiff"

    def test_no_extension_falls_back_to_mime(self):
        assert validate_upload("scan", "image/png; charset=binary", 10) == "png"

    def test_neither_matches(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_upload("notes.txt", "text/plain", 10)
        assert exc_info.value.reasons == ["unsupported_type(txt, text/plain)"]

    def test_collects_all_reasons(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_upload("", None, 51 * MB)
        assert len(exc_info.value.reasons) == 3

    def test_unknown_size_skips_size_check(self):
        assert validate_upload("a.pdf", "application/pdf", None) == "pdf"

    def test_custom_policy(self):
        policy = UploadPolicy(max_bytes=100, allowed_extensions=frozenset({"csv"}), allowed_mime_types=frozenset())
        assert validate_upload("data.csv", "text/csv", 100, policy) == "csv"
        with pytest.raises(ValidationError):
            validate_upload("a.pdf", "application/pdf", 10, policy)

    def test_public_message_is_generic(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_upload("payload.exe", "application/pdf", 10)
        assert "exe" not in exc_info.value.public_message


@pytest.mark.documents
class TestSafeFilename:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("invoice.pdf", "invoice.pdf"),
            ("../../etc/passwd", "passwd"),
            ("C:\\Users\\me\\scan.png", "scan.png"),
            ('quote"d.pdf', "quote_d.pdf"),
            ("", "document"),
            ("...", "document"),
        ],
    )
    def test_sanitizes(self, raw, expected):
        assert safe_filename(raw) == expected


@pytest.mark.documents
class TestStoragePath:
    AT = datetime(2025, 3, 7, tzinfo=timezone.utc)

    def test_layout(self):
        path = storage_path("42", "0b6f3c1e-7d2a-4c1e-9f0a-1b2c3d4e5f60", "pdf", self.AT)
        assert path == "42/2025/03/0b6f3c1e-7d2a-4c1e-9f0a-1b2c3d4e5f60.pdf"
        assert re.fullmatch(r"[^/]+/\d{4}/\d{2}/[^/]+\.pdf", path)

    @pytest.mark.parametrize("owner", ["", "../x", "a/b", "a b"])
    def test_rejects_bad_owner(self, owner):
        with pytest.raises(ValueError):
            storage_path(owner, "doc", "pdf", self.AT)

    def test_rejects_bad_extension(self):
        with pytest.raises(ValueError):
            storage_path("42", "doc", "p/df", self.AT)

    def test_segment_check(self):
        assert is_valid_segment("user_42")
        assert not is_valid_segment("..")
