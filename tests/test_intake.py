"""
Tests for upload validation and staging.
"""

import asyncio
import re
import tempfile

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from pdf_dpi_service.exceptions import DpiRangeError, FileSizeError, FileTypeError, NoFilesError, TooManyFilesError
from pdf_dpi_service.intake import parse_dpi, stage_uploads, validate_dpi


def make_upload(name, content, content_type="application/pdf"):
    buffer = tempfile.SpooledTemporaryFile(max_size=1024 * 1024)
    buffer.write(content)
    buffer.seek(0)
    return UploadFile(buffer, filename=name, headers=Headers({"content-type": content_type}))


class TestParseDpi:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, 300),
            ("", 300),
            ("abc", 300),
            ("600", 600),
            (" 1200 ", 1200),
            ("150.9", 150),
            ("96dpi", 96),
            ("-5", -5),
            ("0", 0),
            ("000600", 600),
            ("٦٠٠", 300),
        ],
    )
    def test_parse(self, raw, expected):
        assert parse_dpi(raw) == expected

    def test_huge_digit_runs_saturate(self):
        assert parse_dpi("9" * 5000) > 2400
        assert parse_dpi("-" + "9" * 5000) < 72
        assert parse_dpi("0" * 5000 + "300") == 300

    def test_custom_default(self):
        assert parse_dpi(None, default=144) == 144


class TestValidateDpi:
    @pytest.mark.parametrize("dpi", [72, 300, 2400])
    def test_accepts_bounds(self, dpi):
        assert validate_dpi(dpi) == dpi

    @pytest.mark.parametrize("dpi", [71, 2401, 0, -300])
    def test_rejects_outside(self, dpi):
        with pytest.raises(DpiRangeError) as excinfo:
            validate_dpi(dpi)
        assert excinfo.value.status_code == 400


class TestStageUploads:
    def test_stages_under_random_names(self, tmp_path, sample_pdf):
        files = [make_upload("a.pdf", sample_pdf), make_upload("b.PDF", sample_pdf + b"\n")]

        staged = asyncio.run(stage_uploads(files, tmp_path))

        assert [item.original_name for item in staged] == ["a.pdf", "b.PDF"]
        assert re.match(r"^[0-9a-f]{32}\.pdf$", staged[0].storage_path.name)
        assert re.match(r"^[0-9a-f]{32}\.PDF$", staged[1].storage_path.name)
        assert staged[0].storage_path.read_bytes() == sample_pdf
        assert staged[1].size_bytes == len(sample_pdf) + 1
        assert staged[0].random_id != staged[1].random_id
        assert all(item.declared_mime_type == "application/pdf" for item in staged)

    def test_untrusted_extension_dropped(self, tmp_path, sample_pdf):
        staged = asyncio.run(stage_uploads([make_upload("weird.p/../df", sample_pdf)], tmp_path))
        assert re.match(r"^[0-9a-f]{32}$", staged[0].storage_path.name)

    def test_empty_batch(self, tmp_path):
        with pytest.raises(NoFilesError):
            asyncio.run(stage_uploads([], tmp_path))

    def test_count_limit(self, tmp_path, sample_pdf):
        files = [make_upload(f"{i}.pdf", sample_pdf) for i in range(3)]
        with pytest.raises(TooManyFilesError):
            asyncio.run(stage_uploads(files, tmp_path, max_files=2))
        assert list(tmp_path.iterdir()) == []

    def test_non_pdf_rejected_before_staging(self, tmp_path, sample_pdf):
        files = [make_upload("a.pdf", sample_pdf), make_upload("b.png", b"\x89PNG", "image/png")]

        with pytest.raises(FileTypeError) as excinfo:
            asyncio.run(stage_uploads(files, tmp_path))

        assert excinfo.value.filename == "b.png"
        assert list(tmp_path.iterdir()) == []

    def test_oversized_file_unstages_batch(self, tmp_path):
        files = [make_upload("small.pdf", b"x" * 10), make_upload("big.pdf", b"x" * 2048)]

        with pytest.raises(FileSizeError) as excinfo:
            asyncio.run(stage_uploads(files, tmp_path, max_bytes=1024))

        assert excinfo.value.status_code == 413
        assert excinfo.value.filename == "big.pdf"
        assert list(tmp_path.iterdir()) == []
