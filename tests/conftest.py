"""
Pytest configuration and fixtures for PDF DPI Service tests.
"""

import os
import stat
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
os.environ["OUTPUT_DIR"] = tempfile.mkdtemp(prefix="pdf_dpi_test_output_")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="pdf_dpi_test_uploads_")
os.environ["GS_BINARY"] = "gs-disabled-in-tests"

from pdf_dpi_service.converter import ConversionManager
from pdf_dpi_service.exceptions import EngineError
from pdf_dpi_service.main import app, get_conversion_manager

# Minimal PDF that is technically valid
MINIMAL_PDF = b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>
endobj
xref
0 4
0000000000 65535 f
0000000009 00000 n
0000000058 00000 n
0000000115 00000 n
trailer
<< /Size 4 /Root 1 0 R >>
startxref
196
%%EOF"""


@dataclass
class EngineCall:
    directive_path: Path
    input_path: Path
    output_path: Path
    dpi: int
    directive: str
    input_bytes: bytes


class FakeEngine:
    """Stands in for Ghostscript and records every invocation.

    The output it writes embeds the directive it was handed, so tests can
    tell which request's directive reached which output.
    """

    def __init__(self, fail_on_call=None, barrier=None):
        self.fail_on_call = fail_on_call
        self.barrier = barrier
        self.calls = []
        self.outputs = {}
        self._lock = threading.Lock()

    def run(self, directive_path, input_path, output_path, dpi):
        call = EngineCall(
            directive_path=directive_path,
            input_path=input_path,
            output_path=output_path,
            dpi=dpi,
            directive=directive_path.read_text(encoding="utf-8"),
            input_bytes=input_path.read_bytes(),
        )
        with self._lock:
            self.calls.append(call)
            number = len(self.calls)

        if self.barrier is not None:
            self.barrier.wait(timeout=5)

        if self.fail_on_call == number:
            output_path.write_bytes(b"partial")
            raise EngineError("Ghostscript exited with status 1", returncode=1, stderr="Error: /syntaxerror in fake")

        payload = b"%PDF-1.4\n% converted\n" + call.directive.encode("utf-8")
        output_path.write_bytes(payload)
        with self._lock:
            self.outputs[output_path.name] = payload


@pytest.fixture
def sample_pdf():
    """Bytes of a minimal valid PDF."""
    return MINIMAL_PDF


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "output"


@pytest.fixture
def manager(fake_engine, upload_dir, output_dir):
    """Conversion manager writing into per-test directories."""
    conversion_manager = ConversionManager(
        output_root=output_dir,
        upload_root=upload_dir,
        engine=fake_engine,
        max_workers=2,
    )
    yield conversion_manager
    conversion_manager.shutdown()


@pytest.fixture
def client(manager):
    """Create a test client for the FastAPI app backed by the fake engine."""
    app.dependency_overrides[get_conversion_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fake_gs(tmp_path):
    """Factory writing an executable shell script that stands in for gs."""

    def _make(body, name="gs"):
        script = tmp_path / "bin" / name
        script.parent.mkdir(parents=True, exist_ok=True)
        script.write_text("#!/bin/sh\n" + body, encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _make
