"""
Ghostscript invocation for DPI normalization.

The engine is treated as an opaque command-line tool: it receives the
override directive followed by the input document and writes exactly one
output file. A non-zero exit status, a spawn failure or an exceeded time
budget is reported as an EngineError.
"""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from typing import List, Protocol

from .exceptions import EngineError, EngineTimeoutError

logger = logging.getLogger(__name__)

PDF_SETTINGS = "/prepress"
COMPATIBILITY_LEVEL = "1.4"
DEFAULT_TIMEOUT_SECONDS = 300.0
STDERR_LOG_LIMIT = 2000


class ConversionEngine(Protocol):
    def run(self, directive_path: Path, input_path: Path, output_path: Path, dpi: int) -> None:
        """Convert input_path into output_path at the given resolution.

        This is a blocking call; callers should offload to threads if needed.
        Raises EngineError on failure.
        """


def _truncate(value: str, limit: int = STDERR_LOG_LIMIT) -> str:
    if len(value) <= limit:
        return value
    return f"{value[:limit]}..."


class GhostscriptEngine:
    """
    Runs Ghostscript's pdfwrite device with a print-production profile.

    Attributes:
        binary: Executable name or path of Ghostscript
        timeout_seconds: Wall-clock budget per invocation; the process is
            killed when it is exceeded
        fail_on_stderr: Treat any diagnostic output as a failure even when
            the exit status is zero
    """

    def __init__(
        self,
        binary: str = "gs",
        timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS,
        fail_on_stderr: bool = False,
    ) -> None:
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self.fail_on_stderr = fail_on_stderr

    def build_command(self, directive_path: Path, input_path: Path, output_path: Path, dpi: int) -> List[str]:
        """
        Assemble the Ghostscript argument vector.

        The output file is declared before the inputs because Ghostscript
        opens the device as soon as the first input is processed.

        Args:
            directive_path: PostScript override directive, consumed first
            input_path: Staged PDF to convert, consumed second
            output_path: Destination of the converted PDF
            dpi: Horizontal and vertical device resolution

        Returns:
            The command as a list of arguments, suitable for subprocess
        """
        return [
            self.binary,
            "-sDEVICE=pdfwrite",
            "-dNOPAUSE",
            "-dBATCH",
            "-dQUIET",
            f"-dPDFSETTINGS={PDF_SETTINGS}",
            f"-dCompatibilityLevel={COMPATIBILITY_LEVEL}",
            f"-dDEVICEXRESOLUTION={dpi}",
            f"-dDEVICEYRESOLUTION={dpi}",
            "-dFIXEDMEDIA",
            "-dPDFX",
            "-dUseCIEColor",
            f"-sOutputFile={output_path}",
            "-f",
            str(directive_path),
            "-f",
            str(input_path),
        ]

    def run(self, directive_path: Path, input_path: Path, output_path: Path, dpi: int) -> None:
        """
        Invoke Ghostscript and wait for it to exit.

        Raises:
            EngineTimeoutError: If the process outlives timeout_seconds (it is killed)
            EngineError: If the process cannot be spawned, exits non-zero, or
                writes diagnostics while fail_on_stderr is enabled
        """
        command = self.build_command(directive_path, input_path, output_path, dpi)
        logger.info(f"Running Ghostscript at {dpi} DPI: {input_path.name} -> {output_path.name}")
        start = time.perf_counter()
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise EngineTimeoutError(f"Ghostscript timed out after {self.timeout_seconds}s") from exc
        except OSError as exc:
            raise EngineError(f"Failed to start Ghostscript ({self.binary}): {exc}") from exc

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        stderr = (result.stderr or "").strip()

        if result.returncode != 0:
            raise EngineError(
                f"Ghostscript exited with status {result.returncode}",
                returncode=result.returncode,
                stderr=stderr,
            )
        if stderr:
            if self.fail_on_stderr:
                raise EngineError("Ghostscript reported errors", returncode=result.returncode, stderr=stderr)
            logger.warning(f"Ghostscript diagnostics for {input_path.name}: {_truncate(stderr)}")

        logger.info(f"Ghostscript finished {output_path.name} in {elapsed_ms}ms")
