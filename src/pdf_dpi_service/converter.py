"""
Conversion orchestration for uploaded PDF batches.

This module owns the lifecycle of every file in a conversion request:
- Writing a per-attempt override directive next to the staged input
- Invoking the engine once per file, strictly in submission order
- Collecting results for the files that converted
- Removing staged inputs and directives on every exit path

The ConversionManager class is the core business logic of the API. It runs
batches on a thread pool so that blocking engine calls never stall the
event loop serving other requests.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .directive import DIRECTIVE_SUFFIX, MAX_DPI, MIN_DPI, build_override_directive
from .engine import ConversionEngine, GhostscriptEngine
from .exceptions import ConversionError, DpiRangeError, EngineError
from .models import ConversionResult
from .utils import ensure_directory, new_token, remove_quietly

logger = logging.getLogger(__name__)

OUTPUT_URL_PREFIX = "/output"


@dataclass
class UploadedFile:
    """
    A staged upload awaiting conversion.

    Attributes:
        random_id: Hex token the on-disk name is derived from
        original_name: Filename supplied by the caller (never used on disk)
        storage_path: Location of the staged bytes in the upload directory
        size_bytes: Number of bytes written
        declared_mime_type: Content type declared by the caller
    """

    random_id: str
    original_name: str
    storage_path: Path
    size_bytes: int
    declared_mime_type: str


@dataclass
class ConversionRequest:
    files: List[UploadedFile] = field(default_factory=list)
    target_dpi: int = 300


class ConversionManager:
    """
    Central coordinator for DPI conversion batches.

    Each file gets its own random token; the output is written to
    ``<output_root>/<token>.pdf`` and the directive to
    ``<upload_root>/<token>.ps``, so concurrent attempts never share a
    directive file and no locking is needed.

    A failing file aborts the batch: outputs already produced stay on disk
    but are not reported, and the files that were not reached are removed
    without being processed.

    Attributes:
        output_root: Directory holding converted outputs
        upload_root: Directory holding staged inputs and directives
    """

    def __init__(
        self,
        output_root: Path | None = None,
        upload_root: Path | None = None,
        engine: ConversionEngine | None = None,
        max_workers: int = 4,
    ) -> None:
        """
        Initialize the conversion manager.

        Args:
            output_root: Directory for converted outputs (default: ./output)
            upload_root: Directory for staged uploads (default: ./uploads)
            engine: Engine used per file (default: GhostscriptEngine())
            max_workers: Number of batches converting at the same time (default: 4)
        """
        self.output_root = ensure_directory(output_root or Path("output"))
        self.upload_root = ensure_directory(upload_root or Path("uploads"))
        self._engine = engine or GhostscriptEngine()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="conversion")

    async def convert(self, request: ConversionRequest) -> list[ConversionResult]:
        """
        Convert a batch without blocking the event loop.

        Runs convert_batch on the manager's thread pool and suspends until it
        finishes. Errors propagate unchanged.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.convert_batch, request)

    def convert_batch(self, request: ConversionRequest) -> list[ConversionResult]:
        """
        Convert every file of a request in order.

        Args:
            request: Staged files and the target resolution

        Returns:
            One result per file, in submission order

        Raises:
            DpiRangeError: If target_dpi is out of range (no file is touched
                other than being removed)
            ConversionError: For the first file that fails; later files are
                removed unprocessed
        """
        pending = list(request.files)
        results: list[ConversionResult] = []
        try:
            if not MIN_DPI <= request.target_dpi <= MAX_DPI:
                raise DpiRangeError(f"DPI must be between {MIN_DPI} and {MAX_DPI}")
            while pending:
                staged = pending.pop(0)
                results.append(self._convert_file(staged, request.target_dpi))
        finally:
            for skipped in pending:
                logger.warning(f"Discarding unprocessed upload {skipped.original_name} ({skipped.storage_path.name})")
                remove_quietly(skipped.storage_path)

        logger.info(f"Converted {len(results)} file(s) at {request.target_dpi} DPI")
        return results

    def _convert_file(self, staged: UploadedFile, dpi: int) -> ConversionResult:
        token = new_token()
        output_name = f"{token}.pdf"
        output_path = self.output_root / output_name
        directive_path = self.upload_root / f"{token}{DIRECTIVE_SUFFIX}"

        try:
            try:
                directive_path.write_text(build_override_directive(dpi), encoding="utf-8")
            except OSError as exc:
                logger.error(f"Could not write directive for {staged.original_name}: {exc}")
                raise ConversionError(staged.original_name, f"Failed to create PostScript file: {exc}") from exc

            try:
                self._engine.run(directive_path, staged.storage_path, output_path, dpi)
            except EngineError as exc:
                if exc.stderr:
                    logger.error(f"Ghostscript error for {staged.original_name}: {exc.stderr}")
                logger.error(f"Processing error for {staged.original_name}: {exc}")
                remove_quietly(output_path)
                raise ConversionError(staged.original_name, f"Failed to set PDF DPI: {exc}") from exc
        finally:
            remove_quietly(directive_path)
            remove_quietly(staged.storage_path)

        return ConversionResult(
            original_name=staged.original_name,
            name=output_name,
            url=f"{OUTPUT_URL_PREFIX}/{output_name}",
            dpi=dpi,
        )

    def resolve_output(self, filename: str) -> Optional[Path]:
        """
        Locate a converted output by its token filename.

        Args:
            filename: Name as returned in a ConversionResult

        Returns:
            The file path if it exists directly inside output_root, None otherwise
        """
        base_path = self.output_root.resolve()
        file_path = (base_path / filename).resolve()
        if file_path.parent != base_path:
            return None
        if not file_path.is_file():
            return None
        return file_path

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
