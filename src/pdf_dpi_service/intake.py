"""
Upload intake: request validation and staging of uploaded PDFs.

Uploaded parts are checked as a batch before anything touches disk, then
streamed into the upload directory under random names. A rejected batch
leaves nothing behind in the staging area.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Sequence

from fastapi import UploadFile

from .converter import UploadedFile
from .directive import DEFAULT_DPI, MAX_DPI, MIN_DPI
from .exceptions import DpiRangeError, FileSizeError, FileTypeError, NoFilesError, TooManyFilesError
from .utils import new_token, remove_quietly, split_extension

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
MAX_FILE_SIZE = 50 * 1024 * 1024
CHUNK_SIZE = 1024 * 1024

# Leading ASCII integer, same reading as a lenient form parser: "150dpi" -> 150
_LEADING_INT = re.compile(r"^\s*([+-]?)([0-9]+)")

# Longer digit runs are far outside any valid DPI and are saturated instead of converted
MAX_DPI_DIGITS = 9


def parse_dpi(raw: Optional[str], default: int = DEFAULT_DPI) -> int:
    """
    Read the DPI form field.

    Args:
        raw: Field value as submitted, or None when absent
        default: Value used when the field is missing or has no leading integer

    Returns:
        The parsed integer, not yet range-checked

    Example:
        >>> parse_dpi("600")
        600
        >>> parse_dpi("150.9")
        150
        >>> parse_dpi("high")
        300
    """
    if raw is None:
        return default
    match = _LEADING_INT.match(str(raw))
    if not match:
        return default
    sign, digits = match.groups()
    digits = digits.lstrip("0") or "0"
    if len(digits) > MAX_DPI_DIGITS:
        digits = "9" * (MAX_DPI_DIGITS + 1)
    return int(sign + digits)


def validate_dpi(dpi: int) -> int:
    if not MIN_DPI <= dpi <= MAX_DPI:
        raise DpiRangeError(f"DPI must be between {MIN_DPI} and {MAX_DPI}")
    return dpi


def check_batch(files: Optional[Sequence[UploadFile]], max_files: int = 0) -> None:
    """
    Validate the shape of an upload batch without reading any content.

    Raises:
        NoFilesError: If the batch is empty
        TooManyFilesError: If max_files is positive and exceeded
        FileTypeError: If any part is not declared as a PDF
    """
    if not files:
        raise NoFilesError()
    if max_files and len(files) > max_files:
        raise TooManyFilesError(None, f"Too many files: at most {max_files} per request")
    for file in files:
        if (file.content_type or "") != PDF_MIME_TYPE:
            raise FileTypeError(file.filename, "Only PDF files are allowed")


async def _stage_one(file: UploadFile, upload_root: Path, max_bytes: int) -> UploadedFile:
    original_name = file.filename or "document.pdf"
    _, extension = split_extension(original_name)
    random_id = new_token()
    destination = upload_root / f"{random_id}{extension}"

    size_bytes = 0
    try:
        with destination.open("wb") as buffer:
            while chunk := await file.read(CHUNK_SIZE):
                size_bytes += len(chunk)
                if size_bytes > max_bytes:
                    raise FileSizeError(
                        original_name,
                        f"File {original_name} exceeds the limit of {max_bytes // (1024 * 1024)}MB",
                    )
                buffer.write(chunk)
    except BaseException:
        remove_quietly(destination)
        raise
    finally:
        await file.close()

    return UploadedFile(
        random_id=random_id,
        original_name=original_name,
        storage_path=destination,
        size_bytes=size_bytes,
        declared_mime_type=file.content_type or PDF_MIME_TYPE,
    )


async def stage_uploads(
    files: Optional[Sequence[UploadFile]],
    upload_root: Path,
    max_bytes: int = MAX_FILE_SIZE,
    max_files: int = 0,
) -> list[UploadedFile]:
    """
    Validate an upload batch and write every part to the staging directory.

    Args:
        files: Multipart file parts in submission order
        upload_root: Staging directory (must exist)
        max_bytes: Per-file size ceiling
        max_files: Maximum number of parts, 0 for no limit

    Returns:
        Staged files in submission order

    Raises:
        UploadError: If the batch is rejected; files already staged for the
            batch are removed before the error propagates
    """
    check_batch(files, max_files=max_files)

    staged: list[UploadedFile] = []
    try:
        for file in files:
            staged.append(await _stage_one(file, upload_root, max_bytes))
    except BaseException:
        for item in staged:
            remove_quietly(item.storage_path)
        raise

    logger.info(f"Staged {len(staged)} file(s): {', '.join(item.storage_path.name for item in staged)}")
    return staged
