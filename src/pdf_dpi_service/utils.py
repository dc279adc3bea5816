"""
Utility functions for file system operations and token generation.

This module provides helper functions for:
- Ensuring directory creation for the upload and output stores
- Generating unguessable random tokens used as on-disk names
- Splitting caller-supplied filenames into trusted extensions
- Best-effort removal of temporary artifacts
"""

from __future__ import annotations

import logging
import re
import secrets
from pathlib import Path

logger = logging.getLogger(__name__)

# Number of random bytes in a token (rendered as 32 hex characters)
TOKEN_BYTES = 16

# Extensions kept from caller-supplied names: a dot followed by alphanumerics only
SAFE_EXTENSION_PATTERN = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


def new_token() -> str:
    """
    Generate a cryptographically random hexadecimal token.

    Returns:
        A 32-character lowercase hex string built from 16 random bytes

    Example:
        >>> len(new_token())
        32
    """
    return secrets.token_hex(TOKEN_BYTES)


def ensure_directory(path: Path) -> Path:
    """
    Create a directory if it doesn't exist, including parent directories.

    This is a safe idempotent operation that won't fail if the directory
    already exists.

    Args:
        path: The directory path to create

    Returns:
        The same path object for chaining

    Raises:
        OSError: If directory creation fails due to permissions or other I/O errors
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def split_extension(filename: str) -> tuple[str, str]:
    """
    Split a filename into stem and extension components.

    Only the final path component is considered, and the extension is
    dropped when it contains anything other than alphanumerics.

    Args:
        filename: The filename to split (can include path)

    Returns:
        A tuple of (stem, extension) where extension includes the dot

    Example:
        >>> split_extension("document.pdf")
        ("document", ".pdf")
        >>> split_extension("../../etc/passwd.p df")
        ("passwd", "")
    """
    path = Path(filename.replace("\\", "/"))
    suffix = path.suffix if SAFE_EXTENSION_PATTERN.match(path.suffix) else ""
    return path.stem, suffix


def remove_quietly(path: Path) -> bool:
    """
    Delete a file, logging instead of raising on failure.

    Args:
        path: The file to delete; a missing file is not an error

    Returns:
        True if the file is gone afterwards, False if removal failed
    """
    try:
        path.unlink(missing_ok=True)
        return True
    except OSError as exc:
        logger.error(f"Cleanup error for {path}: {exc}")
        return False
