"""Utility functions for storage operations."""

import re
import uuid
from pathlib import Path
from typing import Optional

# File type constants
ALLOWED_EXTENSIONS = {
    '.mp4', '.mov', '.webm', '.avi', '.mkv',  # Videos
    '.mp3', '.wav', '.aac', '.ogg', '.flac',  # Audio
}

# Size limits
MAX_FILE_SIZE = 2 * 1024 * 1024 * 1024  # 2GB

# Filename sanitization regex
UNSAFE_CHARS = re.compile(r'[^\w\-.]')
MULTIPLE_DOTS = re.compile(r'\.{2,}')
LEADING_DOTS = re.compile(r'^\.+')


def validate_file_path(path: str) -> bool:
    """Prevent directory traversal attacks.

    Args:
        path: File path to validate

    Returns:
        True if path is safe, False otherwise
    """
    try:
        p = Path(path)

        if '..' in p.parts:
            return False

        if p.is_absolute():
            return False

        path_str = str(p)
        if any(pattern in path_str for pattern in ['../', '..\\', '~/', '~\\']):
            return False

        return True
    except (TypeError, ValueError):
        return False


def sanitize_filename(filename: str) -> str:
    """Remove dangerous characters from filename.

    Args:
        filename: Original filename

    Returns:
        Sanitized filename safe for storage
    """
    name = Path(filename).stem
    ext = Path(filename).suffix

    name = UNSAFE_CHARS.sub('_', name)
    name = MULTIPLE_DOTS.sub('_', name)
    name = LEADING_DOTS.sub('', name)

    if len(name) > 200:
        name = name[:200]

    if not name:
        name = 'unnamed'

    return f"{name}{ext}"


def build_artifact_name(source_path: str, action: str, extension: Optional[str] = None) -> str:
    """Unique output filename derived from the source name and the action.

    A random suffix keeps concurrent sibling edits of the same source from
    colliding.
    """
    source = Path(source_path)
    stem = sanitize_filename(source.name)
    stem = Path(stem).stem
    ext = extension if extension is not None else (source.suffix or '.mp4')
    if ext and not ext.startswith('.'):
        ext = f".{ext}"
    return f"{stem}_{action}_{uuid.uuid4().hex[:12]}{ext}"


def validate_file_size(size: int) -> bool:
    """Check if file size is within limits."""
    return 0 < size <= MAX_FILE_SIZE


def is_media_file(file_path: str) -> bool:
    """Check if file is a supported media type.

    Args:
        file_path: Path to check

    Returns:
        True if file is video or audio
    """
    ext = Path(file_path).suffix.lower()
    return ext in ALLOWED_EXTENSIONS
