"""Utility functions for gdrive-push."""

import mimetypes
import stat
from datetime import datetime
from pathlib import PurePath

# =============================================================================
# Constants
# =============================================================================

# MIME type Google Drive uses to mark folders
FOLDER_MIME_TYPE: str = "application/vnd.google-apps.folder"

# Fallback content type when the extension is unknown
DEFAULT_MIME_TYPE: str = "application/octet-stream"

# Chunk size for resumable uploads (must be a multiple of 256 KiB)
DEFAULT_CHUNK_SIZE: int = 8 * 1024 * 1024

# Retry configuration for transient errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds


# =============================================================================
# Formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def format_duration(seconds: float) -> str:
    """Format an elapsed time.

    Examples:
        >>> format_duration(0.5)
        '500ms'
        >>> format_duration(12.5)
        '12.50s'
        >>> format_duration(125)
        '2m5.00s'
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, rest = divmod(seconds, 60)
    return f"{int(minutes)}m{rest:.2f}s"


def format_mode(mode: int) -> str:
    """Render permission bits the way ``ls -l`` does (e.g. "-rw-r--r--")."""
    return stat.filemode(mode)


def format_timestamp(timestamp: float) -> str:
    """Render a Unix timestamp as local ISO 8601."""
    return datetime.fromtimestamp(timestamp).astimezone().isoformat()


# =============================================================================
# MIME type detection
# =============================================================================


def guess_mime_type(name: str) -> str:
    """Infer a content type from a file name's extension.

    Args:
        name: File name (or path)

    Returns:
        MIME type string (defaults to 'application/octet-stream')
    """
    mime_type, _ = mimetypes.guess_type(PurePath(name).name)
    return mime_type or DEFAULT_MIME_TYPE
