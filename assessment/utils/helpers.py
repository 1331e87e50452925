"""
Common utility functions.
"""

import json
import time
from pathlib import Path
from typing import Any, Dict, Optional


def now_ms() -> int:
    """Wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def format_time(seconds: float) -> str:
    """
    Format a countdown value as MM:SS.

    Args:
        seconds: Remaining seconds (negative values display as 00:00)

    Returns:
        Zero-padded "MM:SS" string
    """
    seconds = max(int(seconds), 0)
    mins, secs = divmod(seconds, 60)
    return f"{mins:02d}:{secs:02d}"


def upload_filename(
    user_id: Optional[str],
    section: str,
    question_id: str,
    original_name: Optional[str],
    timestamp_ms: int,
) -> str:
    """
    Build the on-disk name for an uploaded answer recording.

    Args:
        user_id: Session identifier ("anonymous" when missing)
        section: Section key
        question_id: Question identifier, e.g. "B-3"
        original_name: Client-supplied filename, used only for its extension
        timestamp_ms: Upload time in epoch milliseconds

    Returns:
        Filename without directory
    """
    ext = Path(original_name or "").suffix or ".webm"
    stem = f"{user_id or 'anonymous'}_{section}_{question_id}_{timestamp_ms}"
    # Keep path separators out of client-controlled parts
    stem = stem.replace("/", "-").replace("\\", "-")
    return f"{stem}{ext}"


def ensure_dir(path: Path) -> Path:
    """
    Ensure directory exists, create if not.

    Args:
        path: Directory path

    Returns:
        The path object
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def format_json(data: Any, indent: int = 2) -> str:
    """
    Format data as pretty JSON string.

    Args:
        data: JSON-serializable data
        indent: Indentation spaces

    Returns:
        Formatted JSON string
    """
    return json.dumps(data, indent=indent, ensure_ascii=False)


def parse_bool(value: Any) -> bool:
    """Form fields arrive as strings; only true / "true" count as set."""
    if isinstance(value, bool):
        return value
    return value == "true"

