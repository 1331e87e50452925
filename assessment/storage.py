"""
Answer capture: appends response metadata to a JSON log and keeps uploaded recordings.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from assessment.logger import setup_logger
from assessment.utils.exceptions import StorageError
from assessment.utils.helpers import ensure_dir, format_json, now_ms, upload_filename

logger = setup_logger(__name__)


class ResponseStore:
    """
    Persists submitted answers.

    Text answers are stored inline; audio answers are written to the upload
    directory and referenced by filename.
    """

    def __init__(
        self,
        data_dir: Path,
        upload_dir: Path,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.data_dir = ensure_dir(Path(data_dir))
        self.upload_dir = ensure_dir(Path(upload_dir))
        self.responses_file = self.data_dir / "responses.json"
        self.clock = clock
        self._lock = threading.Lock()

        if not self.responses_file.exists():
            self.responses_file.write_text("[]", encoding="utf-8")

    def save_audio(
        self,
        content: bytes,
        user_id: Optional[str],
        section: str,
        question_id: str,
        original_name: Optional[str] = None,
    ) -> str:
        """
        Write an uploaded recording to disk.

        Returns:
            Stored filename (relative to the upload directory)
        """
        filename = upload_filename(user_id, section, question_id, original_name, self.clock())
        try:
            (self.upload_dir / filename).write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to store recording {filename}: {e}") from e
        logger.debug(f"🎙️  Stored recording {filename} ({len(content)} bytes)")
        return filename

    def append(self, payload: Dict[str, Any]) -> None:
        """Append one response record to the JSON log."""
        with self._lock:
            try:
                existing = json.loads(self.responses_file.read_text(encoding="utf-8"))
                existing.append(payload)
                self.responses_file.write_text(format_json(existing), encoding="utf-8")
            except (OSError, json.JSONDecodeError) as e:
                raise StorageError(f"Failed to append response: {e}") from e

    def all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return json.loads(self.responses_file.read_text(encoding="utf-8"))
