"""
Local filesystem storage for uploaded audio.
"""

import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from core.config import settings
from core.exceptions import StorageError
import logging

logger = logging.getLogger(__name__)


class LocalAudioStorage:
    """Stores files under ``base_dir`` using workspace-scoped relative paths"""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.STORAGE_DIR).resolve()

    def build_path(self, workspace_id, user_id, extension: str) -> str:
        timestamp = int(datetime.utcnow().timestamp() * 1000)
        return f"{workspace_id}/voice-recordings/{user_id}/{timestamp}-{uuid.uuid4().hex[:8]}.{extension}"

    def _resolve(self, relative_path: str) -> Path:
        path = (self.base_dir / relative_path).resolve()
        if self.base_dir not in path.parents:
            raise StorageError("Invalid storage path", context={"path": relative_path})
        return path

    def save(self, relative_path: str, data: bytes) -> str:
        path = self._resolve(relative_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError("Failed to store file", context={"path": relative_path}, original_exception=e)
        logger.info(f"Stored {len(data)} bytes at {relative_path}")
        return relative_path

    def read(self, relative_path: str) -> bytes:
        path = self._resolve(relative_path)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError("Failed to read file", context={"path": relative_path}, original_exception=e)

    def delete(self, relative_path: str):
        path = self._resolve(relative_path)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError("Failed to delete file", context={"path": relative_path}, original_exception=e)
