import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from inkpages.exceptions import LocalStorageError, LocalStorageQuotaExceeded

logger = logging.getLogger(__name__)


class LocalSlotStore:
    """
    Key/value slots persisted as one JSON file per key, with the same
    get/set/remove semantics as browser local storage. Values are strings.
    """

    def __init__(self, directory, quota_bytes: Optional[int] = None):
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        safe_key = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return self.directory / f"{safe_key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        encoded = value.encode("utf-8")
        if self.quota_bytes is not None:
            used = self.usage_bytes(exclude=path)
            if used + len(encoded) > self.quota_bytes:
                raise LocalStorageQuotaExceeded(
                    f"Storing '{key}' would exceed the {self.quota_bytes} byte quota"
                )

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(encoded)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Failed to write local slot {key}: {e}")
            raise LocalStorageError(f"Failed to save '{key}'") from e

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove local slot {key}: {e}")
            raise LocalStorageError(f"Failed to remove '{key}'") from e

    def usage_bytes(self, exclude: Optional[Path] = None) -> int:
        if not self.directory.exists():
            return 0
        return sum(
            p.stat().st_size
            for p in self.directory.glob("*.json")
            if exclude is None or p != exclude
        )
