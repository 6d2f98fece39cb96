from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Optional

from settings import Settings, get_settings


class ReportArchive:
    """Write report documents under a root directory.

    Writing a key that already exists replaces the earlier file. Without a
    root directory nothing is written.
    """

    def __init__(self, root_path: Optional[Path] = None) -> None:
        self.root_path = root_path
        self._lock = Lock()

    def put_object(self, key: str, data: bytes) -> Optional[Path]:
        if not self.root_path:
            return None
        path = self.root_path / key
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        return path


def build_default_archive(settings: Optional[Settings] = None) -> ReportArchive:
    settings = settings or get_settings()
    path = Path(settings.reports_root_path) if settings.reports_root_path else None
    return ReportArchive(root_path=path)
