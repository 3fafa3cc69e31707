"""JSON document persistence for the store."""

from __future__ import annotations

import json
import os
from pathlib import Path
import tempfile

from ..errors import CorruptState
from ..utils.logging_config import StructuredLogger
from .models import RequesterAccount, Store

logger = StructuredLogger(__name__)


class EntryStore:
    """Owns the in-memory Store and its on-disk document.

    Callers mutate ``self.store`` and call ``save()`` while holding the
    application's store lock.
    """

    def __init__(self, path: str | Path, default_max_quota: int):
        self.path = Path(path).expanduser()
        self.store = Store(default_max_quota=default_max_quota)
        self.loaded = False

    def get(self, requester_id: str) -> RequesterAccount | None:
        return self.store.get(requester_id)

    def get_or_create(self, requester_id: str) -> RequesterAccount:
        return self.store.get_or_create(requester_id)

    def load(self) -> None:
        if not self.path.exists():
            logger.info("No persisted store found, starting empty", path=str(self.path))
            self.loaded = True
            return

        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CorruptState(f"Cannot read store document {self.path}: {exc}") from exc

        self.store.replace_from_dict(payload)
        self.loaded = True
        logger.info("Store loaded", path=str(self.path), accounts=len(self.store.users))

    def save(self) -> None:
        text = json.dumps(self.store.to_dict(), ensure_ascii=True, indent=2) + "\n"
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(text)
                fp.flush()
                os.fsync(fp.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
