"""
Board transactions: lock, load, mutate, save, unlock.

Each public method is one document transaction. The whole document is read
into memory before anything is written, and the board file is replaced
atomically, so a failed operation leaves the previous document in place.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from . import engine
from .config import BoardConfig
from .items import Item, today_utc
from .lock import board_lock, clean_stale_lock
from .store import Document, append_archive, load_document, save_document

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ArchiveResult:
    count: int
    path: Optional[Path] = None


class Board:
    """File-backed board driven by a resolved ``BoardConfig``."""

    def __init__(self, config: BoardConfig):
        self.config = config

    @property
    def path(self) -> Path:
        return self.config.board_path

    def _lock(self):
        return board_lock(
            self.config.lock_file,
            max_age_seconds=self.config.lock_timeout_seconds,
            token=self.config.owner_token,
        )

    def _transact(self, op: str, fn: Callable[[Document], Tuple[Document, T]]) -> T:
        with self._lock():
            doc = load_document(self.path)
            new_doc, result = fn(doc)
            if new_doc != doc:
                save_document(self.path, new_doc)
                logger.info("%s: wrote %s", op, self.path)
        return result

    def create(
        self,
        title: str,
        owner: str,
        due: Optional[str] = None,
        *,
        section: str = "TODO",
        reason: Optional[str] = None,
        review: Optional[str] = None,
        slug: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Item:
        return self._transact(
            "create",
            lambda doc: engine.create(
                doc, title, owner, due, section=section, reason=reason, review=review, slug=slug, today=today
            ),
        )

    def complete(self, item_id: str, links: Optional[str] = None, *, today: Optional[date] = None) -> Item:
        return self._transact("complete", lambda doc: engine.complete(doc, item_id, links, today=today))

    def block(self, item_id: str, reason: str, review: str) -> Item:
        return self._transact("block", lambda doc: engine.block(doc, item_id, reason, review))

    def unblock(self, item_id: str) -> Item:
        return self._transact("unblock", lambda doc: engine.unblock(doc, item_id))

    def move(self, item_id: str, to: str) -> Item:
        return self._transact("move", lambda doc: engine.move(doc, item_id, to))

    def edit(self, item_id: str, **changes) -> Item:
        return self._transact("edit", lambda doc: engine.edit(doc, item_id, **changes))

    def list(self) -> Dict[str, List[str]]:
        return engine.list_sections(load_document(self.path))

    def get(self, item_id: str) -> Tuple[str, Item]:
        return engine.get_item(load_document(self.path), item_id)

    def archive(self, keep: Optional[int] = None, *, today: Optional[date] = None) -> ArchiveResult:
        """Move DONE items beyond the retention count into this week's archive file."""
        keep = self.config.done_keep if keep is None else keep
        day = today or today_utc()
        with self._lock():
            doc = load_document(self.path)
            new_doc, retired = engine.archive(doc, keep)
            if not retired:
                return ArchiveResult(count=0)
            # Retired lines must reach the archive before they leave the board.
            out = append_archive(self.config.archive_dir, day, retired)
            save_document(self.path, new_doc)
        logger.info("archive: moved %d item(s) to %s", len(retired), out)
        return ArchiveResult(count=len(retired), path=out)

    def clean_lock(self) -> bool:
        return clean_stale_lock(self.config.lock_file, self.config.lock_timeout_seconds)
