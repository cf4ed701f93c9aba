"""
Text line store for the board document and its weekly archive files.

Lines are kept without terminators. A file ending in a newline does not
produce a trailing empty line, so load/save round-trips byte for byte once
the file uses ``\\n`` endings.
"""
from __future__ import annotations

import os
import re
import tempfile
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")

SKELETON = [
    "# Board",
    "",
    "## TODO",
    "",
    "## BLOCKED",
    "",
    "## DONE",
]


@dataclass(frozen=True)
class Document:
    """Immutable snapshot of the board's lines."""

    lines: Tuple[str, ...]

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "Document":
        return cls(tuple(lines))

    @classmethod
    def from_text(cls, text: str) -> "Document":
        return cls.from_lines(split_lines(text))

    def to_text(self) -> str:
        return join_lines(self.lines)


def split_lines(text: str) -> List[str]:
    lines = LINE_BREAK_RE.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def join_lines(lines: Sequence[str]) -> str:
    return "\n".join(lines) + "\n"


def read_text(p: Path) -> str:
    with open(p, "r", encoding="utf-8", newline="") as fh:
        return fh.read()


def atomic_write_text(p: Path, content: str) -> None:
    """Write via a temp file in the same directory, then ``os.replace``."""
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(p.parent), prefix=f".{p.name}-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
        os.replace(tmp, p)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def ensure_board(p: Path) -> None:
    if not p.exists():
        atomic_write_text(p, join_lines(SKELETON))


def load_document(p: Path) -> Document:
    """Read the board, creating the empty three-section skeleton if absent."""
    ensure_board(p)
    return Document.from_text(read_text(p))


def save_document(p: Path, doc: Document) -> None:
    atomic_write_text(p, doc.to_text())


# ---------------------------------------------------------------------------
# Archive files
# ---------------------------------------------------------------------------


def week_key(day: date) -> str:
    """ISO week key, e.g. ``2025-W33``."""
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def archive_path(archive_dir: Path, day: date) -> Path:
    return archive_dir / f"{week_key(day)}.md"


def append_archive(archive_dir: Path, day: date, lines: Sequence[str]) -> Path:
    """Append ``lines`` to the week's archive file; the file is never rewritten."""
    p = archive_path(archive_dir, day)
    p.parent.mkdir(parents=True, exist_ok=True)
    header = "" if p.exists() else f"# Archive {week_key(day)}\n\n"
    with open(p, "a", encoding="utf-8", newline="") as fh:
        fh.write(header + join_lines(lines))
    return p


def archive_files(archive_dir: Path) -> List[Path]:
    if not archive_dir.is_dir():
        return []
    return sorted(f for f in archive_dir.glob("*.md") if f.is_file())
