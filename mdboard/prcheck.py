"""Pull-request description check: it must reference a known board item."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from .items import is_item_line, item_id_of
from .store import archive_files, read_text, split_lines

logger = logging.getLogger(__name__)

BOARD_REF_RE = re.compile(r"board:(\d{8}-[a-z0-9]+(?:-[a-z0-9]+)*)", re.IGNORECASE)
DOC_REF_RE = re.compile(r"(spec|prd):([A-Z0-9-]+)", re.IGNORECASE)
MIN_DESCRIPTION_LENGTH = 10

EXAMPLE = 'fix: resolve login issue\n\nboard:20250811-login-fix\nspec:SPEC-LOGIN-AUTH'


@dataclass
class PRCheckResult:
    board_id: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def extract_board_ref(text: str) -> Optional[str]:
    m = BOARD_REF_RE.search(text or "")
    return m.group(1).lower() if m else None


def ids_in_file(p: Path) -> Set[str]:
    ids: Set[str] = set()
    for line in split_lines(read_text(p)):
        if is_item_line(line):
            item_id = item_id_of(line)
            if item_id:
                ids.add(item_id)
    return ids


def id_exists(item_id: str, board_path: Path, archive_dir: Path) -> bool:
    """Look ``item_id`` up in the live board, then in every archive file."""
    if board_path.exists() and item_id in ids_in_file(board_path):
        return True
    for p in archive_files(archive_dir):
        try:
            if item_id in ids_in_file(p):
                return True
        except UnicodeDecodeError as e:
            logger.warning("Skipping unreadable archive file %s: %s", p, e)
    return False


def check_pr_description(text: str, board_path: Path, archive_dir: Path) -> PRCheckResult:
    text = text or ""
    result = PRCheckResult(board_id=extract_board_ref(text))
    if result.board_id is None:
        result.errors.append("Missing board:<id> reference (e.g., board:20250811-fix-bug)")
    elif not id_exists(result.board_id, board_path, archive_dir):
        result.errors.append(f"Unknown board id: {result.board_id} (not found in board or archive)")

    if not DOC_REF_RE.search(text):
        result.warnings.append("Consider adding a spec: or prd: reference for better traceability")
    if len(text.strip()) < MIN_DESCRIPTION_LENGTH:
        result.warnings.append("PR description is very short")
    return result
