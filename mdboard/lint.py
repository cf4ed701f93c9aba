"""
Board linter. Read-only; collects every problem instead of stopping at the
first one. Errors fail the lint, warnings (past due/review dates, stray
items) do not.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import MalformedItemLine
from .items import YMD_RE, Item, is_item_line, is_valid_ymd, item_dates, item_id_of, parse_item, today_utc
from .sections import is_header_line
from .store import read_text, split_lines

SECTION_NAMES = ("TODO", "BLOCKED", "DONE")
HEADERS = {f"## {name}": name for name in SECTION_NAMES}


@dataclass
class LintReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _check_section_rules(n: int, section: str, item: Item, errors: List[str]) -> None:
    if section == "DONE" and not item.checked:
        errors.append(f"Line {n}: DONE item must be checked [x]")
    if section != "DONE" and item.checked:
        errors.append(f"Line {n}: {section} item must be unchecked [ ]")

    if section == "TODO":
        if item.blocked is not None:
            errors.append(f"Line {n}: TODO item must not include [blocked] info")
        if item.completed is not None:
            errors.append(f"Line {n}: TODO item must not include [completed] info")
    elif section == "BLOCKED":
        b = item.blocked
        if b is None or not b.reason.strip() or b.review is None:
            errors.append(f"Line {n}: BLOCKED item requires [blocked: <reason>; review: YYYY-MM-DD]")
        if item.completed is not None:
            errors.append(f"Line {n}: BLOCKED item must not include [completed] info")
    else:
        if item.completed is None:
            errors.append(f"Line {n}: DONE item requires [completed: YYYY-MM-DD]")
        if item.blocked is not None:
            errors.append(f"Line {n}: DONE item must not include [blocked] info")


def _check_dates(n: int, section: str, item: Item, today: str, report: LintReport) -> None:
    for kind, value in item_dates(item):
        if not YMD_RE.match(value):
            report.errors.append(f"Line {n}: Invalid {kind} date format: {value} (expected YYYY-MM-DD)")
        elif not is_valid_ymd(value):
            report.errors.append(f"Line {n}: Invalid {kind} date value: {value}")
        elif kind != "completed" and section != "DONE" and value < today:
            report.warnings.append(f"Line {n}: Past {kind} date: {value}")


def lint_lines(lines: Sequence[str], today: Optional[date] = None) -> LintReport:
    report = LintReport()
    today_s = (today or today_utc()).isoformat()
    header_lines: Dict[str, int] = {}
    ids: List[str] = []
    current: Optional[str] = None

    for idx, line in enumerate(lines):
        n = idx + 1
        name = HEADERS.get(line.strip())
        if name is not None:
            if name in header_lines:
                report.errors.append(f"Line {n}: Duplicate section ## {name} (first on line {header_lines[name]})")
            else:
                header_lines[name] = n
            current = name
            continue
        if is_header_line(line):
            current = None
            continue
        if not is_item_line(line):
            continue

        item_id = item_id_of(line)
        if item_id:
            ids.append(item_id)
        if current is None:
            report.warnings.append(f"Line {n}: item outside the TODO/BLOCKED/DONE sections")
            continue

        try:
            item = parse_item(line, check_dates=False)
        except MalformedItemLine as e:
            report.errors.append(f"Line {n}: Invalid {current} item format ({e.reason})")
            continue
        _check_section_rules(n, current, item, report.errors)
        _check_dates(n, current, item, today_s, report)

    report.errors[:0] = [f"Missing section: ## {name}" for name in SECTION_NAMES if name not in header_lines]

    dups = sorted(i for i, count in Counter(ids).items() if count > 1)
    if dups:
        report.errors.append(f"Duplicate IDs: {', '.join(dups)}")
    return report


def lint_file(p: Path, today: Optional[date] = None) -> LintReport:
    """Lint the board file at ``p``. A missing file raises ``FileNotFoundError``."""
    return lint_lines(split_lines(read_text(p)), today=today)
