"""Locate the ``## TODO`` / ``## BLOCKED`` / ``## DONE`` sections in a line sequence."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, MutableSequence, Optional, Sequence, Tuple

from .errors import SectionNotFound
from .items import is_item_line

TODO = "TODO"
BLOCKED = "BLOCKED"
DONE = "DONE"
SECTIONS = (TODO, BLOCKED, DONE)


@dataclass(frozen=True)
class SectionRange:
    header: int
    start: int
    end: int


def header_text(name: str) -> str:
    return f"## {name}"


def normalize_section(name: str) -> str:
    up = name.strip().upper()
    if up not in SECTIONS:
        raise ValueError(f"section must be one of {'|'.join(SECTIONS)}, got {name!r}")
    return up


def is_header_line(line: str) -> bool:
    """Any level-2 header, surrounding whitespace ignored."""
    return line.strip().startswith("## ")


def find_section(lines: Sequence[str], name: str) -> Optional[SectionRange]:
    header = header_text(name)
    for idx, line in enumerate(lines):
        if line.strip() == header:
            end = len(lines)
            for i in range(idx + 1, len(lines)):
                if is_header_line(lines[i]) and lines[i].strip() != header:
                    end = i
                    break
            return SectionRange(header=idx, start=idx + 1, end=end)
    return None


def locate(lines: Sequence[str], name: str) -> SectionRange:
    """Like ``find_section`` but a missing header is an error, never created."""
    rng = find_section(lines, name)
    if rng is None:
        raise SectionNotFound(name)
    return rng


def items_in(lines: Sequence[str], name: str) -> List[Tuple[int, str]]:
    rng = locate(lines, name)
    return [(i, lines[i]) for i in range(rng.start, rng.end) if is_item_line(lines[i])]


def section_of(lines: Sequence[str], index: int) -> Optional[str]:
    for name in SECTIONS:
        rng = find_section(lines, name)
        if rng is not None and rng.start <= index < rng.end:
            return name
    return None


def insert_at_top(lines: MutableSequence[str], name: str, new_line: str) -> int:
    rng = locate(lines, name)
    lines.insert(rng.header + 1, new_line)
    return rng.header + 1
