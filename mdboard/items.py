"""
Item codec: one board line <-> one ``Item``.

Canonical line grammar:

  - [ |x] <id> — <title> (owner: <owner>)[ [due: D]][ [blocked: R; review: D]][ [completed: D]][ (<links>)]

Annotations are accepted in any order on read and always rendered in the
order above, so ``parse_item(render_item(item)) == item``.
"""
from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dateutil.parser import isoparse

from .errors import MalformedItemLine, ValidationError

EM_DASH = " — "
ITEM_SENTINEL = "- ["

OWNER_RE = re.compile(r"^(?:ai|human):[a-z0-9._-]+$")
ID_RE = re.compile(r"^\d{8}-[a-z0-9]+(?:-[a-z0-9]+)*$")
YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

HEAD_RE = re.compile(r"^- \[( |x)\] (\S+)" + EM_DASH + r"(.+?) \(owner: ([^)]*)\)(.*)$")
ITEM_ID_RE = re.compile(r"^- \[[ x]\] (\S+)")
TAG_RE = re.compile(r"^(\w+):\s*(.*)$", re.DOTALL)
BLOCKED_RE = re.compile(r"^(.*?);\s*review:\s*(.*)$", re.DOTALL)

ANNOTATION_TAGS = ("due", "blocked", "completed")


@dataclass(frozen=True)
class Blocked:
    reason: str
    review: Optional[str] = None


@dataclass(frozen=True)
class Item:
    id: str
    title: str
    owner: str
    checked: bool = False
    due: Optional[str] = None
    blocked: Optional[Blocked] = None
    completed: Optional[str] = None
    links: Optional[str] = None

    def with_updates(self, **updates: Any) -> "Item":
        return dataclasses.replace(self, **updates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "owner": self.owner,
            "checked": self.checked,
            "due": self.due,
            "blocked": (
                {"reason": self.blocked.reason, "review": self.blocked.review} if self.blocked else None
            ),
            "completed": self.completed,
            "links": self.links,
        }


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def today_utc() -> date:
    return now_utc().date()


def is_valid_ymd(value: str) -> bool:
    """True if ``value`` is ``YYYY-MM-DD`` and names a real calendar date."""
    if not YMD_RE.match(value):
        return False
    try:
        isoparse(value)
    except ValueError:
        return False
    return True


def validate_date(value: str, field: str) -> str:
    value = value.strip()
    if not is_valid_ymd(value):
        raise ValidationError(f"{field} must be UTC date in YYYY-MM-DD, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------


def validate_owner(owner: str) -> str:
    owner = owner.strip()
    if not OWNER_RE.match(owner):
        raise ValidationError(f"owner must be ai:<name> or human:<name>, got {owner!r}")
    return owner


def validate_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise ValidationError("title must not be empty")
    if "\n" in title or "\r" in title:
        raise ValidationError("title must be a single line")
    if " (owner: " in title:
        raise ValidationError("title must not contain '(owner: '")
    return title


def validate_reason(reason: str) -> str:
    reason = reason.strip()
    if not reason:
        raise ValidationError("a blocked reason is required")
    if "\n" in reason or "\r" in reason or "[" in reason or "]" in reason:
        raise ValidationError("blocked reason must be a single line without brackets")
    if BLOCKED_RE.match(reason):
        raise ValidationError("blocked reason must not contain '; review:'")
    return reason


def validate_links(links: str) -> str:
    links = links.strip()
    if not links:
        raise ValidationError("links must not be empty")
    if "\n" in links or "\r" in links:
        raise ValidationError("links must be a single line")
    depth = 0
    for ch in links:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                break
    if depth != 0:
        raise ValidationError("links must have balanced parentheses")
    return links


# ---------------------------------------------------------------------------
# Ids
# ---------------------------------------------------------------------------


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def base_id(title: str, today: date, slug: Optional[str] = None) -> str:
    s = slugify(slug if slug else title)
    if not s:
        raise ValidationError("title must contain at least one letter or digit to build an id")
    return f"{today.strftime('%Y%m%d')}-{s}"


def next_unique_id(base: str, existing: Iterable[str]) -> str:
    """Return ``base``, or the first free ``base-2``, ``base-3``, ..."""
    taken = set(existing)
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def is_item_line(line: str) -> bool:
    return line.startswith(ITEM_SENTINEL)


def item_id_of(line: str) -> Optional[str]:
    """Id token of an item line, without requiring the rest of the line to parse."""
    m = ITEM_ID_RE.match(line)
    return m.group(1) if m else None


# ---------------------------------------------------------------------------
# Parse / render
# ---------------------------------------------------------------------------


def _split_annotations(rest: str, line: str) -> List[Tuple[str, str]]:
    tokens: List[Tuple[str, str]] = []
    i = 0
    n = len(rest)
    while i < n:
        if rest[i] == " ":
            i += 1
            continue
        opener = rest[i]
        if opener not in "[(":
            raise MalformedItemLine(line, f"unexpected text after owner: {rest[i:]!r}")
        closer = "]" if opener == "[" else ")"
        depth = 0
        for j in range(i, n):
            if rest[j] == opener:
                depth += 1
            elif rest[j] == closer:
                depth -= 1
                if depth == 0:
                    break
        else:
            raise MalformedItemLine(line, f"unterminated annotation {rest[i:]!r}")
        tokens.append((opener, rest[i + 1:j]))
        i = j + 1
    return tokens


def parse_item(line: str, *, check_dates: bool = True) -> Item:
    """Parse one item line.

    Args:
        line: Raw line text (no trailing newline)
        check_dates: Reject impossible or malformed dates. The linter turns
            this off so it can report each bad date on its own.

    Raises:
        MalformedItemLine: the mandatory prefix or an annotation is invalid
    """
    m = HEAD_RE.match(line)
    if not m:
        raise MalformedItemLine(line, "expected '- [ ] <id> — <title> (owner: <owner>)'")
    mark, item_id, title, owner, rest = m.groups()
    if not ID_RE.match(item_id):
        raise MalformedItemLine(line, f"invalid id {item_id!r}")
    if not OWNER_RE.match(owner):
        raise MalformedItemLine(line, f"invalid owner {owner!r}")

    fields: Dict[str, Any] = {}
    for opener, body in _split_annotations(rest, line):
        if opener == "(":
            if "links" in fields:
                raise MalformedItemLine(line, "more than one links parenthetical")
            fields["links"] = body
            continue
        tm = TAG_RE.match(body)
        if not tm or tm.group(1) not in ANNOTATION_TAGS:
            raise MalformedItemLine(line, f"unknown annotation [{body}]")
        tag, value = tm.groups()
        if tag in fields:
            raise MalformedItemLine(line, f"duplicate [{tag}: ...] annotation")
        if tag == "blocked":
            bm = BLOCKED_RE.match(value)
            fields[tag] = Blocked(bm.group(1), bm.group(2)) if bm else Blocked(value)
        else:
            fields[tag] = value

    if check_dates:
        for tag, value in _annotation_dates(fields):
            if not is_valid_ymd(value):
                raise MalformedItemLine(line, f"invalid {tag} date {value!r}")

    return Item(id=item_id, title=title, owner=owner, checked=(mark == "x"), **fields)


def _annotation_dates(fields: Dict[str, Any]) -> List[Tuple[str, str]]:
    out: List[Tuple[str, str]] = []
    if fields.get("due") is not None:
        out.append(("due", fields["due"]))
    blocked = fields.get("blocked")
    if blocked is not None and blocked.review is not None:
        out.append(("review", blocked.review))
    if fields.get("completed") is not None:
        out.append(("completed", fields["completed"]))
    return out


def item_dates(item: Item) -> List[Tuple[str, str]]:
    """``(kind, value)`` for every date annotation, kind in due/review/completed."""
    return _annotation_dates(
        {"due": item.due, "blocked": item.blocked, "completed": item.completed}
    )


def render_item(item: Item) -> str:
    parts = [f"- [{'x' if item.checked else ' '}] {item.id}{EM_DASH}{item.title} (owner: {item.owner})"]
    if item.due is not None:
        parts.append(f"[due: {item.due}]")
    if item.blocked is not None:
        if item.blocked.review is None:
            parts.append(f"[blocked: {item.blocked.reason}]")
        else:
            parts.append(f"[blocked: {item.blocked.reason}; review: {item.blocked.review}]")
    if item.completed is not None:
        parts.append(f"[completed: {item.completed}]")
    if item.links is not None:
        parts.append(f"({item.links})")
    return " ".join(parts)
