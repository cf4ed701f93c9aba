"""
Board mutation engine.

Every operation takes a ``Document`` and returns a new one; nothing here
touches the filesystem. New or moved items are inserted at the top of their
section, so the bottom of DONE holds the oldest completions.

Section lifecycle:

  TODO <-> BLOCKED      block / unblock (move also, see below)
  TODO|BLOCKED -> DONE  complete only
  DONE                  terminal until archived
"""
from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Set, Tuple

from .errors import DuplicateId, InvalidTransition, NotFound, ValidationError
from .items import (
    Blocked,
    Item,
    base_id,
    is_item_line,
    item_id_of,
    next_unique_id,
    parse_item,
    render_item,
    today_utc,
    validate_date,
    validate_links,
    validate_owner,
    validate_reason,
    validate_title,
)
from .sections import BLOCKED, DONE, SECTIONS, TODO, insert_at_top, items_in, locate, normalize_section
from .store import Document


def _section(name: str) -> str:
    try:
        return normalize_section(name)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def existing_ids(lines) -> Set[str]:
    """Ids of every item line in the document, parseable or not."""
    ids: Set[str] = set()
    for line in lines:
        if is_item_line(line):
            item_id = item_id_of(line)
            if item_id:
                ids.add(item_id)
    return ids


def find_line(lines, item_id: str) -> Tuple[int, str, str]:
    """Return ``(index, raw_line, section)`` for ``item_id`` across all sections."""
    for name in SECTIONS:
        for idx, line in items_in(lines, name):
            if item_id_of(line) == item_id:
                return idx, line, name
    raise NotFound(item_id)


def get_item(doc: Document, item_id: str) -> Tuple[str, Item]:
    _, line, section = find_line(doc.lines, item_id)
    return section, parse_item(line)


def _relocate(lines: List[str], index: int, target: str, new_line: str) -> None:
    locate(lines, target)
    del lines[index]
    insert_at_top(lines, target, new_line)


def create(
    doc: Document,
    title: str,
    owner: str,
    due: Optional[str] = None,
    *,
    section: str = TODO,
    reason: Optional[str] = None,
    review: Optional[str] = None,
    slug: Optional[str] = None,
    today: Optional[date] = None,
) -> Tuple[Document, Item]:
    """Create a new unchecked item at the top of TODO (or BLOCKED)."""
    title = validate_title(title)
    owner = validate_owner(owner)
    due = validate_date(due, "due") if due else None
    section = _section(section)
    if section == DONE:
        raise InvalidTransition("items are created in TODO or BLOCKED; use complete to mark them done")

    blocked = None
    if section == BLOCKED:
        blocked = Blocked(validate_reason(reason or ""), validate_date(review or "", "review"))
    elif reason or review:
        raise ValidationError("reason and review only apply when creating into BLOCKED")

    day = today or today_utc()
    lines = list(doc.lines)
    locate(lines, section)
    taken = existing_ids(lines)
    item_id = next_unique_id(base_id(title, day, slug), taken)
    if item_id in taken:
        raise DuplicateId(item_id)

    item = Item(id=item_id, title=title, owner=owner, due=due, blocked=blocked)
    insert_at_top(lines, section, render_item(item))
    return Document.from_lines(lines), item


def complete(
    doc: Document,
    item_id: str,
    links: Optional[str] = None,
    *,
    today: Optional[date] = None,
) -> Tuple[Document, Item]:
    links = validate_links(links) if links else None
    lines = list(doc.lines)
    idx, line, section = find_line(lines, item_id)
    if section == DONE:
        raise InvalidTransition(f"{item_id} is already done")

    item = parse_item(line)
    updated = item.with_updates(
        checked=True,
        blocked=None,
        completed=(today or today_utc()).isoformat(),
        links=links if links is not None else item.links,
    )
    _relocate(lines, idx, DONE, render_item(updated))
    return Document.from_lines(lines), updated


def block(doc: Document, item_id: str, reason: str, review: str) -> Tuple[Document, Item]:
    if not reason or not review:
        raise ValidationError("reason and review are required for blocking")
    reason = validate_reason(reason)
    review = validate_date(review, "review")

    lines = list(doc.lines)
    idx, line, section = find_line(lines, item_id)
    if section == DONE:
        raise InvalidTransition(f"{item_id} is done; done items cannot be blocked")

    updated = parse_item(line).with_updates(
        checked=False, blocked=Blocked(reason, review), completed=None
    )
    _relocate(lines, idx, BLOCKED, render_item(updated))
    return Document.from_lines(lines), updated


def unblock(doc: Document, item_id: str) -> Tuple[Document, Item]:
    """Move a BLOCKED item back to TODO. Already in TODO: returns ``doc`` unchanged."""
    lines = list(doc.lines)
    idx, line, section = find_line(lines, item_id)
    if section == DONE:
        raise InvalidTransition(f"{item_id} is done; done items cannot be reopened")
    item = parse_item(line)
    if section == TODO:
        return doc, item

    updated = item.with_updates(checked=False, blocked=None)
    _relocate(lines, idx, TODO, render_item(updated))
    return Document.from_lines(lines), updated


def move(doc: Document, item_id: str, to: str) -> Tuple[Document, Item]:
    target = _section(to)
    if target == DONE:
        raise InvalidTransition('Use "complete" to mark items done')

    lines = list(doc.lines)
    idx, line, section = find_line(lines, item_id)
    if section == DONE:
        raise InvalidTransition(f"{item_id} is done; done items cannot be reopened")

    item = parse_item(line).with_updates(checked=False)
    if target == TODO:
        item = item.with_updates(blocked=None)
    elif item.blocked is None or item.blocked.review is None:
        raise ValidationError(f"{item_id} has no [blocked: <reason>; review: <date>]; use block instead")

    _relocate(lines, idx, target, render_item(item))
    return Document.from_lines(lines), item


def edit(
    doc: Document,
    item_id: str,
    *,
    title: Optional[str] = None,
    owner: Optional[str] = None,
    due: Optional[str] = None,
    links: Optional[str] = None,
    clear_due: bool = False,
    reason: Optional[str] = None,
    review: Optional[str] = None,
) -> Tuple[Document, Item]:
    """Update fields in place; the item keeps its section and position.

    ``reason`` and ``review`` rewrite the blocked annotation and only apply
    to items in BLOCKED.
    """
    updates: Dict[str, object] = {}
    if title is not None:
        updates["title"] = validate_title(title)
    if owner is not None:
        updates["owner"] = validate_owner(owner)
    if due is not None and clear_due:
        raise ValidationError("pass either a due date or clear_due, not both")
    if due is not None:
        updates["due"] = validate_date(due, "due")
    elif clear_due:
        updates["due"] = None
    if links is not None:
        updates["links"] = validate_links(links)
    if reason is not None:
        reason = validate_reason(reason)
    if review is not None:
        review = validate_date(review, "review")
    if not updates and reason is None and review is None:
        raise ValidationError("nothing to edit: give a title, owner, due, links, reason or review")

    lines = list(doc.lines)
    idx, line, section = find_line(lines, item_id)
    item = parse_item(line)
    if reason is not None or review is not None:
        if section != BLOCKED:
            raise InvalidTransition(f"{item_id} is in {section}; only BLOCKED items have a reason and review")
        current = item.blocked or Blocked("")
        new_reason = reason if reason is not None else current.reason
        if not new_reason:
            raise ValidationError(f"{item_id} has no blocked reason; give one with the review date")
        updates["blocked"] = Blocked(new_reason, review if review is not None else current.review)
    updated = item.with_updates(**updates)
    lines[idx] = render_item(updated)
    return Document.from_lines(lines), updated


def list_sections(doc: Document) -> Dict[str, List[str]]:
    return {name: [line for _, line in items_in(doc.lines, name)] for name in SECTIONS}


def archive(doc: Document, keep: int) -> Tuple[Document, List[str]]:
    """Drop the oldest DONE items beyond ``keep``.

    Returns the new document and the removed lines, verbatim and in
    document order, for the caller to append to the week's archive file.
    """
    if keep < 0:
        raise ValidationError(f"retention count must be >= 0, got {keep}")
    done = items_in(doc.lines, DONE)
    if len(done) <= keep:
        return doc, []

    retired = done[keep:]
    drop = {idx for idx, _ in retired}
    lines = [line for i, line in enumerate(doc.lines) if i not in drop]
    return Document.from_lines(lines), [line for _, line in retired]
