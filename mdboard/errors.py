"""Error taxonomy shared by every board component.

None of these are retried internally. The CLI decides how to report them
and only ``Busy`` gets a distinct exit code.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional


class BoardError(Exception):
    """Base class for all board errors."""


class ValidationError(BoardError):
    """Bad owner, date, title or missing required field."""


class NotFound(BoardError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"ID not found: {item_id}")
        self.item_id = item_id


class DuplicateId(BoardError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"ID already exists: {item_id}")
        self.item_id = item_id


class SectionNotFound(BoardError):
    def __init__(self, section: str) -> None:
        super().__init__(f"Missing section: ## {section}")
        self.section = section


class MalformedItemLine(BoardError):
    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason


class InvalidTransition(BoardError):
    """Requested section change is not allowed by the item lifecycle."""


class ConfigError(BoardError):
    """The board configuration file is unreadable or fails its schema."""


class Busy(BoardError):
    def __init__(self, held_since: Optional[datetime], age_seconds: int) -> None:
        if held_since is None:
            msg = "Board is busy, please try again in a moment"
        else:
            since = held_since.isoformat().replace("+00:00", "Z")
            msg = f"Board is busy, locked since {since} (age: {age_seconds}s)"
        super().__init__(msg)
        self.held_since = held_since
        self.age_seconds = age_seconds
