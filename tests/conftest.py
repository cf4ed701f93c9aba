"""
Pytest configuration and shared fixtures for mdboard tests.
"""

from datetime import date

import pytest

from mdboard.board import Board
from mdboard.config import BoardConfig
from mdboard.store import Document

TODAY = date(2025, 8, 11)

SAMPLE_BOARD = """# Board

Notes for humans stay where they are.

## TODO
- [ ] 20250801-write-docs — Write docs (owner: human:alice) [due: 2025-09-01]
- [ ] 20250802-fix-ci — Fix CI (owner: ai:builder)

## BLOCKED
- [ ] 20250803-deploy — Deploy to prod (owner: human:bob) [blocked: waiting on infra; review: 2025-08-20]

## DONE
- [x] 20250805-release — Cut release (owner: human:alice) [completed: 2025-08-05] (pr:#12)
- [x] 20250804-triage — Triage issues (owner: ai:builder) [completed: 2025-08-04]
- [x] 20250803-setup — Set up repo (owner: human:bob) [completed: 2025-08-03]
"""


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def config(tmp_path):
    """Config rooted in a temporary directory."""
    return BoardConfig.for_root(tmp_path)


@pytest.fixture
def board(config):
    """Board over a fresh (not yet created) document."""
    return Board(config)


@pytest.fixture
def sample_board(config):
    """Board whose document is SAMPLE_BOARD."""
    config.board_path.parent.mkdir(parents=True, exist_ok=True)
    config.board_path.write_text(SAMPLE_BOARD, encoding="utf-8")
    return Board(config)


@pytest.fixture
def sample_doc():
    return Document.from_text(SAMPLE_BOARD)


@pytest.fixture
def sample_text():
    return SAMPLE_BOARD
