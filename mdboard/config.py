"""
Board configuration.

An optional ``.boardrc.yaml`` in the board root sets paths, the DONE
retention count and the lock timeout. It is validated against the bundled
JSON schema. ``BOARD_PATH``, ``BOARD_ARCHIVE_DIR`` and ``BOARD_LOCK_FILE``
fill in paths the file leaves unset.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from jsonschema import Draft202012Validator

from .errors import ConfigError

CONFIG_FILENAME = ".boardrc.yaml"

DEFAULT_BOARD_PATH = "docs/BOARD.md"
DEFAULT_ARCHIVE_DIR = "docs/board-archive"
DEFAULT_LOCK_FILE = "docs/.board.lock"
DEFAULT_DONE_KEEP = 50
DEFAULT_LOCK_TIMEOUT_SECONDS = 60.0

ENV_OVERRIDES = {
    "board_path": "BOARD_PATH",
    "archive_dir": "BOARD_ARCHIVE_DIR",
    "lock_file": "BOARD_LOCK_FILE",
}


@dataclass
class BoardConfig:
    root: Path
    board_path: Path
    archive_dir: Path
    lock_file: Path
    done_keep: int = DEFAULT_DONE_KEEP
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS
    owner_token: Optional[str] = None

    @classmethod
    def for_root(cls, root: Path) -> "BoardConfig":
        root = Path(root)
        return cls(
            root=root,
            board_path=root / DEFAULT_BOARD_PATH,
            archive_dir=root / DEFAULT_ARCHIVE_DIR,
            lock_file=root / DEFAULT_LOCK_FILE,
        )


def schemas_dir() -> Path:
    return Path(__file__).resolve().parent / "schemas"


def load_schema(name: str) -> Draft202012Validator:
    schema = json.loads((schemas_dir() / name).read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def read_config_file(p: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {p}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{p}: config must be a YAML mapping")

    problems = sorted(load_schema("boardrc.schema.json").iter_errors(data), key=lambda e: list(e.path))
    if problems:
        details = "; ".join(
            f"{'.'.join(str(x) for x in err.path) or '<root>'}: {err.message}" for err in problems
        )
        raise ConfigError(f"Invalid board config {p}: {details}")
    return data


def resolve_path(root: Path, value: str) -> Path:
    p = Path(value).expanduser()
    return p if p.is_absolute() else root / p


def load_config(
    root: Path,
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BoardConfig:
    """Resolve the configuration for the board rooted at ``root``.

    Args:
        root: Board root; relative paths resolve against it
        config_path: Explicit config file; must exist when given
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Fully resolved BoardConfig
    """
    root = Path(root)
    env = os.environ if environ is None else environ

    if config_path is not None:
        config_path = resolve_path(root, str(config_path))
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        data = read_config_file(config_path)
    else:
        default = root / CONFIG_FILENAME
        data = read_config_file(default) if default.exists() else {}

    cfg = BoardConfig.for_root(root)
    for key, env_name in ENV_OVERRIDES.items():
        value = data.get(key) or env.get(env_name)
        if value:
            setattr(cfg, key, resolve_path(root, value))
    if "done_keep" in data:
        cfg.done_keep = int(data["done_keep"])
    if "lock_timeout_seconds" in data:
        cfg.lock_timeout_seconds = float(data["lock_timeout_seconds"])
    if data.get("owner_token"):
        cfg.owner_token = str(data["owner_token"])
    return cfg
