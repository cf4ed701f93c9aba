"""
mdboard - a markdown task board with TODO/BLOCKED/DONE sections.

Board mutations run as single locked transactions over the document;
completed items roll over into weekly archive files.
"""

__version__ = "0.1.0"

from mdboard.board import Board
from mdboard.config import BoardConfig, load_config
from mdboard.items import Item, parse_item, render_item

__all__ = ["Board", "BoardConfig", "Item", "load_config", "parse_item", "render_item", "__version__"]
