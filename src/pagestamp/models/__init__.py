from __future__ import annotations

from pagestamp.models.edits import Edit, InsertBefore, Replace, Shape, Skip, Stamp
from pagestamp.models.events import SAVE_BLOCK_OP, BlockRef, ChangeEvent, TxMeta
from pagestamp.models.page import Block, Page

__all__ = [
    # page
    "Page",
    "Block",
    # events
    "SAVE_BLOCK_OP",
    "BlockRef",
    "TxMeta",
    "ChangeEvent",
    # edits
    "Shape",
    "Stamp",
    "Skip",
    "Replace",
    "InsertBefore",
    "Edit",
]
