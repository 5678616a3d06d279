from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

SAVE_BLOCK_OP = "save-block"


class BlockRef(BaseModel):
    """A changed block as it appears in a host change payload."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    uuid: str
    page: int | str | dict[str, int | str] | None = None

    @property
    def page_id(self) -> str | None:
        """The page reference, whether the host sent it bare or as ``{"id": ...}``."""
        ref = self.page
        if isinstance(ref, dict):
            ref = ref.get("uuid", ref.get("id"))
        return None if ref is None else str(ref)


class TxMeta(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    outliner_op: str | None = Field(default=None, alias="outlinerOp")
    undo: bool = False
    redo: bool = False


class ChangeEvent(BaseModel):
    """Host database change notification.

    Mirrors the payload the host passes to its change listeners: the blocks
    touched by the transaction and the transaction metadata.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    blocks: list[BlockRef] = []
    tx_meta: TxMeta | None = Field(default=None, alias="txMeta")

    @property
    def operation_kind(self) -> str | None:
        return self.tx_meta.outliner_op if self.tx_meta else None

    @property
    def is_replay(self) -> bool:
        """True for undo and redo transactions."""
        return bool(self.tx_meta and (self.tx_meta.undo or self.tx_meta.redo))

    @property
    def is_block_save(self) -> bool:
        return self.operation_kind == SAVE_BLOCK_OP and not self.is_replay
