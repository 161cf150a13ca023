from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple, Literal, Callable
import logging

from docedit.hashing import hash_document, generate_block_id
from docedit.ir import Block, Document, Conflict, DiffBlock
from docedit.editops import (
    DocEditBatch, EditOp, Replace, ReplaceBlock, InsertAfter, DeleteBlock, MoveBlock, Annotate,
)

logger = logging.getLogger(__name__)

ErrorCode = Literal["BASE_VERSION_MISMATCH", "EXPECT_HASH_MISMATCH", "INVALID_RANGE", "DUPLICATE_BLOCK_ID"]

BASE_VERSION_MISMATCH = "BASE_VERSION_MISMATCH"
EXPECT_HASH_MISMATCH = "EXPECT_HASH_MISMATCH"
INVALID_RANGE = "INVALID_RANGE"
DUPLICATE_BLOCK_ID = "DUPLICATE_BLOCK_ID"


@dataclass(frozen=True)
class SimulateResult:
    ok: bool
    new_version: Optional[str] = None
    changed_blocks: Tuple[str, ...] = ()
    diff: Tuple[DiffBlock, ...] = ()
    code: Optional[ErrorCode] = None
    conflicts: Tuple[Conflict, ...] = ()
    failed_op_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {
                "ok": True,
                "newVersion": self.new_version,
                "changedBlocks": list(self.changed_blocks),
                "diff": [d.to_dict() for d in self.diff],
            }
        return _failure_dict(self)


@dataclass(frozen=True)
class ApplyResult:
    ok: bool
    new_version: Optional[str] = None
    changed_blocks: Tuple[str, ...] = ()
    new_blocks: Optional[Tuple[Block, ...]] = None
    code: Optional[str] = None
    conflicts: Tuple[Conflict, ...] = ()
    failed_op_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"ok": True, "newVersion": self.new_version, "changedBlocks": list(self.changed_blocks)}
        return _failure_dict(self)


def _failure_dict(result) -> Dict[str, Any]:
    d: Dict[str, Any] = {"ok": False, "code": result.code}
    if result.conflicts:
        d["conflicts"] = [c.to_dict() for c in result.conflicts]
    if result.failed_op_index is not None:
        d["failedOpIndex"] = result.failed_op_index
    return d


class _OpFailed(Exception):
    def __init__(self, code: str, conflict: Conflict):
        super().__init__(code)
        self.code = code
        self.conflict = conflict


@dataclass
class _Outcome:
    ok: bool
    blocks: Tuple[Block, ...] = ()
    diff: List[DiffBlock] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    new_version: Optional[str] = None
    code: Optional[str] = None
    conflicts: Tuple[Conflict, ...] = ()
    failed_op_index: Optional[int] = None


# --- helpers ---------------------------------------------------------------

def _index_of(blocks: Tuple[Block, ...], block_id: str) -> int:
    for i, b in enumerate(blocks):
        if b.id == block_id:
            return i
    return -1


def _require(blocks: Tuple[Block, ...], block_id: str) -> int:
    idx = _index_of(blocks, block_id)
    if idx < 0:
        raise _OpFailed(EXPECT_HASH_MISMATCH, Conflict(block_id, "", "", missing=True))
    return idx


def _check_expect_hash(block: Block, expect_hash: Optional[str]) -> None:
    if expect_hash and block.hash != expect_hash:
        raise _OpFailed(EXPECT_HASH_MISMATCH, Conflict(block.id, block.text, block.hash))


def _utf16_to_index(text: str, offset: int) -> Optional[int]:
    """Map a UTF-16 code unit offset to a str index; None if out of range or mid-surrogate."""
    if offset < 0:
        return None
    units = 0
    for i, ch in enumerate(text):
        if units == offset:
            return i
        units += 2 if ord(ch) > 0xFFFF else 1
        if units > offset:
            return None
    return len(text) if units == offset else None


# --- per-op handlers ---------------------------------------------------------
# Each handler takes the current block tuple and returns (new blocks, diff, changed id).

_Step = Tuple[Tuple[Block, ...], DiffBlock, str]


def _do_replace(op: Replace, blocks: Tuple[Block, ...], seed: str) -> _Step:
    idx = _require(blocks, op.block_id)
    block = blocks[idx]
    _check_expect_hash(block, op.expect_hash)

    start = _utf16_to_index(block.text, op.range.start)
    end = _utf16_to_index(block.text, op.range.end)
    if start is None or end is None or start > end:
        raise _OpFailed(INVALID_RANGE, Conflict(block.id, block.text, block.hash))

    old_text = block.text
    new_text = old_text[:start] + op.text + old_text[end:]
    new_blocks = blocks[:idx] + (block.with_text(new_text),) + blocks[idx + 1:]
    return new_blocks, DiffBlock(block.id, "modified", old_text=old_text, new_text=new_text), block.id


def _do_replace_block(op: ReplaceBlock, blocks: Tuple[Block, ...], seed: str) -> _Step:
    idx = _require(blocks, op.block_id)
    block = blocks[idx]
    _check_expect_hash(block, op.expect_hash)
    new_blocks = blocks[:idx] + (block.with_text(op.text),) + blocks[idx + 1:]
    return new_blocks, DiffBlock(block.id, "modified", old_text=block.text, new_text=op.text), block.id


def _do_insert_after(op: InsertAfter, blocks: Tuple[Block, ...], seed: str) -> _Step:
    idx = _require(blocks, op.block_id)
    existing = {b.id for b in blocks}
    if op.new_block_id:
        if op.new_block_id in existing:
            found = blocks[_index_of(blocks, op.new_block_id)]
            raise _OpFailed(DUPLICATE_BLOCK_ID, Conflict(found.id, found.text, found.hash))
        new_id = op.new_block_id
    else:
        new_id = generate_block_id(f"{seed}|{op.block_id}|{op.text}", existing)
    new_block = Block.create(new_id, op.text)
    new_blocks = blocks[:idx + 1] + (new_block,) + blocks[idx + 1:]
    return new_blocks, DiffBlock(new_id, "inserted", new_text=op.text), new_id


def _do_delete(op: DeleteBlock, blocks: Tuple[Block, ...], seed: str) -> _Step:
    idx = _require(blocks, op.block_id)
    block = blocks[idx]
    return blocks[:idx] + blocks[idx + 1:], DiffBlock(block.id, "deleted", old_text=block.text), block.id


def _do_move(op: MoveBlock, blocks: Tuple[Block, ...], seed: str) -> _Step:
    idx = _require(blocks, op.block_id)
    _require(blocks, op.after_block_id)
    diff = DiffBlock(op.block_id, "moved")
    if op.block_id == op.after_block_id:
        return blocks, diff, op.block_id
    block = blocks[idx]
    rest = blocks[:idx] + blocks[idx + 1:]
    anchor = _index_of(rest, op.after_block_id)
    return rest[:anchor + 1] + (block,) + rest[anchor + 1:], diff, op.block_id


def _do_annotate(op: Annotate, blocks: Tuple[Block, ...], seed: str) -> _Step:
    _require(blocks, op.block_id)
    return blocks, DiffBlock(op.block_id, "unchanged", annotation=op.note), op.block_id


_HANDLERS: Dict[type, Callable[..., _Step]] = {
    Replace: _do_replace,
    ReplaceBlock: _do_replace_block,
    InsertAfter: _do_insert_after,
    DeleteBlock: _do_delete,
    MoveBlock: _do_move,
    Annotate: _do_annotate,
}


def _run_batch(batch: DocEditBatch, doc: Document) -> _Outcome:
    if batch.base_version != doc.base_version:
        logger.debug("Batch for %s rejected: base version %s != %s",
                     batch.doc_id, batch.base_version[:12], doc.base_version[:12])
        return _Outcome(ok=False, code=BASE_VERSION_MISMATCH)

    blocks: Tuple[Block, ...] = tuple(doc.blocks)
    diff: List[DiffBlock] = []
    changed: Dict[str, None] = {}

    for i, op in enumerate(batch.ops):
        handler = _HANDLERS.get(type(op))
        if handler is None:
            raise TypeError(f"Unsupported edit op: {type(op).__name__}")
        try:
            blocks, entry, changed_id = handler(op, blocks, f"{batch.base_version}|{i}")
        except _OpFailed as e:
            logger.debug("Op %d (%s on %s) failed: %s", i, op.op, op.block_id, e.code)
            return _Outcome(ok=False, code=e.code, conflicts=(e.conflict,), failed_op_index=i)
        diff.append(entry)
        changed[changed_id] = None

    return _Outcome(
        ok=True,
        blocks=blocks,
        diff=diff,
        changed=list(changed),
        new_version=hash_document(blocks),
    )


def simulate_ops(batch: DocEditBatch, doc: Document) -> SimulateResult:
    """
    Run a batch against a document snapshot without producing blocks to persist.

    Returns the per-op diff and the version the document would have after
    the batch. The input document is never modified.
    """
    out = _run_batch(batch, doc)
    if not out.ok:
        return SimulateResult(ok=False, code=out.code, conflicts=out.conflicts, failed_op_index=out.failed_op_index)
    return SimulateResult(
        ok=True,
        new_version=out.new_version,
        changed_blocks=tuple(out.changed),
        diff=tuple(out.diff),
    )


def apply_ops(batch: DocEditBatch, doc: Document) -> ApplyResult:
    """
    Apply a batch atomically.

    On success the new block sequence is returned for the caller to persist.
    If any op fails, nothing but the error is returned.
    """
    out = _run_batch(batch, doc)
    if not out.ok:
        return ApplyResult(ok=False, code=out.code, conflicts=out.conflicts, failed_op_index=out.failed_op_index)
    logger.debug("Applied %d ops to %s -> %s", len(batch.ops), batch.doc_id, out.new_version[:12])
    return ApplyResult(
        ok=True,
        new_version=out.new_version,
        changed_blocks=tuple(out.changed),
        new_blocks=out.blocks,
    )
