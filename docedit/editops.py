from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, Any, Optional, Tuple, Union, ClassVar, Sequence


class BatchFormatError(ValueError):
    """A DocEditBatch or EditOp payload does not match the wire shape."""


@dataclass(frozen=True)
class TextRange:
    start: int   # UTF-16 code units, inclusive
    end: int     # UTF-16 code units, exclusive


@dataclass(frozen=True)
class Replace:
    op: ClassVar[str] = "replace"
    block_id: str
    range: TextRange
    text: str
    expect_hash: Optional[str] = None


@dataclass(frozen=True)
class ReplaceBlock:
    op: ClassVar[str] = "replaceBlock"
    block_id: str
    text: str
    expect_hash: Optional[str] = None


@dataclass(frozen=True)
class InsertAfter:
    op: ClassVar[str] = "insertAfter"
    block_id: str
    text: str
    new_block_id: Optional[str] = None


@dataclass(frozen=True)
class DeleteBlock:
    op: ClassVar[str] = "deleteBlock"
    block_id: str


@dataclass(frozen=True)
class MoveBlock:
    op: ClassVar[str] = "moveBlock"
    block_id: str
    after_block_id: str


@dataclass(frozen=True)
class Annotate:
    op: ClassVar[str] = "annotate"
    block_id: str
    note: str


EditOp = Union[Replace, ReplaceBlock, InsertAfter, DeleteBlock, MoveBlock, Annotate]

OP_TYPES = {cls.op: cls for cls in (Replace, ReplaceBlock, InsertAfter, DeleteBlock, MoveBlock, Annotate)}


@dataclass(frozen=True)
class DocEditBatch:
    doc_id: str
    base_version: str
    ops: Tuple[EditOp, ...]
    simulate: bool = False
    notes: Optional[str] = None

    def __post_init__(self):
        # keep the batch immutable even if a list was passed in
        if not isinstance(self.ops, tuple):
            object.__setattr__(self, "ops", tuple(self.ops))

    def with_ops(self, ops: Sequence[EditOp], notes: Optional[str] = None) -> "DocEditBatch":
        return replace(self, ops=tuple(ops), notes=self.notes if notes is None else notes)


def _require_str(data: Dict[str, Any], key: str, where: str) -> str:
    v = data.get(key)
    if not isinstance(v, str) or not v:
        raise BatchFormatError(f"{where}: '{key}' must be a non-empty string")
    return v


def _optional_str(data: Dict[str, Any], key: str, where: str) -> Optional[str]:
    v = data.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise BatchFormatError(f"{where}: '{key}' must be a string")
    return v


def _text(data: Dict[str, Any], key: str, where: str) -> str:
    # empty text is legal (e.g. deleting a span)
    v = data.get(key)
    if not isinstance(v, str):
        raise BatchFormatError(f"{where}: '{key}' must be a string")
    return v


def op_from_dict(data: Dict[str, Any], index: int = 0) -> EditOp:
    where = f"ops[{index}]"
    if not isinstance(data, dict):
        raise BatchFormatError(f"{where}: expected an object")
    kind = data.get("op")
    if kind not in OP_TYPES:
        raise BatchFormatError(f"{where}: unknown op {kind!r}")
    block_id = _require_str(data, "blockId", where)

    if kind == "replace":
        rng = data.get("range")
        if not isinstance(rng, dict):
            raise BatchFormatError(f"{where}: 'range' must be an object with start/end")
        start, end = rng.get("start"), rng.get("end")
        if not isinstance(start, int) or not isinstance(end, int) or isinstance(start, bool) or isinstance(end, bool):
            raise BatchFormatError(f"{where}: range start/end must be integers")
        return Replace(block_id=block_id, range=TextRange(start, end), text=_text(data, "text", where),
                       expect_hash=_optional_str(data, "expectHash", where))
    if kind == "replaceBlock":
        return ReplaceBlock(block_id=block_id, text=_text(data, "text", where),
                            expect_hash=_optional_str(data, "expectHash", where))
    if kind == "insertAfter":
        return InsertAfter(block_id=block_id, text=_text(data, "text", where),
                           new_block_id=_optional_str(data, "newBlockId", where) or None)
    if kind == "deleteBlock":
        return DeleteBlock(block_id=block_id)
    if kind == "moveBlock":
        return MoveBlock(block_id=block_id, after_block_id=_require_str(data, "afterBlockId", where))
    return Annotate(block_id=block_id, note=_text(data, "note", where))


def op_to_dict(op: EditOp) -> Dict[str, Any]:
    d: Dict[str, Any] = {"op": op.op, "blockId": op.block_id}
    if isinstance(op, Replace):
        d["range"] = {"start": op.range.start, "end": op.range.end}
        d["text"] = op.text
        if op.expect_hash:
            d["expectHash"] = op.expect_hash
    elif isinstance(op, ReplaceBlock):
        d["text"] = op.text
        if op.expect_hash:
            d["expectHash"] = op.expect_hash
    elif isinstance(op, InsertAfter):
        d["text"] = op.text
        if op.new_block_id:
            d["newBlockId"] = op.new_block_id
    elif isinstance(op, MoveBlock):
        d["afterBlockId"] = op.after_block_id
    elif isinstance(op, Annotate):
        d["note"] = op.note
    return d


def batch_from_dict(data: Dict[str, Any]) -> DocEditBatch:
    if not isinstance(data, dict):
        raise BatchFormatError("batch: expected an object")
    if data.get("type") != "DocEditBatch":
        raise BatchFormatError("batch: 'type' must be 'DocEditBatch'")
    ops = data.get("ops")
    if not isinstance(ops, list):
        raise BatchFormatError("batch: 'ops' must be a list")
    simulate = data.get("simulate", False)
    if not isinstance(simulate, bool):
        raise BatchFormatError("batch: 'simulate' must be a boolean")
    return DocEditBatch(
        doc_id=_require_str(data, "docId", "batch"),
        base_version=_require_str(data, "baseVersion", "batch"),
        ops=tuple(op_from_dict(o, i) for i, o in enumerate(ops)),
        simulate=simulate,
        notes=_optional_str(data, "notes", "batch"),
    )


def batch_to_dict(batch: DocEditBatch) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "type": "DocEditBatch",
        "docId": batch.doc_id,
        "baseVersion": batch.base_version,
        "ops": [op_to_dict(o) for o in batch.ops],
    }
    if batch.simulate:
        d["simulate"] = True
    if batch.notes is not None:
        d["notes"] = batch.notes
    return d
