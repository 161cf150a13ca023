from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Literal, Sequence
import time

from docedit.hashing import hash_block, hash_document

BlockKind = Literal["paragraph", "heading"]
DiffKind = Literal["unchanged", "modified", "inserted", "deleted", "moved"]

BLOCK_KINDS = ("paragraph", "heading")


class DocumentValidationError(ValueError):
    """A block or document snapshot violates the model invariants."""


@dataclass(frozen=True)
class Block:
    id: str
    kind: BlockKind
    text: str
    hash: str              # hash_block(text), always in sync
    level: Optional[int] = None  # headings only (1-6)

    @classmethod
    def create(cls, id: str, text: str, kind: BlockKind = "paragraph", level: Optional[int] = None) -> "Block":
        return cls(id=id, kind=kind, text=text, hash=hash_block(text), level=level)

    def with_text(self, text: str) -> "Block":
        return Block(id=self.id, kind=self.kind, text=text, hash=hash_block(text), level=self.level)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"id": self.id, "type": self.kind, "text": self.text, "hash": self.hash}
        if self.level is not None:
            d["level"] = self.level
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Block":
        if not isinstance(data, dict):
            raise DocumentValidationError("Malformed block: expected an object")
        text = data.get("text")
        level = data.get("level")
        if not isinstance(text, str):
            raise DocumentValidationError(f"Malformed block {data.get('id')!r}: 'text' must be a string")
        if level is not None and (not isinstance(level, int) or isinstance(level, bool)):
            raise DocumentValidationError(f"Malformed block {data.get('id')!r}: 'level' must be an integer")
        if "id" not in data:
            raise DocumentValidationError("Malformed block: missing 'id'")
        block = cls(
            id=str(data["id"]),
            kind=data.get("type", "paragraph"),
            text=text,
            hash=data.get("hash") or hash_block(text),
            level=level,
        )
        validate_block(block)
        return block


@dataclass(frozen=True)
class Document:
    id: str
    title: str
    blocks: Sequence[Block]
    base_version: str
    last_modified: float = 0.0

    @classmethod
    def create(cls, id: str, title: str, blocks: Sequence[Block], last_modified: Optional[float] = None) -> "Document":
        blocks = tuple(blocks)
        return cls(
            id=id,
            title=title,
            blocks=blocks,
            base_version=hash_document(blocks),
            last_modified=time.time() if last_modified is None else last_modified,
        )

    def find_block(self, block_id: str) -> Optional[Block]:
        for b in self.blocks:
            if b.id == block_id:
                return b
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "blocks": [b.to_dict() for b in self.blocks],
            "baseVersion": self.base_version,
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        if not isinstance(data, dict) or not isinstance(data.get("blocks"), list):
            raise DocumentValidationError("Document must be an object with a 'blocks' list")
        blocks = tuple(Block.from_dict(b) for b in data["blocks"])
        doc = cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            blocks=blocks,
            base_version=data.get("baseVersion") or hash_document(blocks),
            last_modified=float(data.get("lastModified") or 0.0),
        )
        validate_document(doc)
        return doc


@dataclass(frozen=True)
class Conflict:
    block_id: str
    current_text: str
    current_hash: str
    missing: bool = False  # target block not present at all

    def to_dict(self) -> Dict[str, Any]:
        return {
            "blockId": self.block_id,
            "currentText": self.current_text,
            "currentHash": self.current_hash,
            "missing": self.missing,
        }


@dataclass(frozen=True)
class DiffBlock:
    block_id: str
    kind: DiffKind
    old_text: Optional[str] = None
    new_text: Optional[str] = None
    annotation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"blockId": self.block_id, "type": self.kind}
        if self.old_text is not None:
            d["oldText"] = self.old_text
        if self.new_text is not None:
            d["newText"] = self.new_text
        if self.annotation is not None:
            d["annotation"] = self.annotation
        return d


def validate_block(block: Block) -> None:
    if block.kind not in BLOCK_KINDS:
        raise DocumentValidationError(f"Block {block.id}: unknown kind {block.kind!r}")
    if block.kind == "heading" and block.level is not None and not (1 <= block.level <= 6):
        raise DocumentValidationError(f"Block {block.id}: heading level {block.level} outside 1-6")
    if block.kind == "paragraph" and block.level is not None:
        raise DocumentValidationError(f"Block {block.id}: paragraphs carry no heading level")
    if block.hash != hash_block(block.text):
        raise DocumentValidationError(f"Block {block.id}: hash does not match text")


def validate_document(doc: Document) -> None:
    seen: set = set()
    dupes: List[str] = []
    for block in doc.blocks:
        validate_block(block)
        if block.id in seen:
            dupes.append(block.id)
        seen.add(block.id)
    if dupes:
        raise DocumentValidationError(f"Duplicate block ids: {', '.join(sorted(set(dupes)))}")
    if doc.base_version != hash_document(doc.blocks):
        raise DocumentValidationError("baseVersion does not match block content")


@dataclass
class StructureInventory:
    """Counts used by the review bundle to compare before/after shape."""
    headings: List[str] = field(default_factory=list)
    paragraph_count: int = 0
    heading_count: int = 0

    @classmethod
    def of(cls, blocks: Sequence[Block]) -> "StructureInventory":
        inv = cls()
        for b in blocks:
            if b.kind == "heading":
                inv.headings.append(b.text.strip())
                inv.heading_count += 1
            else:
                inv.paragraph_count += 1
        return inv
