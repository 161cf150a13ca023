"""
Tool surface for edit proposers (AI agents or UIs).

Reads block snapshots, runs batches through the engine and commits
successful applies through a DocumentStore.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Sequence, Union
import logging

from docedit.apply import simulate_ops, apply_ops, SimulateResult, ApplyResult
from docedit.editops import DocEditBatch
from docedit.policy import StyleRules
from docedit.rules.load_rules import default_style_rules
from docedit.store import DocumentStore, DocumentNotFoundError, BlockNotFoundError

logger = logging.getLogger(__name__)

DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"


@dataclass(frozen=True)
class ToolReadBlock:
    block_id: str
    text: str
    hash: str
    kind: str = "paragraph"
    level: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"blockId": self.block_id, "text": self.text, "hash": self.hash, "type": self.kind, "level": self.level}


@dataclass(frozen=True)
class Selection:
    block_id: str
    start: int
    end: int


class ToolSurface:
    def __init__(self, store: DocumentStore, style: Optional[StyleRules] = None):
        self.store = store
        self.style = style or default_style_rules()

    def _load(self, doc_id: str):
        doc = self.store.load_document(doc_id)
        if doc is None:
            raise DocumentNotFoundError(doc_id)
        return doc

    def read_blocks(
        self,
        doc_id: str,
        block_ids: Optional[Sequence[str]] = None,
        selection: Optional[Selection] = None,
    ) -> List[ToolReadBlock]:
        doc = self._load(doc_id)
        if selection is not None:
            block = doc.find_block(selection.block_id)
            if block is None:
                raise BlockNotFoundError(selection.block_id)
            return [ToolReadBlock(block.id, block.text, block.hash, block.kind, block.level)]
        out: List[ToolReadBlock] = []
        for block_id in block_ids or []:
            block = doc.find_block(block_id)
            if block is not None:
                out.append(ToolReadBlock(block.id, block.text, block.hash, block.kind, block.level))
        return out

    def simulate_ops(self, batch: DocEditBatch) -> SimulateResult:
        doc = self.store.load_document(batch.doc_id)
        if doc is None:
            return SimulateResult(ok=False, code=DOCUMENT_NOT_FOUND)
        return simulate_ops(batch, doc)

    def apply_ops(self, batch: DocEditBatch) -> ApplyResult:
        doc = self.store.load_document(batch.doc_id)
        if doc is None:
            return ApplyResult(ok=False, code=DOCUMENT_NOT_FOUND)
        result = apply_ops(batch, doc)
        if not result.ok:
            logger.warning("Batch for %s refused: %s", batch.doc_id, result.code)
            return result
        stored = self.store.update_document(batch.doc_id, result.new_blocks)
        logger.info("Committed %d ops to %s (version %s)", len(batch.ops), batch.doc_id, stored.base_version[:12])
        return result

    def submit(self, batch: DocEditBatch) -> Union[SimulateResult, ApplyResult]:
        return self.simulate_ops(batch) if batch.simulate else self.apply_ops(batch)

    def get_style_rules(self) -> StyleRules:
        return self.style
