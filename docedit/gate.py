"""
Policy Gate

Filters a DocEditBatch through the outline guards and style rules before
anything is simulated or applied, and attaches justifications to the ops
that survive.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Sequence
import logging

from docedit.editops import (
    DocEditBatch, EditOp, Replace, ReplaceBlock, InsertAfter, DeleteBlock, MoveBlock, Annotate, op_to_dict,
)
from docedit.policy import (
    PolicyHit, PolicyReport, StyleRules, SceneMeta, SceneBlock, Outline,
    evaluate_style_rules, outline_guards,
)
from docedit.rules.load_rules import default_style_rules

logger = logging.getLogger(__name__)

_OP_REASONS = {
    Replace: "Replacing text to improve clarity/style",
    ReplaceBlock: "Replacing entire block for significant improvement",
    InsertAfter: "Adding content to expand or clarify",
    DeleteBlock: "Removing redundant or problematic content",
    MoveBlock: "Reordering for better flow",
    Annotate: "Adding note for review",
}


@dataclass
class GateContext:
    scene_meta: SceneMeta
    style: StyleRules
    allow_override: bool = False  # caller accepts blocking guards


@dataclass(frozen=True)
class BlockedOp:
    op: EditOp
    reason: str
    details: PolicyReport


@dataclass(frozen=True)
class OpWarning:
    op: EditOp
    hits: List[PolicyHit]


@dataclass(frozen=True)
class GateSummary:
    total_ops: int
    allowed_ops: int
    blocked_ops: int
    warnings_count: int


@dataclass(frozen=True)
class GateResult:
    allowed: List[EditOp] = field(default_factory=list)
    blocked: List[BlockedOp] = field(default_factory=list)
    warnings: List[OpWarning] = field(default_factory=list)

    @property
    def summary(self) -> GateSummary:
        return GateSummary(
            total_ops=len(self.allowed) + len(self.blocked),
            allowed_ops=len(self.allowed),
            blocked_ops=len(self.blocked),
            warnings_count=len(self.warnings),
        )

    def to_dict(self) -> Dict[str, Any]:
        s = self.summary
        return {
            "allowed": [op_to_dict(o) for o in self.allowed],
            "blocked": [
                {"op": op_to_dict(b.op), "reason": b.reason, "details": b.details.to_dict()}
                for b in self.blocked
            ],
            "warnings": [{"op": op_to_dict(w.op), "hits": [h.to_dict() for h in w.hits]} for w in self.warnings],
            "summary": {
                "totalOps": s.total_ops,
                "allowedOps": s.allowed_ops,
                "blockedOps": s.blocked_ops,
                "warningsCount": s.warnings_count,
            },
        }


@dataclass(frozen=True)
class JustifiedBatch:
    result: GateResult
    annotated_batch: DocEditBatch


def _gate(batch: DocEditBatch, ctx: GateContext):
    # Returns the result plus per-allowed-op hits, in op order.
    allowed: List[EditOp] = []
    blocked: List[BlockedOp] = []
    warnings: List[OpWarning] = []
    allowed_hits: List[List[PolicyHit]] = []

    for op in batch.ops:
        report = outline_guards(op, ctx.scene_meta)
        if report.blocking and not ctx.allow_override:
            blocked.append(BlockedOp(op=op, reason=report.reason or "Outline guard violation", details=report))
            continue

        hits: List[PolicyHit] = []
        block = ctx.scene_meta.find_block(op.block_id)
        if block is not None:
            hits = evaluate_style_rules(op.block_id, block.text, ctx.style)
            if hits:
                warnings.append(OpWarning(op=op, hits=hits))
        allowed.append(op)
        allowed_hits.append(hits)

    result = GateResult(allowed=allowed, blocked=blocked, warnings=warnings)
    if blocked:
        logger.info("Policy gate blocked %d of %d ops", len(blocked), len(batch.ops))
    return result, allowed_hits


def gate_batch(batch: DocEditBatch, ctx: GateContext) -> GateResult:
    """
    Partition a batch into allowed and blocked ops.

    Blocking outline guards win unless ctx.allow_override is set; blocked ops
    are not style-checked. Style hits never block, they are recorded as
    warnings next to the op, which stays allowed.
    """
    result, _ = _gate(batch, ctx)
    return result


def generate_justification(op: EditOp, intent: str, style_hits: Optional[Sequence[PolicyHit]] = None) -> str:
    parts: List[str] = []
    if intent:
        parts.append(f"Intent: {intent}")
    reason = _OP_REASONS.get(type(op))
    if reason:
        parts.append(reason)
    if style_hits:
        rules = list(dict.fromkeys(h.rule for h in style_hits))
        parts.append(f"Fixes: {', '.join(rules)}")
    return "; ".join(parts)


def annotate_ops(batch: DocEditBatch, justifications: Sequence[tuple]) -> DocEditBatch:
    """Return a copy of batch with (block_id, justification) pairs appended to notes."""
    lines = "\n".join(f"- {block_id}: {text}" for block_id, text in justifications)
    block = f"Justifications:\n{lines}"
    notes = f"{batch.notes}\n\n{block}" if batch.notes else block
    return batch.with_ops(batch.ops, notes=notes)


def gate_and_justify(batch: DocEditBatch, ctx: GateContext, intent: str) -> JustifiedBatch:
    result, allowed_hits = _gate(batch, ctx)
    justifications = [
        (op.block_id, generate_justification(op, intent, hits))
        for op, hits in zip(result.allowed, allowed_hits)
    ]
    annotated = annotate_ops(batch.with_ops(result.allowed), justifications)
    return JustifiedBatch(result=result, annotated_batch=annotated)


def create_gate_context(
    scene_id: str,
    blocks: Sequence,
    outline: Optional[Outline] = None,
    style: Optional[StyleRules] = None,
    allow_override: bool = False,
) -> GateContext:
    """Build a GateContext from a block snapshot (Blocks or SceneBlocks)."""
    scene_blocks = [SceneBlock(id=b.id, text=b.text, hash=b.hash, markers=list(getattr(b, "markers", []) or []))
                    for b in blocks]
    return GateContext(
        scene_meta=SceneMeta(id=scene_id, outline=outline, blocks=scene_blocks),
        style=style or default_style_rules(),
        allow_override=allow_override,
    )


def has_blocking_issues(batch: DocEditBatch, ctx: GateContext) -> bool:
    return len(gate_batch(batch, ctx).blocked) > 0


def get_policy_summary(result: GateResult) -> str:
    s = result.summary
    lines = [
        "Policy Gate Summary:",
        f"- Total operations: {s.total_ops}",
        f"- Allowed: {s.allowed_ops}",
        f"- Blocked: {s.blocked_ops}",
        f"- Warnings: {s.warnings_count}",
    ]
    if result.blocked:
        lines.append("")
        lines.append("Blocked operations:")
        for b in result.blocked:
            lines.append(f"- {b.op.op} {b.op.block_id}: {b.reason}")
    if result.warnings:
        lines.append("")
        lines.append("Warnings:")
        counts: Dict[str, int] = {}
        for w in result.warnings:
            for h in w.hits:
                counts[h.rule] = counts.get(h.rule, 0) + 1
        for rule, n in counts.items():
            lines.append(f"- {rule}: {n} violation(s)")
    return "\n".join(lines)
