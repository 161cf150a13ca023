"""
Policy Evaluator

Stateless checks run against proposed edits:
- Style rules: advisory hits on a block's text (never blocking)
- Outline guards: structural protection of story beats (may block deletes)
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Literal, Callable
from collections import OrderedDict
import re

from docedit.editops import EditOp, DeleteBlock

Severity = Literal["error", "warning", "info"]

DEFAULT_ADVERB_EXCEPTIONS = [
    "only", "family", "early", "likely", "lonely", "lovely", "holy", "silly", "daily",
    "ugly", "friendly", "reply", "apply", "supply", "fly", "july", "italy",
]

DEFAULT_CLICHES = [
    "at the end of the day",
    "think outside the box",
    "low-hanging fruit",
    "it goes without saying",
    "at this point in time",
]

DEFAULT_MAX_PARAGRAPH_LENGTH = 500

_ADVERB = re.compile(r"\b(\w+ly)\b", re.IGNORECASE)
_PASSIVE = re.compile(
    r"\b(was|were|is|are|been|be|being)\s+(\w+ed|done|gone|taken|given|made|seen|known)\b",
    re.IGNORECASE,
)
BEAT_MARKER = re.compile(r"<!--\s*beat:(\w+)\s*-->")
PLOT_MARKER = re.compile(r"<!--\s*plot:(\w+)\s*-->")


@dataclass(frozen=True)
class PolicyHit:
    rule: str
    block_id: str
    message: str
    start: Optional[int] = None   # matched span, when the hit has one
    end: Optional[int] = None
    severity: Severity = "warning"

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"rule": self.rule, "blockId": self.block_id, "message": self.message,
                             "severity": self.severity}
        if self.start is not None:
            d["start"] = self.start
            d["end"] = self.end
        return d


@dataclass(frozen=True)
class PolicyReport:
    blocking: bool
    hits: List[PolicyHit] = field(default_factory=list)
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"blocking": self.blocking, "reason": self.reason, "hits": [h.to_dict() for h in self.hits]}


@dataclass
class StyleRules:
    rules: List[str] = field(default_factory=list)
    banlist: List[str] = field(default_factory=list)
    preferences: List[str] = field(default_factory=list)
    max_paragraph_length: int = DEFAULT_MAX_PARAGRAPH_LENGTH
    adverb_exceptions: List[str] = field(default_factory=lambda: list(DEFAULT_ADVERB_EXCEPTIONS))
    cliches: List[str] = field(default_factory=lambda: list(DEFAULT_CLICHES))


@dataclass
class Outline:
    required_beats: List[str] = field(default_factory=list)  # block ids
    goal: Optional[str] = None
    conflict: Optional[str] = None
    outcome: Optional[str] = None
    clock: Optional[str] = None
    crucible: Optional[str] = None


@dataclass
class SceneBlock:
    id: str
    text: str
    hash: str = ""
    markers: List[str] = field(default_factory=list)  # e.g. ["beat:reveal"]


@dataclass
class SceneMeta:
    id: str
    outline: Optional[Outline] = None
    blocks: List[SceneBlock] = field(default_factory=list)

    def find_block(self, block_id: str) -> Optional[SceneBlock]:
        for b in self.blocks:
            if b.id == block_id:
                return b
        return None


# --- style rules -------------------------------------------------------------

def _check_adverbs(block_id: str, text: str, rules: StyleRules) -> List[PolicyHit]:
    exceptions = {w.lower() for w in rules.adverb_exceptions}
    hits: List[PolicyHit] = []
    for m in _ADVERB.finditer(text):
        if m.group(1).lower() in exceptions:
            continue
        hits.append(PolicyHit(
            rule="NoWeakAdverbs",
            block_id=block_id,
            message=f"Adverb: {m.group(1)}",
            start=m.start(1),
            end=m.end(1),
        ))
    return hits


def _check_passive(block_id: str, text: str, rules: StyleRules) -> List[PolicyHit]:
    return [
        PolicyHit(
            rule="NoPassiveVoice",
            block_id=block_id,
            message=f"Passive voice: {m.group(0)}",
            start=m.start(),
            end=m.end(),
        )
        for m in _PASSIVE.finditer(text)
    ]


def _check_paragraph_length(block_id: str, text: str, rules: StyleRules) -> List[PolicyHit]:
    limit = rules.max_paragraph_length
    if len(text) <= limit:
        return []
    return [PolicyHit(
        rule="MaxParagraphLength",
        block_id=block_id,
        message=f"Paragraph too long: {len(text)} characters (max {limit})",
        start=0,
        end=len(text),
        severity="info",
    )]


def _check_cliches(block_id: str, text: str, rules: StyleRules) -> List[PolicyHit]:
    hits: List[PolicyHit] = []
    lower = text.lower()
    for cliche in rules.cliches:
        idx = lower.find(cliche.lower())
        if idx >= 0:
            hits.append(PolicyHit(
                rule="NoCliches",
                block_id=block_id,
                message=f"Cliché: {cliche}",
                start=idx,
                end=idx + len(cliche),
            ))
    return hits


def _check_banlist(block_id: str, text: str, rules: StyleRules) -> List[PolicyHit]:
    hits: List[PolicyHit] = []
    for word in rules.banlist:
        if not word.strip():
            continue
        for m in re.finditer(rf"\b{re.escape(word.strip())}\b", text, re.IGNORECASE):
            hits.append(PolicyHit(
                rule="Banlist",
                block_id=block_id,
                message=f"Banned word: {m.group(0)}",
                start=m.start(),
                end=m.end(),
                severity="error",
            ))
    return hits


_STYLE_CHECKS: "OrderedDict[str, Callable[[str, str, StyleRules], List[PolicyHit]]]" = OrderedDict([
    ("NoWeakAdverbs", _check_adverbs),
    ("NoPassiveVoice", _check_passive),
    ("Banlist", _check_banlist),
    ("MaxParagraphLength", _check_paragraph_length),
    ("NoCliches", _check_cliches),
])

RULE_ALIASES = {"NoClichés": "NoCliches"}


def canonical_rule_name(name: str) -> str:
    return RULE_ALIASES.get(name, name)


def evaluate_style_rules(block_id: str, text: str, rules: StyleRules) -> List[PolicyHit]:
    """
    Run the enabled style checks over one block's text.

    The banlist is checked whenever it is non-empty, whether or not
    "Banlist" is listed in rules.rules. Unknown rule names are ignored.
    """
    enabled = {canonical_rule_name(r) for r in rules.rules}
    if rules.banlist:
        enabled.add("Banlist")
    hits: List[PolicyHit] = []
    for name, check in _STYLE_CHECKS.items():
        if name in enabled:
            hits.extend(check(block_id, text, rules))
    return hits


# --- outline guards ----------------------------------------------------------

def outline_guards(op: EditOp, scene_meta: SceneMeta) -> PolicyReport:
    """
    Structural guard for one operation. Only block deletion can be blocked:
    a block listed as a required beat, or one whose text carries a beat marker.
    """
    if not isinstance(op, DeleteBlock):
        return PolicyReport(blocking=False)

    hits: List[PolicyHit] = []
    reason: Optional[str] = None
    block_id = op.block_id

    required = scene_meta.outline.required_beats if scene_meta.outline else []
    if block_id in required:
        reason = "Required outline beat"
        hits.append(PolicyHit(
            rule="RequiredBeat",
            block_id=block_id,
            message="Block contains required story beat and cannot be deleted",
            severity="error",
        ))

    block = scene_meta.find_block(block_id)
    if block is not None:
        beats = [m.group(0) for m in BEAT_MARKER.finditer(block.text)]
        if beats:
            reason = reason or "Contains beat markers"
            hits.append(PolicyHit(
                rule="BeatMarker",
                block_id=block_id,
                message=f"Block contains beat markers: {', '.join(beats)}",
                severity="error",
            ))
        plots = [m.group(0) for m in PLOT_MARKER.finditer(block.text)]
        if plots:
            hits.append(PolicyHit(
                rule="PlotMarker",
                block_id=block_id,
                message=f"Block contains plot markers: {', '.join(plots)}",
                severity="warning",
            ))

    return PolicyReport(blocking=reason is not None, hits=hits, reason=reason)


def format_policy_hits(hits: List[PolicyHit], per_rule: int = 5) -> str:
    if not hits:
        return "No policy violations found."
    grouped: Dict[str, List[PolicyHit]] = {}
    for hit in hits:
        grouped.setdefault(hit.rule, []).append(hit)
    lines: List[str] = []
    for rule, rule_hits in grouped.items():
        lines.append(f"{rule} ({len(rule_hits)}):")
        for hit in rule_hits[:per_rule]:
            lines.append(f"  - {hit.message}")
        if len(rule_hits) > per_rule:
            lines.append(f"  ... and {len(rule_hits) - per_rule} more")
    return "\n".join(lines)
