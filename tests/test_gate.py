from docedit.editops import DocEditBatch, DeleteBlock, ReplaceBlock, Annotate, InsertAfter
from docedit.gate import (
    GateContext, create_gate_context, gate_batch, gate_and_justify, generate_justification,
    has_blocking_issues, get_policy_summary,
)
from docedit.ir import Block
from docedit.policy import StyleRules, Outline, PolicyHit, SceneMeta, SceneBlock, evaluate_style_rules
from docedit.rules.load_rules import default_style_rules


def _ctx(allow_override=False, style=None):
    blocks = [
        Block.create("beat-1", "The reveal happens here."),
        Block.create("p2", "She walked quickly and quietly."),
        Block.create("p3", "Filler."),
    ]
    return create_gate_context(
        "s1", blocks,
        outline=Outline(required_beats=["beat-1"]),
        style=style or StyleRules(rules=["NoWeakAdverbs"]),
        allow_override=allow_override,
    )


def _batch(*ops, notes=None):
    return DocEditBatch(doc_id="d1", base_version="v1", ops=ops, notes=notes)


def test_blocked_op_not_allowed_and_not_style_checked():
    result = gate_batch(_batch(DeleteBlock("beat-1"), DeleteBlock("p2")), _ctx())
    assert [b.op for b in result.blocked] == [DeleteBlock("beat-1")]
    assert result.blocked[0].reason == "Required outline beat"
    assert result.blocked[0].details.hits[0].rule == "RequiredBeat"
    assert result.allowed == [DeleteBlock("p2")]
    assert [w.op for w in result.warnings] == [DeleteBlock("p2")]
    s = result.summary
    assert (s.total_ops, s.allowed_ops, s.blocked_ops, s.warnings_count) == (2, 1, 1, 1)


def test_override_lets_required_beat_through():
    result = gate_batch(_batch(DeleteBlock("beat-1")), _ctx(allow_override=True))
    assert result.summary.blocked_ops == 0
    assert result.allowed == [DeleteBlock("beat-1")]


def test_summary_counts_always_add_up():
    ops = (DeleteBlock("beat-1"), ReplaceBlock("p2", "x"), Annotate("p3", "n"), DeleteBlock("missing"))
    s = gate_batch(_batch(*ops), _ctx()).summary
    assert s.allowed_ops + s.blocked_ops == s.total_ops == 4


def test_unknown_block_yields_no_warning_and_no_block():
    result = gate_batch(_batch(ReplaceBlock("ghost", "x")), _ctx())
    assert result.allowed == [ReplaceBlock("ghost", "x")]
    assert result.warnings == [] and result.blocked == []


def test_empty_scene_never_throws():
    ctx = GateContext(scene_meta=SceneMeta(id="s"), style=StyleRules(rules=["NoWeakAdverbs"]))
    assert gate_batch(_batch(DeleteBlock("a"), InsertAfter("a", "b")), ctx).summary.allowed_ops == 2


def test_generate_justification():
    hits = [PolicyHit("NoWeakAdverbs", "p2", "Adverb: quickly"), PolicyHit("NoWeakAdverbs", "p2", "Adverb: quietly"),
            PolicyHit("Banlist", "p2", "Banned word: very")]
    text = generate_justification(DeleteBlock("p2"), "tighten pacing", hits)
    assert text == "Intent: tighten pacing; Removing redundant or problematic content; Fixes: NoWeakAdverbs, Banlist"
    assert generate_justification(Annotate("p1", "n"), "") == "Adding note for review"


def test_gate_and_justify_returns_new_restricted_batch():
    original = _batch(DeleteBlock("beat-1"), ReplaceBlock("p2", "She crossed the hall."), notes="pass 1")
    out = gate_and_justify(original, _ctx(), "tighten")

    assert original.ops == (DeleteBlock("beat-1"), ReplaceBlock("p2", "She crossed the hall."))
    assert original.notes == "pass 1"

    annotated = out.annotated_batch
    assert annotated is not original
    assert annotated.ops == (ReplaceBlock("p2", "She crossed the hall."),)
    assert annotated.base_version == original.base_version
    assert annotated.notes.startswith("pass 1\n\nJustifications:\n")
    assert "- p2: Intent: tighten; Replacing entire block for significant improvement; Fixes: NoWeakAdverbs" in annotated.notes
    assert "beat-1" not in annotated.notes


def test_gate_and_justify_keeps_one_line_per_op():
    out = gate_and_justify(_batch(Annotate("p3", "a"), ReplaceBlock("p3", "b")), _ctx(), "")
    assert out.annotated_batch.notes.count("- p3:") == 2


def test_helpers():
    batch = _batch(DeleteBlock("beat-1"), ReplaceBlock("p2", "x"))
    assert has_blocking_issues(batch, _ctx())
    assert not has_blocking_issues(batch, _ctx(allow_override=True))
    summary = get_policy_summary(gate_batch(batch, _ctx()))
    assert "- Blocked: 1" in summary
    assert "- NoWeakAdverbs: 2 violation(s)" in summary


def test_default_style_rules_from_rule_pack():
    ctx = create_gate_context("s1", [SceneBlock("p1", "It was really good.")])
    hits = gate_batch(_batch(Annotate("p1", "n")), ctx).warnings[0].hits
    assert any(h.rule == "Banlist" for h in hits)


def test_shipped_rule_pack_uses_builtin_adverb_exceptions():
    pack = default_style_rules()
    assert pack.adverb_exceptions == StyleRules().adverb_exceptions
    assert pack.cliches == StyleRules().cliches
    text = "In July they toured Italy."
    for rules in (pack, StyleRules(rules=["NoWeakAdverbs"])):
        assert [h for h in evaluate_style_rules("p1", text, rules) if h.rule == "NoWeakAdverbs"] == []
