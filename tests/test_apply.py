from docedit.apply import simulate_ops, apply_ops
from docedit.editops import (
    DocEditBatch, Replace, ReplaceBlock, InsertAfter, DeleteBlock, MoveBlock, Annotate, TextRange,
)
from docedit.ir import Block, Document

SENTENCE = "She walked quickly and quietly across the hall."


def _doc(*texts):
    return Document.create("d1", "Scene", [Block.create(f"p{i + 1}", t) for i, t in enumerate(texts)])


def _batch(doc, *ops, version=None):
    return DocEditBatch(doc_id=doc.id, base_version=version or doc.base_version, ops=ops)


def _ids(blocks):
    return [b.id for b in blocks]


def test_end_to_end_replace():
    doc = _doc(SENTENCE)
    batch = _batch(doc, Replace("p1", TextRange(4, 18), "ran"))

    sim = simulate_ops(batch, doc)
    assert sim.ok
    assert len(sim.diff) == 1
    entry = sim.diff[0]
    assert entry.kind == "modified"
    assert "walked quickly" in entry.old_text
    assert entry.new_text == "She ran and quietly across the hall."

    res = apply_ops(batch, doc)
    assert res.ok
    assert res.new_version != doc.base_version
    assert res.new_version == sim.new_version
    assert res.new_blocks[0].text == "She ran and quietly across the hall."
    assert res.new_blocks[0].hash == Block.create("x", "She ran and quietly across the hall.").hash
    # caller's snapshot untouched
    assert doc.blocks[0].text == SENTENCE


def test_base_version_mismatch_rejects_whole_batch():
    doc = _doc("One.", "Two.")
    res = apply_ops(_batch(doc, Annotate("p1", "n"), version="stale"), doc)
    assert not res.ok
    assert res.code == "BASE_VERSION_MISMATCH"
    assert res.conflicts == ()
    assert res.new_blocks is None


def test_leading_whitespace_edit_changes_version_and_hash():
    padded = _doc("  Hello world, again")
    plain = _doc("Hello world, again")
    assert padded.base_version != plain.base_version
    assert padded.blocks[0].hash != plain.blocks[0].hash

    res = apply_ops(_batch(plain, ReplaceBlock("p1", "Hi.", expect_hash=plain.blocks[0].hash)), padded)
    assert not res.ok
    assert res.code == "BASE_VERSION_MISMATCH"


def test_expect_hash_conflict_carries_current_state():
    doc = _doc(SENTENCE)
    h1 = doc.blocks[0].hash
    res = simulate_ops(_batch(doc, Replace("p1", TextRange(0, 3), "He", expect_hash="wrong")), doc)
    assert not res.ok
    assert res.code == "EXPECT_HASH_MISMATCH"
    c = res.conflicts[0]
    assert (c.block_id, c.current_text, c.current_hash, c.missing) == ("p1", SENTENCE, h1, False)


def test_matching_expect_hash_passes():
    doc = _doc("Old.")
    res = apply_ops(_batch(doc, ReplaceBlock("p1", "New.", expect_hash=doc.blocks[0].hash)), doc)
    assert res.ok and res.new_blocks[0].text == "New."


def test_missing_target_reported_as_hash_mismatch_placeholder():
    doc = _doc("One.")
    res = apply_ops(_batch(doc, DeleteBlock("ghost")), doc)
    assert res.code == "EXPECT_HASH_MISMATCH"
    c = res.conflicts[0]
    assert (c.block_id, c.current_text, c.current_hash, c.missing) == ("ghost", "", "", True)


def test_atomicity_when_later_op_fails():
    doc = _doc("One.", "Two.")
    batch = _batch(doc, ReplaceBlock("p1", "Changed."), DeleteBlock("p2"), Annotate("nope", "x"))
    res = apply_ops(batch, doc)
    assert not res.ok
    assert res.failed_op_index == 2
    assert res.new_blocks is None
    assert _ids(doc.blocks) == ["p1", "p2"]
    assert doc.blocks[0].text == "One."


def test_insert_then_move_is_noop_reorder():
    doc = _doc("A text.", "C text.")
    batch = _batch(doc, InsertAfter("p1", "x", new_block_id="B"), MoveBlock("B", "p1"))
    res = apply_ops(batch, doc)
    assert res.ok
    assert _ids(res.new_blocks) == ["p1", "B", "p2"]
    sim = simulate_ops(batch, doc)
    assert [d.kind for d in sim.diff] == ["inserted", "moved"]


def test_later_ops_see_earlier_effects():
    doc = _doc("A.", "B.", "C.")
    batch = _batch(
        doc,
        InsertAfter("p3", "D.", new_block_id="p4"),
        ReplaceBlock("p4", "D!"),
        MoveBlock("p1", "p4"),
        DeleteBlock("p2"),
    )
    res = apply_ops(batch, doc)
    assert res.ok
    assert _ids(res.new_blocks) == ["p3", "p4", "p1"]
    assert res.new_blocks[1].text == "D!"
    assert list(res.changed_blocks) == ["p4", "p1", "p2"]


def test_move_after_itself_keeps_position():
    doc = _doc("A.", "B.", "C.")
    res = apply_ops(_batch(doc, MoveBlock("p2", "p2")), doc)
    assert res.ok and _ids(res.new_blocks) == ["p1", "p2", "p3"]
    assert res.new_version == doc.base_version


def test_move_to_end_and_missing_anchor():
    doc = _doc("A.", "B.", "C.")
    res = apply_ops(_batch(doc, MoveBlock("p1", "p3")), doc)
    assert _ids(res.new_blocks) == ["p2", "p3", "p1"]
    bad = apply_ops(_batch(doc, MoveBlock("p1", "zz")), doc)
    assert bad.code == "EXPECT_HASH_MISMATCH"


def test_annotate_leaves_text_and_version():
    doc = _doc("A.")
    sim = simulate_ops(_batch(doc, Annotate("p1", "consider cutting")), doc)
    assert sim.ok
    assert sim.new_version == doc.base_version
    assert sim.diff[0].kind == "unchanged"
    assert sim.diff[0].annotation == "consider cutting"
    assert sim.diff[0].old_text is None and sim.diff[0].new_text is None


def test_delete_records_prior_text():
    doc = _doc("A.", "B.")
    sim = simulate_ops(_batch(doc, DeleteBlock("p2")), doc)
    assert sim.diff[0].kind == "deleted" and sim.diff[0].old_text == "B."


def test_generated_ids_match_between_simulate_and_apply():
    doc = _doc("A.")
    batch = _batch(doc, InsertAfter("p1", "New."), InsertAfter("p1", "New."))
    sim = simulate_ops(batch, doc)
    res = apply_ops(batch, doc)
    assert sim.ok and res.ok
    assert sim.new_version == res.new_version
    assert {d.block_id for d in sim.diff} == set(res.changed_blocks)
    assert len(set(res.changed_blocks)) == 2


def test_duplicate_new_block_id_rejected():
    doc = _doc("A.", "B.")
    res = apply_ops(_batch(doc, InsertAfter("p1", "x", new_block_id="p2")), doc)
    assert res.code == "DUPLICATE_BLOCK_ID"


def test_replace_range_uses_utf16_units():
    doc = _doc("I \U0001F600 you")
    # emoji occupies two UTF-16 code units: [2, 4)
    res = apply_ops(_batch(doc, Replace("p1", TextRange(2, 4), "love")), doc)
    assert res.ok and res.new_blocks[0].text == "I love you"


def test_invalid_ranges_rejected():
    doc = _doc("I \U0001F600 you")
    for rng in (TextRange(3, 4), TextRange(5, 2), TextRange(0, 99), TextRange(-1, 1)):
        res = apply_ops(_batch(doc, Replace("p1", rng, "x")), doc)
        assert res.code == "INVALID_RANGE", rng


def test_simulate_apply_equivalence_on_mixed_batch():
    doc = _doc("A.", "B.", "C.")
    batch = _batch(doc, Replace("p1", TextRange(0, 1), "Z"), DeleteBlock("p3"), Annotate("p2", "n"))
    sim = simulate_ops(batch, doc)
    res = apply_ops(batch, doc)
    assert sim.new_version == res.new_version
    assert {d.block_id for d in sim.diff} == set(res.changed_blocks)
    assert sim.to_dict()["ok"] and res.to_dict()["changedBlocks"] == ["p1", "p3", "p2"]
