import pytest
from docedit.ir import Block, Document, DocumentValidationError, StructureInventory, validate_block, validate_document
from docedit.hashing import hash_document


def test_document_create_computes_version():
    doc = Document.create("d1", "T", [Block.create("p1", "One."), Block.create("p2", "Two.")])
    assert doc.base_version == hash_document(doc.blocks)
    validate_document(doc)


def test_duplicate_ids_rejected():
    blocks = (Block.create("p1", "One."), Block.create("p1", "Two."))
    doc = Document(id="d1", title="T", blocks=blocks, base_version=hash_document(blocks))
    with pytest.raises(DocumentValidationError, match="Duplicate"):
        validate_document(doc)


def test_stale_block_hash_rejected():
    block = Block(id="p1", kind="paragraph", text="New text", hash=Block.create("p1", "Old").hash)
    with pytest.raises(DocumentValidationError, match="hash"):
        validate_block(block)


def test_bad_heading_level_rejected():
    with pytest.raises(DocumentValidationError):
        validate_block(Block.create("h1", "Title", kind="heading", level=9))


def test_stale_base_version_rejected():
    doc = Document(id="d1", title="T", blocks=(Block.create("p1", "One."),), base_version="nope")
    with pytest.raises(DocumentValidationError, match="baseVersion"):
        validate_document(doc)


def test_from_dict_fills_hashes_and_version():
    doc = Document.from_dict({
        "id": "d1", "title": "T",
        "blocks": [{"id": "h", "type": "heading", "level": 1, "text": "Ch 1"}, {"id": "p", "text": "Body."}],
    })
    assert doc.blocks[0].kind == "heading"
    assert doc.blocks[1].hash == Block.create("p", "Body.").hash
    again = Document.from_dict(doc.to_dict())
    assert again.base_version == doc.base_version


def test_from_dict_rejects_tampered_hash():
    with pytest.raises(DocumentValidationError):
        Document.from_dict({"id": "d", "blocks": [{"id": "p", "text": "Body.", "hash": "0" * 64}]})


@pytest.mark.parametrize("block", [
    {"id": "p", "text": 5},
    {"id": "p"},
    {"text": "Body."},
    {"id": "h", "type": "heading", "level": "2", "text": "Ch 2"},
    {"id": "h", "type": "heading", "level": True, "text": "Ch 2"},
    "not a block",
])
def test_from_dict_rejects_malformed_blocks(block):
    with pytest.raises(DocumentValidationError):
        Document.from_dict({"id": "d", "blocks": [block]})


def test_structure_inventory():
    inv = StructureInventory.of([Block.create("h", "Intro", kind="heading", level=1), Block.create("p", "x")])
    assert inv.headings == ["Intro"]
    assert inv.paragraph_count == 1
