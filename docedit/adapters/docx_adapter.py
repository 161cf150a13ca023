from __future__ import annotations
from typing import List, Optional
import re
from pathlib import Path
from docx import Document as DocxDocument
from docedit.ir import Block, Document

_HEADING_STYLE = re.compile(r"^heading\s*(\d)?$", re.IGNORECASE)


def _heading_level(style_name: str) -> Optional[int]:
    m = _HEADING_STYLE.match(style_name.strip())
    if not m:
        return None
    return min(int(m.group(1) or 1), 6) or 1


def extract_document(docx_path: str, doc_id: Optional[str] = None) -> Document:
    """
    Build a Document snapshot from a .docx file.

    Empty paragraphs are skipped. Block ids come from the paragraph's
    position in the file, so re-extracting the same file yields the same ids.
    """
    src = DocxDocument(docx_path)
    title = ""
    blocks: List[Block] = []
    for idx, p in enumerate(src.paragraphs):
        txt = p.text
        style = p.style.name if p.style is not None else ""
        if not txt.strip():
            continue
        if style == "Title" and not title:
            title = txt.strip()
            continue
        level = _heading_level(style)
        if level is not None:
            blocks.append(Block.create(f"h_{idx}", txt, kind="heading", level=level))
        else:
            blocks.append(Block.create(f"p_{idx}", txt))

    if not title and blocks:
        title = blocks[0].text.strip()
    return Document.create(doc_id or Path(docx_path).stem, title, blocks)


def emit_docx(doc: Document, out_docx: str) -> None:
    out = DocxDocument()
    if doc.title:
        out.add_heading(doc.title, level=0)
    for block in doc.blocks:
        if block.kind == "heading":
            out.add_heading(block.text, level=block.level or 1)
        else:
            out.add_paragraph(block.text)
    out.save(out_docx)
