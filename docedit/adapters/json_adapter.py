from __future__ import annotations
from typing import Any
import json

from docedit.ir import Document, DocumentValidationError
from docedit.editops import DocEditBatch, BatchFormatError, batch_from_dict


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_document_json(path: str) -> Document:
    try:
        data = _read_json(path)
    except json.JSONDecodeError as e:
        raise DocumentValidationError(f"{path}: invalid JSON ({e})") from e
    return Document.from_dict(data)


def write_document_json(path: str, doc: Document) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(doc.to_dict(), f, ensure_ascii=False, indent=2)


def load_batch_json(path: str) -> DocEditBatch:
    try:
        data = _read_json(path)
    except json.JSONDecodeError as e:
        raise BatchFormatError(f"{path}: invalid JSON ({e})") from e
    return batch_from_dict(data)
