from __future__ import annotations
from typing import Iterable, Set
import hashlib
import json


def normalize_text(text: str) -> str:
    """
    Normalize text for hashing: CRLF / CR line endings become LF.
    Every other character, whitespace included, is hashed as written.
    """
    return text.replace("\r\n", "\n").replace("\r", "\n")


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_block(text: str) -> str:
    return sha256_hex(normalize_text(text))


def hash_document(blocks: Iterable) -> str:
    """
    Whole-document version digest.

    Covers block ids, order and normalized text. Kind and heading level are
    presentation and do not move the version.
    """
    payload = [[b.id, normalize_text(b.text)] for b in blocks]
    return sha256_hex(json.dumps(payload, ensure_ascii=False, separators=(",", ":")))


def generate_block_id(seed: str, existing: Set[str] | None = None) -> str:
    existing = existing or set()
    candidate = "p_" + hashlib.sha1(seed.encode("utf-8")).hexdigest()[:12]
    n = 1
    while candidate in existing:
        candidate = "p_" + hashlib.sha1(f"{seed}|{n}".encode("utf-8")).hexdigest()[:12]
        n += 1
    return candidate
