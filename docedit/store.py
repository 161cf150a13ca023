from __future__ import annotations
from typing import Dict, Optional, Sequence
import logging
import time

from docedit.ir import Block, Document, validate_document

logger = logging.getLogger(__name__)


class DocumentNotFoundError(KeyError):
    pass


class BlockNotFoundError(KeyError):
    pass


class DocumentStore:
    """Interface to whatever persists documents. The core never writes on its own."""

    def load_document(self, doc_id: str) -> Optional[Document]:
        raise NotImplementedError

    def update_document(self, doc_id: str, blocks: Sequence[Block]) -> Document:
        raise NotImplementedError


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, docs: Sequence[Document] = ()):
        self._docs: Dict[str, Document] = {}
        for d in docs:
            self.put(d)

    def put(self, doc: Document) -> None:
        validate_document(doc)
        self._docs[doc.id] = doc

    def load_document(self, doc_id: str) -> Optional[Document]:
        return self._docs.get(doc_id)

    def update_document(self, doc_id: str, blocks: Sequence[Block]) -> Document:
        current = self._docs.get(doc_id)
        if current is None:
            raise DocumentNotFoundError(doc_id)
        doc = Document.create(current.id, current.title, blocks, last_modified=time.time())
        validate_document(doc)
        self._docs[doc_id] = doc
        logger.debug("Stored %s at version %s", doc_id, doc.base_version[:12])
        return doc
