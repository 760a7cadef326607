"""
In-memory document store

Keeps documents in process memory behind one asyncio lock. Used by tests
and local development; nothing is persisted across restarts.
"""

import asyncio
import copy
import logging
from typing import Dict, Optional

from mindwell.store.base import Document, DocumentStore, DocumentUpdate, apply_update_to_document

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """In-memory store for user documents"""

    def __init__(self, documents: Optional[Dict[str, Document]] = None):
        super().__init__()
        self._documents: Dict[str, Document] = copy.deepcopy(documents) if documents else {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: str) -> Optional[Document]:
        document = self._documents.get(user_id)
        return copy.deepcopy(document) if document is not None else None

    async def set(self, user_id: str, document: Document) -> None:
        async with self._lock:
            self._documents[user_id] = copy.deepcopy(document)
            snapshot = self._documents[user_id]
        logger.debug(f"Set document for user {user_id}")
        await self._notify(user_id, snapshot)

    async def update(self, user_id: str, fields: Document) -> None:
        await self.apply_update(user_id, DocumentUpdate(set_fields=fields))

    async def increment_field(self, user_id: str, field: str, delta: float) -> None:
        await self.apply_update(user_id, DocumentUpdate(increments={field: delta}))

    async def apply_update(self, user_id: str, update: DocumentUpdate) -> Document:
        async with self._lock:
            document = apply_update_to_document(self._documents.get(user_id), update)
            self._documents[user_id] = document
            snapshot = copy.deepcopy(document)
        logger.debug(
            f"Applied update for user {user_id}: "
            f"{len(update.set_fields)} fields, {len(update.increments)} increments, "
            f"{len(update.unlocks)} guarded unlocks"
        )
        await self._notify(user_id, snapshot)
        return snapshot
