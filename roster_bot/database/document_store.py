"""
Document store used by the roster upload pipeline.

The upload operations only see the DocumentStore interface:

- get(key): read the current document for a player (outside any batch)
- queue_merge(key, patch): queue a merge-write of a player document
- queue_insert(collection, payload): queue an append to a collection
- commit(): apply every queued write together, or none of them

SqlDocumentStore persists through SQLAlchemy; InMemoryDocumentStore is a pure
in-process fake with the same batch semantics.
"""

import copy
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from roster_bot.database.models import PlayerDocument, PlayerHistoryEntry
from roster_bot.utils.exceptions import StoreCommitError
from roster_bot.utils.logger import setup_logger

logger = setup_logger(__name__)

_HISTORY_COLLECTION_RE = re.compile(r'^players/(?P<player_id>[^/]+)/history$')


def history_collection(player_id: str) -> str:
    """Collection path holding the history entries of one player."""
    return f"players/{player_id}/history"


def parse_history_collection(collection: str) -> str:
    """Return the player ID addressed by a history collection path."""
    match = _HISTORY_COLLECTION_RE.match(collection)
    if not match:
        raise ValueError(f"Unsupported collection: {collection!r}")
    return match.group('player_id')


def merge_patch(existing: Optional[Dict[str, Any]], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge-write semantics: keys in the patch replace stored keys, nested
    dictionaries merge recursively, keys absent from the patch are untouched.
    """
    merged = copy.deepcopy(existing) if existing else {}
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_patch(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


@dataclass
class PendingWrite:
    kind: str  # "merge" or "insert"
    target: str
    payload: Dict[str, Any]


class DocumentStore(ABC):
    """Key-value document store with batched writes."""

    def __init__(self):
        self._pending: List[PendingWrite] = []

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Current document for a player, or None. Not part of the batch."""

    def queue_merge(self, key: str, patch: Dict[str, Any]):
        self._pending.append(PendingWrite('merge', key, copy.deepcopy(patch)))

    def queue_insert(self, collection: str, payload: Dict[str, Any]):
        self._pending.append(PendingWrite('insert', collection, copy.deepcopy(payload)))

    async def commit(self):
        """
        Apply all queued writes atomically.

        The queue is emptied whether or not the commit succeeds.

        Raises:
            StoreCommitError: if the batch was rejected; nothing was applied
        """
        pending, self._pending = self._pending, []
        if not pending:
            return
        await self._apply(pending)

    @abstractmethod
    async def _apply(self, writes: List[PendingWrite]):
        """Apply a batch of writes all-or-nothing."""

    @abstractmethod
    async def list_documents(self) -> List[Dict[str, Any]]:
        """Every stored player document."""

    @abstractmethod
    async def list_collection(self, collection: str) -> List[Dict[str, Any]]:
        """Entries of a collection, oldest first."""


class SqlDocumentStore(DocumentStore):
    """
    Document store backed by the PlayerDocument / PlayerHistoryEntry tables.

    Every store instance is scoped to one application ID and one owner (the
    guild whose roster is being tracked).
    """

    def __init__(self, database, app_id: str, owner_id: str):
        super().__init__()
        self.db = database
        self.app_id = app_id
        self.owner_id = str(owner_id)

    def _document_query(self, player_id: str):
        return select(PlayerDocument).where(
            PlayerDocument.app_id == self.app_id,
            PlayerDocument.owner_id == self.owner_id,
            PlayerDocument.player_id == player_id
        )

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        async with self.db.get_session() as session:
            result = await session.execute(self._document_query(key))
            document = result.scalar_one_or_none()
            return copy.deepcopy(document.data) if document else None

    async def _apply(self, writes: List[PendingWrite]):
        try:
            async with self.db.transaction() as session:
                for write in writes:
                    if write.kind == 'merge':
                        result = await session.execute(self._document_query(write.target))
                        document = result.scalar_one_or_none()
                        if document is None:
                            document = PlayerDocument(
                                app_id=self.app_id,
                                owner_id=self.owner_id,
                                player_id=write.target,
                                data=merge_patch(None, write.payload)
                            )
                            session.add(document)
                            # Later writes in this batch may target the same player
                            await session.flush()
                        else:
                            document.data = merge_patch(document.data, write.payload)
                    else:
                        session.add(PlayerHistoryEntry(
                            app_id=self.app_id,
                            owner_id=self.owner_id,
                            player_id=parse_history_collection(write.target),
                            data=write.payload
                        ))
        except (SQLAlchemyError, ValueError) as e:
            logger.error(f"Batch of {len(writes)} writes rejected for owner {self.owner_id}: {e}")
            raise StoreCommitError(str(e)) from e

        logger.debug(f"Committed batch of {len(writes)} writes for owner {self.owner_id}")

    async def list_documents(self) -> List[Dict[str, Any]]:
        async with self.db.get_session() as session:
            result = await session.execute(
                select(PlayerDocument).where(
                    PlayerDocument.app_id == self.app_id,
                    PlayerDocument.owner_id == self.owner_id
                ).order_by(PlayerDocument.player_id)
            )
            return [
                {**document.data, 'ID': document.data.get('ID', document.player_id)}
                for document in result.scalars().all()
            ]

    async def list_collection(self, collection: str) -> List[Dict[str, Any]]:
        player_id = parse_history_collection(collection)
        async with self.db.get_session() as session:
            result = await session.execute(
                select(PlayerHistoryEntry).where(
                    PlayerHistoryEntry.app_id == self.app_id,
                    PlayerHistoryEntry.owner_id == self.owner_id,
                    PlayerHistoryEntry.player_id == player_id
                ).order_by(PlayerHistoryEntry.id)
            )
            return [entry.data for entry in result.scalars().all()]


class InMemoryDocumentStore(DocumentStore):
    """In-process store with the same read and batch semantics as SqlDocumentStore."""

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        super().__init__()
        self.documents: Dict[str, Dict[str, Any]] = copy.deepcopy(documents or {})
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.fail_next_commit: Optional[Exception] = None
        self.reads: List[str] = []
        self.commits = 0

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        self.reads.append(key)
        document = self.documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    async def _apply(self, writes: List[PendingWrite]):
        if self.fail_next_commit is not None:
            error, self.fail_next_commit = self.fail_next_commit, None
            raise StoreCommitError(str(error)) from error

        documents = copy.deepcopy(self.documents)
        collections = copy.deepcopy(self.collections)
        for write in writes:
            if write.kind == 'merge':
                documents[write.target] = merge_patch(documents.get(write.target), write.payload)
            else:
                collections.setdefault(write.target, []).append(write.payload)

        self.documents = documents
        self.collections = collections
        self.commits += 1

    async def list_documents(self) -> List[Dict[str, Any]]:
        return [
            {**copy.deepcopy(document), 'ID': document.get('ID', key)}
            for key, document in sorted(self.documents.items())
        ]

    async def list_collection(self, collection: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.collections.get(collection, []))
