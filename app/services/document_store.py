"""
Document store abstraction over Firebase Firestore and SQLAlchemy.

Both backends expose the same small API: single-document reads and writes,
filtered collection queries, and run_transaction(fn), which hands fn a
transaction whose reads see a consistent snapshot and whose writes are
committed together or not at all. Inside a transaction all reads must happen
before the first write (a Firestore rule the SQL backend also follows).
"""

from __future__ import annotations

import copy
import logging
import uuid
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from firebase_admin import firestore
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.core.db import Base, SessionLocal, engine
from app.models import Document
from app.services.firebase_client import get_firestore_client

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (field, op, value); op is one of "==", "!=", "<", "<=", ">", ">=", "in", "array_contains"
Filter = Tuple[str, str, Any]


class Collections:
    USERS = "users"
    PAIR_MATCHES = "pairMatches"
    EVENTS = "events"
    EVENT_PARTICIPANTS = "eventParticipants"
    GROUP_CHATS = "groupChats"
    NOTIFICATIONS = "notifications"
    SCHEDULER_LEASES = "schedulerLeases"


class DocumentMissingError(Exception):
    """update() was called on a document that does not exist"""


def use_firestore() -> bool:
    return settings.USE_FIREBASE is True


class Transaction:
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError


class DocumentStore:
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    def new_id(self, collection: str) -> str:
        raise NotImplementedError

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = self.new_id(collection)
        self.set(collection, doc_id, data)
        return doc_id

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[Tuple[str, str]] = None,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, Dict[str, Any]]]:
        raise NotImplementedError

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        raise NotImplementedError


# -------- Firestore backend --------

class _FirestoreTransaction(Transaction):
    def __init__(self, client, transaction):
        self._client = client
        self._transaction = transaction

    def _ref(self, collection: str, doc_id: str):
        return self._client.collection(collection).document(doc_id)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        snap = self._ref(collection, doc_id).get(transaction=self._transaction)
        return snap.to_dict() if snap.exists else None

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self._transaction.set(self._ref(collection, doc_id), data, merge=merge)

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self._transaction.update(self._ref(collection, doc_id), fields)

    def delete(self, collection: str, doc_id: str) -> None:
        self._transaction.delete(self._ref(collection, doc_id))


class FirestoreDocumentStore(DocumentStore):
    def __init__(self, client, max_attempts: Optional[int] = None):
        self.client = client
        self.max_attempts = max_attempts or settings.STORE_TRANSACTION_RETRIES

    def _ref(self, collection: str, doc_id: str):
        return self.client.collection(collection).document(doc_id)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        snap = self._ref(collection, doc_id).get()
        return snap.to_dict() if snap.exists else None

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self._ref(collection, doc_id).set(data, merge=merge)

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self._ref(collection, doc_id).update(fields)

    def delete(self, collection: str, doc_id: str) -> None:
        self._ref(collection, doc_id).delete()

    def new_id(self, collection: str) -> str:
        return self.client.collection(collection).document().id

    def query(self, collection, filters=(), order_by=None, limit=None):
        query = self.client.collection(collection)
        for field, op, value in filters:
            query = query.where(field, op.replace("_", "-"), value)
        if order_by:
            field, direction = order_by
            query = query.order_by(
                field,
                direction=firestore.Query.DESCENDING if direction == "desc" else firestore.Query.ASCENDING,
            )
        if limit:
            query = query.limit(limit)
        return [(doc.id, doc.to_dict()) for doc in query.get()]

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        transaction = self.client.transaction(max_attempts=self.max_attempts)

        @firestore.transactional
        def _run(tx):
            return fn(_FirestoreTransaction(self.client, tx))

        return _run(transaction)


# -------- SQLAlchemy backend --------

_MISSING = object()

# Raised when another writer changed or created a row this transaction read;
# run_transaction retries on these
_CONFLICTS = (StaleDataError, IntegrityError, OperationalError)


def _matches(data: Dict[str, Any], field: str, op: str, value: Any) -> bool:
    current = data.get(field, _MISSING)
    if op == "array_contains":
        return isinstance(current, list) and value in current
    if op == "in":
        return current is not _MISSING and current in value
    if op == "==":
        return current is not _MISSING and current == value
    if op == "!=":
        return current is not _MISSING and current != value
    # Range filters exclude documents where the field is missing or null
    if current is _MISSING or current is None:
        return False
    if op == "<":
        return current < value
    if op == "<=":
        return current <= value
    if op == ">":
        return current > value
    if op == ">=":
        return current >= value
    raise ValueError(f"Unsupported query operator: {op}")


def _json_equals(field: str, value: Any):
    """SQL clause for data[field] == value, or None when the value type is not pushed down"""
    element = Document.data[field]
    if isinstance(value, bool):
        return element.as_boolean() == value
    if isinstance(value, int):
        return element.as_integer() == value
    if isinstance(value, float):
        return element.as_float() == value
    if isinstance(value, str):
        return element.as_string() == value
    return None


class _SqlTransaction(Transaction):
    """Snapshot reads and optimistic writes.

    Rows are remembered with the version they had when first read; apply()
    writes against that version, so a row another writer changed or created
    in the meantime fails the flush and run_transaction retries. Reads also
    lock rows where the dialect supports FOR UPDATE.
    """

    def __init__(self, db: Session):
        self.db = db
        self._reads: Dict[Tuple[str, str], Optional[Document]] = {}
        self._writes: List[Tuple[str, str, str, Any, bool]] = []

    def _row(self, collection: str, doc_id: str) -> Optional[Document]:
        return (
            self.db.query(Document)
            .filter(Document.collection == collection, Document.doc_id == doc_id)
            .with_for_update()
            .first()
        )

    def _snapshot(self, collection: str, doc_id: str) -> Optional[Document]:
        key = (collection, doc_id)
        if key not in self._reads:
            self._reads[key] = self._row(collection, doc_id)
        return self._reads[key]

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        row = self._snapshot(collection, doc_id)
        return copy.deepcopy(row.data) if row else None

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self._writes.append(("set", collection, doc_id, copy.deepcopy(data), merge))

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self._writes.append(("update", collection, doc_id, copy.deepcopy(fields), True))

    def delete(self, collection: str, doc_id: str) -> None:
        self._writes.append(("delete", collection, doc_id, None, False))

    def apply(self) -> None:
        for kind, collection, doc_id, data, merge in self._writes:
            row = self._snapshot(collection, doc_id)
            if kind == "delete":
                if row:
                    self.db.delete(row)
                    self._reads[(collection, doc_id)] = None
                continue
            if kind == "update" and row is None:
                raise DocumentMissingError(f"{collection}/{doc_id} does not exist")
            if row is None:
                row = Document(collection=collection, doc_id=doc_id, data=data)
                self.db.add(row)
                self._reads[(collection, doc_id)] = row
            elif merge:
                row.data = {**(row.data or {}), **data}
            else:
                row.data = data
        self._writes.clear()
        self.db.flush()


class SqlDocumentStore(DocumentStore):
    def __init__(self, session_factory: sessionmaker = SessionLocal, max_attempts: Optional[int] = None):
        self.session_factory = session_factory
        self.max_attempts = max_attempts or settings.STORE_TRANSACTION_RETRIES

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        db = self.session_factory()
        try:
            row = db.query(Document).filter(
                Document.collection == collection,
                Document.doc_id == doc_id,
            ).first()
            return copy.deepcopy(row.data) if row else None
        finally:
            db.close()

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        self.run_transaction(lambda tx: tx.set(collection, doc_id, data, merge=merge))

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self.run_transaction(lambda tx: tx.update(collection, doc_id, fields))

    def delete(self, collection: str, doc_id: str) -> None:
        self.run_transaction(lambda tx: tx.delete(collection, doc_id))

    def new_id(self, collection: str) -> str:
        return uuid.uuid4().hex[:20]

    def query(self, collection, filters=(), order_by=None, limit=None):
        db = self.session_factory()
        try:
            query = db.query(Document).filter(Document.collection == collection)
            for field, op, value in filters:
                clause = _json_equals(field, value) if op == "==" else None
                if clause is not None:
                    query = query.filter(clause)
            # Every filter is re-checked in Python; SQL only narrows the scan
            results = [
                (row.doc_id, copy.deepcopy(row.data))
                for row in query.all()
                if all(_matches(row.data or {}, field, op, value) for field, op, value in filters)
            ]
        finally:
            db.close()

        if order_by:
            field, direction = order_by
            results = [item for item in results if item[1].get(field) is not None]
            results.sort(key=lambda item: item[1][field], reverse=direction == "desc")
        if limit:
            results = results[:limit]
        return results

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        attempt = 0
        while True:
            attempt += 1
            db = self.session_factory()
            try:
                tx = _SqlTransaction(db)
                result = fn(tx)
                tx.apply()
                db.commit()
                return result
            except _CONFLICTS as e:
                db.rollback()
                if attempt >= self.max_attempts:
                    raise
                logger.warning(f"Transaction conflict (attempt {attempt}/{self.max_attempts}): {e}")
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()


@lru_cache(maxsize=1)
def get_document_store() -> DocumentStore:
    """Return the process-wide store for the configured backend"""
    if use_firestore():
        return FirestoreDocumentStore(get_firestore_client())

    Base.metadata.create_all(bind=engine)
    return SqlDocumentStore(SessionLocal)
