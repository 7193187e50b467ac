"""Document store - in-memory realtime collections with batched transactions.

Thread-safe dictionary-based storage exposing the query / subscribe /
transact interface the engines are written against.
"""

import copy
import threading
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from cafe_ops.exceptions import StoreWriteError, WriteConflictError
from cafe_ops.logging_config import get_logger

logger = get_logger(__name__)

PURCHASES = "purchases"
CHECK_INS = "checkIns"
USERS = "users"

DEFAULT_COLLECTIONS = (PURCHASES, CHECK_INS, USERS)

Document = Dict[str, Any]
SnapshotCallback = Callable[[List[Document]], None]


class TxOp(BaseModel):
    """One operation inside a transaction.

    ``fields`` are merged into the document (created if missing); a ``None``
    value removes the field. ``expect`` lists field values that must match
    the stored document when the transaction is applied.
    """

    collection: str = Field(..., description="Target collection")
    id: str = Field(..., description="Document id")
    fields: Dict[str, Any] = Field(default_factory=dict, description="Fields to merge")
    delete: bool = Field(default=False, description="Delete the document instead of updating")
    expect: Optional[Dict[str, Any]] = Field(None, description="Compare-and-swap preconditions")


class DocumentStore:
    """In-memory document collections.

    Every transaction is all-or-nothing: preconditions are checked for
    every operation before any of them is applied. Subscribers receive a
    full snapshot of each collection a committed transaction touched.
    """

    def __init__(self, collections: Iterable[str] = DEFAULT_COLLECTIONS):
        self._collections: Dict[str, Dict[str, Document]] = {name: {} for name in collections}
        self._subscribers: Dict[str, List[SnapshotCallback]] = {name: [] for name in self._collections}
        self._lock = threading.RLock()
        self._pending_failures = 0

    def _require_collection(self, collection: str) -> Dict[str, Document]:
        try:
            return self._collections[collection]
        except KeyError:
            raise StoreWriteError(f"Unknown collection: {collection}") from None

    def query(self, collection: str) -> List[Document]:
        """Snapshot of every document in ``collection``."""
        with self._lock:
            documents = self._require_collection(collection)
            return [copy.deepcopy(doc) for doc in documents.values()]

    def get(self, collection: str, record_id: str) -> Optional[Document]:
        with self._lock:
            document = self._require_collection(collection).get(record_id)
            return copy.deepcopy(document) if document is not None else None

    def subscribe(self, collection: str, callback: SnapshotCallback) -> Callable[[], None]:
        """Register for full-snapshot updates of ``collection``.

        The callback fires once immediately and again after every committed
        transaction that touches the collection. Callbacks run while the
        store lock is held, so each subscriber sees snapshots in commit
        order; a callback must not block on another thread that writes to
        the store.

        Returns:
            A function that removes the subscription
        """
        with self._lock:
            self._require_collection(collection)
            self._subscribers[collection].append(callback)
            callback(self.query(collection))

        def unsubscribe() -> None:
            with self._lock:
                try:
                    self._subscribers[collection].remove(callback)
                except ValueError:
                    pass

        return unsubscribe

    def transact(self, ops: Iterable[TxOp]) -> None:
        """Apply ``ops`` as a single batch.

        Raises:
            WriteConflictError: If an ``expect`` precondition does not hold
            StoreWriteError: If the batch cannot be applied
        """
        ops = list(ops)
        if not ops:
            return

        with self._lock:
            if self._pending_failures > 0:
                self._pending_failures -= 1
                logger.warning("store_write_failed", reason="injected", operations=len(ops))
                raise StoreWriteError("Transaction submission failed, please retry")

            for op in ops:
                documents = self._require_collection(op.collection)
                if op.expect:
                    current = documents.get(op.id) or {}
                    for field, expected in op.expect.items():
                        actual = current.get(field)
                        if actual != expected:
                            logger.warning(
                                "store_write_conflict",
                                collection=op.collection,
                                record_id=op.id,
                                field=field,
                                expected=expected,
                                actual=actual,
                            )
                            raise WriteConflictError(op.collection, op.id, field, expected, actual)

            touched = set()
            for op in ops:
                documents = self._collections[op.collection]
                touched.add(op.collection)
                if op.delete:
                    documents.pop(op.id, None)
                    continue

                document = documents.get(op.id, {"id": op.id})
                for field, value in op.fields.items():
                    if value is None:
                        document.pop(field, None)
                    else:
                        document[field] = copy.deepcopy(value)
                documents[op.id] = document

            logger.debug("store_transaction_committed", operations=len(ops), collections=sorted(touched))

            for name in sorted(touched):
                snapshot = self.query(name)
                for callback in list(self._subscribers[name]):
                    try:
                        callback(snapshot)
                    except Exception as e:
                        # The write is already committed
                        logger.error(
                            "store_subscriber_failed",
                            collection=name,
                            error=str(e),
                            exc_info=True,
                        )

    def inject_write_failures(self, count: int = 1) -> None:
        """Make the next ``count`` transactions fail with StoreWriteError."""
        if count < 0:
            raise ValueError("count must not be negative")
        with self._lock:
            self._pending_failures = count

    def generate_id(self) -> str:
        return str(uuid.uuid4())

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._require_collection(collection))

    def clear(self) -> None:
        """Remove every document. Subscriptions stay registered."""
        with self._lock:
            for documents in self._collections.values():
                documents.clear()
            self._pending_failures = 0

    def get_statistics(self) -> Dict[str, int]:
        with self._lock:
            return {name: len(documents) for name, documents in self._collections.items()}

    def __repr__(self) -> str:
        return f"DocumentStore({self.get_statistics()})"


# Global store instance
_store_instance: Optional[DocumentStore] = None
_store_lock = threading.Lock()


def get_document_store() -> DocumentStore:
    """Get global document store instance (singleton)."""
    global _store_instance
    if _store_instance is None:
        with _store_lock:
            if _store_instance is None:
                _store_instance = DocumentStore()
    return _store_instance


def reset_document_store() -> None:
    """Clear the global document store."""
    get_document_store().clear()
