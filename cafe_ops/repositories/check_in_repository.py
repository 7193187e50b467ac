"""Check-in repository - typed reads over the ``checkIns`` collection."""

from typing import List, Optional

from cafe_ops.exceptions import CheckInNotFoundError
from cafe_ops.models.check_in import CheckInRecord
from cafe_ops.repositories.document_store import CHECK_INS, DocumentStore, TxOp, get_document_store


class CheckInRepository:
    """Lookup of check-in sessions."""

    def __init__(self, store: Optional[DocumentStore] = None):
        self._store = store if store is not None else get_document_store()

    @property
    def store(self) -> DocumentStore:
        return self._store

    def _all(self) -> List[CheckInRecord]:
        return [CheckInRecord.from_document(doc) for doc in self._store.query(CHECK_INS)]

    def find_by_id(self, check_in_id: str) -> Optional[CheckInRecord]:
        document = self._store.get(CHECK_INS, check_in_id)
        return CheckInRecord.from_document(document) if document is not None else None

    def get_by_id(self, check_in_id: str) -> CheckInRecord:
        """Get check-in by id.

        Raises:
            CheckInNotFoundError: If the id is unknown
        """
        check_in = self.find_by_id(check_in_id)
        if check_in is None:
            raise CheckInNotFoundError(check_in_id)
        return check_in

    def get_active(self) -> List[CheckInRecord]:
        """Open sessions, most recent first."""
        active = [c for c in self._all() if c.is_active]
        return sorted(active, key=lambda c: c.check_in_time, reverse=True)

    def get_recent_closed(self, limit: int = 20) -> List[CheckInRecord]:
        closed = [c for c in self._all() if not c.is_active]
        return sorted(closed, key=lambda c: c.check_in_time, reverse=True)[:limit]

    def find_active_for_purchase(self, purchase_id: str) -> Optional[CheckInRecord]:
        for check_in in self._all():
            if check_in.purchase_id == purchase_id and check_in.is_active:
                return check_in
        return None

    def get_all(self) -> List[CheckInRecord]:
        return sorted(self._all(), key=lambda c: c.check_in_time, reverse=True)

    @staticmethod
    def create_op(check_in: CheckInRecord) -> TxOp:
        return TxOp(collection=CHECK_INS, id=check_in.id, fields=check_in.to_document())

    @staticmethod
    def update_op(check_in_id: str, expect: Optional[dict] = None, **fields) -> TxOp:
        return TxOp(collection=CHECK_INS, id=check_in_id, fields=fields, expect=expect)
