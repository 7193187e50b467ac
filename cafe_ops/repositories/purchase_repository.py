"""Purchase repository - typed reads over the ``purchases`` collection.

Every lookup re-reads the collection snapshot and filters in memory.
"""

from typing import List, Optional

from cafe_ops.exceptions import PurchaseNotFoundError
from cafe_ops.models.purchase import PurchaseRecord, PurchaseStatus
from cafe_ops.repositories.document_store import PURCHASES, DocumentStore, TxOp, get_document_store


class PurchaseRepository:
    """Lookup by id, QR token and guest."""

    def __init__(self, store: Optional[DocumentStore] = None):
        self._store = store if store is not None else get_document_store()

    @property
    def store(self) -> DocumentStore:
        return self._store

    def _all(self) -> List[PurchaseRecord]:
        return [PurchaseRecord.from_document(doc) for doc in self._store.query(PURCHASES)]

    def find_by_id(self, purchase_id: str) -> Optional[PurchaseRecord]:
        document = self._store.get(PURCHASES, purchase_id)
        return PurchaseRecord.from_document(document) if document is not None else None

    def get_by_id(self, purchase_id: str) -> PurchaseRecord:
        """Get purchase by id.

        Raises:
            PurchaseNotFoundError: If the id is unknown
        """
        purchase = self.find_by_id(purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(purchase_id, f"Purchase not found: {purchase_id}")
        return purchase

    def find_by_qr_code(self, qr_code: str) -> Optional[PurchaseRecord]:
        """Exact match on the QR token; no partial matching."""
        if not qr_code:
            return None
        for document in self._store.query(PURCHASES):
            if document.get("qrCode") == qr_code:
                return PurchaseRecord.from_document(document)
        return None

    def get_by_guest(self, guest_id: str) -> List[PurchaseRecord]:
        """Guest's purchases, newest first."""
        purchases = [p for p in self._all() if p.guest_id == guest_id]
        return sorted(purchases, key=lambda p: p.created_at, reverse=True)

    def find_paid_for_service(
            self, guest_id: str, service_id: str, now_millis: int
    ) -> Optional[PurchaseRecord]:
        """Guest's paid purchase of ``service_id`` that has not lapsed at ``now_millis``."""
        for purchase in self._all():
            if (
                purchase.guest_id == guest_id
                and purchase.service_id == service_id
                and purchase.effective_status(now_millis) == PurchaseStatus.PAID
            ):
                return purchase
        return None

    def get_all(self) -> List[PurchaseRecord]:
        return sorted(self._all(), key=lambda p: p.created_at, reverse=True)

    def qr_code_exists(self, qr_code: str) -> bool:
        return self.find_by_qr_code(qr_code) is not None

    @staticmethod
    def create_op(purchase: PurchaseRecord) -> TxOp:
        return TxOp(collection=PURCHASES, id=purchase.id, fields=purchase.to_document())

    @staticmethod
    def update_op(purchase_id: str, expect: Optional[dict] = None, **fields) -> TxOp:
        return TxOp(collection=PURCHASES, id=purchase_id, fields=fields, expect=expect)
