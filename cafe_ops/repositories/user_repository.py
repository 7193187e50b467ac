"""User repository - read-only lookups over the ``users`` collection."""

from typing import List, Optional

from cafe_ops.models.user import UserRecord, UserRole
from cafe_ops.repositories.document_store import USERS, DocumentStore, TxOp, get_document_store


class UserRepository:
    def __init__(self, store: Optional[DocumentStore] = None):
        self._store = store if store is not None else get_document_store()

    def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        if not user_id:
            return None
        document = self._store.get(USERS, user_id)
        return UserRecord.from_document(document) if document is not None else None

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        wanted = email.strip().lower()
        for document in self._store.query(USERS):
            if str(document.get("email", "")).lower() == wanted:
                return UserRecord.from_document(document)
        return None

    def get_guests(self) -> List[UserRecord]:
        return [
            UserRecord.from_document(doc)
            for doc in self._store.query(USERS)
            if doc.get("role") == UserRole.GUEST.value
        ]

    def get_all(self) -> List[UserRecord]:
        return [UserRecord.from_document(doc) for doc in self._store.query(USERS)]

    def add(self, user: UserRecord) -> None:
        """Store a new user.

        Raises:
            ValueError: If the id or email is already taken
        """
        if self.find_by_id(user.id) is not None:
            raise ValueError(f"User with id '{user.id}' already exists")
        if self.find_by_email(user.email) is not None:
            raise ValueError(f"User with email '{user.email}' already exists")
        self._store.transact([TxOp(collection=USERS, id=user.id, fields=user.to_document())])
