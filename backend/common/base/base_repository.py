"""
Base Repository Class.
Provides abstract interface for data access.
"""
from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional, Any
from backend.services.firebase.firebase_client import initialize_firebase
from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

class BaseRepository(ABC, Generic[T]):
    """
    Abstract base class for all repositories.
    """

    @abstractmethod
    def find_by_id(self, id: str) -> Optional[T]:
        pass

    @abstractmethod
    def save(self, entity: T) -> T:
        pass


class FirestoreRepository(BaseRepository[T]):
    """
    Repository bound to a single top-level Firestore collection.

    A client can be injected (tests, scripts); otherwise the shared
    Firebase Admin client is resolved lazily on first use.
    """

    collection_name: str = ''

    def __init__(self, db: Any = None):
        self._client = db

    def _db(self) -> Any:
        if self._client is None:
            self._client = initialize_firebase()
        return self._client

    def _collection(self):
        return self._db().collection(self.collection_name)

    def batch(self):
        """Open a write batch on the same client, for multi-document atomic writes."""
        return self._db().batch()
