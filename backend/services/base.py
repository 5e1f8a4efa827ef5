import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exceptions.exceptions import ConflictException
from services.storage_service import ContentStore, get_content_store

logger = logging.getLogger(__name__)


class BaseService:
    def __init__(self, db: Session, store: Optional[ContentStore] = None):
        self.db = db
        self.store = store or get_content_store()

    def _commit(self, conflict_message: str) -> None:
        """
        Commit the current unit of work.

        Unique index violations (a concurrent request won the race past our
        own existence checks) roll back and surface as a ConflictException.
        Anything else rolls back and propagates.
        """
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning("Integrity error on commit: %s", conflict_message)
            raise ConflictException(conflict_message)
        except Exception:
            self.db.rollback()
            raise

    def _delete_blob(self, storage_key: str):
        """Best-effort content removal; records are already gone at this point"""
        try:
            if not self.store.delete(storage_key):
                logger.warning("Content for %s was already missing from storage", storage_key)
        except Exception:
            logger.exception("Failed to delete content %s from storage", storage_key)
