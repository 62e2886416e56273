"""
KYC Repository — Persistence of KYC records and the PAN fingerprint index.

Both implementations keep a record and its fingerprint in step: creation,
PAN replacement and deletion each succeed or fail as one unit.
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from kyc_app.exceptions import ConflictError, PersistenceError
from kyc_app.models.kyc import KYCRecord, PanFingerprint

logger = logging.getLogger(__name__)


class KYCRepository(ABC):
    """Storage interface the KYC service is written against."""

    @abstractmethod
    def add(self, record: KYCRecord, fingerprint: str) -> None:
        """Store a new record and register its fingerprint.

        Raises ConflictError if the fingerprint is already indexed.
        """

    @abstractmethod
    def get(self, kyc_id: str) -> Optional[KYCRecord]:
        ...

    @abstractmethod
    def for_customer(self, customer_id: str) -> List[KYCRecord]:
        ...

    @abstractmethod
    def list(self, limit: int = 50, offset: int = 0, status: Optional[str] = None) -> List[KYCRecord]:
        ...

    @abstractmethod
    def count(self, status: Optional[str] = None) -> int:
        ...

    @abstractmethod
    def update(
        self,
        record: KYCRecord,
        changes: Dict,
        new_fingerprint: Optional[str] = None,
        release_old: bool = True,
    ) -> None:
        """Apply attribute changes, optionally moving the record to a new fingerprint.

        When ``new_fingerprint`` is given the old fingerprint is released (or
        kept reserved) and the new one registered; ConflictError leaves the
        record untouched.
        """

    @abstractmethod
    def delete(self, record: KYCRecord, release_fingerprint: bool = True) -> None:
        ...

    @abstractmethod
    def fingerprint_exists(self, fingerprint: str) -> bool:
        ...

    @abstractmethod
    def fingerprint_for(self, kyc_id: str) -> Optional[str]:
        ...

    @abstractmethod
    def fingerprint_count(self) -> int:
        ...


class InMemoryKYCRepository(KYCRepository):
    """Two dicts behind one lock. Used for tests and STORAGE_BACKEND=memory."""

    def __init__(self):
        self._records: Dict[str, KYCRecord] = {}
        self._fingerprints: Dict[str, Optional[str]] = {}   # fingerprint -> kyc_id (None = reserved)
        self._lock = threading.Lock()

    def add(self, record, fingerprint):
        with self._lock:
            if fingerprint in self._fingerprints:
                raise ConflictError()
            self._records[record.id] = record
            self._fingerprints[fingerprint] = record.id

    # Reads copy under the lock, then filter and sort outside it

    def get(self, kyc_id):
        with self._lock:
            return self._records.get(kyc_id)

    def _snapshot(self):
        with self._lock:
            return list(self._records.values())

    def for_customer(self, customer_id):
        return sorted(
            (r for r in self._snapshot() if r.customer_id == customer_id),
            key=lambda r: r.created_at,
            reverse=True,
        )

    def _filtered(self, status):
        records = self._snapshot()
        if status:
            records = [r for r in records if r.verification_status == status]
        return records

    def list(self, limit=50, offset=0, status=None):
        records = sorted(self._filtered(status), key=lambda r: r.created_at, reverse=True)
        return records[offset:offset + limit]

    def count(self, status=None):
        return len(self._filtered(status))

    def update(self, record, changes, new_fingerprint=None, release_old=True):
        with self._lock:
            if new_fingerprint is not None:
                if self._fingerprints.get(new_fingerprint, record.id) != record.id:
                    raise ConflictError()
                self._unlink(record.id, release_old)
                self._fingerprints[new_fingerprint] = record.id
            for attr, value in changes.items():
                setattr(record, attr, value)
            self._records[record.id] = record

    def delete(self, record, release_fingerprint=True):
        with self._lock:
            self._records.pop(record.id, None)
            self._unlink(record.id, release_fingerprint)

    def _unlink(self, kyc_id, release):
        for fingerprint, owner in list(self._fingerprints.items()):
            if owner != kyc_id:
                continue
            if release:
                del self._fingerprints[fingerprint]
            else:
                self._fingerprints[fingerprint] = None

    def fingerprint_exists(self, fingerprint):
        with self._lock:
            return fingerprint in self._fingerprints

    def fingerprint_for(self, kyc_id):
        with self._lock:
            entries = list(self._fingerprints.items())
        for fingerprint, owner in entries:
            if owner == kyc_id:
                return fingerprint
        return None

    def fingerprint_count(self):
        with self._lock:
            return len(self._fingerprints)


class SQLKYCRepository(KYCRepository):
    """
    SQLAlchemy-backed store. Duplicate detection rests on the primary key of
    ``pan_fingerprints``, so two racing inserts of the same PAN cannot both commit.
    """

    def __init__(self, db: Session):
        self.db = db

    def add(self, record, fingerprint):
        try:
            self.db.add(record)
            self.db.flush()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to insert KYC record %s: %s", record.id, exc)
            raise PersistenceError("Could not store KYC record") from exc

        self._register(fingerprint, record.id)
        self._commit()

    def _register(self, fingerprint, kyc_id):
        try:
            self.db.add(PanFingerprint(fingerprint=fingerprint, kyc_id=kyc_id))
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            logger.info("Fingerprint %s… already indexed, rolled back", fingerprint[:12])
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError("Could not register PAN fingerprint") from exc

    def _commit(self):
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError("Could not commit KYC transaction") from exc

    def _unlink(self, kyc_id, release):
        query = self.db.query(PanFingerprint).filter(PanFingerprint.kyc_id == kyc_id)
        if release:
            query.delete(synchronize_session="fetch")
        else:
            query.update({PanFingerprint.kyc_id: None}, synchronize_session="fetch")

    def get(self, kyc_id):
        return self.db.query(KYCRecord).filter(KYCRecord.id == kyc_id).first()

    def for_customer(self, customer_id):
        return (
            self.db.query(KYCRecord)
            .filter(KYCRecord.customer_id == customer_id)
            .order_by(KYCRecord.created_at.desc())
            .all()
        )

    def _query(self, status):
        query = self.db.query(KYCRecord)
        if status:
            query = query.filter(KYCRecord.verification_status == status)
        return query

    def list(self, limit=50, offset=0, status=None):
        return self._query(status).order_by(KYCRecord.created_at.desc()).offset(offset).limit(limit).all()

    def count(self, status=None):
        query = self.db.query(func.count(KYCRecord.id))
        if status:
            query = query.filter(KYCRecord.verification_status == status)
        return query.scalar() or 0

    def update(self, record, changes, new_fingerprint=None, release_old=True):
        try:
            if new_fingerprint is not None:
                self._unlink(record.id, release_old)
            for attr, value in changes.items():
                setattr(record, attr, value)
            self.db.add(record)
            self.db.flush()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError("Could not update KYC record") from exc

        if new_fingerprint is not None:
            self._register(new_fingerprint, record.id)
        self._commit()

    def delete(self, record, release_fingerprint=True):
        try:
            self._unlink(record.id, release_fingerprint)
            self.db.delete(record)
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError("Could not delete KYC record") from exc
        self._commit()

    def fingerprint_exists(self, fingerprint):
        return self.db.get(PanFingerprint, fingerprint) is not None

    def fingerprint_for(self, kyc_id):
        row = self.db.query(PanFingerprint).filter(PanFingerprint.kyc_id == kyc_id).first()
        return row.fingerprint if row else None

    def fingerprint_count(self):
        return self.db.query(func.count(PanFingerprint.fingerprint)).scalar() or 0
