"""
Record and Log Stores.

============================================================
PURPOSE
============================================================
Collaborator contracts consumed by the anonymization engine.

- RecordStore: read-only source of original records.
  Returns [] (never raises) for a subject/type with no data.
- LogStore: append-only audit log. Assigns id and created_at.
  No update or delete operation exists.

Implementations:
- InMemoryRecordStore / InMemoryLogStore: for tests and tools
- SqlAlchemyLogStore: durable log backed by the database package

============================================================
"""

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from database.engine import transaction_scope
from database.models import AnonymizationLogRow

from .models import (
    AnonymizationLogEntry,
    DataType,
    LogEntryDraft,
    PrivacyMethod,
    Record,
)


logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_log_id() -> str:
    return f"anonlog_{uuid.uuid4().hex}"


# ============================================================
# CONTRACTS
# ============================================================

class RecordStore(ABC):
    """Read-only access to a subject's original health records."""

    @abstractmethod
    def fetch_original_records(self, subject_id: str, data_type: DataType) -> List[Record]:
        """Return the subject's records of one type, [] if there are none."""


class LogStore(ABC):
    """Append-only anonymization audit log."""

    @abstractmethod
    def append(self, draft: LogEntryDraft) -> AnonymizationLogEntry:
        """Persist one entry atomically and return it with id and created_at."""

    @abstractmethod
    def query(
        self,
        subject_id: Optional[str] = None,
        purpose: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AnonymizationLogEntry]:
        """Entries matching the filter, newest first. limit=None returns all."""


# ============================================================
# IN-MEMORY IMPLEMENTATIONS
# ============================================================

class InMemoryRecordStore(RecordStore):
    """Record store over a nested dict: subject_id -> data type -> records."""

    def __init__(self, records: Optional[Dict[str, Dict[DataType, List[Record]]]] = None):
        self._records: Dict[str, Dict[DataType, List[Record]]] = {}
        for subject_id, by_type in (records or {}).items():
            for data_type, items in by_type.items():
                self.add(subject_id, data_type, items)

    def add(self, subject_id: str, data_type: DataType, records: Iterable[Record]) -> None:
        bucket = self._records.setdefault(subject_id, {}).setdefault(DataType(data_type), [])
        bucket.extend(dict(r) for r in records)

    def fetch_original_records(self, subject_id, data_type):
        records = self._records.get(subject_id, {}).get(DataType(data_type), [])
        # Callers must not be able to alter the stored originals
        return copy.deepcopy(records)


class InMemoryLogStore(LogStore):
    """Thread-safe, process-local append-only log."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utc_now
        self._entries: List[AnonymizationLogEntry] = []
        self._lock = threading.Lock()

    def append(self, draft):
        with self._lock:
            entry = AnonymizationLogEntry(
                id=generate_log_id(),
                subject_id=draft.subject_id,
                pseudonymous_subject_id=draft.pseudonymous_subject_id,
                data_types=tuple(draft.data_types),
                method=draft.method,
                purpose=draft.purpose,
                created_at=self._clock(),
            )
            self._entries.append(entry)
        return entry

    def query(self, subject_id=None, purpose=None, limit=None):
        with self._lock:
            entries = list(self._entries)

        if subject_id:
            entries = [e for e in entries if e.subject_id == subject_id]
        if purpose:
            entries = [e for e in entries if e.purpose == purpose]

        # Stable sort keeps later appends first among equal timestamps
        entries = sorted(reversed(entries), key=lambda e: e.created_at, reverse=True)
        return entries if limit is None else entries[:limit]

    def __len__(self) -> int:
        return len(self._entries)


# ============================================================
# SQLALCHEMY IMPLEMENTATION
# ============================================================

class SqlAlchemyLogStore(LogStore):
    """Log store persisted in the data_anonymization_logs table."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        clock: Optional[Clock] = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or utc_now

    def append(self, draft):
        row = AnonymizationLogRow(
            id=generate_log_id(),
            user_id=draft.subject_id,
            anonymized_user_id=draft.pseudonymous_subject_id,
            data_types=[dt.value for dt in draft.data_types],
            anonymization_method=draft.method.value,
            purpose=draft.purpose,
            created_at=self._clock(),
        )
        with transaction_scope(self._session_factory) as session:
            session.add(row)
            entry = _row_to_entry(row)

        logger.debug(f"Persisted anonymization log {entry.id}")
        return entry

    def query(self, subject_id=None, purpose=None, limit=None):
        stmt = select(AnonymizationLogRow)
        if subject_id:
            stmt = stmt.where(AnonymizationLogRow.user_id == subject_id)
        if purpose:
            stmt = stmt.where(AnonymizationLogRow.purpose == purpose)
        stmt = stmt.order_by(AnonymizationLogRow.created_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)

        with transaction_scope(self._session_factory) as session:
            rows = session.execute(stmt).scalars().all()
            return [_row_to_entry(row) for row in rows]


def _row_to_entry(row: AnonymizationLogRow) -> AnonymizationLogEntry:
    created_at = row.created_at
    if created_at.tzinfo is None:
        # SQLite drops tzinfo; values are always written in UTC
        created_at = created_at.replace(tzinfo=timezone.utc)

    return AnonymizationLogEntry(
        id=row.id,
        subject_id=row.user_id,
        pseudonymous_subject_id=row.anonymized_user_id,
        data_types=_parse_data_types(row.data_types),
        method=PrivacyMethod(row.anonymization_method),
        purpose=row.purpose,
        created_at=created_at,
    )


def _parse_data_types(values: List[str]) -> Tuple[DataType, ...]:
    return tuple(DataType(v) for v in values)
