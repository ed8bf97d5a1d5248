"""
Anonymization Audit Reader.

Read-only queries over past anonymization requests, for
compliance review and aggregate reporting.
"""

import logging
from typing import List, Optional

from .exceptions import LogStoreError
from .models import (
    AnonymizationLogEntry,
    AnonymizationStats,
    PLACEHOLDER_AVERAGE_QUALITY,
    PLACEHOLDER_QUALITY_PERCENT,
)
from .stores import LogStore


logger = logging.getLogger(__name__)


class AuditReader:
    """Queries the anonymization log. Never writes."""

    def __init__(self, log_store: LogStore, default_limit: int = 50, max_limit: int = 200):
        self._log_store = log_store
        self._default_limit = default_limit
        self._max_limit = max_limit

    def list_logs(
        self,
        subject_id: Optional[str] = None,
        purpose: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AnonymizationLogEntry]:
        """Log entries, newest first. limit is clamped to [1, max_limit]."""
        if limit is None:
            limit = self._default_limit
        limit = max(1, min(limit, self._max_limit))

        try:
            return self._log_store.query(subject_id=subject_id, purpose=purpose, limit=limit)
        except Exception as e:
            logger.error(f"Failed to query anonymization logs: {e}")
            raise LogStoreError("Failed to query anonymization logs", operation="query", cause=e) from e

    def aggregate_stats(self) -> AnonymizationStats:
        """
        Counts per data type and per purpose across all entries.

        quality_stats is a fixed illustrative split, not computed
        from per-request scores (those are not stored).
        """
        entries = self._query()
        stats = AnonymizationStats(total_anonymizations=len(entries))

        for entry in entries:
            for data_type in entry.data_types:
                stats.data_type_stats[data_type.value] = stats.data_type_stats.get(data_type.value, 0) + 1
            stats.purpose_stats[entry.purpose] = stats.purpose_stats.get(entry.purpose, 0) + 1

        total = stats.total_anonymizations
        stats.quality_stats = {
            "average_quality": PLACEHOLDER_AVERAGE_QUALITY,
            "high_quality_count": total * PLACEHOLDER_QUALITY_PERCENT["high"] // 100,
            "medium_quality_count": total * PLACEHOLDER_QUALITY_PERCENT["medium"] // 100,
            "low_quality_count": total * PLACEHOLDER_QUALITY_PERCENT["low"] // 100,
        }
        return stats

    def find_by_pseudonym(
        self,
        subject_id: str,
        pseudonymous_subject_id: str,
    ) -> Optional[AnonymizationLogEntry]:
        """Latest entry of the subject carrying the given pseudonym, if any."""
        for entry in self._query(subject_id):
            if entry.pseudonymous_subject_id == pseudonymous_subject_id:
                return entry
        return None

    def _query(self, subject_id: Optional[str] = None) -> List[AnonymizationLogEntry]:
        try:
            return self._log_store.query(subject_id=subject_id, limit=None)
        except Exception as e:
            logger.error(f"Failed to query anonymization logs: {e}")
            raise LogStoreError("Failed to query anonymization logs", operation="query", cause=e) from e


def create_audit_reader(log_store: LogStore, config=None) -> AuditReader:
    """Create an AuditReader, taking limits from an AnonymizationConfig if given."""
    if config is None:
        return AuditReader(log_store)
    return AuditReader(log_store, config.default_log_limit, config.max_log_limit)
