"""
Anonymization Service.

============================================================
PURPOSE
============================================================
Main orchestrator for one anonymization request.

Flow per request:
1. Validate request (data types, purpose)
2. Pseudonymize the subject id
3. For each data type: fetch originals -> pipeline -> score
   (types with no originals are omitted from the result)
4. Append exactly one audit log entry
5. Return the assembled result

CRITICAL:
- The log entry is written only after every data type has
  been processed, and only if processing succeeded
- Store failures propagate; there are no retries here
- The engine keeps no state between requests

============================================================
"""

import hashlib
import json
import logging
import random
from typing import Iterable, List, Optional, Union

from .config import AnonymizationConfig
from .exceptions import (
    InvalidAnonymizationRequest,
    LogStoreError,
    RecordStoreError,
)
from .models import (
    AnonymizationResult,
    AnonymizedDataSet,
    DataType,
    LogEntryDraft,
    PrivacyMethod,
    Record,
)
from .pipeline import PrivacyPipeline, create_pipeline, resolve_method
from .pseudonymizer import Pseudonymizer
from .scoring import UtilityScorer
from .stores import LogStore, RecordStore


logger = logging.getLogger(__name__)


def hash_records(records: List[Record]) -> str:
    """SHA-256 of the JSON-serialized record set; a traceability token only."""
    payload = json.dumps(records, separators=(",", ":"), ensure_ascii=False, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def parse_data_types(data_types: Iterable[Union[DataType, str]]) -> List[DataType]:
    """Validate data type names, dropping duplicates while keeping order."""
    parsed: List[DataType] = []
    invalid: List[str] = []

    for item in data_types:
        try:
            data_type = DataType(item)
        except ValueError:
            invalid.append(str(item))
            continue
        if data_type not in parsed:
            parsed.append(data_type)

    if invalid:
        raise InvalidAnonymizationRequest(
            f"Invalid data types: {', '.join(invalid)}",
            field="data_types",
            context={"invalid": invalid},
        )
    if not parsed:
        raise InvalidAnonymizationRequest("At least one data type is required", field="data_types")
    return parsed


class AnonymizationService:
    """Anonymizes a subject's health records under a privacy method."""

    def __init__(
        self,
        record_store: RecordStore,
        log_store: LogStore,
        pseudonymizer: Pseudonymizer,
        pipeline: Optional[PrivacyPipeline] = None,
        scorer: Optional[UtilityScorer] = None,
        default_method: PrivacyMethod = PrivacyMethod.K_ANONYMITY,
    ):
        self._record_store = record_store
        self._log_store = log_store
        self._pseudonymizer = pseudonymizer
        self._pipeline = pipeline or PrivacyPipeline()
        self._scorer = scorer or UtilityScorer()
        self._default_method = default_method

    @property
    def pseudonymizer(self) -> Pseudonymizer:
        return self._pseudonymizer

    @property
    def pipeline(self) -> PrivacyPipeline:
        return self._pipeline

    def anonymize(
        self,
        subject_id: str,
        data_types: Iterable[Union[DataType, str]],
        purpose: str,
        method: Union[PrivacyMethod, str, None] = None,
    ) -> AnonymizationResult:
        """
        Anonymize the subject's records for the requested data types.

        Raises:
            InvalidAnonymizationRequest: bad data types or empty purpose
            RecordStoreError: fetching originals failed
            LogStoreError: the audit log entry could not be written
        """
        if not subject_id:
            raise InvalidAnonymizationRequest("Subject id is required", field="subject_id")
        if not purpose or not purpose.strip():
            raise InvalidAnonymizationRequest("Purpose is required", field="purpose")
        requested_types = parse_data_types(data_types)
        effective_method = resolve_method(method if method is not None else self._default_method)

        if self._pseudonymizer.uses_default_salt:
            logger.warning("Serving anonymization request with the DEFAULT pseudonymization salt")

        pseudonym = self._pseudonymizer.pseudonymize(subject_id)
        result = AnonymizationResult(pseudonymous_subject_id=pseudonym)

        for data_type in requested_types:
            data_set = self._anonymize_data_type(subject_id, data_type, effective_method)
            if data_set is not None:
                result.data_sets.append(data_set)

        draft = LogEntryDraft(
            subject_id=subject_id,
            pseudonymous_subject_id=pseudonym,
            data_types=tuple(requested_types),
            method=effective_method,
            purpose=purpose,
        )
        try:
            result.log_entry = self._log_store.append(draft)
        except Exception as e:
            logger.error(f"Failed to write anonymization log for {pseudonym}: {e}")
            raise LogStoreError("Failed to append anonymization log entry", operation="append", cause=e) from e

        logger.info(
            f"Anonymized {pseudonym}: method={effective_method.value} "
            f"types={[ds.data_type.value for ds in result.data_sets]} "
            f"log={result.log_entry.id}"
        )
        return result

    def _anonymize_data_type(
        self,
        subject_id: str,
        data_type: DataType,
        method: PrivacyMethod,
    ) -> Optional[AnonymizedDataSet]:
        try:
            originals = self._record_store.fetch_original_records(subject_id, data_type)
        except Exception as e:
            logger.error(f"Failed to fetch {data_type.value} records: {e}")
            raise RecordStoreError(
                f"Failed to fetch {data_type.value} records",
                operation="fetch_original_records",
                cause=e,
                context={"data_type": data_type.value},
            ) from e

        if not originals:
            logger.debug(f"No {data_type.value} records, skipping")
            return None

        anonymized = self._pipeline.apply(method, originals, data_type)
        return AnonymizedDataSet(
            data_type=data_type,
            records=anonymized,
            original_data_hash=hash_records(originals),
            method=method,
            quality_score=self._scorer.score(originals, anonymized),
        )


def create_anonymization_service(
    record_store: RecordStore,
    log_store: LogStore,
    config: Optional[AnonymizationConfig] = None,
    rng: Optional[random.Random] = None,
) -> AnonymizationService:
    """Create an AnonymizationService wired from configuration."""
    config = config or AnonymizationConfig()
    return AnonymizationService(
        record_store=record_store,
        log_store=log_store,
        pseudonymizer=Pseudonymizer(config.salt, config.pseudonym_length),
        pipeline=create_pipeline(config, rng),
        scorer=UtilityScorer(),
        default_method=config.default_method,
    )
