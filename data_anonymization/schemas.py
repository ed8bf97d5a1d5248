"""
Pydantic Schemas for the Anonymization API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .models import (
    AnonymizationLogEntry,
    AnonymizationResult,
    AnonymizationStats,
    AnonymizedDataSet,
)


# =============================================================
# REQUEST SCHEMAS
# =============================================================

class AnonymizationRequestCreate(BaseModel):
    """
    Schema for requesting anonymization of the caller's data.

    Values are checked by the service so that bad data types and
    blank purposes answer 400, not 422.
    """
    data_types: List[str]
    purpose: str
    # Free text: unknown methods fall back to basic
    method: Optional[str] = None


# =============================================================
# RESPONSE SCHEMAS
# =============================================================

class AnonymizedDataSetResponse(BaseModel):
    data_type: str
    records: List[Dict[str, Any]]
    original_data_hash: str
    method: str
    quality_score: float

    @classmethod
    def from_data_set(cls, data_set: AnonymizedDataSet) -> "AnonymizedDataSetResponse":
        return cls(**data_set.to_dict())


class LogEntryResponse(BaseModel):
    id: str
    subject_id: str
    pseudonymous_subject_id: str
    data_types: List[str]
    method: str
    purpose: str
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: AnonymizationLogEntry) -> "LogEntryResponse":
        return cls(
            id=entry.id,
            subject_id=entry.subject_id,
            pseudonymous_subject_id=entry.pseudonymous_subject_id,
            data_types=[dt.value for dt in entry.data_types],
            method=entry.method.value,
            purpose=entry.purpose,
            created_at=entry.created_at,
        )


class AnonymizationResponse(BaseModel):
    pseudonymous_subject_id: str
    data_count: int
    average_quality: Optional[float] = None
    data_sets: List[AnonymizedDataSetResponse] = Field(default_factory=list)
    log: LogEntryResponse

    @classmethod
    def from_result(cls, result: AnonymizationResult) -> "AnonymizationResponse":
        return cls(
            pseudonymous_subject_id=result.pseudonymous_subject_id,
            data_count=len(result.data_sets),
            average_quality=result.average_quality,
            data_sets=[AnonymizedDataSetResponse.from_data_set(ds) for ds in result.data_sets],
            log=LogEntryResponse.from_entry(result.log_entry),
        )


class LogListResponse(BaseModel):
    logs: List[LogEntryResponse]


class StatsResponse(BaseModel):
    total_anonymizations: int
    data_type_stats: Dict[str, int]
    purpose_stats: Dict[str, int]
    quality_stats: Dict[str, Any]

    @classmethod
    def from_stats(cls, stats: AnonymizationStats) -> "StatsResponse":
        return cls(**stats.to_dict())


class MethodInfo(BaseModel):
    name: str
    display_name: str
    description: str
    parameters: Dict[str, Any]
    pros: List[str]
    cons: List[str]


class MethodListResponse(BaseModel):
    methods: List[MethodInfo]


class QualityReportResponse(BaseModel):
    pseudonymous_subject_id: str
    quality_metrics: Dict[str, Any]
    recommendations: List[Dict[str, str]]
    evaluated_at: datetime
