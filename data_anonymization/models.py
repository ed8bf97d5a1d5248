"""
Data Anonymization Models.

============================================================
PURPOSE
============================================================
Core data structures for the anonymization engine.

This module defines:
1. Supported health data types
2. Supported privacy methods
3. Per-data-type anonymization output
4. The request result and its audit log entry
5. Aggregate statistics over past requests
6. Placeholder quality evaluation

Records themselves are plain dictionaries supplied by the
record store; they are never modelled here.

============================================================
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


Record = Dict[str, Any]


# ============================================================
# DATA TYPES
# ============================================================

class DataType(str, Enum):
    """Health data types that can be anonymized."""
    VITAL_SIGNS = "vital_signs"
    HEALTH_RECORDS = "health_records"
    MEDICAL_RECORDS = "medical_records"
    MEDICATIONS = "medications"
    TEST_RESULTS = "test_results"
    GENOMIC_DATA = "genomic_data"
    FAMILY_HISTORY = "family_history"


# ============================================================
# PRIVACY METHODS
# ============================================================

class PrivacyMethod(str, Enum):
    """
    Selectable privacy models.

    BASIC < K_ANONYMITY < L_DIVERSITY < T_CLOSENESS form a chain,
    each wrapping the previous one. DIFFERENTIAL_PRIVACY stands
    apart and adds Laplace noise to numeric fields.
    """
    BASIC = "basic"
    K_ANONYMITY = "k_anonymity"
    L_DIVERSITY = "l_diversity"
    T_CLOSENESS = "t_closeness"
    DIFFERENTIAL_PRIVACY = "differential_privacy"


# ============================================================
# RESULTS
# ============================================================

@dataclass
class AnonymizedDataSet:
    """Anonymization output for one data type."""
    data_type: DataType
    records: List[Record]
    original_data_hash: str
    method: PrivacyMethod
    quality_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data_type": self.data_type.value,
            "records": self.records,
            "original_data_hash": self.original_data_hash,
            "method": self.method.value,
            "quality_score": self.quality_score,
        }


@dataclass(frozen=True)
class AnonymizationLogEntry:
    """
    Immutable audit record, one per anonymization request.

    Holds the real subject id; this is the compliance trail and
    outlives any anonymized data derived from the request.
    """
    id: str
    subject_id: str
    pseudonymous_subject_id: str
    data_types: Tuple[DataType, ...]
    method: PrivacyMethod
    purpose: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "pseudonymous_subject_id": self.pseudonymous_subject_id,
            "data_types": [dt.value for dt in self.data_types],
            "method": self.method.value,
            "purpose": self.purpose,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class LogEntryDraft:
    """Log entry fields known to the engine, before the store assigns id and time."""
    subject_id: str
    pseudonymous_subject_id: str
    data_types: Tuple[DataType, ...]
    method: PrivacyMethod
    purpose: str


@dataclass
class AnonymizationResult:
    """Result of one anonymization request."""
    pseudonymous_subject_id: str
    data_sets: List[AnonymizedDataSet] = field(default_factory=list)
    log_entry: Optional[AnonymizationLogEntry] = None

    @property
    def data_types(self) -> List[DataType]:
        return [ds.data_type for ds in self.data_sets]

    @property
    def average_quality(self) -> Optional[float]:
        """Mean quality score across data types, None if nothing was anonymized."""
        if not self.data_sets:
            return None
        return sum(ds.quality_score for ds in self.data_sets) / len(self.data_sets)

    def get(self, data_type: DataType) -> Optional[AnonymizedDataSet]:
        for ds in self.data_sets:
            if ds.data_type == data_type:
                return ds
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pseudonymous_subject_id": self.pseudonymous_subject_id,
            "data_sets": [ds.to_dict() for ds in self.data_sets],
            "average_quality": self.average_quality,
            "log": self.log_entry.to_dict() if self.log_entry else None,
        }


# ============================================================
# STATISTICS
# ============================================================

# Fixed illustrative split; per-event quality scores are not stored.
PLACEHOLDER_AVERAGE_QUALITY = 85.5
PLACEHOLDER_QUALITY_PERCENT = {"high": 70, "medium": 25, "low": 5}


@dataclass
class AnonymizationStats:
    """Aggregate statistics over all anonymization log entries."""
    total_anonymizations: int = 0
    data_type_stats: Dict[str, int] = field(default_factory=dict)
    purpose_stats: Dict[str, int] = field(default_factory=dict)
    quality_stats: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_anonymizations": self.total_anonymizations,
            "data_type_stats": self.data_type_stats,
            "purpose_stats": self.purpose_stats,
            "quality_stats": self.quality_stats,
        }


# Fixed illustrative quality evaluation, not derived from the data.
PLACEHOLDER_QUALITY_METRICS = {
    "data_utility": {
        "score": 85.5,
        "description": "Analytical usefulness of the anonymized data",
        "factors": [
            {"name": "completeness", "score": 90},
            {"name": "information_preservation", "score": 82},
            {"name": "distribution_similarity", "score": 84},
        ],
    },
    "privacy_protection": {
        "score": 92.3,
        "description": "Level of privacy protection",
        "factors": [
            {"name": "reidentification_risk", "score": 95},
            {"name": "attribute_disclosure_risk", "score": 90},
            {"name": "membership_inference_risk", "score": 92},
        ],
    },
    "data_quality": {
        "score": 88.9,
        "description": "Overall data quality",
        "factors": [
            {"name": "accuracy", "score": 87},
            {"name": "consistency", "score": 91},
            {"name": "reliability", "score": 89},
        ],
    },
}


def get_quality_report(pseudonymous_subject_id: str, k: int = 5) -> Dict[str, Any]:
    """Quality evaluation for a past anonymization, with improvement hints."""
    return {
        "pseudonymous_subject_id": pseudonymous_subject_id,
        "quality_metrics": copy.deepcopy(PLACEHOLDER_QUALITY_METRICS),
        "recommendations": [
            {
                "type": "privacy",
                "priority": "medium",
                "message": f"Raising k to {k + 2} would give stronger anonymity.",
            },
            {
                "type": "utility",
                "priority": "low",
                "message": "Loosening generalization of some numeric fields would improve analytical accuracy.",
            },
        ],
        "evaluated_at": datetime.now(timezone.utc),
    }


# ============================================================
# METHOD CATALOG
# ============================================================

def get_method_catalog(
    k: int = 5,
    l: int = 3,
    t: float = 0.2,
    epsilon: float = 1.0,
) -> List[Dict[str, Any]]:
    """Describe the supported privacy methods and their parameters."""
    k_param = {"type": "number", "default": k, "description": "Minimum group size"}
    l_param = {"type": "number", "default": l, "description": "Minimum distinct sensitive values per group"}
    t_param = {"type": "number", "default": t, "description": "Distribution closeness threshold"}

    return [
        {
            "name": PrivacyMethod.K_ANONYMITY.value,
            "display_name": "k-anonymity",
            "description": "Every record shares its quasi-identifier combination with at least k-1 others",
            "parameters": {"k": k_param},
            "pros": ["Simple to implement", "Intuitive"],
            "cons": ["Vulnerable to homogeneity attacks", "Vulnerable to background knowledge attacks"],
        },
        {
            "name": PrivacyMethod.L_DIVERSITY.value,
            "display_name": "l-diversity",
            "description": "k-anonymity plus diversity of sensitive attributes within each group",
            "parameters": {"k": k_param, "l": l_param},
            "pros": ["Defends against homogeneity attacks", "Improves on k-anonymity"],
            "cons": ["Vulnerable to skewness attacks", "Vulnerable to similarity attacks"],
        },
        {
            "name": PrivacyMethod.T_CLOSENESS.value,
            "display_name": "t-closeness",
            "description": "Sensitive attribute distribution per group stays close to the overall distribution",
            "parameters": {"k": k_param, "l": l_param, "t": t_param},
            "pros": ["Defends against skewness attacks", "Defends against similarity attacks"],
            "cons": ["Complex to implement", "High information loss"],
        },
        {
            "name": PrivacyMethod.DIFFERENTIAL_PRIVACY.value,
            "display_name": "Differential privacy",
            "description": "Calibrated Laplace noise on numeric fields",
            "parameters": {
                "epsilon": {
                    "type": "number",
                    "default": epsilon,
                    "description": "Privacy budget (lower is stronger privacy)",
                },
            },
            "pros": ["Mathematical guarantee", "Resists linkage attacks", "Resists background knowledge attacks"],
            "cons": ["Noise reduces accuracy", "Parameter tuning is hard"],
        },
        {
            "name": PrivacyMethod.BASIC.value,
            "display_name": "Basic anonymization",
            "description": "Removes direct identifiers only",
            "parameters": {},
            "pros": ["Fast", "Simple"],
            "cons": ["Weak privacy guarantee", "Re-identification risk"],
        },
    ]
