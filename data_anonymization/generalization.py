"""
Generalization Rule Set.

============================================================
PURPOSE
============================================================
Coarsens identifying and quasi-identifying fields per data type.

Rules:
- vital_signs: measured_at -> Monday 00:00 UTC of its ISO week,
  value -> named bucket per vital type
- medical_records: hospital_name -> region label,
  diagnosis_code -> ICD-10 chapter range, visit_date -> month start
- genomic_data: each SNP redacted with a fixed probability
- family_history: birth_year / death_year -> decade
- every type: direct identifiers removed

A field with an unexpected shape degrades to GENERALIZED_VALUE
instead of raising, so one malformed field never aborts a
record set.

============================================================
"""

import math
import random
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Union

from .models import DataType, Record


# ============================================================
# MARKERS AND FIELD NAMES
# ============================================================

GENERALIZED_VALUE = "generalized_value"
REDACTED_SNP = "XX"

DIRECT_IDENTIFIER_FIELDS = frozenset({"id", "user_id", "created_at", "updated_at"})

# (label city, substrings matched case-insensitively)
HOSPITAL_REGIONS = [
    ("Seoul", ("seoul", "서울")),
    ("Busan", ("busan", "부산")),
    ("Daegu", ("daegu", "대구")),
    ("Incheon", ("incheon", "인천")),
    ("Gwangju", ("gwangju", "광주")),
    ("Daejeon", ("daejeon", "대전")),
    ("Ulsan", ("ulsan", "울산")),
]
OTHER_REGION = "other region"

OTHER_DIAGNOSIS = "OTHER"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ============================================================
# DIRECT IDENTIFIERS
# ============================================================

def strip_direct_identifiers(record: Record) -> Record:
    """Return a copy of the record without direct identifier fields."""
    return {k: v for k, v in record.items() if k not in DIRECT_IDENTIFIER_FIELDS}


# ============================================================
# DATES
# ============================================================

def _to_utc_naive(value: Any) -> Optional[datetime]:
    """Parse a datetime, date or ISO-8601 string; aware values are moved to UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def generalize_to_week(value: Any) -> str:
    """Truncate a timestamp to Monday 00:00:00 UTC of its ISO week."""
    dt = _to_utc_naive(value)
    if dt is None:
        return GENERALIZED_VALUE
    monday = dt.date() - timedelta(days=dt.weekday())
    return f"{monday.isoformat()}T00:00:00.000Z"


def generalize_to_month(value: Any) -> str:
    """Truncate a date to the first day of its month (YYYY-MM-01)."""
    dt = _to_utc_naive(value)
    if dt is None:
        return GENERALIZED_VALUE
    return f"{dt.year:04d}-{dt.month:02d}-01"


def generalize_to_decade(value: Any) -> Union[int, str]:
    """Round a year down to the nearest multiple of 10."""
    if _is_number(value) and math.isfinite(value):
        return int(value // 10 * 10)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip()) // 10 * 10
    return GENERALIZED_VALUE


# ============================================================
# VITAL SIGNS
# ============================================================

def bucket_vital_value(value: Any, vital_type: Optional[str]) -> str:
    """
    Map a vital sign reading to a named range.

    heart_rate:  < 60 | 60-99 | 100-119 | ≥ 120
    temperature: < 36.0 | 36.0-37.4 | ≥ 37.5
    blood_pressure is collapsed to "normalized_range" whatever its
    shape (a number or a systolic/diastolic map); any other type,
    or a non-numeric reading, becomes GENERALIZED_VALUE.
    """
    if vital_type == "blood_pressure":
        return "normalized_range"

    if not _is_number(value) or not math.isfinite(value):
        return GENERALIZED_VALUE

    if vital_type == "heart_rate":
        if value < 60:
            return "< 60"
        if value < 100:
            return "60-99"
        if value < 120:
            return "100-119"
        return "≥ 120"

    if vital_type == "temperature":
        if value < 36.0:
            return "< 36.0"
        if value < 37.5:
            return "36.0-37.4"
        return "≥ 37.5"

    return GENERALIZED_VALUE


# ============================================================
# MEDICAL RECORDS
# ============================================================

def generalize_hospital_name(name: Any) -> str:
    if not isinstance(name, str):
        return OTHER_REGION
    lowered = name.lower()
    for city, needles in HOSPITAL_REGIONS:
        if any(needle in lowered for needle in needles):
            return f"{city} region"
    return OTHER_REGION


def generalize_diagnosis_code(code: Any) -> str:
    """Map an ICD-10 code to its chapter range."""
    if not isinstance(code, str):
        return OTHER_DIAGNOSIS
    code = code.strip().upper()
    if code.startswith(("A", "B")):
        return "A00-B99"
    if code.startswith(("C", "D0", "D1", "D2", "D3", "D4")):
        return "C00-D48"
    if code.startswith("E"):
        return "E00-E89"
    if code.startswith("I"):
        return "I00-I99"
    if code.startswith("J"):
        return "J00-J99"
    return OTHER_DIAGNOSIS


# ============================================================
# GENOMIC DATA
# ============================================================

def mask_snps(snp_data: Any, rng: random.Random, probability: float) -> Any:
    """Independently redact each SNP with the given probability."""
    if not isinstance(snp_data, dict):
        return GENERALIZED_VALUE
    return {
        rsid: REDACTED_SNP if rng.random() < probability else genotype
        for rsid, genotype in snp_data.items()
    }


# ============================================================
# RULE SET
# ============================================================

class GeneralizationRules:
    """
    Per-data-type generalization.

    The random source is injected so genomic masking is
    reproducible under test and random in production.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        genomic_mask_probability: float = 0.1,
    ):
        self._rng = rng or random.Random()
        self._mask_probability = genomic_mask_probability

    def generalize(self, record: Record, data_type: Union[DataType, str]) -> Record:
        """Return a generalized copy of the record. The input is not modified."""
        result = strip_direct_identifiers(record)

        try:
            data_type = DataType(data_type)
        except ValueError:
            return result

        if data_type == DataType.VITAL_SIGNS:
            self._vital_signs(result)
        elif data_type == DataType.MEDICAL_RECORDS:
            self._medical_records(result)
        elif data_type == DataType.GENOMIC_DATA:
            self._genomic_data(result)
        elif data_type == DataType.FAMILY_HISTORY:
            self._family_history(result)

        return result

    def _vital_signs(self, record: Record) -> None:
        if record.get("measured_at") is not None:
            record["measured_at"] = generalize_to_week(record["measured_at"])
        if record.get("value") is not None:
            record["value"] = bucket_vital_value(record["value"], record.get("type"))

    def _medical_records(self, record: Record) -> None:
        if record.get("hospital_name") is not None:
            record["hospital_name"] = generalize_hospital_name(record["hospital_name"])
        if record.get("diagnosis_code") is not None:
            record["diagnosis_code"] = generalize_diagnosis_code(record["diagnosis_code"])
        if record.get("visit_date") is not None:
            record["visit_date"] = generalize_to_month(record["visit_date"])

    def _genomic_data(self, record: Record) -> None:
        if record.get("snp_data") is not None:
            record["snp_data"] = mask_snps(record["snp_data"], self._rng, self._mask_probability)

    def _family_history(self, record: Record) -> None:
        for key in ("birth_year", "death_year"):
            if record.get(key) is not None:
                record[key] = generalize_to_decade(record[key])


def generalize_record(
    record: Record,
    data_type: Union[DataType, str],
    rng: Optional[random.Random] = None,
    mask_probability: float = 0.1,
) -> Record:
    """Generalize a single record without keeping a rule set around."""
    return GeneralizationRules(rng, mask_probability).generalize(record, data_type)
