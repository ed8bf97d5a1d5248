"""
Anonymized Data Export.

Serializes an AnonymizationResult for hand-off to researchers:
- json: {"metadata": {...}, "data": {data_type: [records]}}
- csv:  data_type,field,value (one row per record field)

Nested values are JSON-encoded inside CSV cells.
"""

import csv
import io
import json
from typing import Any, Dict

from .models import AnonymizationResult


EXPORT_FORMATS = ("json", "csv")


def build_export_document(result: AnonymizationResult) -> Dict[str, Any]:
    log = result.log_entry
    metadata = {
        "pseudonymous_subject_id": result.pseudonymous_subject_id,
        "data_types": [ds.data_type.value for ds in result.data_sets],
        "method": log.method.value if log else None,
        "purpose": log.purpose if log else None,
        "created_at": log.created_at.isoformat() if log else None,
    }
    return {
        "metadata": metadata,
        "data": {ds.data_type.value: ds.records for ds in result.data_sets},
    }


def _cell(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


def export_result(result: AnonymizationResult, fmt: str = "json") -> str:
    """Render a result as a JSON or CSV document."""
    if fmt == "json":
        return json.dumps(build_export_document(result), ensure_ascii=False, indent=2, default=str)

    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(["data_type", "field", "value"])
        for data_set in result.data_sets:
            for record in data_set.records:
                for field_name, value in record.items():
                    writer.writerow([data_set.data_type.value, field_name, _cell(value)])
        return buffer.getvalue()

    raise ValueError(f"Unsupported export format {fmt!r}, expected one of {EXPORT_FORMATS}")
