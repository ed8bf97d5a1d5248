"""
Utility Scorer.

============================================================
PURPOSE
============================================================
Estimates how much analytical value survives anonymization.

    score = 100
          - 30 * record_loss_rate
          - 70 * information_loss

record_loss_rate = (|original| - |anonymized|) / |original|,
zero when there are no originals.

information_loss looks at the FIRST record pair only: among the
fields present in both the first original and the first
anonymized record, the share whose JSON-serialized value changed.
It is 1.0 when either side is empty and 0.0 when the first pair
shares no field.

This is a cheap single-record heuristic, not a population-level
statistic. Batches whose first record is unrepresentative get a
misleading score. Kept as is pending product clarification.

============================================================
"""

import json
from typing import Any, List

from .models import Record


RECORD_LOSS_WEIGHT = 30.0
INFORMATION_LOSS_WEIGHT = 70.0


def _serialize(value: Any) -> str:
    # Unsorted: nested maps may mix int and str keys
    return json.dumps(value, ensure_ascii=False, default=str)


class UtilityScorer:
    """Computes a 0-100 utility score for an anonymized record set."""

    def record_loss_rate(self, original: List[Record], anonymized: List[Record]) -> float:
        if not original:
            return 0.0
        return (len(original) - len(anonymized)) / len(original)

    def information_loss(self, original: List[Record], anonymized: List[Record]) -> float:
        if not original or not anonymized:
            return 1.0

        first_original, first_anonymized = original[0], anonymized[0]
        compared = 0
        lost = 0
        for key, value in first_original.items():
            if key not in first_anonymized:
                continue
            compared += 1
            if _serialize(value) != _serialize(first_anonymized[key]):
                lost += 1

        return lost / compared if compared else 0.0

    def score(self, original: List[Record], anonymized: List[Record]) -> float:
        utility = 100.0
        utility -= RECORD_LOSS_WEIGHT * self.record_loss_rate(original, anonymized)
        utility -= INFORMATION_LOSS_WEIGHT * self.information_loss(original, anonymized)
        return max(0.0, min(100.0, utility))


def create_scorer() -> UtilityScorer:
    """Create a UtilityScorer."""
    return UtilityScorer()
