"""
Privacy Method Pipeline.

============================================================
PURPOSE
============================================================
Turns a privacy method name into a chain of composable stages.

    basic                 strip direct identifiers
    k_anonymity           basic -> generalization rules
    l_diversity           k_anonymity -> diversity pass
    t_closeness           l_diversity -> closeness pass
    differential_privacy  basic -> Laplace noise on numeric fields

Each stage wraps the previous one, so a stronger method is always
at least as generalized as a weaker one.

The diversity and closeness passes currently pass records through
unchanged. They are real stages with their own parameters so that
enforcement can be added without restructuring the chain.

Unknown method names resolve to basic.

============================================================
"""

import logging
import random
from abc import ABC, abstractmethod
from typing import List, Optional, Union

from .generalization import GeneralizationRules, strip_direct_identifiers
from .models import DataType, PrivacyMethod, Record
from .noise import LaplaceNoise


logger = logging.getLogger(__name__)


# ============================================================
# STAGES
# ============================================================

class PrivacyStage(ABC):
    """One step of the pipeline. Stages never mutate their input."""

    method: PrivacyMethod

    def __init__(self, previous: Optional["PrivacyStage"] = None):
        self._previous = previous

    @property
    def previous(self) -> Optional["PrivacyStage"]:
        return self._previous

    def apply(self, records: List[Record], data_type: Union[DataType, str]) -> List[Record]:
        if self._previous is not None:
            records = self._previous.apply(records, data_type)
        return self.transform(records, data_type)

    @abstractmethod
    def transform(self, records: List[Record], data_type: Union[DataType, str]) -> List[Record]:
        """Apply this stage's own pass to the output of the previous stage."""


class BasicStage(PrivacyStage):
    method = PrivacyMethod.BASIC

    def transform(self, records, data_type):
        return [strip_direct_identifiers(r) for r in records]


class KAnonymityStage(PrivacyStage):
    """
    Generalizes quasi-identifiers.

    k is a target only; group sizes are not checked.
    """

    method = PrivacyMethod.K_ANONYMITY

    def __init__(self, rules: GeneralizationRules, k: int = 5, previous: Optional[PrivacyStage] = None):
        super().__init__(previous or BasicStage())
        self.k = k
        self._rules = rules

    def transform(self, records, data_type):
        return [self._rules.generalize(r, data_type) for r in records]


class LDiversityStage(PrivacyStage):
    method = PrivacyMethod.L_DIVERSITY

    def __init__(self, previous: PrivacyStage, l: int = 3):
        super().__init__(previous)
        self.l = l

    def transform(self, records, data_type):
        return [self.ensure_diversity(r, data_type) for r in records]

    def ensure_diversity(self, record: Record, data_type: Union[DataType, str]) -> Record:
        """Diversity enforcement for one record. Currently the identity."""
        return record


class TClosenessStage(PrivacyStage):
    method = PrivacyMethod.T_CLOSENESS

    def __init__(self, previous: PrivacyStage, t: float = 0.2):
        super().__init__(previous)
        self.t = t

    def transform(self, records, data_type):
        return [self.ensure_closeness(r, data_type) for r in records]

    def ensure_closeness(self, record: Record, data_type: Union[DataType, str]) -> Record:
        """Closeness enforcement for one record. Currently the identity."""
        return record


class DifferentialPrivacyStage(PrivacyStage):
    method = PrivacyMethod.DIFFERENTIAL_PRIVACY

    def __init__(self, noise: LaplaceNoise, previous: Optional[PrivacyStage] = None):
        super().__init__(previous or BasicStage())
        self._noise = noise

    @property
    def epsilon(self) -> float:
        return self._noise.epsilon

    def transform(self, records, data_type):
        return [self._noise.perturb_record(r) for r in records]


# ============================================================
# PIPELINE
# ============================================================

def resolve_method(method: Union[PrivacyMethod, str, None]) -> PrivacyMethod:
    """Resolve a method name; unknown names fall back to basic."""
    if isinstance(method, PrivacyMethod):
        return method
    try:
        return PrivacyMethod(method)
    except ValueError:
        logger.warning(f"Unknown anonymization method {method!r}, falling back to basic")
        return PrivacyMethod.BASIC


class PrivacyPipeline:
    """Builds and runs the stage chain for a privacy method."""

    def __init__(
        self,
        k: int = 5,
        l: int = 3,
        t: float = 0.2,
        epsilon: float = 1.0,
        genomic_mask_probability: float = 0.1,
        rng: Optional[random.Random] = None,
    ):
        rng = rng or random.Random()
        self.k = k
        self.l = l
        self.t = t
        self._rules = GeneralizationRules(rng, genomic_mask_probability)
        self._noise = LaplaceNoise(epsilon, rng)

    def build(self, method: Union[PrivacyMethod, str]) -> PrivacyStage:
        method = resolve_method(method)

        if method == PrivacyMethod.DIFFERENTIAL_PRIVACY:
            return DifferentialPrivacyStage(self._noise)

        stage: PrivacyStage = BasicStage()
        if method == PrivacyMethod.BASIC:
            return stage

        stage = KAnonymityStage(self._rules, self.k, previous=stage)
        if method == PrivacyMethod.K_ANONYMITY:
            return stage

        stage = LDiversityStage(stage, self.l)
        if method == PrivacyMethod.L_DIVERSITY:
            return stage

        return TClosenessStage(stage, self.t)

    def apply(
        self,
        method: Union[PrivacyMethod, str],
        records: List[Record],
        data_type: Union[DataType, str],
    ) -> List[Record]:
        return self.build(method).apply(records, data_type)


def create_pipeline(config, rng: Optional[random.Random] = None) -> PrivacyPipeline:
    """Create a PrivacyPipeline from an AnonymizationConfig."""
    return PrivacyPipeline(
        k=config.k,
        l=config.l,
        t=config.t,
        epsilon=config.epsilon,
        genomic_mask_probability=config.genomic_mask_probability,
        rng=rng,
    )
