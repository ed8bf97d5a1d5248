"""
Data Anonymization - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the anonymization engine.

The pseudonymization salt is read once here and handed to the
Pseudonymizer at construction. Nothing inside the engine reads
the environment on its own.

============================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .exceptions import InvalidConfigError
from .models import PrivacyMethod


logger = logging.getLogger(__name__)


# ============================================================
# ENGINE CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class AnonymizationConfig:
    """
    Anonymization engine configuration.

    k, l and t are documented targets, not verified guarantees.
    """

    salt: Optional[str] = None
    """Secret salt for pseudonymization. None falls back to a public default."""

    k: int = 5
    """k-anonymity target group size."""

    l: int = 3
    """l-diversity target."""

    t: float = 0.2
    """t-closeness threshold."""

    epsilon: float = 1.0
    """Differential privacy budget."""

    genomic_mask_probability: float = 0.1
    """Probability that a single SNP is redacted."""

    pseudonym_length: int = 16
    """Hex characters kept from the salted digest."""

    default_method: PrivacyMethod = PrivacyMethod.K_ANONYMITY
    """Method used when a request names none."""

    default_log_limit: int = 50
    """Default number of log entries returned by a history query."""

    max_log_limit: int = 200
    """Upper bound for a history query."""

    def __post_init__(self):
        if self.k < 1:
            raise InvalidConfigError("k", self.k, "must be >= 1")
        if self.l < 1:
            raise InvalidConfigError("l", self.l, "must be >= 1")
        if not 0 < self.t <= 1:
            raise InvalidConfigError("t", self.t, "must be in (0, 1]")
        if self.epsilon <= 0:
            raise InvalidConfigError("epsilon", self.epsilon, "must be > 0")
        if not 0 <= self.genomic_mask_probability <= 1:
            raise InvalidConfigError(
                "genomic_mask_probability",
                self.genomic_mask_probability,
                "must be in [0, 1]",
            )
        if not 1 <= self.pseudonym_length <= 64:
            raise InvalidConfigError("pseudonym_length", self.pseudonym_length, "must be in [1, 64]")
        if not 1 <= self.default_log_limit <= self.max_log_limit:
            raise InvalidConfigError(
                "default_log_limit",
                self.default_log_limit,
                f"must be in [1, {self.max_log_limit}]",
            )

    @property
    def salt_configured(self) -> bool:
        return bool(self.salt)

    @classmethod
    def from_env(cls) -> "AnonymizationConfig":
        """Build configuration from environment variables (and a .env file)."""
        load_dotenv()

        method_name = os.getenv("ANONYMIZATION_DEFAULT_METHOD", PrivacyMethod.K_ANONYMITY.value)
        try:
            default_method = PrivacyMethod(method_name)
        except ValueError:
            raise InvalidConfigError(
                "ANONYMIZATION_DEFAULT_METHOD",
                method_name,
                f"must be one of {[m.value for m in PrivacyMethod]}",
            )

        config = cls(
            salt=os.getenv("ANONYMIZATION_SALT") or None,
            k=_env_number("ANONYMIZATION_K", 5, int),
            l=_env_number("ANONYMIZATION_L", 3, int),
            t=_env_number("ANONYMIZATION_T", 0.2, float),
            epsilon=_env_number("ANONYMIZATION_EPSILON", 1.0, float),
            genomic_mask_probability=_env_number(
                "ANONYMIZATION_GENOMIC_MASK_PROBABILITY", 0.1, float
            ),
            default_method=default_method,
        )

        if not config.salt_configured:
            logger.warning("ANONYMIZATION_SALT not set, pseudonyms will use the default salt")

        return config


def _env_number(key: str, default, cast):
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise InvalidConfigError(key, raw, f"expected {cast.__name__}")
