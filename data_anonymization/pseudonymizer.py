"""
Pseudonymizer.

Derives a stable anonymous subject id from a real one:

    "anon_" + sha256(subject_id + salt).hexdigest()[:length]

The same subject and salt always give the same pseudonym, so
repeated requests for one subject stay linkable for longitudinal
analysis. Without the salt the pseudonym cannot be reversed.
"""

import hashlib
import logging
from typing import Optional


logger = logging.getLogger(__name__)


PSEUDONYM_PREFIX = "anon_"

# Public value. Pseudonyms derived from it are reversible by dictionary attack.
DEFAULT_SALT = "default_salt"


class Pseudonymizer:
    """Salted SHA-256 pseudonymization of subject identifiers."""

    def __init__(self, salt: Optional[str] = None, length: int = 16):
        self._uses_default_salt = not salt
        self._salt = salt or DEFAULT_SALT
        self._length = length

        if self._uses_default_salt:
            logger.warning(
                "Pseudonymizer running with the DEFAULT salt: pseudonyms are "
                "NOT irreversible. Set ANONYMIZATION_SALT."
            )

    @property
    def uses_default_salt(self) -> bool:
        """True when no secret salt was configured."""
        return self._uses_default_salt

    def pseudonymize(self, subject_id: str) -> str:
        digest = hashlib.sha256(f"{subject_id}{self._salt}".encode("utf-8")).hexdigest()
        return f"{PSEUDONYM_PREFIX}{digest[:self._length]}"

    def __repr__(self) -> str:
        # never expose the salt
        return f"Pseudonymizer(length={self._length}, default_salt={self._uses_default_salt})"


def create_pseudonymizer(salt: Optional[str] = None, length: int = 16) -> Pseudonymizer:
    """Create a Pseudonymizer."""
    return Pseudonymizer(salt, length)
