"""
Laplace Noise Mechanism.

============================================================
PURPOSE
============================================================
Additive Laplace noise for the differential privacy method.

    u ~ Uniform(-0.5, 0.5)
    b = 1 / epsilon
    noise = -b * sign(u) * ln(1 - 2|u|)

Noised values are clamped at zero because health metrics are
non-negative. The clamp biases the distribution near zero; it is
kept for behavioural parity with existing datasets.

============================================================
"""

import math
import random
from typing import Any, Optional

from .models import Record


class LaplaceNoise:
    """Laplace noise generator with an injected random source."""

    def __init__(self, epsilon: float = 1.0, rng: Optional[random.Random] = None):
        if epsilon <= 0:
            raise ValueError(f"epsilon must be > 0, got {epsilon}")
        self._epsilon = epsilon
        self._rng = rng or random.Random()

    @property
    def epsilon(self) -> float:
        return self._epsilon

    @property
    def scale(self) -> float:
        return 1.0 / self._epsilon

    def sample(self) -> float:
        """Draw one Laplace(0, 1/epsilon) sample."""
        while True:
            u = self._rng.random() - 0.5
            # u == -0.5 would need ln(0)
            if abs(u) < 0.5:
                break
        return -self.scale * math.copysign(1.0, u) * math.log(1 - 2 * abs(u))

    def perturb(self, value: float) -> float:
        """Add noise to a value, clamping the result at zero."""
        return max(0.0, value + self.sample())

    def perturb_record(self, record: Record) -> Record:
        """Return a copy with every numeric field noised. Other fields pass through."""
        return {
            key: self.perturb(value) if _is_numeric(value) else value
            for key, value in record.items()
        }


def _is_numeric(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def laplace_noise(epsilon: float, rng: Optional[random.Random] = None) -> float:
    """Draw a single Laplace noise sample for the given privacy budget."""
    return LaplaceNoise(epsilon, rng).sample()
