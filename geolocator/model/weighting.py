"""
Entropy Weighting - Gaussian weight over spatial entropy
========================================================

Each token's cell probabilities are scaled by the normal density of the
token's spatial entropy, using the mean and sample standard deviation of
the entropies of every token retained in the table:

    w(e) = exp(-(e - mean)^2 / (2 * std^2)) / (std * sqrt(2 * pi))

The model is fit once per table and is immutable afterwards.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List

from .errors import DegenerateDistributionError, EmptyTableError

_SQRT_2PI = math.sqrt(2.0 * math.pi)


@dataclass(frozen=True)
class GaussianWeight:
    """Normal density with fixed mean and standard deviation."""

    mean: float
    std: float
    sample_size: int = 0

    def __post_init__(self):
        if not math.isfinite(self.mean) or not math.isfinite(self.std):
            raise DegenerateDistributionError(
                f"Entropy distribution is not finite (mean={self.mean}, std={self.std})"
            )
        if self.std <= 0.0:
            raise DegenerateDistributionError(
                f"Entropy distribution has zero variance (mean={self.mean})",
                details={"mean": self.mean, "sampleSize": self.sample_size},
            )

    @classmethod
    def fit(cls, values: Iterable[float]) -> "GaussianWeight":
        """
        Fit mean and sample standard deviation (n - 1 denominator).

        Raises:
            EmptyTableError: If there are no values
            DegenerateDistributionError: If fewer than two values or all equal
        """
        sample: List[float] = [float(v) for v in values]
        n = len(sample)
        if n == 0:
            raise EmptyTableError("Cannot fit entropy weights: no entropy values")
        if n == 1:
            raise DegenerateDistributionError(
                "Cannot fit entropy weights from a single token",
                details={"mean": sample[0], "sampleSize": 1},
            )

        mean = math.fsum(sample) / n
        variance = math.fsum((v - mean) ** 2 for v in sample) / (n - 1)
        return cls(mean=mean, std=math.sqrt(variance), sample_size=n)

    def weight(self, entropy: float) -> float:
        """Normal density at ``entropy``."""
        z = (entropy - self.mean) / self.std
        return math.exp(-0.5 * z * z) / (self.std * _SQRT_2PI)

    def to_dict(self) -> dict:
        return {
            "mean": self.mean,
            "std": self.std,
            "sampleSize": self.sample_size,
        }
