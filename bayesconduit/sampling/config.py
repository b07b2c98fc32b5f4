"""Configuration for Markov chain samplers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChainConfig:
    """
    Schedule of a Markov chain run.

    Attributes
    ----------
    burn_in_iterations:
        Iterations discarded before the first sample is recorded.
    iterations_per_sample:
        Thinning interval between recorded samples (at least 1).
    max_samples:
        Number of samples to record.
    """

    burn_in_iterations: int = 100
    iterations_per_sample: int = 1
    max_samples: int = 1000

    def __post_init__(self) -> None:
        if self.burn_in_iterations < 0:
            raise ValueError("burn_in_iterations must be non-negative.")
        if self.iterations_per_sample < 1:
            raise ValueError("iterations_per_sample must be at least 1.")
        if self.max_samples < 1:
            raise ValueError("max_samples must be at least 1.")

    @property
    def total_iterations(self) -> int:
        """Total number of iterations a run performs."""
        return self.burn_in_iterations + self.max_samples * self.iterations_per_sample
