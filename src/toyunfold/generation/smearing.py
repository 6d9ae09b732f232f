"""Toy detector model: variable inefficiency, systematic shift and Gaussian smearing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass
class DetectorModel:
    """
    Simulated detector response applied to true values.

    Efficiency falls linearly from ``efficiency_low`` at ``low`` to
    ``efficiency_high`` at ``high`` and is clamped to [0, 1]. Accepted events
    are shifted by ``shift_fraction`` of the range and smeared with a Gaussian
    of ``sigma_bins`` bin widths. With ``no_smear`` set, accepted events keep
    their true value (bin-by-bin correction cannot undo bias or smearing).

    Attributes
    ----------
    n_bins : int
        Number of bins the range is divided into (sets the smearing width).
    low, high : float
        Range of the true variable.
    no_smear : bool
        Only apply the efficiency.
    efficiency_low, efficiency_high : float
        Efficiency at the range edges.
    shift_fraction : float
        Bias as a fraction of ``high - low``.
    sigma_bins : float
        Resolution in units of bin width.
    """

    n_bins: int
    low: float
    high: float
    no_smear: bool = False
    efficiency_low: float = 1.0
    efficiency_high: float = 0.3
    shift_fraction: float = -0.1
    sigma_bins: float = 0.5

    def __post_init__(self) -> None:
        if self.n_bins <= 0:
            raise ValueError(f"n_bins must be positive, got {self.n_bins}")
        if not self.low < self.high:
            raise ValueError(f"low ({self.low}) must be below high ({self.high})")

    @property
    def shift(self) -> float:
        return self.shift_fraction * (self.high - self.low)

    @property
    def sigma(self) -> float:
        return self.sigma_bins * (self.high - self.low) / self.n_bins

    def efficiency(self, x_true):
        """Detection probability at ``x_true`` (scalar or array)."""
        slope = (self.efficiency_high - self.efficiency_low) / (self.high - self.low)
        eff = np.clip(self.efficiency_low + slope * (np.asarray(x_true, dtype=float) - self.low), 0.0, 1.0)
        return float(eff) if np.ndim(eff) == 0 else eff

    def smear(self, x_true: float, rng: np.random.Generator) -> Optional[float]:
        """Return the measured value, or ``None`` if the event is missed."""
        if rng.uniform() > self.efficiency(x_true):
            return None
        if self.no_smear:
            return x_true
        return x_true + rng.normal(self.shift, self.sigma)

    def smear_sample(self, x_true: np.ndarray, rng: np.random.Generator) -> Tuple[np.ndarray, np.ndarray]:
        """
        Vectorised :meth:`smear`.

        Returns
        -------
        measured : np.ndarray
            Measured values, NaN where the event was missed.
        accepted : np.ndarray
            Boolean mask of events passing the efficiency cut.
        """
        xt = np.asarray(x_true, dtype=float)
        accepted = rng.uniform(size=xt.shape) <= self.efficiency(xt)
        if self.no_smear:
            measured = xt.copy()
        else:
            measured = xt + rng.normal(self.shift, self.sigma, size=xt.shape)
        measured[~accepted] = np.nan
        return measured, accepted
