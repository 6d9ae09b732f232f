"""Monte Carlo checks of the propagated unfolding errors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from toyunfold.core.histogram import Histogram1D
from toyunfold.core.response import UnfoldResponse
from toyunfold.solvers.base import Unfolder


@dataclass
class ToyErrorStudy:
    """
    Spread of the unfolded result over Poisson toys of the measured spectrum.

    ``rms`` is the toy estimate of the per-bin error and can be compared with
    ``propagated`` from the unfolding algorithm itself.
    """

    median: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    mean: np.ndarray
    rms: np.ndarray
    propagated: np.ndarray
    n_toys: int

    @property
    def error_ratio(self) -> np.ndarray:
        return np.divide(self.rms, self.propagated, out=np.full_like(self.rms, np.nan), where=self.propagated > 0)


def toy_error_study(
    unfolder: Unfolder,
    response: UnfoldResponse,
    measured: Histogram1D,
    n_toys: int = 100,
    rng: Optional[np.random.Generator] = None,
    confidence: float = 0.68,
) -> ToyErrorStudy:
    if n_toys < 2:
        raise ValueError(f"Toy error study needs at least two toys, got {n_toys}")
    rng = rng if rng is not None else np.random.default_rng()

    nominal = unfolder.unfold(response, measured)
    toys = np.empty((n_toys, nominal.reco.n_bins))
    for k in range(n_toys):
        toy = measured.clone(name=f"meas_toy{k}")
        toy.values = rng.poisson(np.maximum(measured.values, 0.0)).astype(float)
        toy.variances = toy.values.copy()
        toys[k] = unfolder.unfold(response, toy).reco.values

    lower_q = 50 * (1 - confidence)
    upper_q = 50 * (1 + confidence)
    return ToyErrorStudy(
        median=np.percentile(toys, 50, axis=0),
        lower=np.percentile(toys, lower_q, axis=0),
        upper=np.percentile(toys, upper_q, axis=0),
        mean=toys.mean(axis=0),
        rms=toys.std(axis=0, ddof=1),
        propagated=nominal.reco.errors,
        n_toys=n_toys,
    )
