"""Response matrix training utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from toyunfold.core.exceptions import BinningMismatchError
from toyunfold.core.histogram import Histogram1D


@dataclass
class UnfoldResponse:
    """
    Trained detector response.

    ``matrix[i, j]`` holds the weight of events generated in true bin ``j``
    and reconstructed in measured bin ``i``. The training truth histogram
    also counts events that were missed (failed the efficiency cut or were
    reconstructed outside the measured range), so ``matrix.sum(axis=0) /
    truth.values`` is the efficiency.
    """

    name: str
    title: str
    measured: Histogram1D
    truth: Histogram1D
    fakes: Histogram1D
    matrix: np.ndarray
    matrix_variances: np.ndarray

    @classmethod
    def setup(
        cls,
        n_measured: int,
        low: float,
        high: float,
        n_true: Optional[int] = None,
        true_low: Optional[float] = None,
        true_high: Optional[float] = None,
        name: str = "response",
        title: str = "",
    ) -> "UnfoldResponse":
        n_true = n_measured if n_true is None else n_true
        true_low = low if true_low is None else true_low
        true_high = high if true_high is None else true_high
        return cls(
            name=name,
            title=title,
            measured=Histogram1D(f"{name}_measured", "Training Measured", n_measured, low, high),
            truth=Histogram1D(f"{name}_truth", "Training Truth", n_true, true_low, true_high),
            fakes=Histogram1D(f"{name}_fakes", "Training Fakes", n_measured, low, high),
            matrix=np.zeros((n_measured, n_true)),
            matrix_variances=np.zeros((n_measured, n_true)),
        )

    @property
    def n_measured(self) -> int:
        return self.measured.n_bins

    @property
    def n_true(self) -> int:
        return self.truth.n_bins

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def fill(self, x_measured: float, x_true: float, weight: float = 1.0) -> None:
        i = self.measured.fill(x_measured, weight)
        j = self.truth.fill(x_true, weight)
        if 0 <= i < self.n_measured and 0 <= j < self.n_true:
            self.matrix[i, j] += weight
            self.matrix_variances[i, j] += weight * weight

    def miss(self, x_true: float, weight: float = 1.0) -> None:
        self.truth.fill(x_true, weight)

    def fake(self, x_measured: float, weight: float = 1.0) -> None:
        self.measured.fill(x_measured, weight)
        self.fakes.fill(x_measured, weight)

    def fill_many(self, x_measured: np.ndarray, x_true: np.ndarray, weights: Optional[np.ndarray] = None) -> None:
        xm = np.asarray(x_measured, dtype=float)
        xt = np.asarray(x_true, dtype=float)
        if xm.shape != xt.shape:
            raise ValueError("measured and true samples must have the same length")
        w = np.ones_like(xt) if weights is None else np.asarray(weights, dtype=float)
        self.measured.fill_many(xm, w)
        self.truth.fill_many(xt, w)

        m_hist, t_hist = self.measured, self.truth
        inside = (xm >= m_hist.low) & (xm < m_hist.high) & (xt >= t_hist.low) & (xt < t_hist.high)
        i = np.minimum(((xm[inside] - m_hist.low) / m_hist.bin_width).astype(int), self.n_measured - 1)
        j = np.minimum(((xt[inside] - t_hist.low) / t_hist.bin_width).astype(int), self.n_true - 1)
        np.add.at(self.matrix, (i, j), w[inside])
        np.add.at(self.matrix_variances, (i, j), w[inside] ** 2)

    def miss_many(self, x_true: np.ndarray, weights: Optional[np.ndarray] = None) -> None:
        self.truth.fill_many(np.asarray(x_true, dtype=float), weights)

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------
    @property
    def efficiency(self) -> np.ndarray:
        """Fraction of true events per true bin that were reconstructed in range."""
        truth = self.truth.values
        return np.divide(
            self.matrix.sum(axis=0), truth, out=np.zeros(self.n_true), where=truth > 0
        )

    @property
    def probability_matrix(self) -> np.ndarray:
        """P(measured bin i | true bin j), shape (n_measured, n_true)."""
        truth = self.truth.values
        return np.divide(
            self.matrix, truth[np.newaxis, :], out=np.zeros_like(self.matrix), where=truth[np.newaxis, :] > 0
        )

    @property
    def fake_fraction(self) -> np.ndarray:
        measured = self.measured.values
        return np.divide(
            self.fakes.values, measured, out=np.zeros(self.n_measured), where=measured > 0
        )

    def check_measured(self, measured: Histogram1D) -> None:
        if not self.measured.same_binning(measured):
            raise BinningMismatchError(
                f"Measured histogram {measured.name!r} does not match the measured axis "
                f"of response {self.name!r}"
            )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "measured": self.measured.to_dict(),
            "truth": self.truth.to_dict(),
            "fakes": self.fakes.to_dict(),
            "matrix": self.matrix.tolist(),
            "matrix_variances": self.matrix_variances.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnfoldResponse":
        measured = Histogram1D.from_dict(data["measured"])
        truth = Histogram1D.from_dict(data["truth"])
        fakes = Histogram1D.from_dict(data["fakes"])
        matrix = np.asarray(data["matrix"], dtype=float).reshape(measured.n_bins, truth.n_bins)
        variances = np.asarray(data.get("matrix_variances", matrix), dtype=float).reshape(matrix.shape)
        return cls(
            name=data["name"],
            title=data.get("title", ""),
            measured=measured,
            truth=truth,
            fakes=fakes,
            matrix=matrix,
            matrix_variances=variances,
        )
