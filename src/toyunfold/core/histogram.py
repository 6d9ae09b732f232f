"""Fixed-width 1-D histograms with per-bin weight variances."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

import numpy as np

from toyunfold.core.exceptions import BinningMismatchError


@dataclass
class Histogram1D:
    """
    Equal-width histogram on ``[low, high)``.

    Attributes
    ----------
    name : str
        Short identifier (also used as the key when persisted).
    title : str
        Human readable description.
    n_bins : int
        Number of in-range bins.
    low, high : float
        Range boundaries.
    values : np.ndarray
        Sum of weights per bin, shape (n_bins,).
    variances : np.ndarray
        Sum of squared weights per bin, shape (n_bins,).
    underflow, overflow : float
        Weight that fell below ``low`` or at/above ``high``.
    """

    name: str
    title: str
    n_bins: int
    low: float
    high: float
    values: np.ndarray = field(default=None)  # type: ignore[assignment]
    variances: np.ndarray = field(default=None)  # type: ignore[assignment]
    underflow: float = 0.0
    overflow: float = 0.0

    def __post_init__(self) -> None:
        if self.n_bins <= 0:
            raise ValueError(f"Histogram {self.name!r} needs at least one bin, got {self.n_bins}")
        if not self.low < self.high:
            raise ValueError(f"Histogram {self.name!r} range is empty: [{self.low}, {self.high})")
        self.low = float(self.low)
        self.high = float(self.high)
        if self.values is None:
            self.values = np.zeros(self.n_bins)
        else:
            self.values = np.asarray(self.values, dtype=float).copy()
        if self.variances is None:
            # Unweighted counts: Poisson variance equals the content.
            self.variances = np.abs(self.values)
        else:
            self.variances = np.asarray(self.variances, dtype=float).copy()
        if self.values.shape != (self.n_bins,) or self.variances.shape != (self.n_bins,):
            raise ValueError(f"Histogram {self.name!r} arrays must have shape ({self.n_bins},)")

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    @property
    def bin_width(self) -> float:
        return (self.high - self.low) / self.n_bins

    @property
    def edges(self) -> np.ndarray:
        return np.linspace(self.low, self.high, self.n_bins + 1)

    @property
    def centers(self) -> np.ndarray:
        edges = self.edges
        return 0.5 * (edges[:-1] + edges[1:])

    @property
    def errors(self) -> np.ndarray:
        return np.sqrt(np.maximum(self.variances, 0.0))

    def find_bin(self, x: float) -> int:
        """Return the bin index of ``x``, -1 for underflow and n_bins for overflow."""
        if x < self.low:
            return -1
        if x >= self.high:
            return self.n_bins
        return min(int((x - self.low) / self.bin_width), self.n_bins - 1)

    def same_binning(self, other: "Histogram1D") -> bool:
        return (
            self.n_bins == other.n_bins
            and np.isclose(self.low, other.low)
            and np.isclose(self.high, other.high)
        )

    def check_compatible(self, other: "Histogram1D") -> None:
        if not self.same_binning(other):
            raise BinningMismatchError(
                f"Histogram {self.name!r} ({self.n_bins} bins on [{self.low}, {self.high})) "
                f"does not match {other.name!r} ({other.n_bins} bins on [{other.low}, {other.high}))"
            )

    # ------------------------------------------------------------------
    # Filling
    # ------------------------------------------------------------------
    def fill(self, x: float, weight: float = 1.0) -> int:
        idx = self.find_bin(x)
        if idx < 0:
            self.underflow += weight
        elif idx >= self.n_bins:
            self.overflow += weight
        else:
            self.values[idx] += weight
            self.variances[idx] += weight * weight
        return idx

    def fill_many(self, xs: Iterable[float], weights: Optional[Iterable[float]] = None) -> None:
        x = np.asarray(list(xs) if not isinstance(xs, np.ndarray) else xs, dtype=float)
        if weights is None:
            w = np.ones_like(x)
        else:
            w = np.asarray(weights, dtype=float)
            if w.shape != x.shape:
                raise ValueError("weights must match the shape of the filled values")
        below = x < self.low
        above = x >= self.high
        inside = ~(below | above)
        self.underflow += float(np.sum(w[below]))
        self.overflow += float(np.sum(w[above]))
        idx = np.minimum(((x[inside] - self.low) / self.bin_width).astype(int), self.n_bins - 1)
        self.values += np.bincount(idx, weights=w[inside], minlength=self.n_bins)
        self.variances += np.bincount(idx, weights=w[inside] ** 2, minlength=self.n_bins)

    def set_bin(self, index: int, value: float, error: Optional[float] = None) -> None:
        self.values[index] = value
        if error is not None:
            self.variances[index] = error * error

    def reset(self) -> None:
        self.values[:] = 0.0
        self.variances[:] = 0.0
        self.underflow = 0.0
        self.overflow = 0.0

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------
    def sum(self, include_flow: bool = False) -> float:
        total = float(np.sum(self.values))
        if include_flow:
            total += self.underflow + self.overflow
        return total

    def maximum(self) -> float:
        return float(np.max(self.values))

    def scale(self, factor: float) -> "Histogram1D":
        self.values *= factor
        self.variances *= factor * factor
        self.underflow *= factor
        self.overflow *= factor
        return self

    def clone(self, name: Optional[str] = None, title: Optional[str] = None) -> "Histogram1D":
        return Histogram1D(
            name=name if name is not None else self.name,
            title=title if title is not None else self.title,
            n_bins=self.n_bins,
            low=self.low,
            high=self.high,
            values=self.values,
            variances=self.variances,
            underflow=self.underflow,
            overflow=self.overflow,
        )

    def with_zero_errors(self, name: Optional[str] = None, title: Optional[str] = None) -> "Histogram1D":
        """Copy with every bin error set to zero (contents unchanged)."""
        out = self.clone(name, title)
        out.variances[:] = 0.0
        return out

    def add(
        self,
        other: "Histogram1D",
        c1: float = 1.0,
        c2: float = 1.0,
        name: Optional[str] = None,
        title: Optional[str] = None,
    ) -> "Histogram1D":
        """Return ``c1*self + c2*other`` with uncorrelated error propagation."""
        self.check_compatible(other)
        return Histogram1D(
            name=name if name is not None else self.name,
            title=title if title is not None else self.title,
            n_bins=self.n_bins,
            low=self.low,
            high=self.high,
            values=c1 * self.values + c2 * other.values,
            variances=c1 * c1 * self.variances + c2 * c2 * other.variances,
            underflow=c1 * self.underflow + c2 * other.underflow,
            overflow=c1 * self.overflow + c2 * other.overflow,
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "n_bins": self.n_bins,
            "low": self.low,
            "high": self.high,
            "values": self.values.tolist(),
            "variances": self.variances.tolist(),
            "underflow": self.underflow,
            "overflow": self.overflow,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Histogram1D":
        return cls(
            name=data["name"],
            title=data.get("title", ""),
            n_bins=int(data["n_bins"]),
            low=float(data["low"]),
            high=float(data["high"]),
            values=np.asarray(data["values"], dtype=float),
            variances=np.asarray(data["variances"], dtype=float),
            underflow=float(data.get("underflow", 0.0)),
            overflow=float(data.get("overflow", 0.0)),
        )
