"""Closure metrics comparing an unfolded histogram to the generated truth."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from scipy import stats

from toyunfold.core.histogram import Histogram1D

MAX_PULL = 5.0


def residual_histogram(reco: Histogram1D, truth: Histogram1D) -> Histogram1D:
    """
    ``reco - truth`` with the truth errors set to zero.

    The reconstruction already carries the statistical error of the measured
    sample, so the truth error must not be counted again.
    """
    reco.check_compatible(truth)
    truth0 = truth.with_zero_errors("true0", "Truth with zero errors")
    return reco.add(truth0, 1.0, -1.0, name="reco-true", title="Residuals")


def pull_histogram(residuals: Histogram1D, max_pull: float = MAX_PULL) -> Histogram1D:
    """
    Per-bin pull = residual / error.

    Bins with zero error get ``+max_pull`` for a positive residual and
    ``-max_pull`` otherwise (an empty bin with zero residual included).
    Pulls whose magnitude exceeds ``max_pull`` are not stored and the bin
    stays at zero.
    """
    pulls = Histogram1D("pulls", "Pulls", residuals.n_bins, residuals.low, residuals.high)
    diff = residuals.values
    err = residuals.errors
    value = np.where(
        err > 0,
        np.divide(diff, err, out=np.zeros_like(diff), where=err > 0),
        np.where(diff > 0, max_pull, -max_pull),
    )
    keep = np.abs(value) <= max_pull
    pulls.values[keep] = value[keep]
    pulls.variances[:] = 0.0
    return pulls


def unfolding_chi2(reco: Histogram1D, covariance: Optional[np.ndarray], truth: Histogram1D) -> float:
    """
    Chi-squared of ``reco`` against ``truth``.

    Uses the full covariance (pseudo-inverse, so empty bins are tolerated);
    with ``covariance=None`` only the diagonal errors of ``reco`` are used.
    """
    reco.check_compatible(truth)
    diff = reco.values - truth.values
    if covariance is None:
        var = reco.variances
        return float(np.sum(np.divide(diff * diff, var, out=np.zeros_like(diff), where=var > 0)))
    inv = np.linalg.pinv(np.asarray(covariance, dtype=float))
    return float(diff @ inv @ diff)


def chi2_probability(chi2: float, ndf: int) -> float:
    if ndf <= 0:
        return float("nan")
    return float(stats.chi2.sf(chi2, ndf))


@dataclass(frozen=True)
class ComparisonRow:
    bin: int
    center: float
    truth: float
    measured: float
    reco: float
    error: float

    @property
    def difference(self) -> float:
        return self.reco - self.truth

    @property
    def pull(self) -> float:
        return self.difference / self.error if self.error > 0 else float("nan")


def comparison_table(truth: Histogram1D, measured: Histogram1D, reco: Histogram1D) -> List[ComparisonRow]:
    reco.check_compatible(truth)
    return [
        ComparisonRow(
            bin=i,
            center=float(reco.centers[i]),
            truth=float(truth.values[i]),
            measured=float(measured.values[i]) if i < measured.n_bins else float("nan"),
            reco=float(reco.values[i]),
            error=float(reco.errors[i]),
        )
        for i in range(reco.n_bins)
    ]


def format_comparison_table(rows: List[ComparisonRow]) -> str:
    lines = [
        f"{'bin':>4} {'x':>9} {'truth':>10} {'measured':>10} {'reco':>10} {'error':>9} {'diff':>9} {'pull':>6}",
    ]
    for row in rows:
        lines.append(
            f"{row.bin:>4d} {row.center:>9.3f} {row.truth:>10.1f} {row.measured:>10.1f} "
            f"{row.reco:>10.1f} {row.error:>9.1f} {row.difference:>9.1f} {row.pull:>6.2f}"
        )
    totals = (
        sum(r.truth for r in rows),
        sum(r.measured for r in rows if np.isfinite(r.measured)),
        sum(r.reco for r in rows),
    )
    lines.append(f"{'':>4} {'total':>9} {totals[0]:>10.1f} {totals[1]:>10.1f} {totals[2]:>10.1f}")
    return "\n".join(lines)
