"""
Toy Monte Carlo PDFs for unfolding tests.

Each selector code maps to a (mixture of) scipy.stats distributions
parameterised by a location ``mean`` and a scale ``width``:

+------+------------------------------+--------------------------------------+
| code | name                         | components                           |
+======+==============================+======================================+
| 1    | flat                         | uniform over the range               |
| 2    | Gaussian                     | N(mean, width)                       |
| 3    | exponential                  | decay length ``width`` from ``low``  |
| 4    | Breit-Wigner                 | Cauchy(mean, FWHM = width)           |
| 5    | double Breit-Wigner          | two narrow peaks at mean -/+ 2 width |
| 6    | exponential + double BW      | 50% exponential, 25% per peak        |
| 7    | Landau                       | Moyal approximation (mean, width/2)  |
+------+------------------------------+--------------------------------------+

Samples are truncated to ``[low, high)`` by inverse-CDF sampling, so
exactly the requested number of events is returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np
from scipy import stats

from toyunfold.core.exceptions import GenerationError
from toyunfold.core.histogram import Histogram1D

PDF_NAMES: Dict[int, str] = {
    1: "flat",
    2: "Gaussian",
    3: "exponential",
    4: "Breit-Wigner",
    5: "double Breit-Wigner",
    6: "exponential and double Breit-Wigner",
    7: "Landau",
}

FINE_BINS = 500


@dataclass(frozen=True)
class PdfComponent:
    distribution: Any  # frozen scipy.stats distribution
    weight: float


@dataclass
class ToyPdf:
    """A weighted mixture of continuous distributions."""

    code: int
    name: str
    components: List[PdfComponent]

    def _masses(self, low: float, high: float) -> np.ndarray:
        return np.array(
            [c.weight * (c.distribution.cdf(high) - c.distribution.cdf(low)) for c in self.components]
        )

    def density(self, x: np.ndarray, low: float, high: float) -> np.ndarray:
        """PDF normalised to unit integral over ``[low, high)``."""
        x = np.asarray(x, dtype=float)
        total = float(np.sum(self._masses(low, high)))
        if total <= 0.0:
            return np.zeros_like(x)
        dens = sum(c.weight * c.distribution.pdf(x) for c in self.components)
        inside = (x >= low) & (x < high)
        return np.where(inside, dens / total, 0.0)

    def sample(self, n_events: int, low: float, high: float, rng: np.random.Generator) -> np.ndarray:
        masses = self._masses(low, high)
        total = float(np.sum(masses))
        if not np.isfinite(total) or total <= 0.0:
            raise GenerationError(f"PDF {self.name!r} has no probability in [{low}, {high})")

        counts = rng.multinomial(n_events, masses / total)
        parts = []
        for component, count in zip(self.components, counts):
            if count == 0:
                continue
            dist = component.distribution
            u = rng.uniform(dist.cdf(low), dist.cdf(high), size=count)
            parts.append(dist.ppf(u))
        x = np.concatenate(parts)
        # ppf can land on the upper edge through rounding.
        x = np.clip(x, low, np.nextafter(high, low))
        return rng.permutation(x)


def build_pdf(code: int, low: float, high: float, mean: float = 0.0, width: float = 2.5) -> ToyPdf:
    """Return the toy PDF for selector ``code``."""
    if code not in PDF_NAMES:
        raise GenerationError(f"Unknown PDF selector {code}; valid codes are {sorted(PDF_NAMES)}")
    if width <= 0.0:
        raise GenerationError(f"PDF width must be positive, got {width}")

    peak_lo = stats.cauchy(loc=mean - 2.0 * width, scale=width / 4.0)
    peak_hi = stats.cauchy(loc=mean + 2.0 * width, scale=width / 4.0)

    if code == 1:
        components = [PdfComponent(stats.uniform(loc=low, scale=high - low), 1.0)]
    elif code == 2:
        components = [PdfComponent(stats.norm(loc=mean, scale=width), 1.0)]
    elif code == 3:
        components = [PdfComponent(stats.expon(loc=low, scale=width), 1.0)]
    elif code == 4:
        components = [PdfComponent(stats.cauchy(loc=mean, scale=width / 2.0), 1.0)]
    elif code == 5:
        components = [PdfComponent(peak_lo, 0.5), PdfComponent(peak_hi, 0.5)]
    elif code == 6:
        components = [
            PdfComponent(stats.expon(loc=low, scale=width), 0.5),
            PdfComponent(peak_lo, 0.25),
            PdfComponent(peak_hi, 0.25),
        ]
    else:
        components = [PdfComponent(stats.moyal(loc=mean, scale=width / 2.0), 1.0)]
    return ToyPdf(code=code, name=PDF_NAMES[code], components=components)


def generate(
    code: int,
    n_events: int,
    low: float,
    high: float,
    rng: np.random.Generator,
    mean: float = 0.0,
    width: float = 2.5,
) -> np.ndarray:
    """
    Draw ``n_events`` true values from PDF ``code`` restricted to ``[low, high)``.

    Raises
    ------
    GenerationError
        For an unknown selector, a non-positive event count, a non-positive
        width or a PDF with no probability inside the range.
    """
    if n_events <= 0:
        raise GenerationError(f"Number of events must be positive, got {n_events}")
    if not low < high:
        raise GenerationError(f"Empty generation range [{low}, {high})")
    pdf = build_pdf(code, low, high, mean=mean, width=width)
    return pdf.sample(n_events, low, high, rng)


def pdf_histogram(
    sample: np.ndarray,
    name: str,
    title: str,
    n_bins: int,
    low: float,
    high: float,
    n_fine: int = FINE_BINS,
) -> Histogram1D:
    """Finely binned histogram of ``sample`` rescaled to ``n_bins`` bin content."""
    hist = Histogram1D(name, title, n_fine, low, high)
    hist.fill_many(sample)
    return hist.scale(n_fine / float(n_bins))
