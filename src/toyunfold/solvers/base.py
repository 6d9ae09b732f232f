"""Common interface for the unfolding algorithms."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple

import numpy as np

from toyunfold.core.exceptions import UnknownMethodError
from toyunfold.core.histogram import Histogram1D
from toyunfold.core.response import UnfoldResponse


class UnfoldMethod(Enum):
    """Unfolding algorithms, keyed by their command-line code."""

    BAYES = 1        # Iterative Bayesian (D'Agostini)
    SVD = 2          # Hoecker-Kartvelishvili SVD
    BIN_BY_BIN = 3   # Correction factors
    INVERT = 4       # Unregularised matrix inversion

    @classmethod
    def from_code(cls, code) -> "UnfoldMethod":
        if isinstance(code, cls):
            return code
        try:
            return cls(int(code))
        except (TypeError, ValueError):
            raise UnknownMethodError(code) from None

    @property
    def label(self) -> str:
        return {
            UnfoldMethod.BAYES: "bayes",
            UnfoldMethod.SVD: "svd",
            UnfoldMethod.BIN_BY_BIN: "binbybin",
            UnfoldMethod.INVERT: "invert",
        }[self]

    @property
    def default_regparm(self) -> int:
        """Bayes iterations or SVD kterm used when none is given."""
        return {UnfoldMethod.BAYES: 4, UnfoldMethod.SVD: 20}.get(self, 0)

    @property
    def requires_no_smear(self) -> bool:
        return self is UnfoldMethod.BIN_BY_BIN


@dataclass
class UnfoldResult:
    """
    Output of an unfolding algorithm.

    Attributes
    ----------
    method : UnfoldMethod
        Algorithm that produced the result.
    regparm : int
        Regularisation parameter used (0 when not applicable).
    reco : Histogram1D
        Reconstructed truth distribution; bin errors are the square roots of
        the covariance diagonal.
    covariance : np.ndarray
        Full covariance of the reconstruction, shape (n_true, n_true).
    details : dict
        Algorithm specific diagnostics.
    """

    method: UnfoldMethod
    regparm: int
    reco: Histogram1D
    covariance: np.ndarray
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def values(self) -> np.ndarray:
        return self.reco.values

    @property
    def errors(self) -> np.ndarray:
        return self.reco.errors


def effective_measured(response: UnfoldResponse, measured: Histogram1D) -> Tuple[np.ndarray, np.ndarray]:
    """Measured contents and variances with the trained fake fraction removed."""
    keep = 1.0 - response.fake_fraction
    return measured.values * keep, measured.variances * keep * keep


class Unfolder(ABC):
    """
    Strategy interface: unfold a measured histogram with a trained response.

    Subclasses implement :meth:`_solve`, which receives the fake-subtracted
    measured contents and variances and returns the reconstructed contents,
    their covariance and a diagnostics dictionary.
    """

    method: UnfoldMethod

    @property
    def regparm(self) -> int:
        return 0

    def unfold(self, response: UnfoldResponse, measured: Histogram1D) -> UnfoldResult:
        response.check_measured(measured)
        values, variances = effective_measured(response, measured)
        reco_values, covariance, details = self._solve(response, values, variances)

        truth_axis = response.truth
        reco = Histogram1D(
            name="reco",
            title=f"Unfolded ({self.method.label})",
            n_bins=truth_axis.n_bins,
            low=truth_axis.low,
            high=truth_axis.high,
            values=reco_values,
            variances=np.clip(np.diag(covariance), 0.0, None),
        )
        return UnfoldResult(
            method=self.method,
            regparm=self.regparm,
            reco=reco,
            covariance=covariance,
            details=details,
        )

    @abstractmethod
    def _solve(
        self,
        response: UnfoldResponse,
        measured: np.ndarray,
        variances: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray, Dict[str, Any]]:
        raise NotImplementedError
