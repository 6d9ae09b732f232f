"""Unregularised unfolding by (pseudo-)inversion of the response."""

from __future__ import annotations

import logging

import numpy as np

from toyunfold.core.response import UnfoldResponse
from toyunfold.solvers.base import UnfoldMethod, Unfolder

logger = logging.getLogger(__name__)


class InvertUnfolder(Unfolder):
    """
    Solve P x = b with the Moore-Penrose inverse of the probability matrix.

    Unbiased but with large, strongly anti-correlated errors once the
    resolution is comparable to the bin width.
    """

    method = UnfoldMethod.INVERT

    def _solve(self, response: UnfoldResponse, measured: np.ndarray, variances: np.ndarray):
        P = response.probability_matrix
        K = np.linalg.pinv(P)
        reco = K @ measured
        covariance = K @ np.diag(variances) @ K.T
        cond = float(np.linalg.cond(P)) if P.size else float("inf")
        if not np.isfinite(cond) or cond > 1e10:
            logger.warning("Response matrix is ill-conditioned (condition number %.3g)", cond)
        return reco, covariance, {"condition_number": cond}
