"""Bin-by-bin correction factor unfolding."""

from __future__ import annotations

import numpy as np

from toyunfold.core.exceptions import BinningMismatchError
from toyunfold.core.response import UnfoldResponse
from toyunfold.solvers.base import UnfoldMethod, Unfolder


class BinByBinUnfolder(Unfolder):
    """
    Multiply each measured bin by truth/measured of the training sample.

    Only valid when migrations between bins are negligible: the factors
    correct for efficiency but not for smearing or bias.
    """

    method = UnfoldMethod.BIN_BY_BIN

    def _solve(self, response: UnfoldResponse, measured: np.ndarray, variances: np.ndarray):
        if not response.measured.same_binning(response.truth):
            raise BinningMismatchError("Bin-by-bin unfolding needs identical measured and true binning")
        train_meas = response.measured.values
        factors = np.divide(
            response.truth.values, train_meas, out=np.zeros_like(train_meas), where=train_meas > 0
        )
        reco = measured * factors
        covariance = np.diag(variances * factors * factors)
        return reco, covariance, {"factors": factors}
