"""
SVD unfolding with curvature regularisation.

Follows Hoecker & Kartvelishvili, Nucl. Instrum. Meth. A372 (1996) 469:

1. Rescale the system with the measured covariance so every equation has
   unit error.
2. Solve for the ratio w = x / x_ini to the training truth, with a
   second-derivative (curvature) operator C.
3. Decompose A C^-1 = U S V^T and damp the coefficients d = U^T b with
   the Tikhonov filter s / (s^2 + tau), tau = s_k^2 for regularisation
   term k.

The reconstruction is linear in the measured spectrum, so its covariance
is obtained either from Gaussian toys of the measured spectrum or
analytically.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

import numpy as np

from toyunfold.core.response import UnfoldResponse
from toyunfold.solvers.base import UnfoldMethod, Unfolder

logger = logging.getLogger(__name__)


def curvature_matrix(n: int, ddiag: float = 1e-4) -> np.ndarray:
    """Discrete second-derivative operator with a small diagonal term to keep it invertible."""
    C = np.zeros((n, n))
    for i in range(n):
        C[i, i] = -2.0 + ddiag
        if i > 0:
            C[i, i - 1] = 1.0
        if i < n - 1:
            C[i, i + 1] = 1.0
    C[0, 0] = -1.0 + ddiag
    C[n - 1, n - 1] = -1.0 + ddiag
    if n == 1:
        C[0, 0] = ddiag
    return C


def svd_unfolding_matrix(
    response_counts: np.ndarray,
    truth_train: np.ndarray,
    measured_errors: np.ndarray,
    kterm: int,
    measured: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, Dict[str, Any]]:
    """
    Build the linear map K with reco = K @ measured.

    Parameters
    ----------
    response_counts : np.ndarray
        Trained response in events, shape (n_measured, n_true).
    truth_train : np.ndarray
        Training truth including misses, shape (n_true,).
    measured_errors : np.ndarray
        1-sigma errors of the measured bins; zero errors are treated as one.
    kterm : int
        Regularisation term (1 <= kterm <= number of singular values).
    measured : np.ndarray, optional
        When given, the rotated coefficients |d| = |U^T b| are reported; their
        fall to the noise level indicates a sensible kterm.
    """
    A = np.asarray(response_counts, dtype=float)
    xini = np.asarray(truth_train, dtype=float)
    r = np.where(measured_errors > 0, measured_errors, 1.0)

    C_inv = np.linalg.inv(curvature_matrix(A.shape[1]))
    A_tilde = A / r[:, np.newaxis]
    U, s, Vt = np.linalg.svd(A_tilde @ C_inv, full_matrices=False)

    if kterm < 1 or kterm > s.size:
        clamped = int(np.clip(kterm, 1, s.size))
        logger.warning("SVD kterm %d outside [1, %d]; using %d", kterm, s.size, clamped)
        kterm = clamped
    tau = s[kterm - 1] ** 2
    filt = s / (s * s + tau)

    # reco = diag(xini) C^-1 V diag(filt) U^T diag(1/r) b
    K = xini[:, np.newaxis] * (C_inv @ Vt.T @ (filt[:, np.newaxis] * U.T)) / r[np.newaxis, :]
    details = {
        "kterm": kterm,
        "tau": float(tau),
        "singular_values": s,
        "filter_factors": s * filt,
    }
    if measured is not None:
        details["d"] = np.abs(U.T @ (np.asarray(measured, dtype=float) / r))
    return K, details


class SvdUnfolder(Unfolder):
    """SVD unfolding; the regularisation parameter is the kterm."""

    method = UnfoldMethod.SVD

    def __init__(self, kterm: int = 20, n_toys: int = 1000, rng: Optional[np.random.Generator] = None) -> None:
        self.kterm = int(kterm)
        self.kterm_used = self.kterm
        self.n_toys = int(n_toys)
        self.rng = rng if rng is not None else np.random.default_rng()

    @property
    def regparm(self) -> int:
        return self.kterm_used

    def _solve(self, response: UnfoldResponse, measured: np.ndarray, variances: np.ndarray):
        errors = np.sqrt(np.maximum(variances, 0.0))
        K, details = svd_unfolding_matrix(
            response.matrix, response.truth.values, errors, self.kterm, measured=measured
        )
        self.kterm_used = details["kterm"]
        reco = K @ measured

        if self.n_toys >= 2:
            toys = measured + self.rng.normal(size=(self.n_toys, measured.size)) * errors
            covariance = np.cov(toys @ K.T, rowvar=False).reshape(reco.size, reco.size)
            details["covariance_source"] = f"{self.n_toys} toys"
        else:
            covariance = K @ np.diag(variances) @ K.T
            details["covariance_source"] = "analytic"
        details["n_toys"] = self.n_toys
        return reco, covariance, details
