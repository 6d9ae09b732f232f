"""Construct unfolding strategies from method codes."""

from __future__ import annotations

from typing import Optional

import numpy as np

from toyunfold.solvers.base import UnfoldMethod, Unfolder
from toyunfold.solvers.bayes import BayesUnfolder
from toyunfold.solvers.binbybin import BinByBinUnfolder
from toyunfold.solvers.invert import InvertUnfolder
from toyunfold.solvers.svd import SvdUnfolder


def create_unfolder(
    method,
    regparm: Optional[int] = None,
    n_toys: int = 1000,
    rng: Optional[np.random.Generator] = None,
) -> Unfolder:
    """
    Return the unfolding strategy for ``method``.

    Parameters
    ----------
    method : int or UnfoldMethod
        Method code (1 Bayes, 2 SVD, 3 bin-by-bin, 4 invert).
    regparm : int, optional
        Iterations (Bayes) or kterm (SVD); the method default when None.
    n_toys : int
        Toys for the SVD covariance.
    rng : np.random.Generator, optional
        Random source for the SVD toys.

    Raises
    ------
    UnknownMethodError
        If ``method`` is not a known code.
    """
    method = UnfoldMethod.from_code(method)
    if regparm is None:
        regparm = method.default_regparm

    if method is UnfoldMethod.BAYES:
        return BayesUnfolder(iterations=regparm)
    if method is UnfoldMethod.SVD:
        return SvdUnfolder(kterm=regparm, n_toys=n_toys, rng=rng)
    if method is UnfoldMethod.BIN_BY_BIN:
        return BinByBinUnfolder()
    return InvertUnfolder()
