"""Solver package."""

from toyunfold.solvers.base import UnfoldMethod, UnfoldResult, Unfolder
from toyunfold.solvers.bayes import BayesUnfolder, iterative_bayes
from toyunfold.solvers.binbybin import BinByBinUnfolder
from toyunfold.solvers.factory import create_unfolder
from toyunfold.solvers.invert import InvertUnfolder
from toyunfold.solvers.svd import SvdUnfolder, svd_unfolding_matrix

__all__ = [
    "UnfoldMethod",
    "UnfoldResult",
    "Unfolder",
    "BayesUnfolder",
    "iterative_bayes",
    "BinByBinUnfolder",
    "InvertUnfolder",
    "SvdUnfolder",
    "svd_unfolding_matrix",
    "create_unfolder",
]
