"""Closure tests of unfolded distributions against the generated truth."""

from toyunfold.validation.metrics import (
    MAX_PULL,
    ComparisonRow,
    chi2_probability,
    comparison_table,
    format_comparison_table,
    pull_histogram,
    residual_histogram,
    unfolding_chi2,
)
from toyunfold.validation.parms import RegularizationPoint, RegularizationScan, scan_regularization

__all__ = [
    "MAX_PULL",
    "ComparisonRow",
    "chi2_probability",
    "comparison_table",
    "format_comparison_table",
    "pull_histogram",
    "residual_histogram",
    "unfolding_chi2",
    "RegularizationPoint",
    "RegularizationScan",
    "scan_regularization",
]
