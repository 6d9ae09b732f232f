"""Uncertainty studies for unfolded spectra."""

from toyunfold.uncertainty.mc import ToyErrorStudy, toy_error_study

__all__ = ["ToyErrorStudy", "toy_error_study"]
