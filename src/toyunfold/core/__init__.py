"""Core data structures and utilities."""

from toyunfold.core.exceptions import (
	BinningMismatchError,
	ConfigurationError,
	GenerationError,
	PersistenceError,
	ToyUnfoldError,
	UnknownMethodError,
)
from toyunfold.core.histogram import Histogram1D
from toyunfold.core.response import UnfoldResponse

__all__ = [
	"Histogram1D",
	"UnfoldResponse",
	# Errors
	"ToyUnfoldError",
	"ConfigurationError",
	"BinningMismatchError",
	"GenerationError",
	"PersistenceError",
	"UnknownMethodError",
]
