"""Exception hierarchy shared by the toyunfold modules."""

from __future__ import annotations


class ToyUnfoldError(Exception):
    """Base class for all toyunfold errors."""


class ConfigurationError(ToyUnfoldError, ValueError):
    """Raised when run parameters violate a numeric precondition."""

    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid configuration")


class BinningMismatchError(ToyUnfoldError, ValueError):
    """Raised when histograms with different binning are combined."""


class GenerationError(ToyUnfoldError):
    """Raised when the toy PDF sampler cannot produce a sample."""


class PersistenceError(ToyUnfoldError):
    """Raised when a named object cannot be read back from an object store."""


class UnknownMethodError(ToyUnfoldError, ValueError):
    """Raised for an unfolding method code with no registered algorithm."""

    def __init__(self, code):
        self.code = code
        super().__init__(f"Unknown unfolding method {code}")
