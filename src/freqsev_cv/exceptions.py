"""
Errors raised by the cross-validation harness.

Every error derives from CrossValidationError and from the builtin that best
describes it, so `except ValueError` keeps working for input problems.
"""


class CrossValidationError(Exception):
    """Base class for all harness errors."""


class InputLengthMismatch(CrossValidationError, ValueError):
    """Response, prediction and weight vectors have different lengths."""


class DomainError(CrossValidationError, ValueError):
    """A value falls outside the domain of the deviance (e.g. a non-positive mean)."""


class InvalidFoldCount(CrossValidationError, ValueError):
    """Requested number of folds is not in [1, number of observations]."""


class EmptyGridError(CrossValidationError, ValueError):
    """Selection was asked to choose from an empty parameter grid."""


class FitFailure(CrossValidationError, RuntimeError):
    """
    An external fit or predict call failed for one (grid value, split) cell.

    The constructor arguments are kept in `args` so the exception pickles
    cleanly when raised inside a worker process.
    """

    def __init__(self, grid_value, split, reason):
        super().__init__(grid_value, split, reason)
        self.grid_value = grid_value
        self.split = split
        self.reason = reason

    def __str__(self):
        return f"Fit failed for grid value {self.grid_value!r} on split {self.split}: {self.reason}"
