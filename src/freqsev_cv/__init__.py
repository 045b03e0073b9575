"""Deviance-based k-fold cross-validation for insurance frequency and severity models."""

from freqsev_cv.deviance import DevianceScorer, deviance, gamma_deviance, poisson_deviance
from freqsev_cv.exceptions import (
    CrossValidationError,
    DomainError,
    EmptyGridError,
    FitFailure,
    InputLengthMismatch,
    InvalidFoldCount,
)
from freqsev_cv.folds import FoldRotation, FoldSplit, assign_folds, enumerate_splits
from freqsev_cv.grid_search import ScoreMatrix, evaluate_grid, nested_cross_validate
from freqsev_cv.selection import select_minimum, select_one_se

__version__ = "0.1.0"
