"""
Cross-validated grid search over one scalar complexity parameter.

Every (grid value, split) cell is independent: it fits on the split's training
folds, predicts on the validation fold and scores the predictions. Cells are
run through joblib, so n_jobs > 1 spreads them over worker processes. Any
failing cell aborts the whole evaluation with a FitFailure naming the grid
value and split, because a partially filled score matrix would bias selection.
"""

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from freqsev_cv import config
from freqsev_cv.exceptions import EmptyGridError, FitFailure, InvalidFoldCount
from freqsev_cv.folds import FoldSplit, enumerate_splits, split_data
from freqsev_cv.selection import select_minimum, select_one_se

logger = logging.getLogger(__name__)

RULES = ("min", "1se")


@dataclass(frozen=True, eq=False)
class ScoreMatrix:
    """Deviance per grid value (rows, in grid order) and split (columns)."""

    scores: pd.DataFrame
    splits: Tuple[FoldSplit, ...]

    @property
    def grid(self):
        return list(self.scores.index)

    def mean(self) -> pd.Series:
        return self.scores.mean(axis=1).rename("mean")

    def std_err(self) -> pd.Series:
        n_splits = self.scores.shape[1]
        if n_splits < 2:
            return pd.Series(0.0, index=self.scores.index, name="std_err")
        std = self.scores.std(axis=1, ddof=1)
        return (std / math.sqrt(n_splits)).rename("std_err")

    def summary(self) -> pd.DataFrame:
        out = pd.concat([self.mean(), self.std_err()], axis=1)
        out["n_splits"] = self.scores.shape[1]
        return out

    def select(self, rule="min", prefer="larger"):
        if rule == "min":
            return select_minimum(self.grid, self.mean(), prefer=prefer)
        if rule == "1se":
            return select_one_se(self.grid, self.mean(), self.std_err(), prefer=prefer)
        raise ValueError(f"Unknown selection rule: {rule!r} (expected one of {RULES})")


def _score_cell(
    data,
    folds,
    grid_value,
    split,
    fit,
    predict,
    scorer,
    response_col,
    weight_col,
    exposure_col,
    exposure_adjust,
):
    train, validation = split_data(data, folds, split)

    try:
        model = fit(train, grid_value)
        preds = predict(model, validation)
    except Exception as exc:
        raise FitFailure(grid_value, split, f"{type(exc).__name__}: {exc}") from exc

    preds = np.asarray(preds, dtype=float).ravel()
    if len(preds) != len(validation):
        raise FitFailure(
            grid_value,
            split,
            f"predict returned {len(preds)} values for {len(validation)} rows",
        )
    if not np.all(np.isfinite(preds)) or np.any(preds <= 0):
        raise FitFailure(grid_value, split, "predict returned non-finite or non-positive means")

    # Frequency models predict claims per unit exposure; the deviance needs
    # expected counts
    if exposure_adjust:
        preds = preds * validation[exposure_col].to_numpy(dtype=float)

    weights = None if weight_col is None else validation[weight_col]
    score = float(scorer(validation[response_col], preds, weights))

    logger.debug("grid value %s, split %s: deviance %.6f", grid_value, split, score)
    return score


def evaluate_grid(
    data,
    folds,
    grid,
    splits,
    fit,
    predict,
    scorer,
    response_col=config.CLAIM_COUNT_COL,
    weight_col=None,
    exposure_col=config.EXPOSURE_COL,
    exposure_adjust=False,
    n_jobs=config.N_JOBS,
):
    """
    Scores every grid value on every split.

    Parameters:
    -----------
    data : pd.DataFrame
        Portfolio; never modified
    folds : pd.Series
        Fold id per row of `data` (see folds.assign_folds)
    grid : sequence of float
        Candidate parameter values, in the order rows should appear
    splits : iterable of FoldSplit
        E.g. folds.enumerate_splits(...)
    fit : callable
        fit(train_subset, grid_value) -> fitted model
    predict : callable
        predict(model, subset) -> per-row means
    scorer : callable
        scorer(y, yhat, weights) -> float, e.g. deviance.DevianceScorer
    response_col, weight_col, exposure_col : str
        Columns holding the response, the scoring weights (None = unweighted)
        and the exposure
    exposure_adjust : bool
        Multiply predictions by exposure before scoring (frequency models
        that predict rates)
    n_jobs : int
        joblib worker count; 1 runs in-process

    Returns:
    --------
    ScoreMatrix
    """
    grid = list(grid)
    splits = tuple(splits)
    if not grid:
        raise EmptyGridError("Cannot evaluate an empty parameter grid")
    if len(set(grid)) != len(grid):
        raise ValueError(f"Grid values must be unique: {grid}")
    if not splits:
        raise ValueError("No fold splits to evaluate")

    logger.info(
        "Evaluating %d grid values over %d splits (%d fits, n_jobs=%s)",
        len(grid),
        len(splits),
        len(grid) * len(splits),
        n_jobs,
    )

    cells = [(value, split) for value in grid for split in splits]
    results = Parallel(n_jobs=n_jobs)(
        delayed(_score_cell)(
            data,
            folds,
            value,
            split,
            fit,
            predict,
            scorer,
            response_col,
            weight_col,
            exposure_col,
            exposure_adjust,
        )
        for value, split in cells
    )

    scores = pd.DataFrame(
        np.asarray(results, dtype=float).reshape(len(grid), len(splits)),
        index=pd.Index(grid, name="param"),
        columns=[split.label for split in splits],
    )
    matrix = ScoreMatrix(scores=scores, splits=splits)

    for value, mean in matrix.mean().items():
        logger.info("  param=%-10g mean deviance %.6f", value, mean)

    return matrix


def nested_cross_validate(
    data,
    folds,
    grid,
    fit,
    predict,
    scorer,
    rule=config.SELECTION_RULE,
    prefer="larger",
    **evaluate_kwargs,
):
    """
    Nested k-fold cross-validation.

    Each fold in turn is withheld as the test fold. The parameter is chosen by
    a grid search over the remaining folds (leave-one-fold-out), the model is
    refitted on all non-test folds with that value and scored on the test
    fold, giving an estimate of the whole tuning procedure's error.

    Returns:
    --------
    pd.DataFrame with one row per test fold: test_fold, selected,
    inner_mean (CV deviance of the selected value) and test_score
    """
    fold_ids = sorted(int(f) for f in pd.unique(folds))
    if len(fold_ids) < 3:
        raise InvalidFoldCount(
            f"Nested cross-validation needs at least 3 folds, got {len(fold_ids)}"
        )

    rows = []
    for test_fold in fold_ids:
        logger.info("Outer fold %d: tuning on folds %s", test_fold,
                    [f for f in fold_ids if f != test_fold])
        matrix = evaluate_grid(
            data,
            folds,
            grid,
            enumerate_splits(fold_ids, hold_out_test=test_fold),
            fit,
            predict,
            scorer,
            **evaluate_kwargs,
        )
        selected = matrix.select(rule=rule, prefer=prefer)

        # Score the selected value on the test fold, trained on everything else
        outer = FoldSplit(test_fold, test_fold, tuple(f for f in fold_ids if f != test_fold))
        test_score = evaluate_grid(
            data, folds, [selected], [outer], fit, predict, scorer, **evaluate_kwargs
        ).scores.iloc[0, 0]

        rows.append(
            {
                "test_fold": test_fold,
                "selected": selected,
                "inner_mean": float(matrix.mean()[selected]),
                "test_score": float(test_score),
            }
        )

    return pd.DataFrame(rows)
