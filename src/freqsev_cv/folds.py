"""
Fold assignment and fold rotation.

Folds are assigned deterministically: observations are sorted on a composite
key and dealt round-robin into k folds, so each fold receives a similar spread
of responses without any random seed. The rotation then enumerates the
(test, validation, training) splits used for plain and nested k-fold CV.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from freqsev_cv.exceptions import InvalidFoldCount

logger = logging.getLogger(__name__)


def assign_folds(data, k, sort_keys=None):
    """
    Assigns every row of `data` to one of k folds.

    Parameters:
    -----------
    data : pd.DataFrame
        The portfolio, one row per observation
    k : int
        Number of folds, 1 <= k <= len(data)
    sort_keys : list, optional
        Column names (or callables taking the frame and returning a column),
        in priority order. Rows are sorted ascending and stably on these keys
        before round-robin assignment. None keeps the input order.

    Returns:
    --------
    pd.Series of fold ids in [1, k], indexed like `data`
    """
    n = len(data)
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise InvalidFoldCount(f"Fold count must be an integer, got {k!r}")
    if k <= 0 or k > n:
        raise InvalidFoldCount(f"Fold count must be between 1 and {n}, got {k}")

    sort_keys = list(sort_keys or [])
    if sort_keys:
        keys = {}
        for i, key in enumerate(sort_keys):
            column = key(data) if callable(key) else data[key]
            keys[f"key_{i}"] = np.asarray(column)
        frame = pd.DataFrame(keys)
        # Original position as the last key makes the sort stable on ties
        frame["position"] = np.arange(n)
        order = frame.sort_values(by=list(frame.columns)).index.to_numpy()
    else:
        order = np.arange(n)

    fold_ids = np.empty(n, dtype=int)
    fold_ids[order] = (np.arange(n) % k) + 1

    logger.debug("Assigned %d observations to %d folds (sort keys: %s)", n, k, sort_keys)
    return pd.Series(fold_ids, index=data.index, name="fold")


@dataclass(frozen=True)
class FoldSplit:
    """One rotation step: which folds train the model and which one scores it."""

    test_fold: Optional[int]
    validation_fold: int
    training_folds: Tuple[int, ...]

    @property
    def label(self) -> str:
        test = "-" if self.test_fold is None else str(self.test_fold)
        return f"test={test}|val={self.validation_fold}"

    def __str__(self):
        return self.label


class FoldRotation:
    """
    Restartable sequence of leave-one-fold-out splits.

    If `hold_out_test` is given, that fold is fixed as the test fold of every
    split and never used for validation or training.
    """

    def __init__(self, fold_ids, hold_out_test=None):
        self.fold_ids = tuple(sorted({int(f) for f in fold_ids}))
        if hold_out_test is not None and hold_out_test not in self.fold_ids:
            raise ValueError(f"Test fold {hold_out_test} is not one of the folds {self.fold_ids}")
        self.hold_out_test = hold_out_test

    def _rotating(self):
        return [f for f in self.fold_ids if f != self.hold_out_test]

    def __iter__(self):
        rotating = self._rotating()
        for validation in rotating:
            training = tuple(f for f in rotating if f != validation)
            yield FoldSplit(self.hold_out_test, validation, training)

    def __len__(self):
        return len(self._rotating())

    def __repr__(self):
        return f"FoldRotation(fold_ids={self.fold_ids}, hold_out_test={self.hold_out_test})"


def enumerate_splits(fold_ids, hold_out_test=None):
    return FoldRotation(fold_ids, hold_out_test=hold_out_test)


def split_data(data, folds, split):
    """Returns the (training, validation) row subsets of `data` for one split."""
    train = data[folds.isin(split.training_folds)]
    validation = data[folds == split.validation_fold]
    return train, validation
