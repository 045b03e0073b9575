"""
Parameter selection from cross-validated mean scores.

Both rules resolve ties toward the simplest model. By default that is the
larger parameter value (a larger cost-complexity threshold prunes the tree
harder, a larger penalty shrinks the GLM harder). Pass prefer="smaller" for
controls where smaller means simpler, e.g. a maximum tree depth.
"""

import math

from freqsev_cv.exceptions import EmptyGridError

PREFERENCES = ("larger", "smaller")


def _lookup(grid, scores, name):
    table = dict(scores)
    missing = [g for g in grid if g not in table]
    if missing:
        raise ValueError(f"{name} has no entry for grid values {missing}")
    return [float(table[g]) for g in grid]


def _simplest(values, prefer):
    return max(values) if prefer == "larger" else min(values)


def _check(grid, prefer):
    if len(grid) == 0:
        raise EmptyGridError("Cannot select from an empty parameter grid")
    if prefer not in PREFERENCES:
        raise ValueError(f"prefer must be one of {PREFERENCES}, got {prefer!r}")


def _argmin(grid, means, prefer):
    scored = [(g, m) for g, m in zip(grid, means) if not math.isnan(m)]
    if not scored:
        raise ValueError("All mean scores are missing")
    best = min(m for _, m in scored)
    return _simplest([g for g, m in scored if m == best], prefer)


def select_minimum(grid, mean_scores, prefer="larger"):
    """
    Returns the grid value with the smallest mean score.

    Ties go to the simplest model (see module docstring).
    """
    grid = list(grid)
    _check(grid, prefer)
    means = _lookup(grid, mean_scores, "mean_scores")
    return _argmin(grid, means, prefer)


def select_one_se(grid, mean_scores, std_err_scores, prefer="larger"):
    """
    One-standard-error rule.

    Among all grid values whose mean score is within one standard error of the
    minimum (the standard error taken at the minimizing value), returns the one
    giving the simplest model.
    """
    grid = list(grid)
    _check(grid, prefer)
    means = _lookup(grid, mean_scores, "mean_scores")
    std_errs = _lookup(grid, std_err_scores, "std_err_scores")

    best = _argmin(grid, means, prefer)
    position = grid.index(best)
    std_err = std_errs[position]
    threshold = means[position] + (0.0 if math.isnan(std_err) else std_err)

    candidates = [g for g, m in zip(grid, means) if not math.isnan(m) and m <= threshold]
    return _simplest(candidates, prefer)
