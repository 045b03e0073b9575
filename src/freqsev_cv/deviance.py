"""
Poisson and Gamma deviance used to score held-out predictions.

The scaled deviance divides the (weighted) sum by the number of non-missing
responses, not by the sum of weights. Cross-validated scores computed on
weighted data therefore differ from sklearn's mean_*_deviance, which divides
by the total weight.
"""

from dataclasses import dataclass

import numpy as np

from freqsev_cv.exceptions import DomainError, InputLengthMismatch

FAMILIES = ("poisson", "gamma")


def _prepare(y, yhat, weights):
    y = np.asarray(y, dtype=float).ravel()
    yhat = np.asarray(yhat, dtype=float).ravel()
    if weights is None:
        weights = np.ones_like(y)
    else:
        weights = np.asarray(weights, dtype=float).ravel()

    if not (len(y) == len(yhat) == len(weights)):
        raise InputLengthMismatch(
            f"y, yhat and weights must have the same length "
            f"(got {len(y)}, {len(yhat)}, {len(weights)})"
        )

    # NaN fails the comparison as well, so missing means are rejected too
    if not np.all(yhat > 0):
        raise DomainError("Predicted means must be strictly positive")
    if not np.all(np.isfinite(weights)) or np.any(weights < 0):
        raise DomainError("Weights must be finite and non-negative")

    return y, yhat, weights


def _poisson_unit_deviance(y, mu):
    # y * ln(y / mu) tends to 0 as y -> 0
    safe_y = np.where(y > 0, y, 1.0)
    ylogy = np.where(y > 0, y * np.log(safe_y / mu), 0.0)
    return ylogy - (y - mu)


def _gamma_unit_deviance(y, mu):
    return -np.log(y / mu) + (y - mu) / mu


def deviance(y, yhat, weights=None, scaled=True, family="poisson"):
    """
    Computes the Poisson or Gamma deviance between observed responses and
    predicted means.

    Parameters:
    -----------
    y : array-like
        Observed responses (claim counts or severities). NaN entries are
        treated as absent and dropped from both the sum and the count.
    yhat : array-like
        Predicted means on the response scale, strictly positive.
    weights : array-like, optional
        Case weights (default: all ones).
    scaled : bool, default True
        If True, divide by the number of non-missing responses.
    family : {'poisson', 'gamma'}

    Returns:
    --------
    float: the (scaled) deviance, always >= 0
    """
    if family not in FAMILIES:
        raise ValueError(f"Unknown deviance family: {family!r} (expected one of {FAMILIES})")

    y, yhat, weights = _prepare(y, yhat, weights)

    present = ~np.isnan(y)
    y, yhat, weights = y[present], yhat[present], weights[present]

    if family == "poisson":
        if np.any(y < 0):
            raise DomainError("Poisson responses must be non-negative")
        unit = _poisson_unit_deviance(y, yhat)
    else:
        if np.any(y <= 0):
            raise DomainError("Gamma responses must be strictly positive")
        unit = _gamma_unit_deviance(y, yhat)

    total = 2.0 * float(np.sum(weights * unit))

    if not scaled:
        return total

    n_present = len(y)
    if n_present == 0:
        raise DomainError("Cannot scale deviance: no non-missing responses")
    return total / n_present


def poisson_deviance(y, yhat, weights=None, scaled=True):
    return deviance(y, yhat, weights=weights, scaled=scaled, family="poisson")


def gamma_deviance(y, yhat, weights=None, scaled=True):
    return deviance(y, yhat, weights=weights, scaled=scaled, family="gamma")


@dataclass(frozen=True)
class DevianceScorer:
    """Deviance with the family and scaling fixed, callable as scorer(y, yhat, weights)."""

    family: str = "poisson"
    scaled: bool = True

    def __post_init__(self):
        if self.family not in FAMILIES:
            raise ValueError(f"Unknown deviance family: {self.family!r}")

    def __call__(self, y, yhat, weights=None):
        return deviance(y, yhat, weights=weights, scaled=self.scaled, family=self.family)
