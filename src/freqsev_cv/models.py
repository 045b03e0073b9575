"""
Adapters around the sklearn models tuned by cross-validation.

The harness only needs two capabilities from a model library:
fit(train_subset, param) -> FittedModel, and FittedModel.predict(subset).
Each fit routine below builds the same kind of Pipeline (one-hot encoding of
the binned rating factors followed by the regressor) and wraps it in a
SklearnModel.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np
from sklearn.compose import ColumnTransformer
from sklearn.linear_model import GammaRegressor, PoissonRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder
from sklearn.tree import DecisionTreeRegressor

from freqsev_cv import config


class FittedModel(ABC):
    """A fitted model, seen by the harness only through predict()."""

    @abstractmethod
    def predict(self, subset) -> np.ndarray:
        """Predicted mean response for every row of `subset`."""


class SklearnModel(FittedModel):
    def __init__(self, pipeline, features):
        self.pipeline = pipeline
        self.features = list(features)

    def predict(self, subset):
        return self.pipeline.predict(subset[self.features])

    def __repr__(self):
        return f"SklearnModel({self.pipeline.steps[-1][1]!r})"


def _features():
    return config.CATEGORICAL_FEATURES.copy(), config.NUMERICAL_FEATURES.copy()


def _preprocessor(categorical_features, numerical_features, drop="first"):
    # handle_unknown='ignore': a validation fold can contain a level the
    # training folds never saw
    return ColumnTransformer(
        transformers=[
            ("cat", OneHotEncoder(drop=drop, handle_unknown="ignore"), categorical_features),
            ("num", "passthrough", numerical_features),
        ]
    )


def _fit_frequency(df_train, regressor, drop="first"):
    categorical_features, numerical_features = _features()
    features = categorical_features + numerical_features

    model_pipeline = Pipeline(
        [
            ("preprocessor", _preprocessor(categorical_features, numerical_features, drop)),
            ("regressor", regressor),
        ]
    )

    # Target is the claim rate, weighted by exposure, so predictions come out
    # per unit exposure and need multiplying by exposure to give counts
    y_train = df_train[config.CLAIM_COUNT_COL] / df_train[config.EXPOSURE_COL]
    model_pipeline.fit(
        df_train[features],
        y_train,
        regressor__sample_weight=df_train[config.EXPOSURE_COL],
    )
    return SklearnModel(model_pipeline, features)


def fit_poisson_tree(df_train, ccp_alpha):
    """
    Fits a Poisson regression tree pruned at cost-complexity threshold `ccp_alpha`.

    Larger thresholds prune more, so the largest grid value is the smallest tree.
    """
    tree = DecisionTreeRegressor(
        criterion="poisson",
        ccp_alpha=float(ccp_alpha),
        min_samples_leaf=config.TREE_MIN_SAMPLES_LEAF,
        random_state=config.RANDOM_STATE,
    )
    # Trees split on every level directly, no reference level needed
    return _fit_frequency(df_train, tree, drop=None)


def fit_poisson_glm(df_train, alpha):
    """Fits an L2-penalised Poisson GLM for claim frequency."""
    glm = PoissonRegressor(alpha=float(alpha), max_iter=config.MAX_ITER, solver=config.GLM_SOLVER)
    return _fit_frequency(df_train, glm)


def fit_gamma_glm(df_train, alpha):
    """
    Fits an L2-penalised Gamma GLM for the average claim cost.

    Expects only policies with claims (see data_preprocessing.severity_subset).
    Weighted by ClaimNb: the average of three claims carries more information
    than a single claim.
    """
    categorical_features, numerical_features = _features()
    features = categorical_features + numerical_features

    glm = GammaRegressor(alpha=float(alpha), max_iter=config.MAX_ITER, solver=config.GLM_SOLVER)
    model_pipeline = Pipeline(
        [
            ("preprocessor", _preprocessor(categorical_features, numerical_features)),
            ("regressor", glm),
        ]
    )
    model_pipeline.fit(
        df_train[features],
        df_train[config.SEVERITY_COL],
        regressor__sample_weight=df_train[config.CLAIM_COUNT_COL],
    )
    return SklearnModel(model_pipeline, features)


def predict(model, subset):
    return model.predict(subset)


@dataclass(frozen=True)
class ModelSpec:
    """Everything the pipeline needs to cross-validate one kind of model."""

    name: str
    fit: Callable
    family: str
    response_col: str
    weight_col: Optional[str]
    exposure_adjust: bool
    grid: List[float]
    sort_keys: List[str]
    severity: bool = False


MODEL_REGISTRY = {
    "poisson_tree": ModelSpec(
        name="poisson_tree",
        fit=fit_poisson_tree,
        family="poisson",
        response_col=config.CLAIM_COUNT_COL,
        weight_col=None,
        exposure_adjust=True,
        grid=config.CCP_ALPHA_GRID,
        sort_keys=config.FREQUENCY_SORT_KEYS,
    ),
    "poisson_glm": ModelSpec(
        name="poisson_glm",
        fit=fit_poisson_glm,
        family="poisson",
        response_col=config.CLAIM_COUNT_COL,
        weight_col=None,
        exposure_adjust=True,
        grid=config.GLM_ALPHA_GRID,
        sort_keys=config.FREQUENCY_SORT_KEYS,
    ),
    "gamma_glm": ModelSpec(
        name="gamma_glm",
        fit=fit_gamma_glm,
        family="gamma",
        response_col=config.SEVERITY_COL,
        weight_col=config.CLAIM_COUNT_COL,
        exposure_adjust=False,
        grid=config.GLM_ALPHA_GRID,
        sort_keys=config.SEVERITY_SORT_KEYS,
        severity=True,
    ),
}


def get_model_spec(name):
    try:
        return MODEL_REGISTRY[name]
    except KeyError:
        raise ValueError(
            f"Unknown model: {name!r} (expected one of {sorted(MODEL_REGISTRY)})"
        ) from None
