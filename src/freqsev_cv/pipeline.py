"""
End-to-end cross-validation run: load a portfolio, assign folds, score the
parameter grid and pick a value.

Usage:
    freqsev-cv --model poisson_tree --source simulated --folds 5 --plot
"""

import argparse
import logging

from freqsev_cv import config
from freqsev_cv.data_preprocessing import load_portfolio, severity_subset
from freqsev_cv.deviance import DevianceScorer
from freqsev_cv.folds import assign_folds, enumerate_splits
from freqsev_cv.grid_search import evaluate_grid, nested_cross_validate
from freqsev_cv.models import get_model_spec, predict
from freqsev_cv.plots import plot_cv_curve

logger = logging.getLogger(__name__)


def _prepare(model_name, data, n_folds):
    spec = get_model_spec(model_name)
    if spec.severity:
        data = severity_subset(data)
    folds = assign_folds(data, n_folds, sort_keys=spec.sort_keys)
    return spec, data, folds


def _evaluate_kwargs(spec, n_jobs):
    return {
        "response_col": spec.response_col,
        "weight_col": spec.weight_col,
        "exposure_col": config.EXPOSURE_COL,
        "exposure_adjust": spec.exposure_adjust,
        "n_jobs": n_jobs,
    }


def run_cross_validation(
    model_name="poisson_tree",
    data=None,
    n_folds=config.N_FOLDS,
    grid=None,
    test_fold=config.TEST_FOLD,
    rule=config.SELECTION_RULE,
    n_jobs=config.N_JOBS,
    prefer="larger",
):
    """
    Runs the k-fold grid search for one registered model.

    Parameters:
    -----------
    model_name : str
        Key of models.MODEL_REGISTRY ('poisson_tree', 'poisson_glm', 'gamma_glm')
    data : pd.DataFrame, optional
        Binned portfolio (default: a simulated one)
    n_folds : int
        Number of folds
    grid : list of float, optional
        Parameter values (default: the model's configured grid)
    test_fold : int, optional
        Fold withheld from every split as a test fold
    rule : str
        Selection rule reported as `selected`: 'min' or '1se'
    n_jobs : int
        joblib workers for the grid evaluation

    Returns:
    --------
    dict containing:
        - score_matrix: grid_search.ScoreMatrix
        - summary: pd.DataFrame of mean / std_err per grid value
        - best_min: value with the lowest mean deviance
        - best_1se: simplest value within one standard error of it
        - selected: the value picked by `rule` ('min' or '1se')
        - folds: pd.Series of fold ids
        - data: the portfolio rows actually used
    """
    if data is None:
        data = load_portfolio("simulated")

    spec, data, folds = _prepare(model_name, data, n_folds)
    grid = spec.grid if grid is None else grid

    score_matrix = evaluate_grid(
        data,
        folds,
        grid,
        enumerate_splits(folds.unique(), hold_out_test=test_fold),
        spec.fit,
        predict,
        DevianceScorer(family=spec.family),
        **_evaluate_kwargs(spec, n_jobs),
    )

    return {
        "score_matrix": score_matrix,
        "summary": score_matrix.summary(),
        "best_min": score_matrix.select("min", prefer=prefer),
        "best_1se": score_matrix.select("1se", prefer=prefer),
        "selected": score_matrix.select(rule, prefer=prefer),
        "folds": folds,
        "data": data,
    }


def run_nested_cross_validation(
    model_name="poisson_tree",
    data=None,
    n_folds=config.N_FOLDS,
    grid=None,
    rule=config.SELECTION_RULE,
    n_jobs=config.N_JOBS,
    prefer="larger",
):
    """Nested k-fold CV for one registered model; see grid_search.nested_cross_validate."""
    if data is None:
        data = load_portfolio("simulated")

    spec, data, folds = _prepare(model_name, data, n_folds)
    grid = spec.grid if grid is None else grid

    return nested_cross_validate(
        data,
        folds,
        grid,
        spec.fit,
        predict,
        DevianceScorer(family=spec.family),
        rule=rule,
        prefer=prefer,
        **_evaluate_kwargs(spec, n_jobs),
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Cross-validate the complexity parameter of a frequency or severity model."
    )
    parser.add_argument(
        "--model",
        default="poisson_tree",
        choices=["poisson_tree", "poisson_glm", "gamma_glm"],
    )
    parser.add_argument("--source", default="simulated", choices=["simulated", "openml"])
    parser.add_argument("--n-policies", type=int, default=None)
    parser.add_argument("--folds", type=int, default=config.N_FOLDS)
    parser.add_argument("--test-fold", type=int, default=config.TEST_FOLD)
    parser.add_argument("--n-jobs", type=int, default=config.N_JOBS)
    parser.add_argument("--rule", default=config.SELECTION_RULE, choices=["min", "1se"])
    parser.add_argument("--nested", action="store_true", help="Run nested cross-validation")
    parser.add_argument("--plot", action="store_true", help="Save the CV curve to plots/")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)
    if args.nested and args.test_fold is not None:
        parser.error("--test-fold cannot be combined with --nested (every fold is held out in turn)")
    return args


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print("Loading data...")
    data = load_portfolio(args.source, n_policies=args.n_policies)

    if args.nested:
        print(f"Running nested {args.folds}-fold CV for {args.model}...")
        results = run_nested_cross_validation(
            args.model, data, n_folds=args.folds, rule=args.rule, n_jobs=args.n_jobs
        )
        print("\n" + "=" * 50)
        print("NESTED CROSS-VALIDATION")
        print("=" * 50)
        print(results.to_string(index=False))
        print(f"\nMean test deviance: {results['test_score'].mean():.6f}")
        print("=" * 50 + "\n")
        return results

    print(f"Running {args.folds}-fold CV for {args.model}...")
    result = run_cross_validation(
        args.model,
        data,
        n_folds=args.folds,
        test_fold=args.test_fold,
        rule=args.rule,
        n_jobs=args.n_jobs,
    )

    print("\n" + "=" * 50)
    print(f"CROSS-VALIDATED DEVIANCE: {args.model}")
    print("=" * 50)
    print(result["summary"].to_string())
    print(f"\nMinimum-deviance choice: {result['best_min']:g}")
    print(f"One-SE rule choice:      {result['best_1se']:g}")
    print(f"Selected ({args.rule}):           {result['selected']:g}")
    print("=" * 50 + "\n")

    if args.plot:
        plot_cv_curve(
            result["score_matrix"],
            selected=result["best_min"],
            selected_1se=result["best_1se"],
            title=f"Cross-Validated Deviance: {args.model}",
            filename=f"cv_curve_{args.model}.png",
        )

    return result


if __name__ == "__main__":
    main()
