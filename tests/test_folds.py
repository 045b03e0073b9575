import pandas as pd
import pytest

from freqsev_cv.exceptions import InvalidFoldCount
from freqsev_cv.folds import FoldSplit, assign_folds, enumerate_splits, split_data


@pytest.fixture
def claims():
    return pd.DataFrame(
        {"ClaimNb": [5, 1, 3, 2, 4, 0], "Exposure": [1.0, 0.5, 1.0, 0.2, 0.9, 0.4]},
        index=[10, 11, 12, 13, 14, 15],
    )


def test_round_robin_after_sorting(claims):
    folds = assign_folds(claims, 2, sort_keys=["ClaimNb"])

    # Sorted order is rows 15, 11, 13, 12, 14, 10
    assert folds.to_dict() == {15: 1, 11: 2, 13: 1, 12: 2, 14: 1, 10: 2}
    assert folds.name == "fold"


def test_ties_keep_input_order():
    df = pd.DataFrame({"ClaimNb": [0] * 7})
    folds = assign_folds(df, 3, sort_keys=["ClaimNb"])
    assert folds.tolist() == [1, 2, 3, 1, 2, 3, 1]


def test_no_sort_keys_uses_input_order(claims):
    assert assign_folds(claims, 4).tolist() == [1, 2, 3, 4, 1, 2]


def test_composite_and_callable_keys():
    df = pd.DataFrame({"ClaimNb": [1, 0, 1, 0], "Exposure": [0.9, 0.3, 0.1, 0.8]})

    by_columns = assign_folds(df, 4, sort_keys=["ClaimNb", "Exposure"])
    # Sorted: (0, 0.3)=row1, (0, 0.8)=row3, (1, 0.1)=row2, (1, 0.9)=row0
    assert by_columns.tolist() == [4, 1, 3, 2]

    by_callable = assign_folds(df, 4, sort_keys=[lambda d: -d["Exposure"]])
    assert by_callable.tolist() == [1, 3, 4, 2]


def test_balanced_fold_sizes(portfolio):
    for k in (2, 3, 5, 7):
        folds = assign_folds(portfolio, k, sort_keys=["ClaimNb", "Exposure"])
        sizes = folds.value_counts()

        assert sorted(sizes.index) == list(range(1, k + 1))
        assert sizes.max() - sizes.min() <= 1
        assert len(folds) == len(portfolio)
        assert folds.index.equals(portfolio.index)


def test_folds_are_deterministic(portfolio):
    first = assign_folds(portfolio, 5, sort_keys=["ClaimNb", "Exposure"])
    second = assign_folds(portfolio, 5, sort_keys=["ClaimNb", "Exposure"])
    assert first.equals(second)


def test_stratification_spreads_claims(portfolio):
    folds = assign_folds(portfolio, 5, sort_keys=["ClaimNb"])
    claims_per_fold = portfolio.groupby(folds)["ClaimNb"].sum()
    assert claims_per_fold.max() - claims_per_fold.min() <= portfolio["ClaimNb"].max()


@pytest.mark.parametrize("k", [0, -1, 7, 2.5, True])
def test_invalid_fold_count(claims, k):
    with pytest.raises(InvalidFoldCount):
        assign_folds(claims, k)


def test_single_fold_is_allowed(claims):
    assert set(assign_folds(claims, 1)) == {1}


def test_rotation_without_test_fold():
    splits = list(enumerate_splits({1, 2, 3, 4}))

    assert len(splits) == 4
    assert [s.validation_fold for s in splits] == [1, 2, 3, 4]
    for split in splits:
        assert split.test_fold is None
        assert split.validation_fold not in split.training_folds
        assert set(split.training_folds) | {split.validation_fold} == {1, 2, 3, 4}


def test_rotation_with_test_fold():
    rotation = enumerate_splits([3, 1, 2, 5, 4], hold_out_test=2)
    splits = list(rotation)

    assert len(rotation) == 4
    assert len(splits) == 4
    assert {s.validation_fold for s in splits} == {1, 3, 4, 5}
    for split in splits:
        assert split.test_fold == 2
        assert 2 not in split.training_folds
        assert split.validation_fold not in split.training_folds
        assert set(split.training_folds) | {split.validation_fold} == {1, 3, 4, 5}

    # Each non-test fold trains in every split where it is not validating
    for fold in (1, 3, 4, 5):
        assert sum(fold in s.training_folds for s in splits) == 3


def test_rotation_is_restartable():
    rotation = enumerate_splits(range(1, 6), hold_out_test=5)
    assert list(rotation) == list(rotation)


def test_rotation_rejects_unknown_test_fold():
    with pytest.raises(ValueError):
        enumerate_splits([1, 2, 3], hold_out_test=4)


def test_split_label():
    assert FoldSplit(None, 2, (1, 3)).label == "test=-|val=2"
    assert str(FoldSplit(4, 1, (2, 3))) == "test=4|val=1"


def test_split_data(claims):
    folds = pd.Series([1, 2, 3, 1, 2, 3], index=claims.index)
    train, validation = split_data(claims, folds, FoldSplit(3, 2, (1,)))

    assert list(train.index) == [10, 13]
    assert list(validation.index) == [11, 14]
