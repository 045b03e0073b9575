import numpy as np
import pandas as pd
import pytest

from freqsev_cv import config
from freqsev_cv.data_preprocessing import (
    bin_features,
    load_portfolio,
    preprocess_data,
    severity_subset,
)
from freqsev_cv.simulation import simulate_portfolio, true_frequency


@pytest.fixture
def raw_tables():
    freq = pd.DataFrame(
        {
            "IDpol": [1, 2, 3, 4, 5],
            "ClaimNb": [0, 2, 1, 11, 1],
            "Exposure": [0.5, 1.2, 0.001, 1.0, 0.8],
            "Area": ["A", "B", "C", "D", "E"],
            "VehPower": [5, 12, 6, 7, 9],
            "VehAge": [0, 3, 7, 15, 25],
            "DrivAge": [19, 33, 45, 60, 80],
            "VehBrand": ["B1", "B2", "B1", "B12", "B3"],
            "VehGas": ["Diesel", "Regular", "Diesel", "Regular", "Diesel"],
            "Region": ["R11", "R24", "R11", "R52", "R93"],
        }
    )
    sev = pd.DataFrame({"IDpol": [2, 2, 3, 4], "ClaimAmount": [1000.0, 500.0, 80.0, 10.0]})
    return freq, sev


def test_preprocess_merges_and_filters(raw_tables):
    df = preprocess_data(*raw_tables)

    # Policy 3 has too little exposure, policy 4 too many claims
    assert df["IDpol"].tolist() == [1, 2, 5]
    assert "DriverAge" in df.columns
    assert df["Exposure"].max() == config.MAX_EXPOSURE
    assert df["TotalLoss"].tolist() == [0.0, 1500.0, 0.0]
    assert df["AvgSeverity"].tolist() == [0.0, 750.0, 0.0]


def test_bin_features(raw_tables):
    df = bin_features(preprocess_data(*raw_tables))

    assert df["DriverAge_Bin"].tolist() == ["18-21", "31-40", "75+"]
    assert df["VehAge_Bin"].tolist() == ["New (0-1)", "2-4", "20+"]
    assert df["VehPower_Bin"].tolist() == ["5", "10+", "9"]
    assert set(config.CATEGORICAL_FEATURES) <= set(df.columns)


def test_rare_brands_are_grouped():
    df = pd.DataFrame(
        {
            "DriverAge": [30] * 8,
            "VehAge": [2] * 8,
            "VehPower": [6] * 8,
            "VehBrand": ["B1", "B1", "B2", "B2", "B3", "B4", "B5", "B6"],
            "VehGas": ["Diesel"] * 8,
            "Region": ["R11"] * 8,
            "Area": ["A"] * 8,
        }
    )
    brands = bin_features(df)["VehBrand_Bin"]
    assert brands.nunique() <= config.TOP_BRANDS_COUNT + 1
    assert (brands[:4] == df["VehBrand"][:4]).all()


def test_severity_subset(portfolio):
    claims = severity_subset(portfolio)
    assert (claims["ClaimNb"] > 0).all()
    assert (claims["AvgSeverity"] > 0).all()
    assert len(claims) == (portfolio["ClaimNb"] > 0).sum()


def test_simulation_is_reproducible():
    first = simulate_portfolio(500, seed=3)
    second = simulate_portfolio(500, seed=3)
    pd.testing.assert_frame_equal(first, second)
    assert not first.equals(simulate_portfolio(500, seed=4))


def test_simulated_frequency_matches_model():
    df = simulate_portfolio(50000, seed=11)

    assert (df["Exposure"] > 0).all() and (df["Exposure"] <= 1).all()
    np.testing.assert_allclose(df["TrueFreq"], true_frequency(df))
    expected = (df["TrueFreq"] * df["Exposure"]).sum()
    assert df["ClaimNb"].sum() == pytest.approx(expected, rel=0.05)

    young = df["DriverAge"] < 25
    assert (df.loc[young, "TrueFreq"].mean()) > (df.loc[~young, "TrueFreq"].mean())


def test_simulated_severities():
    df = simulate_portfolio(20000, seed=5)
    has_claim = df["ClaimNb"] > 0

    assert (df.loc[has_claim, "TotalLoss"] > 0).all()
    assert (df.loc[~has_claim, "TotalLoss"] == 0).all()
    assert df.loc[has_claim, "AvgSeverity"].mean() == pytest.approx(
        config.SIM_SEVERITY_MEAN, rel=0.25
    )


def test_load_portfolio_rejects_unknown_source():
    with pytest.raises(ValueError, match="source"):
        load_portfolio("csv")
