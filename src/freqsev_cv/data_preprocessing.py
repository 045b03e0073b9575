import logging

import numpy as np
import pandas as pd
from sklearn.datasets import fetch_openml

from freqsev_cv import config
from freqsev_cv.simulation import simulate_portfolio

logger = logging.getLogger(__name__)


def fetch_raw_data():
    """
    Loads the French Motor Third-Party Liability datasets (freMTPL2) from OpenML.
    """
    logger.info("Downloading freMTPL2 frequency and severity data from OpenML...")
    freq = fetch_openml(data_id=config.OPENML_FREQUENCY_DATA_ID, as_frame=True, parser="auto").frame
    sev = fetch_openml(data_id=config.OPENML_SEVERITY_DATA_ID, as_frame=True, parser="auto").frame

    # IDs can come back as strings; merging needs ints on both sides
    freq["IDpol"] = freq["IDpol"].astype(int)
    sev["IDpol"] = sev["IDpol"].astype(int)

    return freq, sev


def preprocess_data(df_freq, df_sev):
    """
    Merges claim amounts onto the policy table and filters bad records.
    """
    sev_agg = df_sev.groupby("IDpol")["ClaimAmount"].sum().reset_index()
    sev_agg = sev_agg.rename(columns={"ClaimAmount": "TotalLoss"})

    df = pd.merge(df_freq, sev_agg, on="IDpol", how="left")
    df = df.rename(columns={"DrivAge": "DriverAge"})
    df["TotalLoss"] = df["TotalLoss"].fillna(0)

    # Some policies report claims without any amount in the severity table
    df["AvgSeverity"] = np.where(
        (df["ClaimNb"] > 0) & (df["TotalLoss"] > 0),
        df["TotalLoss"] / df["ClaimNb"].clip(lower=1),
        0.0,
    )

    n_before = len(df)
    df = df[df["Exposure"] > config.MIN_EXPOSURE].copy()
    df["Exposure"] = df["Exposure"].clip(upper=config.MAX_EXPOSURE)
    df = df[df["ClaimNb"] < config.MAX_CLAIM_NB].copy()
    logger.info("Kept %d of %d policies after exposure/claim filters", len(df), n_before)

    return df.reset_index(drop=True)


def bin_features(df):
    """
    Applies the actuarial binning that produces the model's rating factors.
    """
    df = df.copy()

    # Finer granularity for young drivers, where risk varies most
    df["DriverAge_Bin"] = pd.cut(
        df["DriverAge"],
        bins=config.DRIVER_AGE_BINS,
        labels=config.DRIVER_AGE_LABELS,
        include_lowest=True,
    ).astype(str)

    df["VehAge_Bin"] = pd.cut(
        df["VehAge"], bins=config.VEHICLE_AGE_BINS, labels=config.VEHICLE_AGE_LABELS
    ).astype(str)

    df["VehPower_Bin"] = df["VehPower"].apply(
        lambda x: f"{int(x)}" if x < config.VEHICLE_POWER_THRESHOLD else "10+"
    )

    for col in ["VehBrand", "VehGas", "Region", "Area"]:
        df[col] = df[col].astype(str)

    # Keep the most common brands, group the long tail
    top_brands = df["VehBrand"].value_counts().nlargest(config.TOP_BRANDS_COUNT).index
    df["VehBrand_Bin"] = df["VehBrand"].where(df["VehBrand"].isin(top_brands), "Other")

    return df


def severity_subset(df):
    """Policies with at least one claim and a positive average cost."""
    mask = (df[config.CLAIM_COUNT_COL] > 0) & (df[config.SEVERITY_COL] > 0)
    return df[mask].copy()


def load_portfolio(source="simulated", n_policies=None, seed=None):
    """
    Returns a binned portfolio ready for cross-validation.

    Parameters:
    -----------
    source : str
        'simulated' (simulation.simulate_portfolio) or 'openml' (freMTPL2)
    n_policies : int, optional
        Size of the simulated portfolio, or a random subsample of the OpenML data
    seed : int, optional
        Seed for simulation/subsampling (default: config.RANDOM_STATE)
    """
    seed = config.RANDOM_STATE if seed is None else seed

    if source == "simulated":
        df = simulate_portfolio(n_policies, seed=seed)
    elif source == "openml":
        df_f, df_s = fetch_raw_data()
        df = preprocess_data(df_f, df_s)
        if n_policies is not None and n_policies < len(df):
            df = df.sample(n=n_policies, random_state=seed).reset_index(drop=True)
    else:
        raise ValueError(f"Unknown data source: {source!r} (expected 'simulated' or 'openml')")

    return bin_features(df)
