"""
Simulated motor portfolio with freMTPL2-shaped columns.

Claim counts follow a Poisson model whose log mean is the log exposure plus a
linear predictor in driver age, vehicle age, area and fuel type; claim amounts
are Gamma distributed. The true frequency of every policy is kept in
`TrueFreq` so tests and examples can check what a model recovers.
"""

import logging

import numpy as np
import pandas as pd

from freqsev_cv import config

logger = logging.getLogger(__name__)


def true_frequency(df):
    """Annual claim frequency implied by the simulation parameters."""
    eta = np.full(len(df), config.SIM_INTERCEPT)
    eta += np.where(df["DriverAge"] < 25, config.SIM_DRIVER_AGE_EFFECT["young"], 0.0)
    eta += np.where(df["DriverAge"] >= 70, config.SIM_DRIVER_AGE_EFFECT["senior"], 0.0)
    eta += config.SIM_VEHICLE_AGE_EFFECT * df["VehAge"].to_numpy(dtype=float)
    eta += df["Area"].map(config.SIM_AREA_EFFECT).to_numpy(dtype=float)
    eta += np.where(df["VehGas"] == "Diesel", config.SIM_DIESEL_EFFECT, 0.0)
    return np.exp(eta)


def simulate_portfolio(n_policies=None, seed=None):
    """
    Draws a portfolio of `n_policies` policies.

    Parameters:
    -----------
    n_policies : int, optional
        Number of policies (default: config.SIM_N_POLICIES)
    seed : int, optional
        Seed for numpy's Generator (default: config.RANDOM_STATE)

    Returns:
    --------
    pd.DataFrame with IDpol, ClaimNb, Exposure, Area, VehPower, VehAge,
    DriverAge, VehBrand, VehGas, Region, TotalLoss, AvgSeverity, TrueFreq
    """
    n = config.SIM_N_POLICIES if n_policies is None else n_policies
    rng = np.random.default_rng(config.RANDOM_STATE if seed is None else seed)

    df = pd.DataFrame(
        {
            "IDpol": np.arange(1, n + 1),
            # Roughly a third of policies are in force for the whole year
            "Exposure": np.where(
                rng.random(n) < 0.35, 1.0, rng.uniform(0.05, 1.0, n)
            ).round(3),
            "Area": rng.choice(config.SIM_AREAS, size=n, p=config.SIM_AREA_PROBS),
            "VehPower": rng.integers(4, 16, n),
            "VehAge": np.minimum(rng.geometric(0.12, n) - 1, 30),
            "DriverAge": np.clip(rng.normal(45, 14, n).round(), 18, 95).astype(int),
            "VehBrand": rng.choice(config.SIM_BRANDS, size=n),
            "VehGas": rng.choice(["Diesel", "Regular"], size=n),
            "Region": rng.choice(config.SIM_REGIONS, size=n),
        }
    )

    df["TrueFreq"] = true_frequency(df)
    df["ClaimNb"] = rng.poisson(df["TrueFreq"] * df["Exposure"])

    # Sum of k iid Gamma(shape, scale) claims is Gamma(k * shape, scale)
    scale = config.SIM_SEVERITY_MEAN / config.SIM_SEVERITY_SHAPE
    scale = scale * np.exp(0.03 * (df["VehPower"].to_numpy(dtype=float) - 6))
    has_claim = df["ClaimNb"].to_numpy() > 0
    total = np.zeros(n)
    total[has_claim] = rng.gamma(
        config.SIM_SEVERITY_SHAPE * df["ClaimNb"].to_numpy()[has_claim], scale[has_claim]
    )
    df["TotalLoss"] = total.round(2)
    df["AvgSeverity"] = np.where(has_claim, df["TotalLoss"] / df["ClaimNb"].clip(lower=1), 0.0)

    logger.info(
        "Simulated %d policies: %d claims over %.1f years of exposure",
        n,
        int(df["ClaimNb"].sum()),
        df["Exposure"].sum(),
    )
    return df
