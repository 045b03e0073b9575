import matplotlib

matplotlib.use("Agg")

import pytest

from freqsev_cv.data_preprocessing import load_portfolio


@pytest.fixture(scope="session")
def portfolio():
    return load_portfolio("simulated", n_policies=3000, seed=7)
