"""
Configuration for the frequency-severity cross-validation harness.

This module centralizes the hardcoded parameters and constants used by the
data preparation, model fitting and cross-validation code.
"""

# ============================================================================
# DATA SOURCES
# ============================================================================

# OpenML Dataset IDs (French Motor Third-Party Liability, freMTPL2)
OPENML_FREQUENCY_DATA_ID = 41214
OPENML_SEVERITY_DATA_ID = 41215

RANDOM_STATE = 42

# ============================================================================
# DATA FILTERING
# ============================================================================

MIN_EXPOSURE = 0.003
MAX_EXPOSURE = 1.0
MAX_CLAIM_NB = 10

# ============================================================================
# FEATURE BINNING CONFIGURATION
# ============================================================================

DRIVER_AGE_BINS = [0, 21, 25, 30, 40, 50, 60, 75, 120]
DRIVER_AGE_LABELS = ["18-21", "22-25", "26-30", "31-40", "41-50", "51-60", "61-75", "75+"]

VEHICLE_AGE_BINS = [-1, 1, 4, 10, 20, 100]
VEHICLE_AGE_LABELS = ["New (0-1)", "2-4", "5-10", "11-20", "20+"]

VEHICLE_POWER_THRESHOLD = 10  # Values >= 10 are grouped as '10+'

TOP_BRANDS_COUNT = 5

# ============================================================================
# MODEL FEATURES
# ============================================================================

CATEGORICAL_FEATURES = [
    "VehBrand_Bin",
    "VehGas",
    "Region",
    "Area",
    "VehPower_Bin",
    "VehAge_Bin",
    "DriverAge_Bin",
]

NUMERICAL_FEATURES = []

# Column names of the portfolio table
CLAIM_COUNT_COL = "ClaimNb"
EXPOSURE_COL = "Exposure"
SEVERITY_COL = "AvgSeverity"

# ============================================================================
# MODEL PARAMETERS
# ============================================================================

GLM_SOLVER = "newton-cholesky"
MAX_ITER = 1000

# Regression trees are grown deep and then pruned back by cost complexity
TREE_MIN_SAMPLES_LEAF = 100

# ============================================================================
# CROSS-VALIDATION
# ============================================================================

N_FOLDS = 5
TEST_FOLD = None  # Fold id withheld as an outer test fold (None = plain k-fold)
N_JOBS = 1

# Folds are assigned round-robin after sorting on these columns, so every fold
# sees a similar spread of responses
FREQUENCY_SORT_KEYS = ["ClaimNb", "Exposure"]
SEVERITY_SORT_KEYS = ["AvgSeverity"]

# Cost-complexity thresholds for Poisson regression trees (larger = smaller tree)
CCP_ALPHA_GRID = [1e-2, 5e-3, 2e-3, 1e-3, 5e-4, 2e-4, 1e-4, 5e-5, 1e-5, 0.0]

# L2 penalties for the Poisson and Gamma GLMs (larger = flatter coefficients)
GLM_ALPHA_GRID = [1.0, 0.3, 0.1, 0.03, 0.01, 0.003, 0.001, 0.0003, 0.0001]

# "min" picks the lowest mean deviance, "1se" the simplest value within one
# standard error of it
SELECTION_RULE = "min"

# ============================================================================
# SIMULATION
# ============================================================================

SIM_N_POLICIES = 20000
SIM_INTERCEPT = -2.3  # log of the base annual claim frequency (~10%)

# Multiplicative effects on claim frequency, as log relativities
SIM_DRIVER_AGE_EFFECT = {"young": 0.7, "senior": 0.25}  # <25 and >=70
SIM_VEHICLE_AGE_EFFECT = -0.03  # per year of vehicle age
SIM_AREA_EFFECT = {"A": -0.2, "B": -0.1, "C": 0.0, "D": 0.1, "E": 0.2, "F": 0.3}
SIM_DIESEL_EFFECT = 0.1

SIM_AREAS = ["A", "B", "C", "D", "E", "F"]
SIM_AREA_PROBS = [0.15, 0.11, 0.28, 0.22, 0.2, 0.04]
SIM_BRANDS = ["B1", "B2", "B3", "B5", "B6", "B10", "B11", "B12", "B14"]
SIM_REGIONS = ["R11", "R24", "R52", "R53", "R82", "R93"]

SIM_SEVERITY_MEAN = 1800.0
SIM_SEVERITY_SHAPE = 1.5  # Gamma shape; coefficient of variation = 1/sqrt(shape)

# ============================================================================
# VISUALIZATION PARAMETERS
# ============================================================================

PLOT_FIGSIZE_WIDTH = 10
PLOT_FIGSIZE_HEIGHT = 6
PLOT_DPI = 300
