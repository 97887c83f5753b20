"""
Pytest Configuration and Shared Fixtures

Provides common fixtures for all test modules including:
- Raw applicant frames shaped like the warehouse extract
- Synthetic reduced-feature data with known coefficients
- Small, fast pipeline configurations
- Mock Spark sessions
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock
from typing import Any, Dict

import numpy as np
import pandas as pd
import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lending_rate.config.schema import PipelineConfig


# Generating coefficients of the synthetic reduced-feature data
TRUE_INTERCEPT = 5.0
TRUE_COEFFICIENTS = {
    "term": 0.08,
    "all_util": 0.05,
    "bc_util": 0.02,
    "bc_open_to_buy": -0.0001,
}


def make_raw_applicants(n: int = 400, seed: int = 42) -> pd.DataFrame:
    """Raw applicant rows as the warehouse delivers them (text-formatted fields)."""
    rng = np.random.RandomState(seed)

    term = rng.choice([36, 60], size=n, p=[0.7, 0.3])
    loan_amnt = rng.uniform(1000, 40000, n).round(0)
    is_joint = rng.rand(n) < 0.15
    annual_inc = rng.uniform(30000, 150000, n).round(0)
    all_util = rng.uniform(10, 95, n).round(1)
    bc_util = rng.uniform(0, 100, n).round(1)
    bc_open_to_buy = rng.uniform(0, 30000, n).round(0)
    int_rate = (
        TRUE_INTERCEPT
        + 0.08 * term
        + 0.05 * all_util
        + 0.02 * bc_util
        - 0.0001 * bc_open_to_buy
        + rng.normal(0, 0.5, n)
    )

    df = pd.DataFrame({
        "id": [f"L{i:05d}" for i in range(n)],
        "loan_amnt": loan_amnt,
        "term": [f" {t} months" for t in term],
        "int_rate": [f"{r:.2f}%" for r in int_rate],
        "installment": (loan_amnt / term * 1.1).round(2),
        "emp_length": rng.choice(["< 1 year", "1 year", "5 years", "10+ years", "n/a"], n),
        "home_ownership": rng.choice(["RENT", "OWN", "MORTGAGE"], n),
        "annual_inc": annual_inc,
        "annual_inc_joint": np.where(is_joint, annual_inc * 1.6, np.nan),
        "application_type": np.where(is_joint, "Joint App", "Individual"),
        "addr_state": rng.choice(["CA", "NY", "TX"], n),
        "dti": rng.uniform(5, 35, n).round(2),
        "dti_joint": np.where(is_joint, rng.uniform(5, 30, n).round(2), np.nan),
        "revol_util": [f"{v:.1f}%" for v in rng.uniform(0, 100, n)],
        "open_acc": rng.randint(1, 30, n),
        "total_acc": rng.randint(5, 60, n),
        "inq_last_6mths": rng.randint(0, 5, n),
        "delinq_2yrs": rng.randint(0, 3, n),
        "pub_rec": rng.randint(0, 2, n),
        "mths_since_last_delinq": np.where(rng.rand(n) < 0.5, np.nan, rng.randint(1, 120, n)),
        "mths_since_recent_inq": np.where(rng.rand(n) < 0.1, np.nan, rng.randint(0, 24, n)),
        "tot_cur_bal": rng.uniform(0, 400000, n).round(0),
        "total_bal_ex_mort": rng.uniform(0, 80000, n).round(0),
        "total_il_high_credit_limit": np.where(rng.rand(n) < 0.1, 0.0, rng.uniform(1000, 90000, n).round(0)),
        "all_util": np.where(rng.rand(n) < 0.05, np.nan, all_util),
        "bc_util": bc_util,
        "bc_open_to_buy": bc_open_to_buy,
        "percent_bc_gt_75": rng.uniform(0, 100, n).round(1),
        "num_actv_bc_tl": rng.randint(0, 10, n),
    })
    # A few applications never got a rate
    df.loc[df.index[:5], "int_rate"] = None
    return df


def make_reduced_data(n: int = 1000, seed: int = 7, noise: float = 0.1) -> pd.DataFrame:
    """Reduced-feature rows generated from TRUE_COEFFICIENTS."""
    rng = np.random.RandomState(seed)
    df = pd.DataFrame({
        "term": rng.choice([36.0, 60.0], size=n),
        "all_util": rng.uniform(0, 100, n),
        "bc_util": rng.uniform(0, 100, n),
        "bc_open_to_buy": rng.uniform(0, 30000, n),
    })
    rate = TRUE_INTERCEPT + sum(coef * df[f] for f, coef in TRUE_COEFFICIENTS.items())
    df["int_rate"] = rate + rng.normal(0, noise, n)
    return df


# ===================================================================
# DATA FIXTURES
# ===================================================================

@pytest.fixture
def raw_applicants() -> pd.DataFrame:
    """400 raw applicant rows, 5 without a rate."""
    return make_raw_applicants()


@pytest.fixture
def reduced_data() -> pd.DataFrame:
    """1000 rows on term/all_util/bc_util/bc_open_to_buy with known coefficients."""
    return make_reduced_data()


@pytest.fixture
def path_data():
    """Independent standard-normal features with well separated effects."""
    rng = np.random.RandomState(0)
    n = 500
    X = pd.DataFrame(rng.normal(size=(n, 6)), columns=[f"x{i}" for i in range(6)])
    y = 3.0 * X["x0"] + 2.0 * X["x1"] + 1.0 * X["x2"] + 0.5 * X["x3"] + rng.normal(0, 0.5, n)
    return X, pd.Series(y, name="int_rate")


# ===================================================================
# CONFIGURATION FIXTURES
# ===================================================================

@pytest.fixture
def fast_config_dict(tmp_path) -> Dict[str, Any]:
    """Config dict with a short penalty grid and few folds."""
    return {
        "selection": {
            "min_penalty": 0.001,
            "max_penalty": 1.0,
            "n_penalties": 6,
            "n_folds": 3,
        },
        "similarity": {"k": 20},
        "output": {"base_dir": str(tmp_path / "outputs")},
    }


@pytest.fixture
def fast_config(fast_config_dict) -> PipelineConfig:
    return PipelineConfig(**fast_config_dict)


# ===================================================================
# SPARK FIXTURES
# ===================================================================

@pytest.fixture
def mock_spark_session():
    """Mock SparkSession for unit tests."""
    mock_session = MagicMock()
    mock_session.sparkContext.appName = "TestApp"
    return mock_session


@pytest.fixture
def warehouse_config_dict() -> Dict[str, Any]:
    return {
        "warehouse": {
            "project_id": "test-project",
            "dataset": "lending",
            "table": "loans",
        },
        "reproducibility": {"global_seed": 42},
    }
