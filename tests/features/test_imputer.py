"""
Tests for MissingValueImputer
"""

import numpy as np
import pandas as pd
import pytest

from lending_rate.core.exceptions import ConfigurationError
from lending_rate.features.imputer import MissingValueImputer, finite_or_nan


POLICY = {"pub_rec": "zero", "mths_since_last_delinq": "max", "dti": "mean"}


@pytest.fixture
def train():
    return pd.DataFrame({
        "pub_rec": [0.0, np.nan, 2.0, 1.0],
        "mths_since_last_delinq": [12.0, np.nan, 48.0, np.nan],
        "dti": [10.0, 20.0, np.nan, np.inf],
        "int_rate": [10.0, 11.0, 12.0, 13.0],
    })


class TestFit:

    def test_fill_values(self, train):
        imputer = MissingValueImputer(POLICY, target_column="int_rate")
        result = imputer.fit(train)

        assert dict(imputer.fill_values) == {
            "pub_rec": 0.0,
            "mths_since_last_delinq": 48.0,
            "dti": 15.0,
        }
        assert result.step_name == "04_imputation"
        assert set(result.results_df["Feature"]) == set(POLICY)

    def test_missing_counts_include_inf(self, train):
        result = MissingValueImputer(POLICY).fit(train)
        row = result.results_df.set_index("Feature").loc["dti"]

        assert row["Train_Missing_Count"] == 2
        assert row["Train_Missing_Rate"] == 0.5

    def test_absent_column(self, train):
        with pytest.raises(ConfigurationError) as exc_info:
            MissingValueImputer({**POLICY, "bc_util": "mean"}).fit(train)
        assert exc_info.value.column == "bc_util"

    def test_all_missing_mean_column(self, train):
        train["dti"] = np.nan
        with pytest.raises(ConfigurationError, match="no finite training values"):
            MissingValueImputer(POLICY).fit(train)

    def test_all_missing_zero_column_allowed(self, train):
        train["pub_rec"] = np.nan
        imputer = MissingValueImputer(POLICY)
        imputer.fit(train)
        assert imputer.fill_values["pub_rec"] == 0.0

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError):
            MissingValueImputer({"dti": "median"})

    def test_target_never_imputed(self, train):
        imputer = MissingValueImputer({**POLICY, "int_rate": "mean"}, target_column="int_rate")
        imputer.fit(train)
        assert "int_rate" not in imputer.fill_values

    def test_fill_values_read_only(self, train):
        imputer = MissingValueImputer(POLICY)
        imputer.fit(train)
        with pytest.raises(TypeError):
            imputer.fill_values["dti"] = 0.0


class TestTransform:

    def test_transform_fills(self, train):
        imputer = MissingValueImputer(POLICY)
        imputer.fit(train)
        out = imputer.transform(train)

        assert out["pub_rec"].tolist() == [0.0, 0.0, 2.0, 1.0]
        assert out["mths_since_last_delinq"].tolist() == [12.0, 48.0, 48.0, 48.0]
        assert out["dti"].tolist() == [10.0, 20.0, 15.0, 15.0]
        assert np.isnan(train["pub_rec"].iloc[1])

    def test_no_leakage_from_transformed_rows(self, train):
        """Fill values do not depend on the partition being transformed."""
        imputer = MissingValueImputer(POLICY)
        imputer.fit(train)

        test_a = pd.DataFrame({"pub_rec": [np.nan], "mths_since_last_delinq": [np.nan], "dti": [np.nan]})
        test_b = pd.concat([test_a, pd.DataFrame({
            "pub_rec": [50.0], "mths_since_last_delinq": [500.0], "dti": [90.0],
        })], ignore_index=True)

        out_a = imputer.transform(test_a)
        out_b = imputer.transform(test_b)
        pd.testing.assert_frame_equal(out_a, out_b.iloc[:1])

    def test_transform_before_fit(self, train):
        with pytest.raises(ConfigurationError):
            MissingValueImputer(POLICY).transform(train)

    def test_state_round_trip(self, train):
        imputer = MissingValueImputer(POLICY, target_column="int_rate")
        imputer.fit(train)
        restored = MissingValueImputer.from_dict(imputer.to_dict())

        assert dict(restored.fill_values) == dict(imputer.fill_values)
        pd.testing.assert_frame_equal(restored.transform(train), imputer.transform(train))


def test_finite_or_nan():
    result = finite_or_nan(pd.Series([1, np.inf, -np.inf]))
    assert result.iloc[0] == 1.0
    assert result.iloc[1:].isna().all()
