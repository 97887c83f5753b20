"""
Tests for ReducedModel
"""

import numpy as np
import pandas as pd
import pytest

from conftest import TRUE_COEFFICIENTS, TRUE_INTERCEPT
from lending_rate.core.exceptions import (
    ConfigurationError,
    InsufficientDataError,
    MissingValueError,
    ModelTrainingError,
)
from lending_rate.features.imputer import MissingValueImputer
from lending_rate.model_development.reduced_model import ReducedModel


FEATURES = list(TRUE_COEFFICIENTS)


@pytest.fixture
def fitted(reduced_data):
    return ReducedModel(FEATURES).fit(reduced_data)


class TestFit:

    def test_recovers_coefficients(self, fitted):
        for feature, expected in TRUE_COEFFICIENTS.items():
            assert fitted.coefficients[feature] == pytest.approx(expected, rel=0.05)
        assert fitted.intercept == pytest.approx(TRUE_INTERCEPT, abs=0.1)

    def test_penalized_fit_shrinks(self, reduced_data, fitted):
        shrunk = ReducedModel(FEATURES, penalty=0.5).fit(reduced_data)
        assert abs(shrunk.model_.coefficients["bc_util"]) < abs(fitted.model_.coefficients["bc_util"])

    def test_normalization_stored(self, fitted, reduced_data):
        mean, std = fitted.model_.normalization["all_util"]
        assert mean == pytest.approx(reduced_data["all_util"].mean())
        assert std == pytest.approx(reduced_data["all_util"].std(ddof=0))

    def test_skips_incomplete_rows(self, reduced_data):
        reduced_data.loc[:9, "bc_util"] = np.nan
        model = ReducedModel(FEATURES).fit(reduced_data)

        assert model.n_train_rows_ == len(reduced_data) - 10
        assert model.skipped_rows_ == list(range(10))

    def test_imputer_fill_values_used(self, reduced_data):
        reduced_data.loc[:9, "bc_util"] = np.nan
        imputer = MissingValueImputer({"bc_util": "mean", "term": "mean"})
        imputer.fit(reduced_data)

        model = ReducedModel(FEATURES).fit(reduced_data, imputer=imputer)

        assert model.n_train_rows_ == len(reduced_data)
        assert model.fill_values_ == {
            "bc_util": pytest.approx(reduced_data["bc_util"].mean()),
            "term": pytest.approx(reduced_data["term"].mean()),
        }

    def test_absent_feature(self, reduced_data):
        with pytest.raises(ConfigurationError) as exc_info:
            ReducedModel(FEATURES + ["dti"]).fit(reduced_data)
        assert exc_info.value.column == "dti"

    def test_too_few_rows(self, reduced_data):
        with pytest.raises(InsufficientDataError):
            ReducedModel(FEATURES).fit(reduced_data.iloc[:5])

    @pytest.mark.parametrize("features, penalty", [([], 0.0), (["term"], -1.0)])
    def test_invalid_arguments(self, features, penalty):
        with pytest.raises(ConfigurationError):
            ReducedModel(features, penalty=penalty)

    def test_used_before_fit(self):
        with pytest.raises(ModelTrainingError):
            ReducedModel(FEATURES).predict_one({})


class TestPredict:

    def test_predict_one(self, fitted):
        applicant = {"term": 36.0, "all_util": 50.0, "bc_util": 40.0, "bc_open_to_buy": 10000.0}
        expected = TRUE_INTERCEPT + sum(TRUE_COEFFICIENTS[f] * v for f, v in applicant.items())

        assert fitted.predict_one(applicant) == pytest.approx(expected, abs=0.05)

    def test_predict_one_matches_batch(self, fitted, reduced_data):
        batch = fitted.predict_frame(reduced_data.iloc[:5])
        for idx, value in batch.predictions.items():
            record = reduced_data.loc[idx, FEATURES].to_dict()
            assert fitted.predict_one(record) == pytest.approx(value)

    def test_predict_one_missing(self, fitted):
        with pytest.raises(MissingValueError) as exc_info:
            fitted.predict_one({"term": 36.0, "all_util": None, "bc_util": 1.0}, record_index=7)
        assert exc_info.value.features == ["all_util", "bc_open_to_buy"]
        assert exc_info.value.record_index == 7

    def test_predict_frame_reports_skipped(self, fitted, reduced_data):
        frame = reduced_data.iloc[:4].copy()
        frame.loc[1, "term"] = np.nan

        batch = fitted.predict_frame(frame)

        assert list(batch.predictions.index) == [0, 2, 3]
        assert batch.n_skipped == 1
        assert batch.skipped.iloc[0]["row"] == 1
        assert batch.skipped.iloc[0]["missing_features"] == ["term"]

    def test_coefficient_frame(self, fitted):
        frame = fitted.coefficient_frame()
        assert frame["feature"].tolist() == FEATURES + ["(intercept)"]


class TestArtifact:

    def test_round_trip(self, fitted, reduced_data):
        restored = ReducedModel.from_artifact(fitted.to_artifact())

        assert restored.features == fitted.features
        assert restored.coefficients == pytest.approx(fitted.coefficients)
        pd.testing.assert_series_equal(
            restored.predict_frame(reduced_data).predictions,
            fitted.predict_frame(reduced_data).predictions,
        )

    def test_incomplete_artifact(self, fitted):
        state = fitted.to_artifact()
        del state["model"]
        with pytest.raises(ModelTrainingError):
            ReducedModel.from_artifact(state)
