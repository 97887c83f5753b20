"""
Tests for RateService
"""

import logging

import numpy as np
import pandas as pd
import pytest

from conftest import TRUE_COEFFICIENTS
from lending_rate.config.schema import DerivedFeatureConfig
from lending_rate.core.exceptions import ArtifactError, ConfigurationError, MissingValueError
from lending_rate.io.artifact_store import ModelArtifactStore
from lending_rate.model_development.reduced_model import ReducedModel
from lending_rate.serving.service import UNAVAILABLE, RateService, load_service
from lending_rate.serving.similarity import SimilarityIndex


FEATURES = list(TRUE_COEFFICIENTS)
APPLICANT = {"term": "36 months", "all_util": 50.0, "bc_util": 40.0, "bc_open_to_buy": 10000.0}


@pytest.fixture
def model(reduced_data):
    return ReducedModel(FEATURES).fit(reduced_data)


@pytest.fixture
def artifact(model, reduced_data):
    return {
        "reduced_model": model.to_artifact(),
        "reference": reduced_data,
        "scaler": model.scaler_,
        "similarity": {"k": 10, "bin_width": 1.0},
    }


@pytest.fixture
def service(artifact):
    return RateService.from_artifact(artifact)


class TestPredict:

    def test_returns_rate(self, service, model):
        result = service.predict(APPLICANT)
        expected = model.predict_one({**APPLICANT, "term": 36.0})

        assert set(result) == {"predicted_rate"}
        assert result["predicted_rate"] == pytest.approx(round(expected, 4))

    def test_unavailable_on_bad_input(self, service, caplog):
        with caplog.at_level(logging.ERROR):
            result = service.predict({"term": "36 months"})

        assert result == UNAVAILABLE
        assert "Prediction failed" in caplog.text

    def test_unparseable_value_unavailable(self, service):
        assert service.predict({**APPLICANT, "all_util": "lots"}) == UNAVAILABLE

    def test_unavailable_response_not_shared(self, service):
        result = service.predict({})
        result["error"] = "changed"
        assert service.predict({})["error"] == "prediction unavailable"


class TestCompare:

    def test_histogram(self, service):
        histogram = service.compare(APPLICANT)
        assert histogram.k == 10
        assert sum(histogram.counts) == 10
        assert histogram.bin_width == pytest.approx(1.0)

    def test_k_override(self, service):
        assert service.compare(APPLICANT, k=5).n_selected == 5

    def test_cached_on_rounded_inputs(self, service):
        service.compare(APPLICANT)
        service.compare({**APPLICANT, "all_util": 50.000001})

        info = service.cache_info()
        assert info.hits == 1
        assert info.misses == 1

    def test_cache_disabled(self, model, reduced_data):
        index = SimilarityIndex(reduced_data, FEATURES, scaler=model.scaler_)
        service = RateService(model, index, cache_size=0, k=5)
        service.compare(APPLICANT)
        service.compare(APPLICANT)
        assert service.cache_info().hits == 0

    def test_missing_feature(self, service):
        with pytest.raises(MissingValueError):
            service.compare({"term": 36.0})


class TestLoading:

    def test_incomplete_artifact(self, artifact):
        del artifact["reference"]
        with pytest.raises(ArtifactError):
            RateService.from_artifact(artifact)

    def test_from_store(self, artifact, tmp_path):
        store = ModelArtifactStore(str(tmp_path))
        store.save(artifact, "rate_model", version="v1")

        service = RateService.from_store(store, "rate_model")
        assert service.predict(APPLICANT)["predicted_rate"] is not None

    def test_load_service_reused(self, artifact, tmp_path):
        ModelArtifactStore(str(tmp_path)).save(artifact, "rate_model", version="v1")
        load_service.cache_clear()
        try:
            first = load_service(str(tmp_path), "rate_model")
            second = load_service(str(tmp_path), "rate_model")
            assert first is second
        finally:
            load_service.cache_clear()


class TestDerivedReducedFeature:
    """Reduced models may include a derived ratio computed from raw form fields."""

    FORM = {
        "term": "36 months",
        "application_type": "Individual",
        "loan_amnt": 10000,
        "annual_inc": 50000,
    }

    @pytest.fixture
    def training_frame(self):
        rng = np.random.RandomState(3)
        n = 300
        loan = rng.uniform(2000, 35000, n)
        income = rng.uniform(30000, 150000, n)
        term = rng.choice([36.0, 60.0], n)
        frame = pd.DataFrame({
            "term": term,
            "loan_to_income": loan / income,
        })
        frame["int_rate"] = 5.0 + 0.1 * term + 8.0 * frame["loan_to_income"] + rng.normal(0, 0.2, n)
        return frame

    @pytest.fixture
    def derived_artifact(self, training_frame):
        model = ReducedModel(["term", "loan_to_income"]).fit(training_frame)
        return {
            "reduced_model": model.to_artifact(),
            "reference": training_frame,
            "scaler": model.scaler_,
            "similarity": {"k": 20, "bin_width": 0.5},
        }

    def test_predict_and_compare_accept_same_form(self, derived_artifact):
        service = RateService.from_artifact(derived_artifact)

        assert service.predict(self.FORM)["predicted_rate"] is not None
        histogram = service.compare(self.FORM)
        assert histogram.n_selected == 20
        assert sum(histogram.counts) == 20

    def test_compare_matches_precomputed_ratio(self, derived_artifact):
        service = RateService.from_artifact(derived_artifact)

        from_form = service.compare(self.FORM)
        direct = service.index.compare(
            {"term": 36.0, "loan_to_income": 0.2}, k=20, bin_width=0.5
        )
        assert from_form == direct

    def test_trained_column_names_used(self, derived_artifact):
        config = DerivedFeatureConfig(income_column="income", joint_income_column="income_joint")
        derived_artifact["derived_features"] = config.model_dump()
        service = RateService.from_artifact(derived_artifact)
        form = {
            "term": "36 months",
            "application_type": "Individual",
            "loan_amnt": 10000,
            "income": 50000,
        }

        assert service.predict(form)["predicted_rate"] is not None
        assert service.compare(form).n_selected == 20


def test_compare_rejects_zero_k(service):
    with pytest.raises(ConfigurationError):
        service.compare(APPLICANT, k=0)
