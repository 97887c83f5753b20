"""
Tests for the Pydantic configuration models.
"""

import pytest
from pydantic import ValidationError

from lending_rate.config.schema import (
    DEFAULT_REDUCED_FEATURES,
    ImputationConfig,
    PipelineConfig,
    ReducedModelConfig,
    SelectionConfig,
    SimilarityConfig,
)


class TestDefaults:

    def test_pipeline_defaults(self):
        config = PipelineConfig()

        assert config.data.target_column == "int_rate"
        assert config.splitting.test_size == 0.20
        assert config.selection.n_folds == 10
        assert config.reduced_model.features == DEFAULT_REDUCED_FEATURES
        assert config.similarity.k == 50
        assert config.similarity.bin_width == 0.5

    def test_default_policy_strategies(self):
        policy = ImputationConfig().policy

        assert policy["delinq_2yrs"] == "zero"
        assert policy["mths_since_last_delinq"] == "max"
        assert policy["annual_inc"] == "mean"
        assert set(policy.values()) <= {"zero", "max", "mean"}

    def test_frozen(self):
        config = PipelineConfig()
        with pytest.raises(ValidationError):
            config.selection.n_folds = 3


class TestValidators:

    def test_penalty_range(self):
        with pytest.raises(ValidationError, match="min_penalty"):
            SelectionConfig(min_penalty=1.0, max_penalty=0.1)

    def test_single_penalty_allows_equal_bounds(self):
        config = SelectionConfig(min_penalty=0.1, max_penalty=0.1, n_penalties=1)
        assert config.min_penalty == config.max_penalty

    def test_equal_bounds_need_single_penalty(self):
        with pytest.raises(ValidationError, match="min_penalty"):
            SelectionConfig(min_penalty=0.1, max_penalty=0.1, n_penalties=5)

    def test_n_folds_minimum(self):
        with pytest.raises(ValidationError):
            SelectionConfig(n_folds=1)

    def test_duplicate_reduced_features(self):
        with pytest.raises(ValidationError, match="Duplicate"):
            ReducedModelConfig(features=["term", "term"])

    def test_empty_reduced_features(self):
        with pytest.raises(ValidationError):
            ReducedModelConfig(features=[])

    def test_unknown_fill_strategy(self):
        with pytest.raises(ValidationError):
            ImputationConfig(policy={"dti": "median"})

    def test_similarity_bounds(self):
        with pytest.raises(ValidationError):
            SimilarityConfig(k=0)
        with pytest.raises(ValidationError):
            SimilarityConfig(bin_width=0.0)
