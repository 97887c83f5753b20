"""
Tests for Custom Exceptions

Tests exception attributes, inheritance, and chaining.
"""

import pytest

from lending_rate.core.exceptions import (
    PipelineException,
    ConfigurationError,
    SchemaValidationError,
    DataValidationError,
    InsufficientDataError,
    MissingValueError,
    FeatureEngineeringError,
    FeatureSelectionError,
    ModelTrainingError,
    EvaluationError,
    DataReaderError,
    ArtifactError,
)


class TestPipelineException:
    """Test suite for base PipelineException."""

    def test_message(self):
        error = PipelineException("Test error message")

        assert "Test error message" in str(error)
        assert error.message == "Test error message"

    def test_details_and_cause(self):
        original = ValueError("Original error")
        error = PipelineException("Wrapper", details={"count": 42}, cause=original)

        assert error.details == {"count": 42}
        assert error.cause is original
        assert "Caused by: Original error" in str(error)

    def test_to_dict(self):
        error = PipelineException("Boom", details={"a": 1}, cause=KeyError("k"))
        d = error.to_dict()

        assert d["type"] == "PipelineException"
        assert d["message"] == "Boom"
        assert d["details"] == {"a": 1}
        assert "k" in d["cause"]


class TestHierarchy:
    """All pipeline errors share the base class."""

    @pytest.mark.parametrize("exc_class", [
        ConfigurationError,
        SchemaValidationError,
        DataValidationError,
        InsufficientDataError,
        MissingValueError,
        FeatureEngineeringError,
        FeatureSelectionError,
        ModelTrainingError,
        EvaluationError,
        DataReaderError,
        ArtifactError,
    ])
    def test_subclass_of_pipeline_exception(self, exc_class):
        with pytest.raises(PipelineException):
            raise exc_class("failure")

    def test_schema_error_is_configuration_error(self):
        assert issubclass(SchemaValidationError, ConfigurationError)

    def test_data_errors(self):
        assert issubclass(InsufficientDataError, DataValidationError)
        assert issubclass(MissingValueError, DataValidationError)

    def test_selection_error_is_feature_error(self):
        assert issubclass(FeatureSelectionError, FeatureEngineeringError)


class TestSpecificAttributes:

    def test_configuration_error_column(self):
        error = ConfigurationError("absent", column="all_util")
        assert error.column == "all_util"
        assert "all_util" in str(error)

    def test_schema_validation_errors(self):
        error = SchemaValidationError("bad schema", validation_errors=[{"missing": ["term"]}])
        assert error.validation_errors == [{"missing": ["term"]}]

    def test_insufficient_data_counts(self):
        error = InsufficientDataError("too few", n_rows=5, required=20)
        assert error.n_rows == 5
        assert error.required == 20

    def test_missing_value_error(self):
        error = MissingValueError("missing", features=["term", "bc_util"], record_index=3)
        assert error.features == ["term", "bc_util"]
        assert error.record_index == 3
        assert "term" in str(error)

    def test_data_reader_error_source(self):
        error = DataReaderError("read failed", source="loans")
        assert error.source == "loans"
        assert "Source: loans" in str(error)

    def test_artifact_error_path(self):
        error = ArtifactError("gone", artifact_path="/tmp/model.joblib")
        assert error.artifact_path == "/tmp/model.joblib"
