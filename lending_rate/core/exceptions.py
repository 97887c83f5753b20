"""
Custom Exceptions

One hierarchy for every failure the rate model can raise. Configuration
problems surface at fit time, data problems carry the rows or features
involved, and the serving layer turns any of them into its unavailable
response.
"""

from typing import Any, Dict, List, Optional, Tuple


class PipelineException(Exception):
    """
    Base exception for all lending-rate errors.

    Subclasses list their extra attributes in `context_fields` as
    (attribute, label) pairs; non-empty ones are appended to the message
    and included in to_dict().

    Args:
        message: Error message
        details: Additional error details
        cause: Original exception that caused this error
    """

    context_fields: Tuple[Tuple[str, str], ...] = ()

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def context(self) -> Dict[str, Any]:
        """Populated context attributes, keyed by attribute name."""
        values = {attr: getattr(self, attr, None) for attr, _ in self.context_fields}
        return {attr: value for attr, value in values.items() if value not in (None, [], "")}

    def __str__(self) -> str:
        labels = dict(self.context_fields)
        parts = [self.message]
        parts.extend(f"{labels[attr]}: {value}" for attr, value in self.context().items())
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.cause is not None:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for logs and run metadata."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "details": self.details,
            "cause": None if self.cause is None else str(self.cause),
            **self.context(),
        }


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(PipelineException):
    """Configuration does not match the data (absent column, no derivable fill value, bad setting)."""

    context_fields = (("column", "Column"),)

    def __init__(self, message: str, column: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.column = column


class SchemaValidationError(ConfigurationError):
    """Warehouse table does not match the declared applicant schema."""

    context_fields = ConfigurationError.context_fields + (
        ("n_validation_errors", "Validation errors"),
    )

    def __init__(
        self,
        message: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.validation_errors = validation_errors or []

    @property
    def n_validation_errors(self) -> int:
        return len(self.validation_errors)


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

class DataValidationError(PipelineException):
    """Data cannot support the requested operation."""


class InsufficientDataError(DataValidationError):
    """Too few rows, e.g. fewer than the cross-validation folds need."""

    context_fields = (("n_rows", "Rows"), ("required", "Required"))

    def __init__(
        self,
        message: str,
        n_rows: Optional[int] = None,
        required: Optional[int] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.n_rows = n_rows
        self.required = required


class MissingValueError(DataValidationError):
    """
    A model feature is still missing after imputation.

    Fatal for a single record only; batch callers skip the row and report it.
    """

    context_fields = (("features", "Features"), ("record_index", "Record"))

    def __init__(
        self,
        message: str,
        features: Optional[List[str]] = None,
        record_index: Any = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.features = features or []
        self.record_index = record_index


class DataReaderError(PipelineException):
    """Warehouse session, table or query failure."""

    context_fields = (("source", "Source"),)

    def __init__(self, message: str, source: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.source = source


# ---------------------------------------------------------------------------
# Features and models
# ---------------------------------------------------------------------------

class FeatureEngineeringError(PipelineException):
    context_fields = (("feature_name", "Feature"),)

    def __init__(self, message: str, feature_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.feature_name = feature_name


class FeatureSelectionError(FeatureEngineeringError):
    """Penalty path failure: strict nesting violated, off-grid penalty, or use before fit."""


class ModelTrainingError(PipelineException):
    context_fields = (("model_name", "Model"),)

    def __init__(self, message: str, model_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.model_name = model_name


class EvaluationError(PipelineException):
    context_fields = (("metric_name", "Metric"),)

    def __init__(self, message: str, metric_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.metric_name = metric_name


class ArtifactError(PipelineException):
    """Saving or loading a model artifact failed, or the name/version is unknown."""

    context_fields = (("artifact_path", "Path"),)

    def __init__(self, message: str, artifact_path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.artifact_path = artifact_path
