"""
Lending Rate Model - Core Package

This package provides the core infrastructure shared by all modules:
- Base classes for warehouse-facing components
- Logging utilities
- Custom exceptions
"""

from lending_rate.core.base import PipelineComponent, SparkComponent
from lending_rate.core.logger import get_logger, setup_logging, PipelineLogger
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

__all__ = [
    # Base classes
    "PipelineComponent",
    "SparkComponent",
    # Logging
    "get_logger",
    "setup_logging",
    "PipelineLogger",
    # Exceptions
    "PipelineException",
    "ConfigurationError",
    "SchemaValidationError",
    "DataValidationError",
    "InsufficientDataError",
    "MissingValueError",
    "FeatureEngineeringError",
    "FeatureSelectionError",
    "ModelTrainingError",
    "EvaluationError",
    "DataReaderError",
    "ArtifactError",
]
