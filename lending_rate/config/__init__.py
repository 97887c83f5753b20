"""
Config Module

Pydantic-based configuration for the interest-rate modeling pipeline.
"""

from lending_rate.config.schema import (
    PipelineConfig,
    WarehouseConfig,
    DataConfig,
    SplittingConfig,
    DerivedFeatureConfig,
    ImputationConfig,
    SelectionConfig,
    ReducedModelConfig,
    SimilarityConfig,
    OutputConfig,
    ReproducibilityConfig,
)
from lending_rate.config.loader import load_config, save_config

__all__ = [
    "PipelineConfig",
    "WarehouseConfig",
    "DataConfig",
    "SplittingConfig",
    "DerivedFeatureConfig",
    "ImputationConfig",
    "SelectionConfig",
    "ReducedModelConfig",
    "SimilarityConfig",
    "OutputConfig",
    "ReproducibilityConfig",
    "load_config",
    "save_config",
]
