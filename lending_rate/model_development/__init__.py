"""
Model Development Module

LASSO penalty path selection, the reduced model, evaluation, reporting and
the training pipeline.
"""

from lending_rate.model_development.penalty_grid import PenaltyGrid, fold_assignments
from lending_rate.model_development.fitted_model import FittedModel
from lending_rate.model_development.lasso_selector import (
    LassoPathSelector,
    NestingViolation,
    check_nested_selection,
)
from lending_rate.model_development.reduced_model import PredictionBatch, ReducedModel
from lending_rate.model_development.evaluator import evaluate_model, regression_metrics
from lending_rate.model_development.pipeline import RateModelPipeline, TrainingResult

__all__ = [
    "PenaltyGrid",
    "fold_assignments",
    "FittedModel",
    "LassoPathSelector",
    "NestingViolation",
    "check_nested_selection",
    "PredictionBatch",
    "ReducedModel",
    "evaluate_model",
    "regression_metrics",
    "RateModelPipeline",
    "TrainingResult",
]
