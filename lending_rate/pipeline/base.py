"""
Pipeline Base Classes

Defines the contract (BaseComponent and StepResult) followed by every fitted
pipeline step: fit on the training partition, then transform any partition
with the frozen result.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd


@dataclass
class StepResult:
    """Result of a fitted pipeline step.

    Attributes:
        step_name: Identifier for the step (e.g., '04_imputation').
        input_features: Feature names passed into the step.
        output_features: Feature names the step keeps or selects.
        eliminated_features: Feature names dropped by the step.
        results_df: Detailed per-feature (or per-penalty) results.
        metadata: Arbitrary extra data (thresholds, chosen penalty, ...).
        duration_seconds: Wall-clock time the step took.
    """

    step_name: str
    input_features: List[str]
    output_features: List[str]
    eliminated_features: List[str]
    results_df: pd.DataFrame
    metadata: Dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def n_input(self) -> int:
        return len(self.input_features)

    @property
    def n_output(self) -> int:
        return len(self.output_features)

    @property
    def n_eliminated(self) -> int:
        return len(self.eliminated_features)

    def summary(self) -> str:
        """Human-readable one-line summary."""
        return (
            f"{self.step_name}: {self.n_input} -> {self.n_output} features "
            f"({self.n_eliminated} eliminated) in {self.duration_seconds:.1f}s"
        )


class BaseComponent(ABC):
    """Base class for fitted pipeline steps.

    Subclasses must implement fit() and transform(). fit() sees only the
    training partition; transform() must not recompute anything from its
    input.
    """

    step_name: str = ""

    @abstractmethod
    def fit(
        self, X: pd.DataFrame, y: Optional[pd.Series] = None, **kwargs: Any
    ) -> StepResult:
        """Fit the component on training data and return results."""
        pass

    @abstractmethod
    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Apply the fitted state to a DataFrame."""
        pass

    def fit_transform(
        self, X: pd.DataFrame, y: Optional[pd.Series] = None, **kwargs: Any
    ) -> Tuple[pd.DataFrame, StepResult]:
        """Convenience: fit + transform in one call."""
        result = self.fit(X, y, **kwargs)
        return self.transform(X), result
