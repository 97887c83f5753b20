"""
Fitted Model

A linear model fitted at one penalty on standardized features, with the
normalization parameters needed to express it in raw units.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

import numpy as np


@dataclass
class FittedModel:
    """Coefficients of one fit.

    Attributes:
        penalty: Regularization strength the model was fit at.
        features: Feature names in coefficient order.
        coefficients: Coefficient per feature on the standardized scale.
        intercept: Intercept on the standardized scale.
        normalization: {feature: (mean, std)} from the training partition.
    """

    penalty: float
    features: List[str]
    coefficients: Dict[str, float]
    intercept: float
    normalization: Dict[str, Tuple[float, float]] = field(default_factory=dict)

    def selected_features(self, tolerance: float = 1e-10) -> List[str]:
        """Features with |coefficient| > tolerance, largest first."""
        kept = [f for f in self.features if abs(self.coefficients[f]) > tolerance]
        return sorted(kept, key=lambda f: (-abs(self.coefficients[f]), f))

    @property
    def coefficient_vector(self) -> np.ndarray:
        return np.array([self.coefficients[f] for f in self.features], dtype=float)

    @property
    def raw_coefficients(self) -> Dict[str, float]:
        """Coefficients per unit of the unscaled feature."""
        return {
            f: self.coefficients[f] / self.normalization[f][1]
            for f in self.features
        }

    @property
    def raw_intercept(self) -> float:
        """Intercept for unscaled features."""
        shift = sum(
            self.coefficients[f] * self.normalization[f][0] / self.normalization[f][1]
            for f in self.features
        )
        return self.intercept - shift

    def predict_scaled(self, X_scaled: np.ndarray) -> np.ndarray:
        """Predict from an already standardized matrix."""
        return X_scaled @ self.coefficient_vector + self.intercept

    def predict_raw(self, values: Mapping[str, float]) -> float:
        """Predict one record given in raw units."""
        raw = self.raw_coefficients
        return self.raw_intercept + sum(raw[f] * float(values[f]) for f in self.features)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "penalty": self.penalty,
            "features": list(self.features),
            "coefficients": dict(self.coefficients),
            "intercept": self.intercept,
            "normalization": {f: list(p) for f, p in self.normalization.items()},
        }

    @classmethod
    def from_dict(cls, state: Mapping[str, Any]) -> "FittedModel":
        return cls(
            penalty=float(state["penalty"]),
            features=list(state["features"]),
            coefficients={k: float(v) for k, v in state["coefficients"].items()},
            intercept=float(state["intercept"]),
            normalization={f: (float(p[0]), float(p[1])) for f, p in state["normalization"].items()},
        )
