"""
Feature Scaler

Zero-mean / unit-variance scaling with parameters fitted on the training
partition and applied unchanged to every later input.
"""

from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import StandardScaler

from lending_rate.core.exceptions import ConfigurationError, InsufficientDataError


class FeatureScaler:
    """StandardScaler bound to named columns.

    Constant columns keep a scale of 1.0 (StandardScaler's behavior), so
    they map to 0 instead of dividing by zero.
    """

    def __init__(self):
        self._scaler = StandardScaler()
        self.features: List[str] = []
        self.is_fitted = False

    def fit(self, X: pd.DataFrame, features: Sequence[str]) -> "FeatureScaler":
        features = list(features)
        absent = [f for f in features if f not in X.columns]
        if absent:
            raise ConfigurationError(
                f"Cannot scale columns absent from the data: {absent}", column=absent[0]
            )
        if len(X) == 0:
            raise InsufficientDataError("Cannot fit scaler on zero rows", n_rows=0, required=1)

        self._scaler.fit(X[features].to_numpy(dtype=float))
        self.features = features
        self.is_fitted = True
        return self

    def transform(self, X: pd.DataFrame) -> np.ndarray:
        """Scaled feature matrix in fitted column order."""
        if not self.is_fitted:
            raise ConfigurationError("FeatureScaler used before fit()")
        return self._scaler.transform(X[self.features].to_numpy(dtype=float))

    def transform_vector(self, values: Mapping[str, float]) -> np.ndarray:
        """Scale one record given as {feature: value}."""
        if not self.is_fitted:
            raise ConfigurationError("FeatureScaler used before fit()")
        row = np.array([[float(values[f]) for f in self.features]])
        return self._scaler.transform(row)[0]

    @property
    def parameters(self) -> Dict[str, Tuple[float, float]]:
        """Normalization parameters: {feature: (mean, std)}."""
        if not self.is_fitted:
            return {}
        return {
            f: (float(mean), float(scale))
            for f, mean, scale in zip(self.features, self._scaler.mean_, self._scaler.scale_)
        }
