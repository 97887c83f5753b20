"""
Features Module

Derived ratio features, the income basis resolver, imputation and scaling.
"""

from lending_rate.features.income_basis import (
    IncomeBasis,
    IndividualBasis,
    JointBasis,
    IncomeBasisResolver,
)
from lending_rate.features.derived import DerivedFeatureCalculator, DERIVED_FEATURES
from lending_rate.features.imputer import MissingValueImputer
from lending_rate.features.scaler import FeatureScaler

__all__ = [
    "IncomeBasis",
    "IndividualBasis",
    "JointBasis",
    "IncomeBasisResolver",
    "DerivedFeatureCalculator",
    "DERIVED_FEATURES",
    "MissingValueImputer",
    "FeatureScaler",
]
