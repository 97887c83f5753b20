"""
Income Basis Resolver

Individual applications are measured against the applicant's own income;
joint applications against the combined income. Every income-dependent
feature asks the resolver instead of branching on the application type.
"""

from abc import ABC, abstractmethod
from typing import Any

import numpy as np
import pandas as pd

from lending_rate.config.schema import DerivedFeatureConfig


class IncomeBasis(ABC):
    """Where one application type takes its income and DTI from."""

    label: str = ""

    def __init__(self, config: DerivedFeatureConfig):
        self.config = config

    @property
    @abstractmethod
    def income_column(self) -> str:
        pass

    @property
    @abstractmethod
    def dti_column(self) -> str:
        pass

    def income(self, frame: pd.DataFrame) -> pd.Series:
        return frame[self.income_column].astype(float)

    def dti(self, frame: pd.DataFrame) -> pd.Series:
        return frame[self.dti_column].astype(float)


class IndividualBasis(IncomeBasis):
    label = "individual"

    @property
    def income_column(self) -> str:
        return self.config.income_column

    @property
    def dti_column(self) -> str:
        return self.config.dti_column


class JointBasis(IncomeBasis):
    label = "joint"

    @property
    def income_column(self) -> str:
        return self.config.joint_income_column

    @property
    def dti_column(self) -> str:
        return self.config.joint_dti_column


class IncomeBasisResolver:
    """Picks the income basis per record.

    Only the configured individual label selects IndividualBasis (compared
    case-insensitively, older extracts spell it INDIVIDUAL). Every other
    value, including a missing type, selects JointBasis.
    """

    def __init__(self, config: DerivedFeatureConfig):
        self.config = config
        self.individual = IndividualBasis(config)
        self.joint = JointBasis(config)
        self._individual_label = config.individual_label.strip().lower()

    def _is_individual_value(self, application_type: Any) -> bool:
        return (
            isinstance(application_type, str)
            and application_type.strip().lower() == self._individual_label
        )

    def basis_for(self, application_type: Any) -> IncomeBasis:
        """Income basis for a single application type value."""
        if self._is_individual_value(application_type):
            return self.individual
        return self.joint

    def is_individual(self, frame: pd.DataFrame) -> pd.Series:
        """Boolean mask of individual applications."""
        return frame[self.config.application_type_column].map(self._is_individual_value).astype(bool)

    def income(self, frame: pd.DataFrame) -> pd.Series:
        """Per-row income basis."""
        mask = self.is_individual(frame)
        return pd.Series(
            np.where(mask, self.individual.income(frame), self.joint.income(frame)),
            index=frame.index,
            dtype=float,
        )

    def dti(self, frame: pd.DataFrame) -> pd.Series:
        """Per-row DTI basis."""
        mask = self.is_individual(frame)
        return pd.Series(
            np.where(mask, self.individual.dti(frame), self.joint.dti(frame)),
            index=frame.index,
            dtype=float,
        )
