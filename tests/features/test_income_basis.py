"""
Tests for the income basis resolver.
"""

import numpy as np
import pandas as pd

from lending_rate.config.schema import DerivedFeatureConfig
from lending_rate.features.income_basis import (
    IncomeBasisResolver,
    IndividualBasis,
    JointBasis,
)


class TestIncomeBasisResolver:

    def setup_method(self):
        self.resolver = IncomeBasisResolver(DerivedFeatureConfig())

    def test_basis_for(self):
        assert isinstance(self.resolver.basis_for("Individual"), IndividualBasis)
        assert isinstance(self.resolver.basis_for(" individual "), IndividualBasis)
        assert isinstance(self.resolver.basis_for("Joint App"), JointBasis)
        assert isinstance(self.resolver.basis_for(None), JointBasis)

    def test_columns(self):
        assert self.resolver.individual.income_column == "annual_inc"
        assert self.resolver.joint.income_column == "annual_inc_joint"
        assert self.resolver.joint.dti_column == "dti_joint"

    def test_row_wise_income_and_dti(self):
        frame = pd.DataFrame({
            "application_type": ["Individual", "Joint App", np.nan],
            "annual_inc": [50000.0, 40000.0, 30000.0],
            "annual_inc_joint": [np.nan, 90000.0, 70000.0],
            "dti": [10.0, 20.0, 30.0],
            "dti_joint": [np.nan, 15.0, 25.0],
        })

        assert list(self.resolver.is_individual(frame)) == [True, False, False]
        assert list(self.resolver.income(frame)) == [50000.0, 90000.0, 70000.0]
        assert list(self.resolver.dti(frame)) == [10.0, 15.0, 25.0]
