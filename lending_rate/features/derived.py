"""
Derived Feature Calculator

Ratio features built from the normalized applicant columns:

    loan_to_income          loan_amnt / income basis
    installment_pct_income  100 * 12 * installment / income basis
    adjusted_dti            (loan_amnt + tot_cur_bal) / income basis
    il_util_ex_mortgage     total_bal_ex_mort / total_il_high_credit_limit, 0 if no limit

The joint income and joint DTI columns are coalesced from the individual
values first, so a joint application with a missing joint field falls back
to the primary applicant.

Ratio semantics: x / 0 with x != 0 is +inf (flagged and logged), 0 / 0 and
any missing operand give NaN. The imputer treats both as missing.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
import logging

import numpy as np
import pandas as pd

from lending_rate.config.schema import DerivedFeatureConfig
from lending_rate.core.exceptions import ConfigurationError
from lending_rate.features.income_basis import IncomeBasisResolver


logger = logging.getLogger(__name__)

STEP_NAME = "02_derive"

DERIVED_FEATURES = (
    "loan_to_income",
    "installment_pct_income",
    "adjusted_dti",
    "il_util_ex_mortgage",
)


def safe_ratio(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    """Element-wise division keeping inf for x/0 and NaN for 0/0."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return numerator.astype(float) / denominator.astype(float)


def coalesce(*series: pd.Series) -> pd.Series:
    """First non-missing value across the given series, row by row."""
    result = series[0].astype(float)
    for other in series[1:]:
        result = result.combine_first(other.astype(float))
    return result


class DerivedFeatureCalculator:
    """Computes the derived ratio features.

    Args:
        config: Column names used by the derivations.
    """

    def __init__(self, config: Optional[DerivedFeatureConfig] = None):
        self.config = config or DerivedFeatureConfig()
        self.resolver = IncomeBasisResolver(self.config)

    def _income_inputs(self) -> List[str]:
        c = self.config
        return [c.application_type_column, c.income_column, c.joint_income_column]

    def _feature_specs(self) -> List[Tuple[str, List[str], Callable[[pd.DataFrame], pd.Series]]]:
        c = self.config
        return [
            (
                "loan_to_income",
                [c.loan_amount_column] + self._income_inputs(),
                lambda f: safe_ratio(f[c.loan_amount_column], self.resolver.income(f)),
            ),
            (
                "installment_pct_income",
                [c.installment_column] + self._income_inputs(),
                lambda f: 100.0 * safe_ratio(
                    12.0 * f[c.installment_column].astype(float), self.resolver.income(f)
                ),
            ),
            (
                "adjusted_dti",
                [c.loan_amount_column, c.current_balance_column] + self._income_inputs(),
                lambda f: safe_ratio(
                    f[c.loan_amount_column].astype(float) + f[c.current_balance_column].astype(float),
                    self.resolver.income(f),
                ),
            ),
            (
                "il_util_ex_mortgage",
                [c.balance_ex_mortgage_column, c.installment_limit_column],
                self._il_util_ex_mortgage,
            ),
        ]

    def _il_util_ex_mortgage(self, frame: pd.DataFrame) -> pd.Series:
        balance = frame[self.config.balance_ex_mortgage_column].astype(float)
        limit = frame[self.config.installment_limit_column].astype(float)
        valid = (limit > 0) & balance.notna()
        result = pd.Series(0.0, index=frame.index)
        result[valid] = balance[valid] / limit[valid]
        return result

    def _coalesce_joint(self, frame: pd.DataFrame) -> None:
        c = self.config
        for joint_col, individual_col in (
            (c.joint_income_column, c.income_column),
            (c.joint_dti_column, c.dti_column),
        ):
            if individual_col not in frame.columns:
                continue
            if joint_col in frame.columns:
                frame[joint_col] = coalesce(frame[joint_col], frame[individual_col])
            else:
                frame[joint_col] = frame[individual_col].astype(float)

    def transform(self, df: pd.DataFrame, strict: bool = True) -> pd.DataFrame:
        """Return a copy of df with coalesced joint fields and derived features.

        Args:
            df: Normalized applicant rows.
            strict: If True, a missing input column raises; otherwise the
                features depending on it are skipped.

        Raises:
            ConfigurationError: In strict mode, if an input column is absent.
        """
        out = df.copy()

        if strict:
            required = sorted({
                col for _, inputs, _ in self._feature_specs() for col in inputs
            } | {self.config.dti_column})
            missing = [col for col in required if col not in out.columns]
            if missing:
                raise ConfigurationError(
                    f"Derived features need columns absent from the data: {missing}",
                    column=missing[0],
                )

        self._coalesce_joint(out)

        for name, inputs, compute in self._feature_specs():
            if any(col not in out.columns for col in inputs):
                logger.debug(f"{STEP_NAME} | Skipping {name}: inputs not available")
                continue
            values = compute(out)
            n_inf = int(np.isinf(values).sum())
            if n_inf:
                logger.warning(
                    f"{STEP_NAME} | {name}: {n_inf:,} rows with zero income basis (set to inf)"
                )
            out[name] = values

        if strict:
            logger.info(
                f"{STEP_NAME} | Derived {len(DERIVED_FEATURES)} features for {len(out):,} rows "
                f"({int(self.resolver.is_individual(out).sum()):,} individual)"
            )
        return out

    def derive_single(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Derive what a single record's fields allow (serving path)."""
        frame = pd.DataFrame([dict(record)])
        derived = self.transform(frame, strict=False)
        return derived.iloc[0].to_dict()
