"""
Missing Value Imputer

Fills missing cells with per-column values frozen at fit time. Fill values
for 'max' and 'mean' columns come from the training partition only;
transform() never looks at its input's statistics, so held-out rows cannot
leak into the fill values.
"""

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
import logging
import time

import numpy as np
import pandas as pd

from lending_rate.core.exceptions import ConfigurationError
from lending_rate.pipeline.base import BaseComponent, StepResult


logger = logging.getLogger(__name__)

STEP_NAME = "04_imputation"

FILL_STRATEGIES = ("zero", "max", "mean")


def finite_or_nan(series: pd.Series) -> pd.Series:
    """Cast to float and treat +/-inf as missing."""
    return series.astype(float).replace([np.inf, -np.inf], np.nan)


class MissingValueImputer(BaseComponent):
    """Per-column zero / training-max / training-mean imputation.

    Args:
        policy: Column name -> 'zero', 'max' or 'mean'.
        target_column: Label column; never imputed, never used for statistics.
    """

    step_name = STEP_NAME

    def __init__(self, policy: Mapping[str, str], target_column: Optional[str] = None):
        invalid = {col: s for col, s in policy.items() if s not in FILL_STRATEGIES}
        if invalid:
            raise ConfigurationError(
                f"Unknown fill strategies {invalid}; expected one of {FILL_STRATEGIES}",
                column=next(iter(invalid)),
            )
        self.policy: Dict[str, str] = dict(policy)
        self.target_column = target_column
        self._fill_values: Optional[Dict[str, float]] = None

    @property
    def is_fitted(self) -> bool:
        return self._fill_values is not None

    @property
    def fill_values(self) -> Mapping[str, float]:
        """Frozen fill value per column (read-only)."""
        self._check_fitted()
        return MappingProxyType(self._fill_values)

    def _check_fitted(self) -> None:
        if self._fill_values is None:
            raise ConfigurationError("Imputer used before fit()")

    def _check_columns(self, X: pd.DataFrame, columns) -> None:
        absent = [col for col in columns if col not in X.columns]
        if absent:
            raise ConfigurationError(
                f"Imputation policy references columns absent from the data: {absent}",
                column=absent[0],
            )

    def fit(self, X: pd.DataFrame, y: Optional[pd.Series] = None, **kwargs: Any) -> StepResult:
        """Compute fill values from the training partition.

        Args:
            X: Training rows (may include the target column).
            y: Unused.

        Returns:
            StepResult with one row per imputed column.

        Raises:
            ConfigurationError: If a policy column is absent, or a max/mean
                column has no finite training value.
        """
        t0 = time.time()
        columns = [col for col in self.policy if col != self.target_column]
        if len(columns) != len(self.policy):
            logger.warning(
                f"{STEP_NAME} | Target column '{self.target_column}' is never imputed; "
                f"ignoring its policy entry"
            )
        self._check_columns(X, columns)

        fill_values: Dict[str, float] = {}
        rows = []
        n_rows = len(X)

        for col in columns:
            strategy = self.policy[col]
            values = finite_or_nan(X[col])
            observed = values.dropna()

            if strategy == "zero":
                fill = 0.0
            elif observed.empty:
                raise ConfigurationError(
                    f"Column '{col}' has no finite training values; "
                    f"cannot derive a {strategy} fill value",
                    column=col,
                )
            elif strategy == "max":
                fill = float(observed.max())
            else:
                fill = float(observed.mean())

            fill_values[col] = fill
            n_missing = n_rows - len(observed)
            rows.append({
                "Feature": col,
                "Strategy": strategy,
                "Fill_Value": fill,
                "Train_Missing_Count": n_missing,
                "Train_Missing_Rate": round(n_missing / n_rows, 4) if n_rows else 0.0,
            })

        self._fill_values = fill_values
        duration = time.time() - t0

        results_df = pd.DataFrame(
            rows,
            columns=["Feature", "Strategy", "Fill_Value", "Train_Missing_Count", "Train_Missing_Rate"],
        ).sort_values("Train_Missing_Rate", ascending=False)

        logger.info(
            f"{STEP_NAME} | Fitted fill values for {len(fill_values)} columns "
            f"on {n_rows:,} training rows"
        )

        return StepResult(
            step_name=self.step_name,
            input_features=columns,
            output_features=columns,
            eliminated_features=[],
            results_df=results_df,
            metadata={"policy": dict(self.policy), "n_train_rows": n_rows},
            duration_seconds=round(duration, 1),
        )

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Fill a partition with the frozen training values."""
        self._check_fitted()
        self._check_columns(X, self._fill_values)

        out = X.copy()
        for col, fill in self._fill_values.items():
            out[col] = finite_or_nan(out[col]).fillna(fill)
        return out

    def to_dict(self) -> Dict[str, Any]:
        """Serializable state."""
        self._check_fitted()
        return {
            "policy": dict(self.policy),
            "target_column": self.target_column,
            "fill_values": dict(self._fill_values),
        }

    @classmethod
    def from_dict(cls, state: Mapping[str, Any]) -> "MissingValueImputer":
        imputer = cls(state["policy"], state.get("target_column"))
        imputer._fill_values = dict(state["fill_values"])
        return imputer
