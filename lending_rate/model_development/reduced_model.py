"""
Reduced Model

The small, user-facing linear model retrained from scratch on a hand-chosen
feature subset. It carries its own normalization parameters and the fill
values of its features, so a serving-time record needs nothing else.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging

import numpy as np
import pandas as pd
from sklearn.linear_model import Lasso, LinearRegression

from lending_rate.core.exceptions import (
    ConfigurationError,
    InsufficientDataError,
    MissingValueError,
    ModelTrainingError,
)
from lending_rate.features.imputer import MissingValueImputer, finite_or_nan
from lending_rate.features.scaler import FeatureScaler
from lending_rate.model_development.fitted_model import FittedModel


logger = logging.getLogger(__name__)

STEP_NAME = "06_reduced_model"


@dataclass
class PredictionBatch:
    """Batch predictions plus the rows that could not be scored.

    Attributes:
        predictions: Predicted rate, indexed like the scored input rows.
        skipped: One row per skipped input row: index and missing features.
    """

    predictions: pd.Series
    skipped: pd.DataFrame = field(
        default_factory=lambda: pd.DataFrame(columns=["row", "missing_features"])
    )

    @property
    def n_skipped(self) -> int:
        return len(self.skipped)


class ReducedModel:
    """Linear model on a fixed feature subset.

    Args:
        features: Predictor columns, in coefficient order.
        penalty: L1 strength; 0 fits ordinary least squares.
        target_column: Label column in training frames.
        max_iter: Iteration cap for the L1 solver.
    """

    def __init__(
        self,
        features: Sequence[str],
        penalty: float = 0.0,
        target_column: str = "int_rate",
        max_iter: int = 10000,
    ):
        if not features:
            raise ConfigurationError("Reduced model needs at least one feature")
        if penalty < 0:
            raise ConfigurationError(f"Penalty must be non-negative, got {penalty}")
        self.features = list(features)
        self.penalty = float(penalty)
        self.target_column = target_column
        self.max_iter = max_iter

        self.fill_values_: Dict[str, float] = {}
        self.model_: Optional[FittedModel] = None
        self.scaler_: Optional[FeatureScaler] = None
        self.skipped_rows_: List[Any] = []
        self.n_train_rows_: int = 0

    @property
    def is_fitted(self) -> bool:
        return self.model_ is not None

    def _check_fitted(self) -> None:
        if self.model_ is None:
            raise ModelTrainingError("ReducedModel used before fit()", model_name="reduced")

    def _fill(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Cast the model's features to float and apply their fill values."""
        out = pd.DataFrame(index=frame.index)
        for f in self.features:
            column = finite_or_nan(frame[f]) if f in frame.columns else pd.Series(np.nan, index=frame.index)
            if f in self.fill_values_:
                column = column.fillna(self.fill_values_[f])
            out[f] = column
        return out

    # ------------------------------------------------------------------

    def fit(
        self,
        train_df: pd.DataFrame,
        imputer: Optional[MissingValueImputer] = None,
    ) -> "ReducedModel":
        """Retrain on the training partition.

        Args:
            train_df: Derived (un-imputed) training rows including the target.
            imputer: Fitted imputer whose fill values for the model's
                features are applied and kept with the model.

        Raises:
            ConfigurationError: If a feature or the target is absent.
            InsufficientDataError: If too few complete rows remain.
        """
        absent = [c for c in self.features + [self.target_column] if c not in train_df.columns]
        if absent:
            raise ConfigurationError(
                f"Reduced model columns absent from training data: {absent}",
                column=absent[0],
            )

        if imputer is not None:
            fills = imputer.fill_values
            self.fill_values_ = {f: float(fills[f]) for f in self.features if f in fills}
        else:
            self.fill_values_ = {}

        X = self._fill(train_df)
        y = finite_or_nan(train_df[self.target_column])
        complete = X.notna().all(axis=1) & y.notna()

        self.skipped_rows_ = list(train_df.index[~complete])
        if self.skipped_rows_:
            logger.warning(
                f"{STEP_NAME} | Skipping {len(self.skipped_rows_):,} training rows "
                f"with features still missing after imputation"
            )

        required = len(self.features) + 2
        n_complete = int(complete.sum())
        if n_complete < required:
            raise InsufficientDataError(
                f"Reduced model has {n_complete} complete training rows, "
                f"needs at least {required}",
                n_rows=n_complete,
                required=required,
            )

        X = X.loc[complete]
        scaler = FeatureScaler().fit(X, self.features)
        X_scaled = scaler.transform(X)

        if self.penalty == 0:
            estimator = LinearRegression()
        else:
            estimator = Lasso(alpha=self.penalty, max_iter=self.max_iter)
        estimator.fit(X_scaled, y.loc[complete].to_numpy())

        self.model_ = FittedModel(
            penalty=self.penalty,
            features=list(self.features),
            coefficients={f: float(c) for f, c in zip(self.features, estimator.coef_)},
            intercept=float(estimator.intercept_),
            normalization=scaler.parameters,
        )
        self.scaler_ = scaler
        self.n_train_rows_ = n_complete

        logger.info(
            f"{STEP_NAME} | Fitted on {n_complete:,} rows with {len(self.features)} features: "
            + ", ".join(f"{f}={c:.4f}" for f, c in self.coefficients.items())
        )
        return self

    # ------------------------------------------------------------------

    @property
    def coefficients(self) -> Dict[str, float]:
        """Coefficients in raw feature units."""
        self._check_fitted()
        return self.model_.raw_coefficients

    @property
    def intercept(self) -> float:
        self._check_fitted()
        return self.model_.raw_intercept

    def coefficient_frame(self) -> pd.DataFrame:
        """Per-feature raw and standardized coefficients."""
        self._check_fitted()
        raw = self.coefficients
        rows = [
            {
                "feature": f,
                "coefficient": raw[f],
                "standardized_coefficient": self.model_.coefficients[f],
                "mean": self.model_.normalization[f][0],
                "std": self.model_.normalization[f][1],
                "fill_value": self.fill_values_.get(f),
            }
            for f in self.features
        ]
        rows.append({"feature": "(intercept)", "coefficient": self.intercept})
        return pd.DataFrame(rows)

    def predict_frame(self, df: pd.DataFrame) -> PredictionBatch:
        """Score every row that has all features after filling.

        Rows still missing a feature are not scored; they are reported in
        the batch's skipped table instead of failing the batch.
        """
        self._check_fitted()
        X = self._fill(df)
        complete = X.notna().all(axis=1)

        skipped = pd.DataFrame(
            [
                {"row": idx, "missing_features": [f for f in self.features if pd.isna(X.at[idx, f])]}
                for idx in X.index[~complete]
            ],
            columns=["row", "missing_features"],
        )
        if len(skipped):
            logger.warning(f"{STEP_NAME} | Skipped {len(skipped):,} rows with missing features")

        X_ok = X.loc[complete]
        values = self.model_.predict_scaled(self._scale(X_ok)) if len(X_ok) else np.array([])
        predictions = pd.Series(values, index=X_ok.index, name="predicted_rate")
        return PredictionBatch(predictions=predictions, skipped=skipped)

    def _scale(self, X: pd.DataFrame) -> np.ndarray:
        means = np.array([self.model_.normalization[f][0] for f in self.features])
        stds = np.array([self.model_.normalization[f][1] for f in self.features])
        return (X[self.features].to_numpy(dtype=float) - means) / stds

    def predict_one(self, values: Mapping[str, Any], record_index: Any = None) -> float:
        """Predict a single record.

        Raises:
            MissingValueError: If a feature is missing and has no fill value.
        """
        self._check_fitted()
        filled: Dict[str, float] = {}
        missing = []
        for f in self.features:
            value = values.get(f)
            number = float(value) if value is not None else np.nan
            if not np.isfinite(number):
                number = self.fill_values_.get(f, np.nan)
            if not np.isfinite(number):
                missing.append(f)
            filled[f] = number

        if missing:
            raise MissingValueError(
                "Required features missing for prediction",
                features=missing,
                record_index=record_index,
            )
        return float(self.model_.predict_raw(filled))

    # ------------------------------------------------------------------

    def to_artifact(self) -> Dict[str, Any]:
        """Serializable state for the artifact store."""
        self._check_fitted()
        return {
            "features": list(self.features),
            "penalty": self.penalty,
            "target_column": self.target_column,
            "max_iter": self.max_iter,
            "fill_values": dict(self.fill_values_),
            "model": self.model_.to_dict(),
            "n_train_rows": self.n_train_rows_,
        }

    @classmethod
    def from_artifact(cls, state: Mapping[str, Any]) -> "ReducedModel":
        try:
            model = cls(
                features=state["features"],
                penalty=state.get("penalty", 0.0),
                target_column=state.get("target_column", "int_rate"),
                max_iter=state.get("max_iter", 10000),
            )
            model.fill_values_ = {k: float(v) for k, v in state.get("fill_values", {}).items()}
            model.model_ = FittedModel.from_dict(state["model"])
            model.n_train_rows_ = int(state.get("n_train_rows", 0))
        except KeyError as e:
            raise ModelTrainingError(
                f"Incomplete reduced model artifact: missing {e}", model_name="reduced", cause=e
            )
        return model
