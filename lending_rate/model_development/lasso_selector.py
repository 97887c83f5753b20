"""
LASSO Path Feature Selection

Fits an L1-penalized linear regression across a grid of penalties with
k-fold cross-validation, keeps every fitted model, and ranks features by how
long they survive as the penalty grows. The survival order is what a modeler
reads to pick a small, explainable predictor set by hand.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import math
import time

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.linear_model import Lasso
from sklearn.metrics import mean_squared_error, r2_score
from sklearn.preprocessing import StandardScaler
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from lending_rate.config.schema import SelectionConfig
from lending_rate.core.exceptions import (
    ConfigurationError,
    FeatureSelectionError,
    MissingValueError,
)
from lending_rate.features.scaler import FeatureScaler
from lending_rate.model_development.fitted_model import FittedModel
from lending_rate.model_development.penalty_grid import PenaltyGrid, fold_assignments
from lending_rate.pipeline.base import BaseComponent, StepResult


logger = logging.getLogger(__name__)

STEP_NAME = "05_penalty_path"


@dataclass(frozen=True)
class NestingViolation:
    """A feature that came back at a higher penalty after dropping out."""
    feature: str
    dropped_at: float
    reappeared_at: float


# ---------------------------------------------------------------------------
# CV evaluation helper
# ---------------------------------------------------------------------------

def _evaluate_fold(
    X: np.ndarray,
    y: np.ndarray,
    folds: np.ndarray,
    fold_id: int,
    penalties: np.ndarray,
    max_iter: int,
) -> List[Dict[str, float]]:
    """Held-out R^2 / RMSE of every penalty on one fold.

    Scaling is fit on the fold's training rows only. Penalties are visited
    from largest to smallest so each fit warm-starts from a sparser one.
    """
    train_mask = folds != fold_id
    scaler = StandardScaler().fit(X[train_mask])
    X_tr = scaler.transform(X[train_mask])
    X_val = scaler.transform(X[~train_mask])
    y_tr, y_val = y[train_mask], y[~train_mask]

    model = Lasso(alpha=float(penalties[-1]), max_iter=max_iter, warm_start=True)
    rows = []
    for penalty in penalties[::-1]:
        model.set_params(alpha=float(penalty))
        model.fit(X_tr, y_tr)
        pred = model.predict(X_val)
        rows.append({
            "penalty": float(penalty),
            "fold": fold_id,
            "r2": float(r2_score(y_val, pred)),
            "rmse": float(math.sqrt(mean_squared_error(y_val, pred))),
        })
    return rows


# ---------------------------------------------------------------------------
# Nesting check
# ---------------------------------------------------------------------------

def check_nested_selection(
    coefficient_path: pd.DataFrame,
    tolerance: float = 1e-10,
) -> List[NestingViolation]:
    """Find features selected again at a higher penalty after dropping out.

    Args:
        coefficient_path: Index = penalties (ascending), columns = features.
        tolerance: |coef| above which a feature counts as selected.

    Returns:
        One NestingViolation per offending feature (first reappearance).
    """
    path = coefficient_path.sort_index()
    selected = path.abs() > tolerance
    violations = []

    for feature in path.columns:
        dropped_at = None
        for penalty, is_selected in selected[feature].items():
            if not is_selected and dropped_at is None:
                dropped_at = float(penalty)
            elif is_selected and dropped_at is not None:
                violations.append(NestingViolation(feature, dropped_at, float(penalty)))
                break

    return violations


# ---------------------------------------------------------------------------
# Chart
# ---------------------------------------------------------------------------

def _save_path_chart(
    metrics_table: pd.DataFrame,
    best_penalty: float,
    one_se_penalty: float,
    output_dir: Path,
) -> str:
    """Save CV RMSE vs penalty with a +/-1 std band. Returns the PNG path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    chart_path = str(output_dir / f"penalty_path_{timestamp}.png")

    penalties = metrics_table["penalty"].values
    mean_rmse = metrics_table["mean_cv_rmse"].values
    std_rmse = metrics_table["std_cv_rmse"].values

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(penalties, mean_rmse, "o-", color="#2563eb", linewidth=2, markersize=5,
            label="Mean CV RMSE")
    ax.fill_between(
        penalties,
        mean_rmse - std_rmse,
        mean_rmse + std_rmse,
        alpha=0.2,
        color="#2563eb",
        label="±1 Std Dev",
    )
    ax.axvline(x=best_penalty, color="#16a34a", linestyle="--", linewidth=1.5,
               label=f"Best λ={best_penalty:.2e}")
    ax.axvline(x=one_se_penalty, color="#dc2626", linestyle="--", linewidth=1.5,
               label=f"1-SE λ={one_se_penalty:.2e}")

    ax.set_xscale("log")
    ax.set_xlabel("Penalty (λ)", fontsize=12)
    ax.set_ylabel("Mean CV RMSE", fontsize=12)
    ax.set_title("LASSO Penalty Path", fontsize=14)
    ax.legend(loc="upper left", fontsize=10)
    ax.grid(True, alpha=0.3)

    plt.savefig(chart_path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"{STEP_NAME} | Chart saved to {chart_path}")
    return chart_path


# ---------------------------------------------------------------------------
# Selector
# ---------------------------------------------------------------------------

class LassoPathSelector(BaseComponent):
    """Cross-validated LASSO path over a PenaltyGrid.

    Args:
        config: SelectionConfig (grid, folds, parallelism, tolerance).
        seed: Seed for the fold assignment.
        output_dir: Where the path chart goes; no chart when None.
    """

    step_name = STEP_NAME

    def __init__(
        self,
        config: Optional[SelectionConfig] = None,
        seed: int = 42,
        output_dir: Optional[str] = None,
    ):
        self.config = config or SelectionConfig()
        self.grid = PenaltyGrid.from_config(self.config)
        self.seed = seed
        self.output_dir = Path(output_dir) if output_dir else None

        self.features_: List[str] = []
        self.penalties_: np.ndarray = np.array([])
        self.scaler_: Optional[FeatureScaler] = None
        self.models_: List[FittedModel] = []
        self.cv_results_: Optional[pd.DataFrame] = None
        self.chart_path_: Optional[str] = None
        self._metrics_table: Optional[pd.DataFrame] = None
        self._coefficient_path: Optional[pd.DataFrame] = None
        self._violations: List[NestingViolation] = []
        self._survival_order: List[str] = []
        self._best_penalty: Optional[float] = None
        self._one_se_penalty: Optional[float] = None

    # -- validation ---------------------------------------------------------

    def _validate_input(self, X: pd.DataFrame, y: pd.Series) -> None:
        if X.shape[1] == 0:
            raise ConfigurationError("No features given to the penalty path")
        if y is None or len(X) != len(y):
            raise ConfigurationError(
                f"X and y length mismatch: {len(X)} vs {0 if y is None else len(y)}"
            )
        values = X.to_numpy(dtype=float)
        bad_features = [
            col for col, ok in zip(X.columns, np.isfinite(values).all(axis=0)) if not ok
        ]
        if bad_features:
            raise MissingValueError(
                "Penalty path input contains missing or infinite values",
                features=bad_features,
            )
        if y.isna().any():
            raise MissingValueError("Target contains missing values", features=[str(y.name)])

    def _check_fitted(self) -> None:
        if self._metrics_table is None:
            raise FeatureSelectionError("LassoPathSelector used before fit()")

    # -- fitting ------------------------------------------------------------

    def fit(self, X: pd.DataFrame, y: Optional[pd.Series] = None, **kwargs: Any) -> StepResult:
        """Run cross-validation and the full-data path.

        Args:
            X: Training features (finite values only).
            y: Training target.

        Returns:
            StepResult whose results_df is the per-penalty metrics table and
            whose output_features are the features selected at the best
            penalty, in survival order.

        Raises:
            InsufficientDataError: If the rows cannot form the folds.
            MissingValueError: If X or y hold missing values.
            FeatureSelectionError: On a nesting violation with strict_nesting.
        """
        t0 = time.time()
        self._validate_input(X, y)

        features = [str(c) for c in X.columns]
        X_values = X.to_numpy(dtype=float)
        y_values = y.to_numpy(dtype=float)
        penalties = self.grid.values
        n_folds = self.config.n_folds

        folds = fold_assignments(len(X), n_folds, self.seed)
        logger.info(
            f"{STEP_NAME} | {len(features)} features, {len(X):,} rows, "
            f"{len(penalties)} penalties x {n_folds} folds"
        )

        # Folds are independent; each task works on its own slice
        fold_rows = Parallel(n_jobs=self.config.n_jobs)(
            delayed(_evaluate_fold)(
                X_values, y_values, folds, fold_id, penalties, self.config.max_iter
            )
            for fold_id in range(n_folds)
        )
        cv_results = pd.DataFrame([row for rows in fold_rows for row in rows])
        self.cv_results_ = cv_results

        # Fixed path on the full training partition
        scaler = FeatureScaler().fit(X, features)
        X_scaled = scaler.transform(X)
        normalization = scaler.parameters

        model = Lasso(alpha=float(penalties[-1]), max_iter=self.config.max_iter, warm_start=True)
        fitted: Dict[float, FittedModel] = {}
        for penalty in penalties[::-1]:
            model.set_params(alpha=float(penalty))
            model.fit(X_scaled, y_values)
            fitted[float(penalty)] = FittedModel(
                penalty=float(penalty),
                features=list(features),
                coefficients={f: float(c) for f, c in zip(features, model.coef_)},
                intercept=float(model.intercept_),
                normalization=dict(normalization),
            )

        self.features_ = features
        self.penalties_ = penalties
        self.scaler_ = scaler
        self.models_ = [fitted[float(p)] for p in penalties]

        self._coefficient_path = pd.DataFrame(
            [[m.coefficients[f] for f in features] for m in self.models_],
            index=pd.Index(penalties, name="penalty"),
            columns=features,
        )
        self._survival_order = self._compute_survival_order()
        self._metrics_table = self._build_metrics_table(cv_results, n_folds)

        self._violations = check_nested_selection(
            self._coefficient_path, self.config.coef_tolerance
        )
        for v in self._violations:
            logger.warning(
                f"{STEP_NAME} | Non-nested path: '{v.feature}' dropped at "
                f"λ={v.dropped_at:.3e} and reappeared at λ={v.reappeared_at:.3e}"
            )
        if self._violations and self.config.strict_nesting:
            raise FeatureSelectionError(
                f"{len(self._violations)} feature(s) reappear on the penalty path",
                feature_name=self._violations[0].feature,
                details={"violations": [v.__dict__ for v in self._violations]},
            )

        if self.output_dir is not None and self.config.save_chart:
            self.chart_path_ = _save_path_chart(
                self._metrics_table, self._best_penalty, self._one_se_penalty, self.output_dir
            )

        selected = self.selected_features(self._best_penalty)
        duration = time.time() - t0
        logger.info(
            f"{STEP_NAME} | Best λ={self._best_penalty:.3e} keeps {len(selected)} features; "
            f"1-SE λ={self._one_se_penalty:.3e} keeps "
            f"{len(self.selected_features(self._one_se_penalty))} ({duration:.1f}s)"
        )

        return StepResult(
            step_name=self.step_name,
            input_features=features,
            output_features=selected,
            eliminated_features=[f for f in features if f not in selected],
            results_df=self._metrics_table,
            metadata={
                "best_penalty": self._best_penalty,
                "one_se_penalty": self._one_se_penalty,
                "n_folds": n_folds,
                "survival_order": list(self._survival_order),
                "nesting_violations": [v.__dict__ for v in self._violations],
            },
            duration_seconds=round(duration, 1),
        )

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Keep the features selected at the best penalty."""
        self._check_fitted()
        return X[self.selected_features(self._best_penalty)]

    def _compute_survival_order(self) -> List[str]:
        """Features ever selected, longest-surviving first."""
        selected = self._coefficient_path.abs() > self.config.coef_tolerance
        keys = []
        for feature in self.features_:
            hits = np.flatnonzero(selected[feature].to_numpy())
            if len(hits) == 0:
                continue
            last = int(hits[-1])
            magnitude = abs(self._coefficient_path[feature].iloc[last])
            keys.append((-last, -magnitude, feature))
        return [feature for _, _, feature in sorted(keys)]

    def _build_metrics_table(self, cv_results: pd.DataFrame, n_folds: int) -> pd.DataFrame:
        grouped = cv_results.groupby("penalty").agg(
            mean_cv_r2=("r2", "mean"),
            std_cv_r2=("r2", "std"),
            mean_cv_rmse=("rmse", "mean"),
            std_cv_rmse=("rmse", "std"),
        ).reindex(self.penalties_)

        table = grouped.reset_index().rename(columns={"index": "penalty"})
        table["penalty"] = self.penalties_
        table["n_selected"] = [
            len(m.selected_features(self.config.coef_tolerance)) for m in self.models_
        ]

        # Ties go to the larger (sparser) penalty
        r2 = table["mean_cv_r2"].to_numpy()
        best_idx = int(len(r2) - 1 - np.nanargmax(r2[::-1]))

        rmse = table["mean_cv_rmse"].to_numpy()
        rmse_best_idx = int(np.nanargmin(rmse))
        threshold = rmse[rmse_best_idx] + table["std_cv_rmse"].iloc[rmse_best_idx] / math.sqrt(n_folds)
        within = np.flatnonzero(rmse <= threshold)
        one_se_idx = int(within[-1]) if len(within) else rmse_best_idx

        table["is_best"] = False
        table["is_one_se"] = False
        table.loc[best_idx, "is_best"] = True
        table.loc[one_se_idx, "is_one_se"] = True

        self._best_penalty = float(self.penalties_[best_idx])
        self._one_se_penalty = float(self.penalties_[one_se_idx])
        return table[[
            "penalty", "mean_cv_r2", "std_cv_r2", "mean_cv_rmse", "std_cv_rmse",
            "n_selected", "is_best", "is_one_se",
        ]]

    # -- results ------------------------------------------------------------

    @property
    def metrics_table(self) -> pd.DataFrame:
        """Per-penalty CV metrics (copy)."""
        self._check_fitted()
        return self._metrics_table.copy()

    @property
    def coefficient_path(self) -> pd.DataFrame:
        """Standardized coefficients, index = penalty ascending (copy)."""
        self._check_fitted()
        return self._coefficient_path.copy()

    @property
    def nesting_violations(self) -> List[NestingViolation]:
        self._check_fitted()
        return list(self._violations)

    @property
    def best_penalty(self) -> float:
        self._check_fitted()
        return self._best_penalty

    @property
    def one_se_penalty(self) -> float:
        self._check_fitted()
        return self._one_se_penalty

    def _index_of(self, penalty: float) -> int:
        matches = np.flatnonzero(np.isclose(self.penalties_, penalty, rtol=1e-9, atol=0.0))
        if len(matches) == 0:
            raise FeatureSelectionError(f"Penalty {penalty} is not on the fitted grid")
        return int(matches[0])

    def fitted_model(self, penalty: float) -> FittedModel:
        """The full-data model fitted at one grid penalty."""
        self._check_fitted()
        return self.models_[self._index_of(penalty)]

    def selected_features(self, penalty: float) -> List[str]:
        """Features nonzero at penalty, in survival order."""
        self._check_fitted()
        model = self.fitted_model(penalty)
        nonzero = set(model.selected_features(self.config.coef_tolerance))
        return [f for f in self._survival_order if f in nonzero]

    def selection_table(self) -> Dict[float, List[str]]:
        """Every grid penalty mapped to its ordered selected features."""
        self._check_fitted()
        return {float(p): self.selected_features(p) for p in self.penalties_}

    def top_features(self, n: int) -> List[str]:
        """The n longest-surviving features."""
        self._check_fitted()
        return list(self._survival_order[:n])

    def predict(self, X: pd.DataFrame, penalty: Optional[float] = None) -> np.ndarray:
        """Predict with the model at penalty (best penalty by default)."""
        self._check_fitted()
        model = self.fitted_model(self._best_penalty if penalty is None else penalty)
        return model.predict_scaled(self.scaler_.transform(X))

    def selection_frame(self) -> pd.DataFrame:
        """Long table of (penalty, rank, feature, coefficient) for reporting."""
        self._check_fitted()
        rows = []
        for penalty, features in self.selection_table().items():
            model = self.fitted_model(penalty)
            for rank, feature in enumerate(features, 1):
                rows.append({
                    "penalty": penalty,
                    "rank": rank,
                    "feature": feature,
                    "coefficient": model.coefficients[feature],
                })
        return pd.DataFrame(rows, columns=["penalty", "rank", "feature", "coefficient"])
