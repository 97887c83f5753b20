"""
Reduced Model Evaluator

Scores the reduced model on the train and test partitions and produces a
performance table plus a per-decile calibration table.
"""

from typing import Dict, Optional, Tuple
import logging
import math

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

from lending_rate.core.exceptions import EvaluationError
from lending_rate.model_development.reduced_model import ReducedModel


logger = logging.getLogger(__name__)


def regression_metrics(y_true, y_pred) -> Dict[str, float]:
    """R^2, RMSE and MAE of one set of predictions.

    Raises:
        EvaluationError: On empty input or length mismatch.
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    if len(y_true) != len(y_pred):
        raise EvaluationError(
            f"Length mismatch: {len(y_true)} targets vs {len(y_pred)} predictions"
        )
    if len(y_true) < 2:
        raise EvaluationError(
            f"Need at least 2 scored rows for regression metrics, got {len(y_true)}",
            metric_name="r2",
        )
    return {
        "r2": round(float(r2_score(y_true, y_pred)), 6),
        "rmse": round(float(math.sqrt(mean_squared_error(y_true, y_pred))), 6),
        "mae": round(float(mean_absolute_error(y_true, y_pred)), 6),
        "n": int(len(y_true)),
    }


def evaluate_model(
    model: ReducedModel,
    test_df: pd.DataFrame,
    train_df: Optional[pd.DataFrame] = None,
    n_buckets: int = 10,
) -> Tuple[pd.DataFrame, Dict[str, pd.DataFrame]]:
    """
    Evaluate the reduced model on the held-out (and optionally train) rows.

    Args:
        model: Fitted ReducedModel.
        test_df: Held-out partition including the target column.
        train_df: Training partition, reported alongside when given.
        n_buckets: Number of predicted-rate buckets in the calibration table.

    Returns:
        Tuple of:
        - performance_df: One row per partition with R2/RMSE/MAE
        - calibration: Dict mapping partition name to its bucket table
    """
    periods = [("Test", test_df)]
    if train_df is not None:
        periods.insert(0, ("Train", train_df))

    perf_rows = []
    calibration = {}

    for period_name, df in periods:
        if len(df) == 0:
            logger.warning(f"EVAL | {period_name}: empty partition, skipping")
            continue

        labeled = df[df[model.target_column].notna()]
        batch = model.predict_frame(labeled)
        y_true = labeled.loc[batch.predictions.index, model.target_column].to_numpy(dtype=float)
        y_pred = batch.predictions.to_numpy()

        metrics = regression_metrics(y_true, y_pred)
        calibration[period_name] = _calibration_table(y_true, y_pred, n_buckets)

        perf_rows.append({
            "Period": period_name,
            "N_Samples": len(labeled),
            "N_Scored": metrics["n"],
            "N_Skipped": batch.n_skipped,
            "Mean_Rate": round(float(y_true.mean()), 4),
            "R2": metrics["r2"],
            "RMSE": metrics["rmse"],
            "MAE": metrics["mae"],
        })
        logger.info(
            f"EVAL | {period_name}: R2={metrics['r2']:.4f}, "
            f"RMSE={metrics['rmse']:.4f}, MAE={metrics['mae']:.4f} "
            f"({metrics['n']:,} rows)"
        )

    return pd.DataFrame(perf_rows), calibration


def _calibration_table(y_true: np.ndarray, y_pred: np.ndarray, n_buckets: int) -> pd.DataFrame:
    """Mean actual vs predicted rate per predicted-rate quantile bucket."""
    frame = pd.DataFrame({"actual": y_true, "predicted": y_pred})
    n_buckets = max(1, min(n_buckets, frame["predicted"].nunique()))
    frame["Bucket"] = pd.qcut(
        frame["predicted"].rank(method="first"), n_buckets, labels=False
    ) + 1

    table = frame.groupby("Bucket").agg(
        N=("actual", "size"),
        Min_Predicted=("predicted", "min"),
        Max_Predicted=("predicted", "max"),
        Mean_Predicted=("predicted", "mean"),
        Mean_Actual=("actual", "mean"),
    ).reset_index()
    table["Residual"] = table["Mean_Actual"] - table["Mean_Predicted"]
    return table.round(4)
