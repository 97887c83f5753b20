"""
Interest Rate Model Pipeline

Orchestrates training end to end:
1. Schema validation and normalization
2. Drop rows without a target
3. Derived ratio features
4. Train/test split
5. Imputation fitted on the training partition
6. LASSO penalty path with cross-validation
7. Reduced model on the configured feature subset
8. Held-out evaluation
9. Model artifact and Excel report
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import time

import numpy as np
import pandas as pd

from lending_rate.config.schema import PipelineConfig
from lending_rate.core.logger import PipelineLogger
from lending_rate.data.normalizer import ColumnNormalizer, drop_missing_target
from lending_rate.data.schema import SCHEMA_VERSION, numeric_columns
from lending_rate.data.schema_validator import SchemaValidator, schema_from_frame
from lending_rate.data.splitter import DataSplitter
from lending_rate.features.derived import DERIVED_FEATURES, DerivedFeatureCalculator
from lending_rate.features.imputer import MissingValueImputer
from lending_rate.io.artifact_store import ModelArtifactStore
from lending_rate.io.output_manager import OutputManager
from lending_rate.model_development import excel_reporter
from lending_rate.model_development.evaluator import evaluate_model
from lending_rate.model_development.lasso_selector import LassoPathSelector
from lending_rate.model_development.reduced_model import ReducedModel
from lending_rate.pipeline.base import StepResult


logger = logging.getLogger(__name__)


@dataclass
class TrainingResult:
    """Everything a training run produced.

    Attributes:
        run_id: Output run identifier.
        candidate_features: Features entered into the penalty path.
        selector: Fitted LassoPathSelector.
        imputer: Fitted MissingValueImputer.
        reduced_model: Fitted ReducedModel.
        step_results: StepResult per fitted step.
        performance_df: Reduced model metrics per partition.
        skipped_rows: Training row labels left out of the penalty path.
        artifact_version: Version in the artifact store, if saved.
        excel_path: Report path, if generated.
    """

    run_id: str
    candidate_features: List[str]
    selector: LassoPathSelector
    imputer: MissingValueImputer
    reduced_model: ReducedModel
    step_results: Dict[str, StepResult] = field(default_factory=dict)
    performance_df: pd.DataFrame = field(default_factory=pd.DataFrame)
    skipped_rows: List[Any] = field(default_factory=list)
    artifact_version: Optional[str] = None
    excel_path: Optional[str] = None
    run_dir: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def best_penalty(self) -> float:
        return self.selector.best_penalty

    @property
    def selected_features(self) -> List[str]:
        return self.selector.selected_features(self.selector.best_penalty)

    def test_metrics(self) -> Dict[str, Any]:
        rows = self.performance_df[self.performance_df["Period"] == "Test"]
        return rows.iloc[0].to_dict() if len(rows) else {}


class RateModelPipeline:
    """
    End-to-end interest rate model training.

    Args:
        config: Validated PipelineConfig.
        output_manager: Run directory manager; created from the config
            when omitted.
        validate_schema: Check raw columns against the applicant schema.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        output_manager: Optional[OutputManager] = None,
        validate_schema: bool = True,
    ):
        self.config = config or PipelineConfig()
        self.output_manager = output_manager or OutputManager(self.config)
        self.validate_schema = validate_schema
        self.target_column = self.config.data.target_column
        self.seed = self.config.reproducibility.global_seed
        self.plog = PipelineLogger(__name__)

    # ------------------------------------------------------------------

    def candidate_features(self, frame: pd.DataFrame) -> List[str]:
        """Numeric schema columns and derived features entering the path."""
        excluded = set(self.config.data.id_columns) | set(self.config.data.exclude_columns)
        excluded.add(self.target_column)

        features = []
        for col in list(numeric_columns()) + list(DERIVED_FEATURES):
            if col in frame.columns and col not in excluded and col not in features:
                features.append(col)
        return features

    def _feature_matrix(self, frame: pd.DataFrame, features: List[str]):
        """Rows with every feature finite, plus the labels of skipped rows."""
        values = frame[features].astype(float)
        complete = np.isfinite(values.to_numpy()).all(axis=1)
        skipped = list(frame.index[~complete])
        if skipped:
            bad = values.loc[~complete].apply(lambda col: (~np.isfinite(col)).sum())
            logger.warning(
                f"05_penalty_path | Skipping {len(skipped):,} training rows with "
                f"features still missing after imputation: "
                f"{bad[bad > 0].to_dict()}"
            )
        return frame.loc[complete], skipped

    # ------------------------------------------------------------------

    def run(self, raw_df: pd.DataFrame) -> TrainingResult:
        """Execute the full pipeline on raw applicant rows."""
        t0 = time.time()
        om = self.output_manager
        cfg = self.config
        step_results: Dict[str, StepResult] = {}

        self.plog.set_context(run_id=om.run_id)
        self.plog.info(f"INIT | Schema v{SCHEMA_VERSION}, target {self.target_column}")
        self.plog.data_stats("raw", len(raw_df), raw_df.shape[1])
        if cfg.reproducibility.save_config:
            om.save_config_snapshot(cfg)

        try:
            # Steps 1-2: validate, normalize, drop missing target
            if self.validate_schema:
                SchemaValidator().validate_and_raise(schema_from_frame(raw_df))
            normalized = ColumnNormalizer().transform(raw_df)
            labeled = drop_missing_target(normalized, self.target_column)
            self.plog.data_stats("labeled", len(labeled))

            # Step 3: derived features
            derived = DerivedFeatureCalculator(cfg.features).transform(labeled)

            # Step 4: split
            split = DataSplitter(cfg.splitting, self.target_column, self.seed).split(derived)
            om.save_step_results("03_split", {"split": split.metadata})

            # Step 5: imputation, statistics from train only
            imputer = MissingValueImputer(cfg.imputation.policy, self.target_column)
            step_results["04_imputation"] = imputer.fit(split.train)
            train_imputed = imputer.transform(split.train)
            om.save_step_results("04_imputation", {
                "fill_values": step_results["04_imputation"].results_df,
            })

            # Step 6: penalty path
            self.plog.step_start("05_penalty_path")
            features = self.candidate_features(train_imputed)
            train_matrix, skipped = self._feature_matrix(train_imputed, features)
            selector = LassoPathSelector(
                cfg.selection,
                seed=self.seed,
                output_dir=str(om.get_step_dir("05_penalty_path")),
            )
            step_results["05_penalty_path"] = selector.fit(
                train_matrix[features], train_matrix[self.target_column]
            )
            self.plog.step_complete(
                "05_penalty_path", step_results["05_penalty_path"].duration_seconds
            )
            om.save_step_results("05_penalty_path", {
                "metrics_table": selector.metrics_table,
                "coefficient_path": selector.coefficient_path.reset_index(),
                "selection_table": {str(p): f for p, f in selector.selection_table().items()},
                "nesting_violations": [v.__dict__ for v in selector.nesting_violations],
            })

            # Step 7: reduced model, retrained from scratch
            reduced = ReducedModel(
                cfg.reduced_model.features,
                penalty=cfg.reduced_model.penalty,
                target_column=self.target_column,
                max_iter=cfg.selection.max_iter,
            ).fit(split.train, imputer=imputer)
            om.save_step_results("06_reduced_model", {
                "coefficients": reduced.coefficient_frame(),
            })

            # Step 8: evaluation
            performance_df, calibration = evaluate_model(reduced, split.test, split.train)
            om.save_step_results("07_evaluation", {"performance": performance_df})

            result = TrainingResult(
                run_id=om.run_id,
                candidate_features=features,
                selector=selector,
                imputer=imputer,
                reduced_model=reduced,
                step_results=step_results,
                performance_df=performance_df,
                skipped_rows=skipped,
                run_dir=str(om.run_dir),
            )

            # Step 9: artifacts
            if cfg.output.save_model:
                result.artifact_version = self._save_artifact(
                    result, pd.concat([split.train, split.test], ignore_index=True)
                )

            if cfg.output.generate_excel:
                result.excel_path = excel_reporter.generate_report(
                    output_path=str(om.reports_dir / f"rate_model_{om.run_id}.xlsx"),
                    summary=self._build_summary(result, split.metadata),
                    imputation_df=step_results["04_imputation"].results_df,
                    metrics_table=selector.metrics_table,
                    coefficient_path=selector.coefficient_path,
                    selection_df=selector.selection_frame(),
                    reduced_coefficients=reduced.coefficient_frame(),
                    test_metrics=performance_df,
                    calibration_tables=calibration,
                    chart_path=selector.chart_path_,
                )
        except Exception:
            om.mark_failed()
            om.save_run_metadata()
            self.plog.exception("FAILED | Training run aborted")
            raise

        result.duration_seconds = round(time.time() - t0, 1)
        for key, value in result.test_metrics().items():
            if key == "Period":
                continue
            self.plog.metric(f"test_{key}", value)
        self.plog.clear_context()
        om.mark_complete()
        om.save_run_metadata({
            "best_penalty": selector.best_penalty,
            "artifact_version": result.artifact_version,
        })
        logger.info(
            f"COMPLETE | Best λ={selector.best_penalty:.3e}, "
            f"{len(result.selected_features)} selected, "
            f"test R2={result.test_metrics().get('R2')} "
            f"({result.duration_seconds:.1f}s)"
        )
        return result

    def _save_artifact(self, result: TrainingResult, derived_df: pd.DataFrame) -> str:
        """Persist the reduced model with what serving needs."""
        cfg = self.config
        features = list(result.reduced_model.features)
        reference = derived_df[features + [self.target_column]].reset_index(drop=True)

        artifact = {
            "schema_version": SCHEMA_VERSION,
            "reduced_model": result.reduced_model.to_artifact(),
            "imputer": result.imputer.to_dict(),
            "reference": reference,
            "scaler": result.reduced_model.scaler_,
            "derived_features": cfg.features.model_dump(),
            "similarity": cfg.similarity.model_dump(),
            "penalty_path": {
                "best_penalty": result.selector.best_penalty,
                "one_se_penalty": result.selector.one_se_penalty,
                "selection_table": result.selector.selection_table(),
            },
        }
        store = ModelArtifactStore(str(self.output_manager.models_dir))
        return store.save(
            artifact,
            cfg.output.model_name,
            metadata={
                "run_id": result.run_id,
                "features": features,
                "n_reference": len(reference),
                "test_metrics": result.test_metrics(),
            },
        )

    def _build_summary(self, result: TrainingResult, split_meta: Dict[str, Any]) -> Dict[str, Any]:
        selector = result.selector
        summary = {
            "Run ID": result.run_id,
            "Schema Version": SCHEMA_VERSION,
            "Target": self.target_column,
            "Train Rows": split_meta.get("n_train"),
            "Test Rows": split_meta.get("n_test"),
            "Rows Skipped (penalty path)": len(result.skipped_rows),
            "Candidate Features": len(result.candidate_features),
            "CV Folds": self.config.selection.n_folds,
            "Best Penalty": f"{selector.best_penalty:.4e}",
            "1-SE Penalty": f"{selector.one_se_penalty:.4e}",
            "Selected at Best": ", ".join(result.selected_features),
            "Top 5 by Survival": ", ".join(selector.top_features(5)),
            "Nesting Violations": len(selector.nesting_violations),
            "Reduced Features": ", ".join(result.reduced_model.features),
            "Artifact Version": result.artifact_version or "not saved",
        }
        for _, row in result.performance_df.iterrows():
            summary[f"R2 {row['Period']}"] = row["R2"]
            summary[f"RMSE {row['Period']}"] = row["RMSE"]
        return summary
