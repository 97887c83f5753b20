"""
Pydantic Configuration Schema

Defines all configuration models for the interest-rate modeling pipeline.
All fields have defaults matching the production training run.
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


FillStrategy = Literal["zero", "max", "mean"]

DEFAULT_REDUCED_FEATURES = ["term", "all_util", "bc_util", "bc_open_to_buy"]


def _default_imputation_policy() -> Dict[str, str]:
    policy: Dict[str, str] = {}
    # Counts and balances: missing means none on file
    for col in [
        "delinq_2yrs", "pub_rec", "inq_last_6mths", "num_actv_bc_tl",
        "open_acc", "total_acc", "tot_cur_bal", "total_bal_ex_mort",
        "total_il_high_credit_limit", "il_util_ex_mortgage",
    ]:
        policy[col] = "zero"
    # "Months since" fields: missing means the event never happened
    for col in ["mths_since_last_delinq", "mths_since_recent_inq"]:
        policy[col] = "max"
    for col in [
        "loan_amnt", "term", "installment", "emp_length", "annual_inc",
        "annual_inc_joint", "dti", "dti_joint", "revol_util", "all_util",
        "bc_util", "bc_open_to_buy", "percent_bc_gt_75", "loan_to_income",
        "installment_pct_income", "adjusted_dti",
    ]:
        policy[col] = "mean"
    return policy


class WarehouseConfig(BaseModel):
    """Warehouse (BigQuery through Spark) connection configuration."""

    model_config = {"frozen": True}

    project_id: Optional[str] = None
    dataset: Optional[str] = None
    table: str = "loans"
    materialization_dataset: str = "temp_spark_bq"
    app_name: str = "LendingRateModel"
    master: Optional[str] = None
    spark_config: Dict[str, Any] = Field(
        default_factory=lambda: {
            "spark.sql.execution.arrow.pyspark.enabled": "true",
        }
    )


class DataConfig(BaseModel):
    """Data source and column-role configuration."""

    model_config = {"frozen": True}

    input_path: Optional[str] = None
    target_column: str = "int_rate"
    id_columns: List[str] = Field(default_factory=lambda: ["id"])
    exclude_columns: List[str] = Field(default_factory=list)
    filter_expr: Optional[str] = None
    sample_fraction: Optional[float] = Field(default=None, gt=0.0, le=1.0)


class SplittingConfig(BaseModel):
    """Train/test splitting configuration."""

    model_config = {"frozen": True}

    test_size: float = Field(default=0.20, gt=0.0, lt=1.0)


class DerivedFeatureConfig(BaseModel):
    """Column names used by the derived feature calculator."""

    model_config = {"frozen": True}

    application_type_column: str = "application_type"
    individual_label: str = "Individual"
    loan_amount_column: str = "loan_amnt"
    installment_column: str = "installment"
    income_column: str = "annual_inc"
    joint_income_column: str = "annual_inc_joint"
    dti_column: str = "dti"
    joint_dti_column: str = "dti_joint"
    current_balance_column: str = "tot_cur_bal"
    balance_ex_mortgage_column: str = "total_bal_ex_mort"
    installment_limit_column: str = "total_il_high_credit_limit"


class ImputationConfig(BaseModel):
    """Per-column fill policy."""

    model_config = {"frozen": True}

    policy: Dict[str, FillStrategy] = Field(default_factory=_default_imputation_policy)


class SelectionConfig(BaseModel):
    """LASSO penalty path and cross-validation configuration."""

    model_config = {"frozen": True}

    min_penalty: float = Field(default=1e-4, gt=0.0)
    max_penalty: float = Field(default=1.0, gt=0.0)
    n_penalties: int = Field(default=20, ge=1)
    n_folds: int = Field(default=10, ge=2)
    n_jobs: int = 1
    max_iter: int = Field(default=10000, ge=1)
    coef_tolerance: float = Field(default=1e-10, ge=0.0)
    strict_nesting: bool = False
    save_chart: bool = True

    @model_validator(mode="after")
    def penalty_range_valid(self) -> "SelectionConfig":
        if self.n_penalties > 1 and self.min_penalty >= self.max_penalty:
            raise ValueError(
                f"min_penalty ({self.min_penalty}) must be less than "
                f"max_penalty ({self.max_penalty})"
            )
        return self


class ReducedModelConfig(BaseModel):
    """The small user-facing model."""

    model_config = {"frozen": True}

    features: List[str] = Field(default_factory=lambda: list(DEFAULT_REDUCED_FEATURES))
    penalty: float = Field(default=0.0, ge=0.0)

    @field_validator("features")
    @classmethod
    def features_valid(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("Reduced model needs at least one feature")
        if len(set(value)) != len(value):
            raise ValueError(f"Duplicate reduced features: {value}")
        return value


class SimilarityConfig(BaseModel):
    """Comparison query configuration."""

    model_config = {"frozen": True}

    k: int = Field(default=50, ge=1)
    bin_width: float = Field(default=0.5, gt=0.0)
    include_ties: bool = False
    cache_size: int = Field(default=1024, ge=0)
    round_decimals: int = Field(default=4, ge=0)


class OutputConfig(BaseModel):
    """Output configuration."""

    model_config = {"frozen": True}

    base_dir: str = "outputs/lending_rate"
    model_name: str = "interest_rate_model"
    save_model: bool = True
    generate_excel: bool = True


class ReproducibilityConfig(BaseModel):
    """Reproducibility and logging configuration."""

    model_config = {"frozen": True}

    global_seed: int = 42
    save_config: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class PipelineConfig(BaseModel):
    """Top-level pipeline configuration combining all sections."""

    model_config = {"frozen": True}

    warehouse: WarehouseConfig = Field(default_factory=WarehouseConfig)
    data: DataConfig = Field(default_factory=DataConfig)
    splitting: SplittingConfig = Field(default_factory=SplittingConfig)
    features: DerivedFeatureConfig = Field(default_factory=DerivedFeatureConfig)
    imputation: ImputationConfig = Field(default_factory=ImputationConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    reduced_model: ReducedModelConfig = Field(default_factory=ReducedModelConfig)
    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    reproducibility: ReproducibilityConfig = Field(default_factory=ReproducibilityConfig)
