#!/usr/bin/env python3
"""
Interest Rate Model Training CLI

Usage:
    # Train from the warehouse table named in the config:
    python scripts/run_training.py --config config/training.yaml

    # Train from a local extract instead:
    python scripts/run_training.py \
        --config config/training.yaml \
        --input data/loans.parquet

    # Override selection settings:
    python scripts/run_training.py --config config/training.yaml \
        --n-folds 5 --n-jobs 4 --reduced-features term all_util bc_util
"""

import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = str(Path(__file__).resolve().parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pandas as pd

from lending_rate.config.loader import load_config
from lending_rate.config.schema import PipelineConfig
from lending_rate.core.exceptions import ConfigurationError, PipelineException
from lending_rate.core.logger import setup_logging
from lending_rate.data.schema_validator import SchemaValidator
from lending_rate.data.warehouse import WarehouseReader, warehouse_session
from lending_rate.io.output_manager import OutputManager
from lending_rate.model_development.pipeline import RateModelPipeline


def parse_args():
    parser = argparse.ArgumentParser(
        description='Interest Rate Model Training Pipeline',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        '--config', default=None,
        help='Path to YAML config file (e.g., config/training.yaml)',
    )

    # Data overrides
    parser.add_argument(
        '--input', default=None,
        help='Local parquet/CSV extract; reads the warehouse when omitted',
    )
    parser.add_argument(
        '--output-dir', default=None,
        help='Base directory for output files',
    )
    parser.add_argument(
        '--target-column', default=None,
        help='Name of the interest rate column',
    )
    parser.add_argument(
        '--test-size', type=float, default=None,
        help='Fraction of rows held out for testing',
    )
    parser.add_argument(
        '--sample-fraction', type=float, default=None,
        help='Fraction of warehouse rows to sample',
    )

    # Selection overrides
    parser.add_argument(
        '--n-folds', type=int, default=None,
        help='Cross-validation folds',
    )
    parser.add_argument(
        '--n-penalties', type=int, default=None,
        help='Number of penalties on the grid',
    )
    parser.add_argument(
        '--n-jobs', type=int, default=None,
        help='Parallel fold workers (-1 = all cores)',
    )
    parser.add_argument(
        '--strict-nesting', action='store_true', default=None,
        help='Fail when a feature reappears on the penalty path',
    )
    parser.add_argument(
        '--reduced-features', nargs='+', default=None,
        help='Feature subset of the reduced model',
    )

    parser.add_argument(
        '--seed', type=int, default=None,
        help='Global random seed',
    )
    parser.add_argument(
        '--log-level', default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level',
    )

    return parser.parse_args()


def _build_cli_overrides(args) -> dict:
    """Build a flat dot-notation override dict from CLI args."""
    mapping = {
        "data.input_path": args.input,
        "output.base_dir": args.output_dir,
        "data.target_column": args.target_column,
        "splitting.test_size": args.test_size,
        "data.sample_fraction": args.sample_fraction,
        "selection.n_folds": args.n_folds,
        "selection.n_penalties": args.n_penalties,
        "selection.n_jobs": args.n_jobs,
        "selection.strict_nesting": args.strict_nesting,
        "reduced_model.features": args.reduced_features,
        "reproducibility.global_seed": args.seed,
        "reproducibility.log_level": args.log_level,
    }
    return {key: value for key, value in mapping.items() if value is not None}


def load_raw_data(config: PipelineConfig) -> pd.DataFrame:
    """Read raw applicants from a local extract or the warehouse."""
    data_cfg = config.data
    if data_cfg.input_path:
        path = Path(data_cfg.input_path)
        if path.suffix == ".parquet":
            df = pd.read_parquet(path)
        elif path.suffix == ".csv":
            df = pd.read_csv(path, low_memory=False)
        else:
            raise ConfigurationError(f"Unsupported input format: {path.suffix}")
        if data_cfg.sample_fraction:
            df = df.sample(frac=data_cfg.sample_fraction, random_state=config.reproducibility.global_seed)
        return df

    with warehouse_session(config.warehouse) as spark:
        reader = WarehouseReader(config.model_dump(), spark)
        if not reader.validate():
            raise ConfigurationError("Warehouse project_id and dataset must be configured")
        SchemaValidator().validate_and_raise(reader.get_schema(reader.table))
        return reader.read_applicants(
            filter_expr=data_cfg.filter_expr,
            sample_fraction=data_cfg.sample_fraction,
        )


def main():
    args = parse_args()

    config = load_config(yaml_path=args.config, cli_overrides=_build_cli_overrides(args))
    output_manager = OutputManager(config)
    setup_logging(
        log_level=config.reproducibility.log_level,
        log_file=str(output_manager.get_log_path()),
    )

    try:
        raw_df = load_raw_data(config)
        result = RateModelPipeline(config, output_manager=output_manager).run(raw_df)
    except PipelineException as e:
        print(f"Training failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"\n{'='*60}")
    print(f"Pipeline completed: run {result.run_id}")
    print(f"Best penalty: {result.best_penalty:.4e}")
    print(f"Selected features: {', '.join(result.selected_features)}")
    print(f"Reduced model test metrics: {result.test_metrics()}")
    print(f"Artifact version: {result.artifact_version}")
    print(f"Excel report: {result.excel_path}")
    print(f"Run directory: {output_manager.run_dir}")
    print(f"{'='*60}")


if __name__ == '__main__':
    main()
