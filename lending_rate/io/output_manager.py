"""
Output Manager

Owns the directory of one training run: the config snapshot, one folder of
intermediate tables per step, the Excel report, the log file and the
provenance record written when the run ends.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional
import hashlib
import importlib.metadata
import json
import logging
import platform
import subprocess
import sys

import pandas as pd

from lending_rate.config.loader import save_config
from lending_rate.config.schema import PipelineConfig


logger = logging.getLogger(__name__)

STEP_DIRS = [
    "01_normalize",
    "02_derive",
    "03_split",
    "04_imputation",
    "05_penalty_path",
    "06_reduced_model",
    "07_evaluation",
]

TRACKED_PACKAGES = ("pandas", "numpy", "scikit-learn", "pydantic", "joblib", "pyspark")

_INPUT_READERS: Dict[str, Callable[[Path, int], pd.DataFrame]] = {
    ".csv": lambda path, n: pd.read_csv(path, nrows=n),
    ".parquet": lambda path, n: pd.read_parquet(path).head(n),
}


def _git(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(["git", *args], capture_output=True, text=True, timeout=5)


def _source_revision() -> str:
    """Short commit of the working tree, '-dirty' when it has local edits."""
    try:
        head = _git("rev-parse", "--short", "HEAD")
        if head.returncode != 0:
            return "no-git"
        dirty = _git("diff", "--quiet").returncode != 0
    except (OSError, subprocess.SubprocessError):
        return "no-git"
    return head.stdout.strip() + ("-dirty" if dirty else "")


def _compute_input_hash(input_path: Optional[str], n_rows: int = 1000) -> str:
    """Fingerprint of a local input file's leading rows.

    Warehouse runs have no file and are recorded as 'warehouse'.
    """
    if not input_path:
        return "warehouse"
    path = Path(input_path)
    reader = _INPUT_READERS.get(path.suffix)
    if reader is None:
        return "unknown-format"
    try:
        head = reader(path, n_rows)
    except (OSError, ValueError) as e:
        logger.warning(f"OUTPUT | Input {path} not hashed: {e}")
        return "unknown"
    return hashlib.md5(head.to_csv(index=False).encode("utf-8")).hexdigest()


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, indent=2, default=str))


class OutputManager:
    """Run directory of one training run.

    Layout:
        {base_dir}/runs/{run_id}/
            config/pipeline_config.yaml
            steps/<step>/
            reports/
            logs/pipeline.log
            run_metadata.json
        {base_dir}/models/          artifact store shared across runs

    The run id is the start time plus six hex digits of the config hash,
    so two configs started in the same second get separate directories.
    """

    def __init__(self, config: PipelineConfig, run_start: Optional[datetime] = None):
        self._config = config
        self.started_at = run_start or datetime.now()
        self.finished_at: Optional[datetime] = None
        self.status = "running"

        fingerprint = hashlib.md5(config.model_dump_json().encode()).hexdigest()
        self._run_id = f"{self.started_at:%Y%m%d_%H%M%S}_{fingerprint[:6]}"
        self._base_dir = Path(config.output.base_dir)
        self._run_dir = self._base_dir / "runs" / self._run_id

        for sub in ["config", "reports", "logs"] + [f"steps/{s}" for s in STEP_DIRS]:
            (self._run_dir / sub).mkdir(parents=True, exist_ok=True)
        logger.info(f"OUTPUT | Run {self._run_id} writing to {self._run_dir}")

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def run_dir(self) -> Path:
        return self._run_dir

    @property
    def reports_dir(self) -> Path:
        return self._run_dir / "reports"

    @property
    def models_dir(self) -> Path:
        return self._base_dir / "models"

    def get_step_dir(self, step_name: str) -> Path:
        step_dir = self._run_dir / "steps" / step_name
        step_dir.mkdir(parents=True, exist_ok=True)
        return step_dir

    def get_log_path(self) -> Path:
        return self._run_dir / "logs" / "pipeline.log"

    # ------------------------------------------------------------------

    def save_config_snapshot(self, config: PipelineConfig) -> Path:
        path = self._run_dir / "config" / "pipeline_config.yaml"
        save_config(config, str(path))
        return path

    def save_step_results(self, step_name: str, results_dict: Dict[str, Any]) -> None:
        """Write a step's named outputs into its folder.

        Tables become CSV, dicts and lists JSON, scalars plain text.
        """
        step_dir = self.get_step_dir(step_name)
        for name, obj in results_dict.items():
            if isinstance(obj, pd.DataFrame):
                obj.to_csv(step_dir / f"{name}.csv", index=False)
            elif isinstance(obj, (dict, list)):
                _write_json(step_dir / f"{name}.json", obj)
            else:
                (step_dir / f"{name}.txt").write_text(str(obj))
        logger.debug(f"OUTPUT | {step_name}: saved {sorted(results_dict)}")

    def mark_complete(self, status: str = "success") -> None:
        self.status = status
        self.finished_at = datetime.now()

    def mark_failed(self) -> None:
        self.mark_complete(status="failed")

    def save_run_metadata(self, extra: Optional[Dict[str, Any]] = None) -> Path:
        """Write run_metadata.json: status, timing, environment and input fingerprint.

        Args:
            extra: Run results merged on top (best penalty, artifact version).
        """
        finished = self.finished_at or datetime.now()
        metadata = {
            "run_id": self._run_id,
            "status": self.status,
            "run_start": self.started_at.isoformat(),
            "run_end": finished.isoformat(),
            "duration_seconds": round((finished - self.started_at).total_seconds(), 2),
            "input_file_hash": _compute_input_hash(self._config.data.input_path),
            "git_commit": _source_revision(),
            "python_version": sys.version,
            "platform": platform.platform(),
            "package_versions": {pkg: _installed_version(pkg) for pkg in TRACKED_PACKAGES},
            **(extra or {}),
        }
        path = self._run_dir / "run_metadata.json"
        _write_json(path, metadata)
        logger.info(f"OUTPUT | Run metadata ({self.status}) saved to {path}")
        return path


def _installed_version(package: str) -> str:
    try:
        return importlib.metadata.version(package)
    except importlib.metadata.PackageNotFoundError:
        return "not installed"
