"""
Model Artifact Store

Persists fitted model artifacts by name and version on the local
filesystem:

    {base_dir}/{name}/{version}/model.joblib
    {base_dir}/{name}/{version}/metadata.json
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import re

import joblib

from lending_rate.core.exceptions import ArtifactError


logger = logging.getLogger(__name__)

MODEL_FILE = "model.joblib"
METADATA_FILE = "metadata.json"

_SAFE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class ModelArtifactStore:
    """Name/version registry of joblib model artifacts.

    Args:
        base_dir: Root directory of the store.
    """

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)

    def _check_name(self, value: str, kind: str) -> None:
        if not value or not _SAFE_NAME.match(value):
            raise ArtifactError(f"Invalid artifact {kind}: {value!r}")

    def _version_dir(self, name: str, version: str) -> Path:
        self._check_name(name, "name")
        self._check_name(version, "version")
        return self.base_dir / name / version

    def save(
        self,
        artifact: Dict[str, Any],
        name: str,
        version: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Persist an artifact.

        Args:
            artifact: Picklable artifact (dict of model state).
            name: Model name.
            version: Version label; a timestamp when omitted.
            metadata: Extra JSON-serializable metadata.

        Returns:
            The version the artifact was saved under.

        Raises:
            ArtifactError: If the version exists or writing fails.
        """
        version = version or datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        target = self._version_dir(name, version)
        if target.exists():
            raise ArtifactError(
                f"Artifact {name}/{version} already exists", artifact_path=str(target)
            )

        meta = {
            "name": name,
            "version": version,
            "saved_at": datetime.now().isoformat(),
        }
        meta.update(metadata or {})

        try:
            target.mkdir(parents=True)
            joblib.dump(artifact, target / MODEL_FILE)
            with open(target / METADATA_FILE, "w") as f:
                json.dump(meta, f, indent=2, default=str)
        except (OSError, TypeError) as e:
            raise ArtifactError(
                f"Failed to save artifact {name}/{version}",
                artifact_path=str(target),
                cause=e,
            )

        logger.info(f"ARTIFACT | Saved {name}/{version} to {target}")
        return version

    def list_versions(self, name: str) -> List[str]:
        """Versions of a model, oldest first."""
        self._check_name(name, "name")
        model_dir = self.base_dir / name
        if not model_dir.is_dir():
            return []

        entries = []
        for version_dir in model_dir.iterdir():
            if not (version_dir / MODEL_FILE).is_file():
                continue
            saved_at = ""
            meta_path = version_dir / METADATA_FILE
            if meta_path.is_file():
                with open(meta_path) as f:
                    saved_at = json.load(f).get("saved_at", "")
            entries.append((saved_at, version_dir.name))
        return [version for _, version in sorted(entries)]

    def latest_version(self, name: str) -> str:
        versions = self.list_versions(name)
        if not versions:
            raise ArtifactError(
                f"No saved versions of '{name}'", artifact_path=str(self.base_dir / name)
            )
        return versions[-1]

    def load(self, name: str, version: Optional[str] = None) -> Dict[str, Any]:
        """Load an artifact; the latest version when none is given.

        Raises:
            ArtifactError: If the artifact does not exist or cannot be read.
        """
        version = version or self.latest_version(name)
        path = self._version_dir(name, version) / MODEL_FILE
        if not path.is_file():
            raise ArtifactError(f"Artifact {name}/{version} not found", artifact_path=str(path))

        try:
            artifact = joblib.load(path)
        except (OSError, EOFError, ValueError) as e:
            raise ArtifactError(
                f"Failed to load artifact {name}/{version}", artifact_path=str(path), cause=e
            )

        logger.info(f"ARTIFACT | Loaded {name}/{version}")
        return artifact

    def load_metadata(self, name: str, version: Optional[str] = None) -> Dict[str, Any]:
        version = version or self.latest_version(name)
        path = self._version_dir(name, version) / METADATA_FILE
        if not path.is_file():
            raise ArtifactError(f"Metadata for {name}/{version} not found", artifact_path=str(path))
        with open(path) as f:
            return json.load(f)
