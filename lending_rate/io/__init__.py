"""
IO Module

Run output management and the model artifact store.
"""

from lending_rate.io.output_manager import OutputManager
from lending_rate.io.artifact_store import ModelArtifactStore

__all__ = [
    "OutputManager",
    "ModelArtifactStore",
]
