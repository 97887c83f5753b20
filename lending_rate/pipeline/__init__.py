"""
Pipeline Module

Step contract shared by fitted pipeline components.
"""

from lending_rate.pipeline.base import BaseComponent, StepResult

__all__ = ["BaseComponent", "StepResult"]
