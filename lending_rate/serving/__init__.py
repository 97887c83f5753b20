"""
Serving Module

Point prediction and similarity comparison for a trained model.
"""

from lending_rate.serving.similarity import Histogram, SimilarityIndex
from lending_rate.serving.service import RateService, load_service

__all__ = [
    "Histogram",
    "SimilarityIndex",
    "RateService",
    "load_service",
]
