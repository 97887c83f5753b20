"""
Lending Rate Model

Interest-rate modeling pipeline for loan applications: warehouse ingestion,
feature derivation, leak-free imputation, LASSO-path variable reduction and a
similarity-based comparison query for serving.
"""

__version__ = "1.0.0"
__author__ = "Credit Scoring Team"
