"""Cellar Valuation - external valuation and critic-score reconciliation for a wine cellar."""

__version__ = "0.1.0"
