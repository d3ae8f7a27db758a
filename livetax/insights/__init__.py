"""Insights package."""

from livetax.insights.generator import generate_insights

__all__ = ["generate_insights"]
