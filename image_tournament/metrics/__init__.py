"""
Vote-quality metrics.

Available implementations:
- QualityMetricsCalculator: transitivity violations, consistency, vote
  certainty, pacing and quality flags from a session's vote log
"""

from .quality import QualityMetricsCalculator

__all__ = ["QualityMetricsCalculator"]
