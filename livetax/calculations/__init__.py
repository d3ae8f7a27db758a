"""
Tax calculation package.

Deterministic computations over the transaction list.
"""

from livetax.calculations.tax_engine import (
    compute_liability,
    compute_regime_comparison,
    pre_cess_bracket_tax,
)
from livetax.calculations.utilization import compute_utilization

__all__ = [
    "compute_liability",
    "compute_regime_comparison",
    "compute_utilization",
    "pre_cess_bracket_tax",
]
