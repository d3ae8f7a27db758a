"""
LiveTax - Personal Income Tax Tracker

Core engine for a personal income-tax tracking assistant for Indian
salaried and business taxpayers.

DESIGN PRINCIPLES:
1. AI suggests → Human confirms → System records
2. Derived numbers are always recomputed, never trusted from storage
3. Untrusted extractor output is repaired, never blindly accepted
4. Every user action is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "LiveTax Team"
