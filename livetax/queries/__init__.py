"""Query execution package."""

from livetax.queries.ledger import estimate_tax_impact, filter_transactions, summarize

__all__ = ["estimate_tax_impact", "filter_transactions", "summarize"]
