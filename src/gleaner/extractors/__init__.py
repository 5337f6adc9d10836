# src/gleaner/extractors/__init__.py
"""Ready-made extractor contracts."""

from .facts import Fact, fact_extractor
from .invoice import InvoiceLineItem, ground_line_item, invoice_extractor

EXTRACTORS = {
    invoice_extractor.name: invoice_extractor,
    fact_extractor.name: fact_extractor,
}

__all__ = [
    "EXTRACTORS",
    "Fact",
    "InvoiceLineItem",
    "fact_extractor",
    "ground_line_item",
    "invoice_extractor",
]
