# src/gleaner/extractors/invoice.py
"""Invoice line-item extractor with source grounding.

The model is only asked for verbatim evidence text; offsets are computed
afterwards with :func:`gleaner.core.grounding.resolve_keyed`.
"""

from __future__ import annotations

from pydantic import Field

from gleaner.core.grounding import resolve_keyed
from gleaner.models.base_model import GleanerBaseModel as BaseModel
from gleaner.models.evidence import EvidenceSpan, RawEvidenceSpan
from gleaner.models.extractor import ExtractorConfig


class LineItemEvidence(BaseModel):
    """Verbatim source text backing a line item."""

    description_span: RawEvidenceSpan = Field(
        ..., description="Exact text of the description from the source"
    )
    total_span: RawEvidenceSpan = Field(
        ..., description="Exact text of the total value from the source"
    )


class InvoiceLineItem(BaseModel):
    """A single invoice line item."""

    description: str = Field(..., description="Description of the item or service")
    quantity: float | None = Field(None, description="Quantity (null if not specified)")
    unit: str | None = Field(None, description="Unit of measure (EA, HR, etc.)")
    unit_price: float | None = Field(None, description="Price per unit")
    total: float = Field(..., description="Total price for this line item")
    confidence: float = Field(
        ..., ge=0.0, le=1.0, description="Extraction confidence (0-1)"
    )
    evidence: LineItemEvidence = Field(
        ..., description="Source text evidence for grounding"
    )


def build_prompt(text: str) -> str:
    return f"""You are an expert at extracting structured data from invoices.

Extract ALL line items from this invoice. For each line item, extract:
- description: What was purchased or what service was provided
- quantity: The quantity (null if lump sum or not specified)
- unit: Unit of measure like EA, HR, BOX, etc. (null if not specified)
- unit_price: Price per unit (null if not specified)
- total: The total price for this line item (REQUIRED)
- confidence: Your confidence in this extraction (0.0 to 1.0)
- evidence: Source text for grounding

For the "evidence" field, provide:
- description_span: {{ text }} - The EXACT text of the description as it appears in the source
- total_span: {{ text }} - The EXACT text of the total value as it appears in the source

IMPORTANT:
- Extract every line item you can find
- If quantity or unit_price is not specified, set them to null
- Total should always be extracted - this is the most important field
- Be careful with number parsing: $1,234.56 = 1234.56
- Evidence text MUST be copied VERBATIM from the source (it is used to locate the value)

INVOICE TEXT:
{text}"""


def ground_line_item(source: str, item: InvoiceLineItem) -> dict[str, EvidenceSpan | None]:
    """Locate a line item's description and total evidence in ``source``.

    Keys that cannot be found map to ``None``.
    """
    return resolve_keyed(
        source,
        {
            "description": item.evidence.description_span,
            "total": item.evidence.total_span,
        },
    )


invoice_extractor = ExtractorConfig(
    name="invoice",
    item_schema=InvoiceLineItem,
    build_prompt=build_prompt,
    description="Extract line items from invoices with source grounding",
)


__all__ = [
    "InvoiceLineItem",
    "LineItemEvidence",
    "build_prompt",
    "ground_line_item",
    "invoice_extractor",
]
