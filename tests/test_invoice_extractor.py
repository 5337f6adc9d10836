from __future__ import annotations

from gleaner.extractors import EXTRACTORS, fact_extractor, invoice_extractor
from gleaner.extractors.invoice import InvoiceLineItem, build_prompt, ground_line_item

SOURCE = """ACME Corp Invoice #1042

Web Development Services    1    $6,000.00
Hosting (12 months)         12   $25.00    $300.00

Invoice Total: $6,300.00"""


def _line_item(description_span: str, total_span: str) -> InvoiceLineItem:
    return InvoiceLineItem.model_validate(
        {
            "description": description_span,
            "total": 6000,
            "confidence": 0.9,
            "evidence": {
                "description_span": {"text": description_span},
                "total_span": {"text": total_span},
            },
        }
    )


def test_ground_line_item_resolves_both_spans():
    spans = ground_line_item(SOURCE, _line_item("Web Development Services", "$6,000.00"))

    description = spans["description"]
    total = spans["total"]
    assert description is not None and total is not None
    assert SOURCE[description.start_offset : description.end_offset] == "Web Development Services"
    assert SOURCE[total.start_offset : total.end_offset] == "$6,000.00"


def test_ground_line_item_reports_missing_span_as_none():
    spans = ground_line_item(SOURCE, _line_item("Web Development Services", "$9,999.00"))

    assert spans["description"] is not None
    assert spans["total"] is None


def test_build_prompt_embeds_source_text():
    prompt = build_prompt(SOURCE)

    assert prompt.endswith(SOURCE)
    assert "VERBATIM" in prompt


def test_bundled_extractors_are_registered():
    assert EXTRACTORS["invoice"] is invoice_extractor
    assert invoice_extractor.call_config is None
    assert fact_extractor.call_config.max_concurrent == 3
    assert fact_extractor.call_config.min_start_spacing == 2.0
