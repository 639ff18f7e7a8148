"""Worker functions for PDF generation (suitable for ProcessPool)."""

from __future__ import annotations

from typing import Any
import logging
from ..config.model import Config
from ..domain.receipts import Receipt, build_receipt_document
from ..pdf.renderer import PDF

logger = logging.getLogger(__name__)


def generate_income_report_pdf(
    config: Config, report: dict[str, Any]
) -> tuple[str, bytearray]:
    """Generate the income report PDF."""
    logger.info(f"Generating {report['title']} PDF")

    pdf = PDF(config=config)
    pdf.set_title(report["title"])
    pdf.add_income_report(report, toc_level=0)

    return "income", pdf.output()


def generate_receipt_pdf(
    config: Config, document: dict[str, Any]
) -> tuple[str, bytearray]:
    """Generate a single receipt PDF."""
    pdf = PDF(config=config)
    pdf.set_title(f"Receipt {document['number']}")
    pdf.generate_receipt(
        document,
        start_section=False,
        create_toc_entry=False,
    )
    return document["number"], pdf.output()


def render_receipt(config: Config, receipt: Receipt) -> bytearray:
    """Render a receipt to PDF bytes, reusing its receipt number."""
    _, pdfbytes = generate_receipt_pdf(config, build_receipt_document(receipt, config))
    return pdfbytes
