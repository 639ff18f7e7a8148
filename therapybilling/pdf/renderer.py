"""PDF rendering of receipts and income reports."""

from decimal import Decimal
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from fpdf import FPDF, FontFace

from ..config.model import Config
from ..domain.scale import bar_height_ratio, format_axis_label
from ..utils import format_currency, get_qrcode_image

logger = logging.getLogger(__name__)


def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    """Convert #RGB or #RRGGBB (alpha ignored) to an RGB tuple."""
    digits = color.lstrip("#")
    if len(digits) in (3, 4):
        digits = "".join(c * 2 for c in digits[:3])
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def _latin1(text: str) -> str:
    """Replace characters the core PDF fonts cannot encode."""
    return text.encode("latin-1", errors="replace").decode("latin-1")


class PDF(FPDF):
    """Custom PDF class to handle specific PDF generation tasks."""

    def __init__(
        self,
        config: Config,
        orientation="portrait",
        unit="mm",
        format="A4",
    ):
        """Initialize the PDF with the clinic configuration."""
        super().__init__(orientation, unit, format)

        self.header_font = FontFace(family="helvetica")
        self.regular_font = FontFace(family="times")
        self.numbers_font = FontFace(family="courier")

        self.config = config
        self.currency = config.payment.currency
        self.decimals = config.receipt.decimals
        self.set_author(_latin1(config.clinic.name))
        self.set_creator("therapybilling")
        self.set_lang("id-ID")

    def money(self, value: Decimal | None) -> str:
        return format_currency(value, self.currency, self.decimals)

    def header(self) -> None:
        """Define the header for the PDF."""
        clinic = self.config.clinic
        self.set_font(self.header_font.family, size=16, style="B")
        self.cell(
            0,
            None,
            text=_latin1(clinic.name.upper()),
            new_x="LMARGIN",
            new_y="NEXT",
            align="C",
        )
        if clinic.tagline:
            self.set_font(self.header_font.family, size=8, style="I")
            self.cell(
                0,
                None,
                text=_latin1(clinic.tagline),
                new_x="LMARGIN",
                new_y="NEXT",
                align="C",
            )

        contact = " | ".join(
            part
            for part in (
                f"Phone: {clinic.phone}" if clinic.phone else None,
                f"Email: {clinic.email}" if clinic.email else None,
                clinic.website,
            )
            if part
        )
        if contact:
            self.set_font(self.header_font.family, size=8)
            self.cell(
                0,
                None,
                text=_latin1(contact),
                new_x="LMARGIN",
                new_y="NEXT",
                align="C",
            )

        self.set_draw_color(*_hex_to_rgb(self.config.receipt.style_color))
        self.line(self.l_margin, self.get_y() + 2, self.w - self.r_margin, self.get_y() + 2)
        self.ln(12)

    def footer(self) -> None:
        """Define the footer for the PDF."""
        if self.config.receipt.footer_text:
            self.set_y(-20)
            self.set_font(self.regular_font.family, size=8)
            self.multi_cell(
                0,
                None,
                _latin1(self.config.receipt.footer_text),
                new_x="LMARGIN",
                new_y="NEXT",
                align="C",
            )

    def print_client_details(
        self,
        client: Mapping[str, Any],
        font_size: int = 10,
        width: float = 0,
    ):
        """Print the client's details in the PDF."""
        new_line = "\n"
        self.set_font(self.regular_font.family, size=font_size)
        self.multi_cell(
            width,
            None,
            _latin1(
                "**CLIENT:**"
                f"{new_line}{client['name']}"
                f"{new_line + 'Phone: ' + client['phone'] if client.get('phone') else ''}"
                f"{new_line + client['address'] if client.get('address') else ''}"
                f"{new_line + 'Complaint: ' + client['complaint'] if client.get('complaint') else ''}"
            ),
            align="L",
            markdown=True,
            new_x="LMARGIN",
            new_y="NEXT",
        )

    def print_metadata(
        self,
        metadata: Sequence[tuple[str, str]],
    ):
        """Print the metadata in the PDF."""
        needed_gap = 0.0

        self.set_font(self.numbers_font.family, size=10)
        for _, value in metadata:
            needed_gap = max(needed_gap, self.get_string_width(_latin1(value)))

        for label, value in metadata:
            self.set_font(self.regular_font.family, size=10)
            self.cell(
                self.epw - needed_gap - 2,
                None,
                label.upper() + ": ",
                new_x="END",
                new_y="LAST",
                align="R",
                markdown=True,
            )
            self.set_font(self.numbers_font.family, size=10)
            self.cell(
                0,
                None,
                _latin1(value),
                new_x="LMARGIN",
                new_y="NEXT",
                align="R",
            )

    def print_receipt_header(self, document: Mapping[str, Any]):
        """Print the client details and receipt metadata side by side."""
        section_start = self.get_y()

        self.print_client_details(document["client"], width=self.epw / 2)

        section_end = self.get_y()

        self.set_y(section_start)

        self.print_metadata(
            metadata=[
                ("**Receipt No**", document["number"]),
                ("Date", document["date"]),
                ("Therapist", document["therapist"]),
            ]
        )

        self.set_y(max(self.get_y(), section_end))
        self.ln(10)

    def print_notes(self, notes: str) -> None:
        """Print the notes block."""
        self.set_font(self.regular_font.family, size=10, style="B")
        self.cell(0, None, "NOTES", new_x="LMARGIN", new_y="NEXT")
        self.set_font(self.regular_font.family, size=10, style="I")
        self.multi_cell(0, None, _latin1(notes), new_x="LMARGIN", new_y="NEXT")
        self.ln(5)

    def print_signatures(self, signatures: Sequence[str]) -> None:
        """Print one signature box per name, side by side."""
        if self.will_page_break(30):
            self.add_page(same=True)

        box_width = self.epw / len(signatures)
        titles = ("Client", "Therapist")

        self.set_font(self.regular_font.family, size=10, style="B")
        for title in titles[: len(signatures)]:
            self.cell(box_width, None, title, align="C")
        self.ln(20)

        self.set_font(self.header_font.family, size=10, style="BU")
        for name in signatures:
            self.cell(box_width, None, _latin1(name), align="C")
        self.ln(10)

    def print_verification_code(self, receipt_number: str) -> None:
        """Print a QR code carrying the receipt number."""
        img = get_qrcode_image(receipt_number)
        self.image(img.get_image(), w=25, h=25)
        self.set_font(self.regular_font.family, size=8)
        self.cell(
            0,
            text="Scan to verify the receipt number",
            new_x="LMARGIN",
            new_y="NEXT",
        )

    def generate_receipt(
        self,
        document: Mapping[str, Any],
        start_section: bool = False,
        create_toc_entry: bool = False,
    ) -> None:
        """Generate a receipt page from a receipt document."""
        logger.info(f"Generating receipt {document['number']}.")

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Receipt document: {document}")

        self.add_page(format="A4")

        y = self.get_y()
        if start_section:
            self.set_y(0)
            self.start_section("Receipts", level=0)

        if create_toc_entry:
            self.set_y(0)
            self.start_section(f"Receipt {document['number']}", level=1)

        self.set_y(y)

        self.print_receipt_header(document)

        headings_style = FontFace.combine(
            self.header_font,
            FontFace(
                emphasis="BOLD",
                color=(255, 255, 255),
                fill_color=self.config.receipt.style_color,  # type: ignore[arg-type]
            ),
        )

        self.set_font(self.regular_font.family, size=10)
        with self.table(
            text_align=("LEFT", "CENTER", "RIGHT", "RIGHT"),
            borders_layout="MINIMAL",
            padding=2,
            headings_style=headings_style,
            col_widths=(7, 2, 4, 4),
        ) as table:
            table.row(("THERAPY", "SESSIONS", "UNIT PRICE", "TOTAL"))
            for item in document["items"]:
                row = table.row()
                row.cell(_latin1(item["type"]))
                row.cell(str(item["quantity"]), style=self.numbers_font)
                row.cell(self.money(item["unit_price"]), style=self.numbers_font)
                row.cell(self.money(item["total"]), style=self.numbers_font)

            table.row()

            subtotal_row = table.row(style=FontFace(emphasis="BOLD"))
            subtotal_row.cell("Subtotal", colspan=3, align="LEFT")
            subtotal_row.cell(self.money(document["subtotal"]), style=self.numbers_font)

            tax_row = table.row()
            tax_row.cell(
                f"Tax ({document['tax_rate'] * 100:.0f}%)", colspan=3, align="RIGHT"
            )
            tax_row.cell(self.money(document["tax"]), style=self.numbers_font)

            total_row = table.row(style=headings_style)
            total_row.cell("TOTAL PAYMENT", colspan=3, align="RIGHT")
            total_row.cell(self.money(document["total"]), style=self.numbers_font)

        self.ln(10)

        if document.get("notes"):
            self.print_notes(document["notes"])

        self.set_font(self.regular_font.family, size=9, style="I")
        self.cell(
            0,
            None,
            "Payment has been received in full.",
            new_x="LMARGIN",
            new_y="NEXT",
        )
        self.ln(10)

        self.print_signatures(document["signatures"])

        if self.config.receipt.qr_code:
            self.print_verification_code(document["number"])

        self.set_font(self.regular_font.family, size=8)
        self.cell(
            0,
            None,
            "This receipt is valid proof of payment. " + document["generated"],
            new_x="LMARGIN",
            new_y="NEXT",
            align="C",
        )

    def print_key_figures(
        self,
        key_figures: Iterable[tuple[str, Decimal, str]],
    ) -> None:
        """Print key figures in the PDF."""
        self.set_font(self.regular_font.family, size=12, style="B")

        with self.table(
            text_align="CENTER",
            align="C",
            padding=2,
            borders_layout="ALL",
            gutter_width=5,
            headings_style=FontFace(
                family=self.header_font.family,
                emphasis="BOLD",
                fill_color=self.config.chart.style_color,  # type: ignore[arg-type]
                color=(255, 255, 255),
            ),
        ) as key_figures_table:
            header_row = key_figures_table.row()
            values_row = key_figures_table.row(style=self.numbers_font)
            others_row = key_figures_table.row(style=FontFace(size_pt=10, emphasis=""))

            for label, value, *extra in key_figures:
                header_row.cell(label)
                values_row.cell(
                    text=self.money(value) if isinstance(value, Decimal) else f"{value:,}"
                )
                others_row.cell(extra[0] if extra else "", border=0)

    def print_income_chart(
        self,
        monthly: Sequence[Mapping[str, Any]],
        ticks: Sequence[Decimal],
        height: float = 60,
    ) -> None:
        """Draw the monthly income bars against the axis ticks."""
        if self.will_page_break(height + 25):
            self.add_page(same=True)

        label_width = 16
        left = self.l_margin + label_width + 2
        width = self.epw - label_width - 2
        top = self.get_y() + 5
        bottom = top + height
        chart_max = ticks[-1]

        self.set_font(self.numbers_font.family, size=7)
        self.set_draw_color(210, 210, 210)
        for tick in ticks:
            y = bottom - float(bar_height_ratio(tick, chart_max)) * height
            self.line(left, y, left + width, y)
            self.set_xy(self.l_margin, y - 2)
            self.cell(label_width, 4, format_axis_label(tick), align="R")

        slot = width / len(monthly)
        bar_width = slot * 0.6
        self.set_fill_color(*_hex_to_rgb(self.config.chart.style_color))
        for i, month in enumerate(monthly):
            bar_height = float(bar_height_ratio(month["income"], chart_max)) * height
            if month["income"] > 0:
                # keep small months visible
                bar_height = max(bar_height, 1.5)
                self.rect(
                    left + i * slot + (slot - bar_width) / 2,
                    bottom - bar_height,
                    bar_width,
                    bar_height,
                    style="F",
                )
            self.set_xy(left + i * slot, bottom + 1)
            self.cell(slot, 4, month["month"], align="C")

        self.set_y(bottom + 8)
        self.set_font(self.regular_font.family, size=8, style="I")
        self.cell(
            0,
            None,
            f"Axis maximum: {self.money(chart_max)}",
            new_x="LMARGIN",
            new_y="NEXT",
            align="C",
        )

    def print_monthly_summary(
        self,
        monthly: Iterable[Mapping[str, Any]],
        total_income: Decimal,
        total_clients: int,
        average_per_client: Decimal,
        toc_level: int = 0,
    ) -> None:
        """Print the monthly summary in the PDF."""
        logger.info("Printing monthly summary.")
        self.set_font(self.header_font.family, size=14, style="B")

        if self.will_page_break(50):
            self.add_page(same=True)

        self.start_section("Monthly Summary", level=toc_level)
        self.cell(
            0,
            10,
            text="Monthly Summary",
            new_x="LMARGIN",
            new_y="NEXT",
            align="C",
        )

        table_header_style = FontFace.combine(
            self.header_font,
            FontFace(
                size_pt=12,
                emphasis="B",
                color=(255, 255, 255),
                fill_color=self.config.chart.style_color,  # type: ignore[arg-type]
            ),
        )
        self.set_font(self.regular_font.family, size=11)

        with self.table(
            text_align=("LEFT", "RIGHT", "RIGHT", "RIGHT"),
            headings_style=table_header_style,
            borders_layout="MINIMAL",
            align="C",
            padding=2,
        ) as monthly_table:
            monthly_table.row(("Month", "Clients", "Income", "Average"))
            for month in monthly:
                row = monthly_table.row()
                row.cell(month["month"])
                row.cell(str(month["clients"]), style=self.numbers_font)
                row.cell(self.money(month["income"]), style=self.numbers_font)
                row.cell(
                    self.money(month["average"]) if month["average"] is not None else "-",
                    style=self.numbers_font,
                )

            total_row = monthly_table.row(style=FontFace(emphasis="BOLD"))
            total_row.cell("Total")
            total_row.cell(str(total_clients), style=self.numbers_font)
            total_row.cell(self.money(total_income), style=self.numbers_font)
            total_row.cell(self.money(average_per_client), style=self.numbers_font)

    def add_income_report(self, report: Mapping[str, Any], toc_level: int = 0) -> None:
        """Print the income report: key figures, chart and monthly table."""
        self.add_page(format="A4")

        if toc_level > 0:
            self.start_section("Income", level=toc_level - 1)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Income report: {report}")

        self.set_font(self.header_font.family, size=18, style="B")
        self.cell(
            0,
            12,
            text=report["title"],
            new_x="LMARGIN",
            new_y="NEXT",
            align="C",
        )
        self.set_font(self.regular_font.family, size=10)
        self.cell(0, text=report["generated"], new_x="LMARGIN", new_y="NEXT", align="C")
        self.ln(10)

        logger.info("Printing key figures section.")
        self.start_section("Key Figures", level=toc_level)
        self.print_key_figures(report["key_figures"])
        self.ln(5)

        self.start_section("Income Chart", level=toc_level)
        self.print_income_chart(report["monthly"], report["ticks"])
        self.ln(5)

        self.print_monthly_summary(
            report["monthly"],
            report["total_income"],
            report["total_clients"],
            report["average_per_client"],
            toc_level=toc_level,
        )
