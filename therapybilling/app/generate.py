"""Driver module for therapybilling."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
import logging
from typing import Any

from pydantic import ValidationError
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm
from concurrent.futures import (
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    as_completed,
)

from ..config.loader import load_config
from ..config.model import Config
from ..domain.receipts import ReceiptIssuer, build_receipt_document
from ..domain.records import ClientRecord
from ..domain.report import build_income_report
from ..errors import ReceiptError
from ..io.cache import AggregateCache, JsonFileStore
from ..io.files import write_pdf
from ..io.source import ClientRecordSource, source_from_config
from ..pdf.renderer import PDF
from ..services.income import IncomeTracker
from ..services.workers import generate_income_report_pdf, generate_receipt_pdf

logger = logging.getLogger(__name__)


def completed_records(raw_records: Iterable[Mapping[str, Any]]) -> list[ClientRecord]:
    """Parse the completed client records, skipping unreadable ones."""
    records = []
    for raw in raw_records:
        try:
            record = ClientRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Skipping unreadable client record {raw.get('id')}: {e}")
            continue
        if record.is_completed:
            records.append(record)
    return records


def issue_receipt_documents(
    config: Config,
    source: ClientRecordSource,
    issuer: ReceiptIssuer,
    records: Iterable[ClientRecord],
    year: int | None = None,
) -> tuple[list[ClientRecord], list[dict[str, Any]]]:
    """Issue receipts for completed records and build their documents.

    Records without a receipt number get one, which is written back to the
    source when configured, so later runs print the same number. Returns
    the records carrying their numbers and the receipt documents.
    """
    numbered = []
    documents = []
    for record in records:
        if year is not None and (
            record.completed_date is None or record.completed_date.year != year
        ):
            numbered.append(record)
            continue

        try:
            receipt = issuer.issue(record)
        except ReceiptError as e:
            logger.warning(f"No receipt for client {record.id}: {e}")
            numbered.append(record)
            continue

        if record.receipt_number is None:
            record = record.model_copy(update={"receipt_number": receipt.number})
            if config.source.write_back:
                source.update(record)
                logger.info(f"Stored receipt {receipt.number} for client {record.id}.")

        numbered.append(record)
        documents.append(build_receipt_document(receipt, config))

    documents.sort(key=lambda document: document["number"])
    return numbered, documents


def build_report(
    config: Config, source: ClientRecordSource, year: int
) -> dict[str, Any]:
    """Refresh the income aggregate, falling back to the cached one."""
    cache = AggregateCache(JsonFileStore(config.cache.path), key=config.cache.key)
    tracker = IncomeTracker(source, cache, year=year)
    if not tracker.start():
        logger.warning("Client records unavailable, reporting the cached income.")
    return build_income_report(tracker.income_data, config, year)


def generate(config: Config) -> None:
    """Generate income reports and receipts based on provided configuration."""
    logger.info("Starting the generation process.")
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Configuration: %s", config)

    source = source_from_config(config)
    issuer = ReceiptIssuer.from_config(config)

    # Fetched on first use, shared by all receipt outputs.
    records: list[ClientRecord] | None = None

    with tqdm(
        config.output.items(),
        desc="Generating Outputs",
        leave=False,
    ) as output_format_pbar:
        with logging_redirect_tqdm():
            for key, output_config in output_format_pbar:
                logger.debug(f"Starting with output format: {key}")
                output_format_pbar.set_description(f"Generating {key} output")
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(f"Output format {key} configuration: {output_config}")

                path: str = output_config.path

                if not path:
                    logger.error(f"No path specified for output format: {key}")
                    raise ValueError(
                        f"Output format '{key}' requires a 'path' configuration."
                    )

                Path(path).parent.mkdir(parents=True, exist_ok=True)

                output_type = output_config.type

                documents: list[dict[str, Any]] = []
                if output_type in ("receipts", "combined"):
                    if records is None:
                        records = completed_records(source.fetch())
                    records, documents = issue_receipt_documents(
                        config, source, issuer, records, year=output_config.year
                    )

                if output_type == "income":
                    report = build_report(config, source, output_config.report_year)
                    _, pdfbytes = generate_income_report_pdf(config, report)
                    write_pdf(path, pdfbytes)
                    logger.info(f"Income report written to {path}.")

                elif output_type == "combined":
                    report = build_report(config, source, output_config.report_year)
                    logger.info("Generating combined PDF for income and receipts.")

                    pdf = PDF(config=config)
                    pdf.set_title(key)
                    pdf.add_income_report(report, toc_level=1)

                    for i, document in tqdm(
                        enumerate(documents),
                        total=len(documents),
                        leave=False,
                        desc="Generating Receipts",
                    ):
                        pdf.generate_receipt(
                            document,
                            start_section=i == 0,
                            create_toc_entry=True,
                        )

                    logger.info("Receipts generated successfully.")

                    pdf.output(path)

                elif output_type == "receipts":
                    logger.info("Generating individual PDFs for each receipt.")

                    with ProcessPoolExecutor() as executor:
                        future_receipts = [
                            executor.submit(generate_receipt_pdf, config, document)
                            for document in documents
                        ]

                        with ThreadPoolExecutor() as thread_executor:
                            futures = []
                            for future in tqdm(
                                as_completed(future_receipts),
                                total=len(future_receipts),
                                desc="Generating Receipts",
                                leave=False,
                            ):
                                number, pdfbytes = future.result()
                                futures.append(
                                    thread_executor.submit(
                                        write_pdf, path.format(NUMBER=number), pdfbytes
                                    )
                                )

                            for _ in tqdm(
                                as_completed(futures),
                                total=len(futures),
                                desc="Saving Receipts",
                                leave=False,
                            ):
                                pass

                    logger.info("Individual receipts generated successfully.")

                else:
                    logger.error(f"Unknown output type: {output_type}")
                    raise ValueError(
                        f"Output format '{key}' has an unknown 'type': {output_type}"
                    )


def main(config_file="config.toml", year: int | None = None) -> None:
    """Main function to run therapybilling.

    ``year`` overrides the year of every configured output.
    """
    config = load_config(config_file, year=year)
    logger.info("Configuration loaded successfully.")
    generate(config)
