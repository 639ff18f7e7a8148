"""Module for writing files."""

from pathlib import Path


def write_pdf(path: str, pdfBytes: bytearray):
    """Write PDF bytes to a file, creating its folder if needed."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(pdfBytes)
