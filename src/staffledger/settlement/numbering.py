"""Document number format: ``<prefix>-<year>-<zero-padded sequence>``."""

from __future__ import annotations

DEFAULT_PREFIX = "DFT"
DEFAULT_WIDTH = 6


def format_document_number(
    year: int, sequence: int, prefix: str = DEFAULT_PREFIX, width: int = DEFAULT_WIDTH
) -> str:
    if sequence < 1:
        raise ValueError(f"sequence must be >= 1, got {sequence}")
    return f"{prefix}-{year}-{sequence:0{width}d}"

