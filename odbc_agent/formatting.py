"""Render query results for export."""

from __future__ import annotations

import logging
from typing import Any, Union

import pandas as pd

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("json", "csv", "excel")


def format_results(rows: list[dict[str, Any]], fmt: str = "json") -> Union[list[dict[str, Any]], str]:
    """Return ``rows`` unchanged for ``json`` or as CSV text.

    CSV columns follow the keys of the first row. Excel export is not
    produced yet and falls back to CSV.
    """
    fmt = (fmt or "json").lower()
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Formato não suportado: {fmt}")
    if fmt == "json":
        return rows
    if fmt == "excel":
        logger.warning("Excel output is not available; returning CSV")
    if not rows:
        return ""

    columns = list(rows[0].keys())
    frame = pd.DataFrame(rows, columns=columns, dtype=object)
    return frame.to_csv(index=False).rstrip("\r\n")


__all__ = ["format_results", "SUPPORTED_FORMATS"]
