"""Flatten bundle reports into CSV or plain text."""

from __future__ import annotations

import csv
import io
import re
from typing import List

from ..utils.report import BundleReport
from .entities_info_manager import TABLE_HEADERS

CSV_COLUMNS = ["Bundle", "Items"] + list(TABLE_HEADERS.values())
_TAG_PATTERN = re.compile(r"<[^>]+>")


def strip_markup(markup: str) -> str:
    return _TAG_PATTERN.sub("", markup).strip()


def report_to_csv(reports: List[BundleReport]) -> str:
    """One CSV row per field; bundles without fields get one row with empty field columns."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for report in reports:
        if report.table is None:
            writer.writerow([report.name, report.item_count] + [""] * len(TABLE_HEADERS))
            continue
        for row in report.table.rows:
            writer.writerow([report.name, report.item_count] + list(row))
    return buffer.getvalue()


def report_to_text(reports: List[BundleReport]) -> str:
    lines: List[str] = []
    for report in reports:
        lines.append(f"{report.name} ({report.count})")
        if report.table is None:
            lines.append(f"  {strip_markup(report.markup or '')}")
            lines.append("")
            continue

        header = list(report.table.header.values())
        rows = [[str(cell) for cell in row] for row in report.table.rows]
        widths = [
            max([len(header[index])] + [len(row[index]) for row in rows])
            for index in range(len(header))
        ]
        lines.append("  " + " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(header)).rstrip())
        lines.append("  " + "-+-".join("-" * width for width in widths))
        for row in rows:
            lines.append("  " + " | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip())
        lines.append("")
    return "\n".join(lines)
