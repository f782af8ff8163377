from __future__ import annotations
import csv
import io as _io
import numbers
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from openpyxl import load_workbook


RESULT_HEADERS = ["row", "action", "success", "entry_uid", "published", "error", "warnings"]


@dataclass
class CsvData:
    headers: List[str] = field(default_factory=list)
    rows: List[Dict[str, str]] = field(default_factory=list)


def _to_data(table: List[List[str]]) -> CsvData:
    header_idx = -1
    for i, row in enumerate(table):
        if any(c.strip() for c in row):
            header_idx = i
            break
    if header_idx == -1:
        return CsvData()
    headers = [c.strip() for c in table[header_idx]]
    rows: List[Dict[str, str]] = []
    for raw in table[header_idx + 1 :]:
        if not raw or not any(c.strip() for c in raw):
            continue
        d: Dict[str, str] = {}
        for i, name in enumerate(headers):
            if not name:
                continue
            d[name] = raw[i] if i < len(raw) else ""
        rows.append(d)
    return CsvData(headers=[h for h in headers if h], rows=rows)


def parse_csv_text(text: str) -> CsvData:
    """Parse CSV text (quoted fields, embedded commas and newlines allowed)."""
    return _to_data(list(csv.reader(_io.StringIO(text))))


def read_rows(input_path: Path) -> CsvData:
    with Path(input_path).open("r", newline="", encoding="utf-8-sig") as f:
        return _to_data(list(csv.reader(f)))


def _cell_to_str(v) -> str:
    # Excel numbers come back as floats: 5225.0 -> '5225'
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, numbers.Number):
        if float(v).is_integer():
            return str(int(v))
        return str(v)
    if hasattr(v, "isoformat"):
        return v.isoformat()
    return "" if v is None else str(v)


def read_rows_xlsx(input_path: Path) -> CsvData:
    wb = load_workbook(filename=str(input_path), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0] if wb.worksheets else None
        if ws is None:
            return CsvData()
        table = [[_cell_to_str(v) for v in row] for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
    return _to_data(table)


def read_any_rows(input_path: Path) -> CsvData:
    ext = Path(input_path).suffix.lower()
    if ext in (".xlsx", ".xlsm", ".xltx", ".xltm"):
        return read_rows_xlsx(input_path)
    return read_rows(input_path)


def write_results_csv(output_path: Path, results: Iterable) -> None:
    """Write one line per imported row so failed rows can be fixed and re-imported."""
    with Path(output_path).open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=RESULT_HEADERS)
        writer.writeheader()
        for r in results:
            writer.writerow(
                {
                    "row": r.row_index + 1,
                    "action": r.action,
                    "success": "true" if r.success else "false",
                    "entry_uid": r.entry_uid or "",
                    "published": "true" if r.published else "false",
                    "error": r.error or "",
                    "warnings": " | ".join(r.warnings),
                }
            )
