"""CSV reading and writing for batch runs.

Parsing is lenient on purpose: ragged rows, stray quotes and unterminated
quoted cells never raise. Writing quotes only the cells that need it.
"""

import logging
from collections.abc import Mapping, Sequence
from datetime import date
from pathlib import Path

logger = logging.getLogger(__name__)

SPECIAL_CHARS = ('"', ",", "\n", "\r")


def parse_csv(text: str) -> list[dict[str, str]]:
    """Parse CSV text into one dict per data row, keyed by the header row.

    Blank lines are skipped. Rows shorter than the header are padded with
    empty strings; extra cells are ignored.
    """
    records = _split_records(text)
    if not records:
        return []

    headers = [_unquote(h).strip('"').strip() for h in records[0]]
    rows = []
    for cells in records[1:]:
        values = [_unquote(c) for c in cells]
        rows.append({h: values[i] if i < len(values) else "" for i, h in enumerate(headers)})
    return rows


def serialize_csv(rows: Sequence[Mapping]) -> str:
    """Serialize rows using the first row's keys as the header, newline-joined."""
    if not rows:
        return ""
    headers = list(rows[0].keys())
    lines = [",".join(_escape(h) for h in headers)]
    for row in rows:
        lines.append(",".join(_escape(row.get(h)) for h in headers))
    return "\n".join(lines)


def export_filename(day: date | None = None) -> str:
    day = day or date.today()
    return f"test_results_{day.isoformat()}.csv"


def export_results(rows: Sequence[Mapping], directory: Path, day: date | None = None) -> Path | None:
    """Write rows to `<directory>/test_results_<date>.csv`.

    Returns the written path, or None when there is nothing to export.
    """
    if not rows:
        logger.info("No results to export")
        return None

    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(day)
    path.write_text(serialize_csv(rows), encoding="utf-8")
    logger.info("Exported %d rows to %s", len(rows), path)
    return path


def _split_records(text: str) -> list[list[str]]:
    """Split text into records of raw (still quoted) cells.

    A newline inside quotes belongs to the cell only if the quoted cell is
    properly closed further on; otherwise the open quote is treated as
    unterminated and the line ends there.
    """
    records = []
    cells: list[str] = []
    current: list[str] = []
    in_quote = False

    for i, ch in enumerate(text):
        if ch == '"':
            in_quote = not in_quote
            current.append(ch)
        elif ch == "," and not in_quote:
            cells.append("".join(current))
            current = []
        elif ch == "\n" and (not in_quote or not _closes_cell(text, i + 1)):
            cells.append("".join(current))
            records.append(cells)
            cells, current, in_quote = [], [], False
        else:
            current.append(ch)

    cells.append("".join(current))
    records.append(cells)

    return [r for r in records if len(r) > 1 or r[0].strip()]


def _closes_cell(text: str, start: int) -> bool:
    """True if the next unescaped quote from `start` ends a cell.

    A closing quote must be followed by a comma, a line end or the end of
    the text (spaces and tabs allowed in between).
    """
    i = text.find('"', start)
    while i != -1:
        if text.startswith('""', i):
            i = text.find('"', i + 2)
            continue
        end = i + 1
        while end < len(text) and text[end] in " \t":
            end += 1
        return end == len(text) or text[end] in ",\r\n"
    return False


def _unquote(raw: str) -> str:
    value = raw.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    return value.replace('""', '"')


def _escape(value) -> str:
    if value is None:
        return ""
    text = str(value)
    if any(ch in text for ch in SPECIAL_CHARS):
        return '"' + text.replace('"', '""') + '"'
    return text
