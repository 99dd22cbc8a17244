"""
Line-oriented reader for the airline reviews CSV.

Every physical line is one record. Fields are split on commas outside of
double quotes; the quote characters themselves are consumed and never
appear in a field. Embedded newlines and doubled-quote escapes are not
supported: a ``""`` pair just toggles the quoting state twice.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterator, List, Tuple

from review_rag.errors import InputMissingError

QUOTE = '"'
DELIMITER = ","


def parse_row(line: str) -> List[str]:
    """Split one CSV line into fields. Never raises."""
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == QUOTE:
            in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)

    fields.append("".join(current))
    return fields


def iter_rows(path: Path) -> Iterator[Tuple[int, List[str]]]:
    """Yield ``(row_index, fields)`` for every data line after the header.

    ``row_index`` is zero-based and counts every data line, including ones a
    caller later drops. The file is closed when the generator is exhausted
    or closed early.
    """
    if not path.exists():
        raise InputMissingError(f"CSV file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        header = handle.readline()
        if not header:
            return
        for row_index, line in enumerate(handle):
            yield row_index, parse_row(line.rstrip("\r\n"))
