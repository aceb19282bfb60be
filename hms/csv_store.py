"""
CSV file mechanics shared by every repository.

Files always start with a header line. Values are trimmed on read and
quoted on write only when they contain a comma, a quote or a newline.
"""
from __future__ import annotations

import csv
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Sequence

from .exceptions import StorageError

logger = logging.getLogger(__name__)


def _cell(value: object) -> str:
    return "" if value is None else str(value)


def read_rows(path: str | Path) -> list[list[str]]:
    """
    Return the data rows of `path` (header excluded).
    Blank lines are skipped; commas inside quoted values are preserved.
    """
    path = Path(path)
    rows: list[list[str]] = []
    with path.open("r", encoding="utf-8", newline="") as fh:
        reader = csv.reader(fh, skipinitialspace=True)
        header_skipped = False
        for row in reader:
            if not header_skipped:
                header_skipped = True
                continue
            if not any(v.strip() for v in row):
                continue
            rows.append([v.strip() for v in row])
    return rows


def append_row(path: str | Path, header: Sequence[str], values: Iterable[object]) -> None:
    """Append one line, writing the header first if the file is new or empty."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        needs_header = not path.exists() or path.stat().st_size == 0
        with path.open("a", encoding="utf-8", newline="") as fh:
            writer = csv.writer(fh, lineterminator="\n")
            if needs_header:
                writer.writerow(header)
            writer.writerow([_cell(v) for v in values])
    except OSError as e:
        logger.error("Failed to append to CSV file %s: %s", path, e)
        raise StorageError(f"Cannot append to {path}: {e}", value=str(path)) from e


def write_rows(path: str | Path, header: Sequence[str], rows: Iterable[Iterable[object]]) -> None:
    """
    Rewrite the whole file.
    Data goes to a temporary file first and replaces `path` only once complete.
    """
    path = Path(path)
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            writer = csv.writer(fh, lineterminator="\n")
            writer.writerow(header)
            for row in rows:
                writer.writerow([_cell(v) for v in row])
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        logger.error("Failed to save CSV file %s: %s", path, e)
        raise StorageError(f"Cannot write {path}: {e}", value=str(path)) from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.remove(tmp_name)
