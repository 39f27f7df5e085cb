"""Lazy decoders for backup files.

Both readers yield user records in file order and hold at most one record
(plus a read buffer) in memory. Iterating again means reopening the file.
"""

from __future__ import annotations

import csv
import json
import os
from typing import Any, Callable, Iterator, TextIO

from scripts.userpool_backup.errors import InvalidBackupFile, UnsupportedFormatError
from scripts.userpool_backup.records import FIXED_COLUMNS

_CHUNK_SIZE = 64 * 1024

# No exported user comes close; a bigger element means a broken file
MAX_RECORD_SIZE = 1024 * 1024


def detect_format(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    if ext == ".json":
        return "json"
    if ext == ".csv":
        return "csv"
    raise UnsupportedFormatError(
        f"Cannot restore from {path!r}: expected a .json or .csv file"
    )


def iter_users(path: str) -> Iterator[dict[str, Any]]:
    """Decode ``path`` with the reader its extension selects."""
    readers: dict[str, Callable[[str], Iterator[dict[str, Any]]]] = {
        "json": iter_json_users,
        "csv": iter_csv_users,
    }
    return readers[detect_format(path)](path)


def iter_json_users(
    path: str,
    chunk_size: int = _CHUNK_SIZE,
    max_record_size: int = MAX_RECORD_SIZE,
) -> Iterator[dict[str, Any]]:
    with open(path, encoding="utf-8") as fh:
        yield from _iter_json_array(fh, path, chunk_size, max_record_size)


def _iter_json_array(
    fh: TextIO, path: str, chunk_size: int, max_record_size: int
) -> Iterator[dict[str, Any]]:
    """Incrementally decode a top-level JSON array of objects.

    Only whitespace may follow the closing bracket. An element that is still
    undecodable after ``max_record_size`` characters is reported without
    reading the rest of the file.
    """
    decoder = json.JSONDecoder()
    buf = ""
    pos = 0
    eof = False
    expect = "["  # then "first"/"value", "," and finally "end"

    while True:
        while pos < len(buf) and buf[pos].isspace():
            pos += 1
        if pos >= len(buf):
            if eof:
                if expect == "end":
                    return
                break
            chunk = fh.read(chunk_size)
            buf, pos = buf[pos:] + chunk, 0
            eof = not chunk
            continue

        char = buf[pos]
        if expect == "end":
            raise InvalidBackupFile(f"{path}: unexpected data after the closing bracket")
        if expect == "[":
            if char != "[":
                raise InvalidBackupFile(f"{path}: expected a JSON array of users")
            pos += 1
            expect = "first"
        elif expect in ("first", "value"):
            if char == "]" and expect == "first":
                pos += 1
                expect = "end"
                continue
            try:
                user, end = decoder.raw_decode(buf, pos)
            except json.JSONDecodeError as exc:
                if eof or len(buf) - pos > max_record_size:
                    raise InvalidBackupFile(f"{path}: {exc}") from exc
                chunk = fh.read(chunk_size)
                buf, pos = buf[pos:] + chunk, 0
                eof = not chunk
                continue
            if not isinstance(user, dict):
                raise InvalidBackupFile(f"{path}: array element is not a user object")
            pos = end
            expect = ","
            yield user
        else:
            if char == "]":
                pos += 1
                expect = "end"
                continue
            if char != ",":
                raise InvalidBackupFile(f"{path}: expected ',' or ']' at offset {pos}")
            pos += 1
            expect = "value"

    raise InvalidBackupFile(f"{path}: unexpected end of file")


def iter_csv_users(path: str) -> Iterator[dict[str, Any]]:
    """Rebuild ListUsers-shaped records from CSV rows.

    Attribute columns with an empty cell are dropped, so a user never gets
    an attribute it did not have when exported.
    """
    with open(path, encoding="utf-8", newline="") as fh:
        reader = csv.DictReader(fh)
        if reader.fieldnames is None or "Username" not in reader.fieldnames:
            raise InvalidBackupFile(f"{path}: missing Username column")
        for row in reader:
            user: dict[str, Any] = {col: row.get(col) for col in FIXED_COLUMNS if col in row}
            user["Attributes"] = [
                {"Name": name, "Value": value}
                for name, value in row.items()
                if name not in FIXED_COLUMNS and name is not None and value
            ]
            yield user
