"""CSV writer: one row per user, one column per pool schema attribute."""

from __future__ import annotations

import csv
import logging
from typing import Any, Iterable, TextIO

from scripts.userpool_backup.base_writer import BaseWriter
from scripts.userpool_backup.records import FIXED_COLUMNS, IMMUTABLE_ATTRIBUTES

logger = logging.getLogger("userpool_backup.writer.csv")


def columns_for_schema(schema_attribute_names: Iterable[str]) -> list[str]:
    """Fixed user columns followed by the schema attributes, minus ``sub``."""
    columns = list(FIXED_COLUMNS)
    for name in schema_attribute_names:
        if name in IMMUTABLE_ATTRIBUTES or name in columns:
            continue
        columns.append(name)
    return columns


def fetch_schema_attribute_names(client, user_pool_id: str) -> list[str]:
    resp = client.describe_user_pool(UserPoolId=user_pool_id)
    return [attr["Name"] for attr in resp["UserPool"].get("SchemaAttributes", [])]


class CsvWriter(BaseWriter):
    FORMAT = "csv"
    NEWLINE = ""

    def __init__(self, sink: TextIO, columns: list[str]) -> None:
        super().__init__(sink)
        self.columns = columns
        self._attribute_columns = set(columns) - set(FIXED_COLUMNS)
        self._writer = csv.DictWriter(
            sink, fieldnames=columns, restval="", extrasaction="ignore"
        )
        self._writer.writeheader()

    @classmethod
    def for_pool(cls, client, user_pool_id: str, path: str) -> "CsvWriter":
        """Describe the pool for its schema, then open the file at ``path``."""
        columns = columns_for_schema(fetch_schema_attribute_names(client, user_pool_id))
        logger.debug("CSV columns for %s: %s", user_pool_id, columns,
                     extra={"user_pool_id": user_pool_id})
        return cls.open(path, columns=columns)

    def _encode(self, user: dict[str, Any]) -> None:
        row = {col: _cell(user.get(col)) for col in FIXED_COLUMNS}
        for attr in user.get("Attributes") or []:
            if attr.get("Name") in self._attribute_columns:
                row[attr["Name"]] = _cell(attr.get("Value"))
        self._writer.writerow(row)

    def _finish(self) -> None:
        pass


def _cell(value: Any) -> str:
    return "" if value is None else str(value)
