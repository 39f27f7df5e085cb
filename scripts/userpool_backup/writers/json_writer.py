"""JSON writer: the whole file is one array of ListUsers records."""

from __future__ import annotations

import json
from typing import Any, TextIO

from scripts.userpool_backup.base_writer import BaseWriter


class JsonWriter(BaseWriter):
    FORMAT = "json"

    def __init__(self, sink: TextIO) -> None:
        super().__init__(sink)
        self._sink.write("[")

    def _encode(self, user: dict[str, Any]) -> None:
        separator = "\n" if self.records_written == 0 else ",\n"
        # boto3 hands back datetimes for the user dates
        self._sink.write(separator + json.dumps(user, default=str))

    def _finish(self) -> None:
        self._sink.write("\n]\n" if self.records_written else "]\n")
