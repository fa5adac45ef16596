from __future__ import annotations

from dataclasses import dataclass

from formrecords.domain.contracts import RecordReader


@dataclass(frozen=True)
class ApiDeps:
    reader: RecordReader
