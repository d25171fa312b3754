# -*- coding: utf-8 -*-
"""
writers.py – felles kontrakt for utskrift av rader.

To implementasjoner, valgt én gang per kjøring:
  - excel_writer.ExcelWriter  (xlsx med stil, ark "Data" + "Rejected")
  - csv_writer.CsvWriter      (kommaseparert; avviste rader holdes i minnet)

Begge skriver til en midlertidig sti. Flytting til endelig sti er
converter.py sitt ansvar.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

from .config import Settings, load_settings

__all__ = [
    "OutputFormat",
    "RejectedRow",
    "REJECTED_HEADERS",
    "TabularWriter",
    "row_context",
    "make_writer",
]

REJECTED_HEADERS = ("SourceFile", "RowContext", "Reason")


class OutputFormat(str, Enum):
    XLSX = "xlsx"
    CSV = "csv"

    @property
    def extension(self) -> str:
        return self.value

    @classmethod
    def from_flag(cls, csv_export: bool) -> "OutputFormat":
        return cls.CSV if csv_export else cls.XLSX


@dataclass(frozen=True)
class RejectedRow:
    source: str
    context: str
    reason: str

    def as_tuple(self) -> Tuple[str, str, str]:
        return (self.source, self.context, self.reason)


def row_context(row: Mapping[str, str], headers: Sequence[str]) -> str:
    """Rådump av raden, alle kolonner med (tom streng hvis feltet mangler)."""
    return "{" + ", ".join(f"{h}={row.get(h, '')}" for h in headers) + "}"


class TabularWriter(ABC):
    """Kontrakt: open -> write_row/write_rejected ... -> close | discard."""

    format: OutputFormat

    def __init__(self, path: Path | str, source_name: str, settings: Optional[Settings] = None) -> None:
        self.path = Path(path)
        self.source_name = source_name
        self.settings = settings or load_settings()
        self.headers: Tuple[str, ...] = ()
        self.rejected: List[RejectedRow] = []
        self.accepted_count = 0

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)

    def open(self, headers: Sequence[str]) -> None:
        self.headers = tuple(headers)
        self._open()

    def write_row(self, row: Mapping[str, str]) -> None:
        self._write_values([row.get(h, "") or "" for h in self.headers])
        self.accepted_count += 1

    def write_rejected(self, row: Mapping[str, str], reason: str) -> RejectedRow:
        rec = RejectedRow(self.source_name, row_context(row, self.headers), reason)
        self._write_rejected(rec)
        self.rejected.append(rec)
        return rec

    @abstractmethod
    def _open(self) -> None: ...

    @abstractmethod
    def _write_values(self, values: List[str]) -> None: ...

    def _write_rejected(self, rec: RejectedRow) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        """Skriv ferdig alt til self.path."""

    @abstractmethod
    def discard(self) -> None:
        """Frigjør ressurser og fjern self.path. Skal aldri kaste."""


def make_writer(fmt: OutputFormat, path: Path | str, source_name: str,
                settings: Optional[Settings] = None) -> TabularWriter:
    if fmt is OutputFormat.CSV:
        from .csv_writer import CsvWriter
        return CsvWriter(path, source_name, settings)
    from .excel_writer import ExcelWriter
    return ExcelWriter(path, source_name, settings)
