# -*- coding: utf-8 -*-
from __future__ import annotations

import csv
import logging
from typing import List

from .errors import ConversionIOError
from .writers import OutputFormat, TabularWriter

__all__ = ["CsvWriter"]

logger = logging.getLogger(__name__)


class CsvWriter(TabularWriter):
    """Kommaseparert UTF-8; felt med komma, anførselstegn eller linjeskift siteres."""

    format = OutputFormat.CSV

    def _open(self) -> None:
        try:
            self._fh = open(self.path, "w", newline="", encoding="utf-8", buffering=1024*1024)
        except OSError as exc:
            raise ConversionIOError(f"Cannot create CSV file: {exc}", {"path": str(self.path)}) from exc
        self._w = csv.writer(self._fh, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
        self._write(list(self.headers))

    def _write(self, values: List[str]) -> None:
        try:
            self._w.writerow(values)
        except OSError as exc:
            raise ConversionIOError(f"Cannot write CSV file: {exc}", {"path": str(self.path)}) from exc

    def _write_values(self, values: List[str]) -> None:
        self._write(values)

    def close(self) -> None:
        fh = getattr(self, "_fh", None)
        if fh is None:
            return
        try:
            fh.flush()
            fh.close()
        except OSError as exc:
            raise ConversionIOError(f"Cannot finalize CSV file: {exc}", {"path": str(self.path)}) from exc
        finally:
            self._fh = None

    def discard(self) -> None:
        fh = getattr(self, "_fh", None)
        self._fh = None
        if fh is not None:
            try:
                fh.close()
            except OSError:
                logger.debug("Closing %s failed", self.path, exc_info=True)
        try:
            self.path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove temporary file %s", self.path, exc_info=True)
