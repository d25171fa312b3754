# -*- coding: utf-8 -*-
"""
excel_writer.py – xlsx med stil, skrevet strømmende (constant_memory).

Ark:
  - Data:     header (fet, grå, kantlinjer) + godkjente rader, annenhver rad
              lys blå. Tall som tall, datoer som dato (dd.mm.yyyy), resten tekst.
  - Rejected: SourceFile / RowContext / Reason

Kolonnebredde: auto-bredde på de første N kolonnene (standard 15), 20 for resten.
Celler utenfor arkets grenser eller tekst over 32 767 tegn gir ConversionIOError;
xlsxwriter ville ellers hoppe over eller kutte verdien uten feil.
"""
from __future__ import annotations

import logging
import math
import os
from typing import Dict, List, Tuple

import xlsxwriter
from xlsxwriter.exceptions import XlsxWriterException

from .errors import ConversionIOError
from .formats import parse_date, parse_number
from .writers import REJECTED_HEADERS, OutputFormat, RejectedRow, TabularWriter

__all__ = ["ExcelWriter", "DATA_SHEET", "REJECTED_SHEET"]

logger = logging.getLogger(__name__)

DATA_SHEET = "Data"
REJECTED_SHEET = "Rejected"

HEADER_BG = "#C0C0C0"   # grå 25 %
STRIPE_BG = "#99CCFF"   # lys blå
PLAIN_BG = "#FFFFFF"
DATE_NUM_FORMAT = "dd.mm.yyyy"
DEFAULT_COL_WIDTH = 20
MAX_COL_WIDTH = 60
MIN_COL_WIDTH = 6


def _disp_len(s: str) -> int:
    base = len(s)
    if any(ord(ch) > 127 for ch in s):
        base = int(base * 1.1)
    return base


def _abandon(book) -> None:
    # fileclosed hindrer at arbeidsboken noen gang pakkes til disk;
    # radfilene fra constant_memory må da lukkes og slettes her
    book.fileclosed = True
    for ws in book.worksheets():
        fh = getattr(ws, "row_data_fh", None)
        name = getattr(ws, "row_data_filename", None)
        try:
            if fh is not None and not fh.closed:
                fh.close()
            if name:
                os.unlink(name)
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Could not remove xlsxwriter temp file %s", name, exc_info=True)


class ExcelWriter(TabularWriter):
    format = OutputFormat.XLSX

    def _open(self) -> None:
        book = xlsxwriter.Workbook(str(self.path), {
            "constant_memory": True,
            "strings_to_urls": False,
            "strings_to_numbers": False,
            "strings_to_formulas": False,
        })
        self._book = book
        self._ws = book.add_worksheet(DATA_SHEET)
        self._ws_rej = book.add_worksheet(REJECTED_SHEET)

        header_fmt = book.add_format({
            "bold": True, "font_color": "#000000", "bg_color": HEADER_BG, "pattern": 1,
            "align": "center", "border": 1,
        })
        # (stripet, dato) -> format; fire varianter, bygget én gang
        self._formats: Dict[Tuple[bool, bool], object] = {}
        for striped in (False, True):
            for is_date in (False, True):
                props = {
                    "bg_color": STRIPE_BG if striped else PLAIN_BG, "pattern": 1,
                    "font_color": "#000000", "align": "center", "border": 1,
                }
                if is_date:
                    props["num_format"] = DATE_NUM_FORMAT
                self._formats[(striped, is_date)] = book.add_format(props)

        for c, name in enumerate(self.headers):
            self._check(self._ws.write_string(0, c, name, header_fmt), DATA_SHEET, 0, c)
        self._ws.freeze_panes(1, 0)

        for c, name in enumerate(REJECTED_HEADERS):
            self._check(self._ws_rej.write_string(0, c, name), REJECTED_SHEET, 0, c)

        limit = min(len(self.headers), max(self.settings.autosize_columns, 0))
        self._widths: List[int] = [_disp_len(h) for h in self.headers[:limit]]
        self._data_row = 1
        self._rej_row = 1

    def _write_values(self, values: List[str]) -> None:
        r = self._data_row
        striped = (r % 2 == 0)
        ws = self._ws
        for c, value in enumerate(values):
            d = parse_date(value)
            if d is not None:
                rc = ws.write_datetime(r, c, d, self._formats[(striped, True)])
                shown = 10
            else:
                fmt = self._formats[(striped, False)]
                n = parse_number(value)
                if n is not None and math.isfinite(n):
                    rc = ws.write_number(r, c, n, fmt)
                elif value:
                    rc = ws.write_string(r, c, value, fmt)
                else:
                    rc = ws.write_blank(r, c, None, fmt)
                shown = _disp_len(value)
            self._check(rc, DATA_SHEET, r, c)
            if c < len(self._widths) and shown > self._widths[c]:
                self._widths[c] = shown
        self._data_row += 1

    def _write_rejected(self, rec: RejectedRow) -> None:
        for c, value in enumerate(rec.as_tuple()):
            self._check(self._ws_rej.write_string(self._rej_row, c, value), REJECTED_SHEET, self._rej_row, c)
        self._rej_row += 1

    @staticmethod
    def _check(rc: int, sheet: str, row: int, col: int) -> None:
        # xlsxwriter hopper over cellen og returnerer -1 utenfor arket, -2 ved avkortet tekst
        if rc == -1:
            raise ConversionIOError(f"Cell outside Excel sheet limits in {sheet}",
                                    {"row": row + 1, "column": col + 1})
        if rc == -2:
            raise ConversionIOError(f"Text longer than Excel cell limit in {sheet}",
                                    {"row": row + 1, "column": col + 1})

    def _set_widths(self) -> None:
        # hver kolonne settes én gang; auto-bredde for de første, ellers standard
        for c, w in enumerate(self._widths):
            self._ws.set_column(c, c, max(min(w + 2, MAX_COL_WIDTH), MIN_COL_WIDTH))
        first_rest = len(self._widths)
        if first_rest < len(self.headers):
            self._ws.set_column(first_rest, len(self.headers) - 1, DEFAULT_COL_WIDTH)

    def close(self) -> None:
        book = getattr(self, "_book", None)
        if book is None:
            return
        self._set_widths()
        try:
            book.close()
        except (XlsxWriterException, OSError) as exc:
            raise ConversionIOError(f"Cannot write workbook: {exc}", {"path": str(self.path)}) from exc
        self._book = None

    def discard(self) -> None:
        book = getattr(self, "_book", None)
        self._book = None
        if book is not None:
            _abandon(book)
        try:
            self.path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove temporary file %s", self.path, exc_info=True)
