# -*- coding: utf-8 -*-
"""
voucherflat – flater ut hierarkisk voucher-XML til én tabell (xlsx/csv).

Eksponerer høy-nivå API slik at det kan importeres direkte:

    from voucherflat import VoucherConverter, extract_rows, classify_row
"""
from __future__ import annotations

from .config import Settings, load_settings
from .converter import ConversionResult, ConversionState, VoucherConverter, default_output_path
from .errors import (
    CommitError,
    ConversionCancelled,
    ConversionError,
    ConversionIOError,
    StructuralParseError,
    VoucherFlatError,
)
from .formats import parse_date, parse_number
from .stream_parser import Extraction, extract_rows
from .validation import Verdict, classify_row
from .writers import OutputFormat, RejectedRow, make_writer

__version__ = "2025.11.1"

__all__ = [
    "Settings", "load_settings",
    "VoucherConverter", "ConversionResult", "ConversionState", "default_output_path",
    "VoucherFlatError", "ConversionError", "StructuralParseError", "ConversionIOError",
    "CommitError", "ConversionCancelled",
    "parse_date", "parse_number",
    "Extraction", "extract_rows",
    "Verdict", "classify_row",
    "OutputFormat", "RejectedRow", "make_writer",
]
