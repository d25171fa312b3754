# -*- coding: utf-8 -*-
"""
errors.py – unntakshierarki for konverteringen.

Avviste rader er *ikke* unntak; de håndteres lokalt av validation.py og
havner i "Rejected". Alt her avbryter hele kjøringen.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class VoucherFlatError(Exception):
    """Basisklasse for alle feil fra voucherflat."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConversionError(VoucherFlatError):
    """En kjøring som feilet (ikke avbrutt av bruker)."""


class StructuralParseError(ConversionError):
    """Input-XML er ikke velformet eller har uventet nesting."""


class ConversionIOError(ConversionError):
    """Lese-/skrivefeil eller manglende tilgang."""


class CommitError(ConversionError):
    """Atomisk erstatning av målfilen feilet; målfilen er urørt."""


class ConversionCancelled(VoucherFlatError):
    """Kjøringen ble avbrutt av bruker. Ingen målfil er skrevet."""

    def __init__(self, message: str = "Cancelled", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
