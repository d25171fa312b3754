# -*- coding: utf-8 -*-
"""
validation.py – avgjør om en rad går til "Data" eller "Rejected".

Reglene sjekkes i fast rekkefølge, første treff vinner:
  1) helt tom rad
  2) påkrevd felt (ACCOUNT/AMOUNT/DATE) finnes i raden men er tomt
  3) datofelt (navn inneholder date/tarih) som ikke er dd.mm.yyyy
  4) beløpsfelt (amount/tutar/miktar/balance) som ikke kan tolkes som tall

Funksjonen er total: hver rad får nøyaktig én Verdict.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .formats import has_free_text, parse_date, parse_number, strip_currency

__all__ = [
    "REQUIRED_FIELDS",
    "DATE_KEYS",
    "AMOUNT_KEYS",
    "EMPTY_ROW_REASON",
    "Verdict",
    "classify_row",
    "is_date_field",
    "is_amount_field",
]

REQUIRED_FIELDS = ("ACCOUNT", "AMOUNT", "DATE")

# heuristikk for kolonnenavn (engelsk + tyrkisk)
DATE_KEYS = ("date", "tarih")
AMOUNT_KEYS = ("amount", "tutar", "miktar", "balance")

EMPTY_ROW_REASON = "Empty row - no data found"


@dataclass(frozen=True)
class Verdict:
    accepted: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "Verdict":
        return cls(True, None)

    @classmethod
    def reject(cls, reason: str) -> "Verdict":
        return cls(False, reason)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def is_date_field(name: str) -> bool:
    n = name.lower()
    return any(k in n for k in DATE_KEYS)


def is_amount_field(name: str) -> bool:
    n = name.lower()
    return any(k in n for k in AMOUNT_KEYS)


def classify_row(row: Mapping[str, str], required: Sequence[str] = REQUIRED_FIELDS) -> Verdict:
    if all(_blank(v) for v in row.values()):
        return Verdict.reject(EMPTY_ROW_REASON)

    # bare felt som faktisk finnes i raden sjekkes
    for name in required:
        if name in row and _blank(row[name]):
            return Verdict.reject(f"Missing required field: {name}")

    for name, value in row.items():
        if is_date_field(name) and not _blank(value) and parse_date(value) is None:
            return Verdict.reject(f"Invalid date format in field: {name} (value: {value})")

    for name, value in row.items():
        if not is_amount_field(name) or _blank(value):
            continue
        if has_free_text(value):
            # fritekst i et "amount"-felt er ikke en feil
            continue
        if value.strip() == "0":
            continue
        if parse_number(strip_currency(value)) is None:
            return Verdict.reject(f"Invalid number format in field: {name} (value: {value})")

    return Verdict.ok()
