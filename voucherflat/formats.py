# -*- coding: utf-8 -*-
"""
formats.py – tolkning av dato- og tallverdier slik de står i voucher-XML.

 - Dato: kun dd.mm.yyyy (31.12.2024). ISO (2024-12-31) og skråstrek godtas ikke.
 - Tall: først tyrkisk/kontinentalt oppsett ("1.234,56"), deretter
   vanlig desimal etter at "," er byttet med "." ("+1,5" -> 1.5).
   Første trinn er lempelig: "." hoppes over uansett gruppestørrelse
   ("12.5" -> 125), første "," er desimaltegn, og lesingen stopper ved
   første tegn som ikke passer ("1,2,3" -> 1.2, "12-" -> 12).

Alle funksjoner er rene og kaster aldri; ugyldig input gir None.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

__all__ = [
    "DATE_FORMAT",
    "parse_date",
    "parse_number",
    "strip_currency",
    "has_free_text",
]

DATE_FORMAT = "%d.%m.%Y"

_DATE_RE = re.compile(r"^\d{2}\.\d{2}\.\d{4}$")
_WS_RE = re.compile(r"\s+")
# lengste gyldige prefiks: "-", sifre med "." innimellom, ",desimaler", "E-eksponent"
_LOCALE_PREFIX_RE = re.compile(
    r"(?P<sign>-?)(?P<int>(?:\.*\d)*)\.*(?:,(?P<frac>\d*))?(?:E(?P<exp>-?\d+))?"
)
_PLAIN_NUM_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_CURRENCY_RE = re.compile(r"(?i:TRY|TL|USD|EUR)|[$€₺]")


def parse_date(raw: Optional[str]) -> Optional[date]:
    if raw is None:
        return None
    t = raw.strip()
    if not t or not _DATE_RE.match(t):
        return None
    try:
        return datetime.strptime(t, DATE_FORMAT).date()
    except ValueError:
        # 31.02.2024 o.l.
        return None


def _parse_locale_prefix(s: str) -> Optional[float]:
    m = _LOCALE_PREFIX_RE.match(s)
    if m is None:
        return None
    digits = m.group("int").replace(".", "")
    frac = m.group("frac") or ""
    if not digits and not frac:
        return None
    exp = m.group("exp") or "0"
    return float(f"{m.group('sign')}{digits or '0'}.{frac or '0'}e{exp}")


def parse_number(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    s = _WS_RE.sub("", raw)
    if not s:
        return None
    n = _parse_locale_prefix(s)
    if n is not None:
        return n
    normalized = s.replace(",", ".")
    if _PLAIN_NUM_RE.match(normalized):
        try:
            return float(normalized)
        except ValueError:
            return None
    return None


def strip_currency(raw: str) -> str:
    """Fjern valutamarkører (TL, TRY, USD, EUR, $, €, ₺)."""
    return _CURRENCY_RE.sub("", raw or "")


def has_free_text(raw: str) -> bool:
    """True hvis verdien inneholder bokstaver utover valutamarkørene."""
    return any(ch.isalpha() for ch in strip_currency(raw))
