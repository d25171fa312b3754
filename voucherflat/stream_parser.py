# -*- coding: utf-8 -*-
"""
stream_parser.py – strømmende flating av voucher-XML til rader.

Struktur som forventes (navn kan overstyres i config):

    <GL_VOUCHER>
        <BRANCH>001</BRANCH>            <- foreldrefelt
        <TRANSACTIONS>
            <TRANSACTION>
                <ACCOUNT>100</ACCOUNT>  <- transaksjonsfelt
                ...
            </TRANSACTION>
        </TRANSACTIONS>
    </GL_VOUCHER>

Hver TRANSACTION blir én rad: foreldrefeltene til voucheren, overskrevet av
transaksjonens egne felt. Feltnavn samles i rekkefølgen de først dukker opp.
Tagger sammenlignes på lokalt navn (uten namespace), uavhengig av store/små
bokstaver.
"""
from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Dict, List, Optional, Tuple, Union

from lxml import etree

from .config import Settings, load_settings
from .errors import ConversionCancelled, ConversionIOError, StructuralParseError

__all__ = ["Extraction", "extract_rows"]

logger = logging.getLogger(__name__)

Row = Dict[str, str]
Source = Union[str, Path, bytes, BinaryIO]
StopCheck = Optional[Callable[[], bool]]


@dataclass
class Extraction:
    fields: Tuple[str, ...]
    rows: List[Row] = field(default_factory=list)
    vouchers: int = 0
    events: int = 0


class _VoucherScope:
    """Kontekst for voucheren som er åpen nå."""

    __slots__ = ("parent", "pending")

    def __init__(self) -> None:
        self.parent: Row = {}
        self.pending: List[Row] = []


def _lname(tag_or_el) -> str:
    t = tag_or_el.tag if hasattr(tag_or_el, "tag") else str(tag_or_el)
    if not isinstance(t, str):
        # kommentarer / prosesseringsinstruksjoner
        return ""
    return t.split('}', 1)[-1] if '}' in t else t


def _open_input(source: Source):
    if isinstance(source, (str, Path)):
        p = Path(source)
        try:
            if p.suffix.lower() == ".zip":
                zf = zipfile.ZipFile(p, "r")
                names = [n for n in zf.namelist() if n.lower().endswith(".xml")]
                if not names:
                    zf.close()
                    raise ConversionIOError("No .xml member in zip archive", {"path": str(p)})
                st = zf.open(names[0], "r")

                def closer():
                    try:
                        st.close()
                    finally:
                        zf.close()
                return st, closer
            fh = open(p, "rb")
        except zipfile.BadZipFile as exc:
            raise ConversionIOError(f"Cannot read zip archive: {exc}", {"path": str(p)}) from exc
        except OSError as exc:
            raise ConversionIOError(f"Cannot open input file: {exc}", {"path": str(p)}) from exc
        return fh, fh.close
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(source), (lambda: None)
    # åpen filhåndtering eies av kalleren
    return source, (lambda: None)


def _release(el) -> None:
    el.clear()
    parent = el.getparent()
    if parent is not None:
        while el.getprevious() is not None:
            del parent[0]


def extract_rows(source: Source, *, should_stop: StopCheck = None,
                 settings: Optional[Settings] = None) -> Extraction:
    """
    Les hele dokumentet og returner (feltsett, rader).

    `should_stop` sjekkes for hver XML-hendelse; returnerer den True kastes
    ConversionCancelled. Feil struktur gir StructuralParseError.
    """
    cfg = settings or load_settings()
    voucher_tag = cfg.voucher_tag.lower()
    group_tag = cfg.group_tag.lower()
    txn_tag = cfg.transaction_tag.lower()

    fields: Dict[str, None] = {}  # ordnet mengde
    rows: List[Row] = []
    vouchers = 0
    events = 0

    scope: Optional[_VoucherScope] = None
    in_group = False
    txn: Optional[Row] = None
    capture = None  # feltelement vi samler tekst for

    fh, closer = _open_input(source)
    try:
        ctx = etree.iterparse(fh, events=("start", "end"), huge_tree=True,
                              remove_comments=True, remove_pis=True)
        for evt, el in ctx:
            events += 1
            if should_stop is not None and should_stop():
                raise ConversionCancelled("Cancelled during scan", {"events": events})

            if capture is not None:
                # alt inne i et feltelement er tekst til feltet
                if evt == "end" and el is capture:
                    name = _lname(el)
                    text = "".join(el.itertext()).strip()
                    if txn is not None:
                        txn[name] = text
                    else:
                        scope.parent[name] = text
                    fields.setdefault(name, None)
                    capture = None
                continue

            key = _lname(el).lower()

            if evt == "start":
                if key == voucher_tag:
                    if scope is not None:
                        raise StructuralParseError(
                            f"Nested <{_lname(el)}> inside an open voucher",
                            {"line": el.sourceline})
                    scope = _VoucherScope()
                    in_group = False
                elif scope is None:
                    continue
                elif key == group_tag and txn is None:
                    if in_group:
                        raise StructuralParseError(
                            f"Nested <{_lname(el)}> inside a transaction group",
                            {"line": el.sourceline})
                    in_group = True
                elif in_group and key == txn_tag:
                    if txn is not None:
                        raise StructuralParseError(
                            f"Nested <{_lname(el)}> inside an open transaction",
                            {"line": el.sourceline})
                    txn = {}
                elif txn is not None or not in_group:
                    capture = el
                # andre elementer direkte i gruppen ignoreres
                continue

            # evt == "end"
            if scope is None:
                _release(el)
                continue
            if txn is not None and key == txn_tag:
                merged = dict(scope.parent)
                merged.update(txn)
                scope.pending.append(merged)
                txn = None
            elif in_group and txn is None and key == group_tag:
                in_group = False
            elif key == voucher_tag:
                rows.extend(scope.pending)
                vouchers += 1
                scope = None
                in_group = False
                _release(el)
    except etree.XMLSyntaxError as exc:
        raise StructuralParseError(f"Malformed XML: {exc}",
                                   {"line": getattr(exc, "lineno", None)}) from exc
    except OSError as exc:
        raise ConversionIOError(f"Cannot read input: {exc}") from exc
    finally:
        try:
            closer()
        except OSError:
            logger.debug("Closing input failed", exc_info=True)

    logger.debug("Extracted %d rows from %d vouchers (%d events, %d fields)",
                 len(rows), vouchers, events, len(fields))
    return Extraction(fields=tuple(fields), rows=rows, vouchers=vouchers, events=events)
