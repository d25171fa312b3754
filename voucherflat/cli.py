# -*- coding: utf-8 -*-
"""
cli.py – kjøring fra kommandolinjen.

Bruk:
    python -m voucherflat bilag.xml                     # -> bilag_out.xlsx
    python -m voucherflat bilag.xml --csv               # -> bilag_out.csv
    python -m voucherflat bilag.zip -o ut/bilag.xlsx --rejects ut/avvist.csv

Ctrl-C avbryter ved neste sjekkpunkt; målfilen blir da ikke rørt.
"""
from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import Dict, Optional, Sequence

from .config import load_settings
from .converter import VoucherConverter
from .errors import ConversionCancelled, VoucherFlatError
from .rejects import write_rejects_csv

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="voucherflat",
        description="Flat ut voucher-XML (GL_VOUCHER/TRANSACTIONS/TRANSACTION) til xlsx eller csv",
    )
    p.add_argument("input", help="Input .xml eller .zip")
    p.add_argument("-o", "--output", default=None,
                   help="Målfil (standard: <input>_out.xlsx|csv ved siden av input)")
    p.add_argument("--csv", action="store_true", help="Skriv CSV i stedet for Excel")
    p.add_argument("--rejects", default=None, help="Skriv avviste rader til denne CSV-filen")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug-logging")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = load_settings()
    level = logging.DEBUG if args.verbose else getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    conv = VoucherConverter(args.input, args.output, csv_export=args.csv, settings=settings,
                            progress=lambda msg: print(msg, flush=True))
    outcome: Dict[str, object] = {}

    def _worker() -> None:
        try:
            outcome["result"] = conv.process_file()
        except VoucherFlatError as exc:
            outcome["error"] = exc

    t = threading.Thread(target=_worker, name="voucherflat-worker", daemon=True)
    t.start()
    try:
        while t.is_alive():
            t.join(0.2)
    except KeyboardInterrupt:
        print("Cancel requested - stopping at next checkpoint ...", flush=True)
        conv.cancel()
        t.join()

    err = outcome.get("error")
    if isinstance(err, ConversionCancelled):
        print("Operation canceled by user.", file=sys.stderr)
        return EXIT_CANCELLED
    if err is not None:
        print(f"Error: {err}", file=sys.stderr)
        return EXIT_FAILED
    result = outcome.get("result")
    if result is None:
        return EXIT_FAILED

    if args.rejects:
        try:
            path = write_rejects_csv(result.rejected_rows, args.rejects, settings.tmp_suffix)
        except VoucherFlatError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return EXIT_FAILED
        print(f"Rejected rows: {path}")
    if result.written:
        print(f"Output: {result.output_path}  ({result.accepted} accepted, {result.rejected} rejected)")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
