# -*- coding: utf-8 -*-
"""
converter.py – orkestrerer hele kjøringen for én input-fil.

    Idle -> Scanning -> Writing -> Finalizing -> Done
                (Cancelled / Failed fra alle ikke-terminale tilstander)

1) stream_parser.extract_rows  -> feltsett + rader
2) validation.classify_row     -> "Data" eller "Rejected"
3) writer (xlsx/csv)           -> <output>.tmp
4) os.replace(<output>.tmp, <output>)  (atomisk)

Den midlertidige filen fjernes i alle utfall. Avbrudd (cancel()) sjekkes for
hver XML-hendelse under skanning og for hver rad under skriving, og gir
ConversionCancelled – aldri en halvskrevet målfil.

Bruk fra en GUI-tråd:

    conv = VoucherConverter(Path("bilag.xml"), csv_export=False)
    conv.set_progress_listener(lambda msg: queue.put(("log", msg)))
    threading.Thread(target=conv.process_file, daemon=True).start()
    ...
    conv.cancel()
"""
from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .config import Settings, load_settings
from .errors import (
    CommitError,
    ConversionCancelled,
    ConversionError,
    ConversionIOError,
)
from .stream_parser import extract_rows
from .validation import classify_row
from .writers import OutputFormat, RejectedRow, make_writer

__all__ = [
    "ConversionState",
    "ConversionResult",
    "ProgressListener",
    "VoucherConverter",
    "default_output_path",
]

logger = logging.getLogger(__name__)

ProgressListener = Callable[[str], None]


class ConversionState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    WRITING = "writing"
    FINALIZING = "finalizing"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class ConversionResult:
    output_path: Path
    accepted: int = 0
    rejected: int = 0
    fields: Tuple[str, ...] = ()
    rejected_rows: List[RejectedRow] = field(default_factory=list)
    written: bool = True

    @property
    def total(self) -> int:
        return self.accepted + self.rejected


def default_output_path(input_path: Path | str, csv_export: bool = False) -> Path:
    """<stamme>_out.xlsx|csv ved siden av input-filen."""
    p = Path(input_path)
    ext = OutputFormat.from_flag(csv_export).extension
    return p.parent / f"{p.stem}_out.{ext}"


class VoucherConverter:
    def __init__(self, input_path: Path | str, output_path: Path | str | None = None, *,
                 csv_export: bool = False, settings: Optional[Settings] = None,
                 progress: Optional[ProgressListener] = None) -> None:
        self.input_path = Path(input_path)
        self.format = OutputFormat.from_flag(csv_export)
        self._output_path = Path(output_path) if output_path else default_output_path(self.input_path, csv_export)
        self.settings = settings or load_settings()
        self._listener = progress
        self._cancel = threading.Event()
        self.state = ConversionState.IDLE
        self.result: Optional[ConversionResult] = None

    # --- kontrollflate for GUI/CLI ---

    def set_progress_listener(self, listener: Optional[ProgressListener]) -> None:
        self._listener = listener

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def output_path(self) -> Path:
        return self._output_path

    @property
    def tmp_path(self) -> Path:
        return self._output_path.with_name(self._output_path.name + self.settings.tmp_suffix)

    @property
    def csv_export(self) -> bool:
        return self.format is OutputFormat.CSV

    # --- intern ---

    def _publish(self, msg: str) -> None:
        listener = self._listener
        if listener is None:
            return
        try:
            listener(msg)
        except Exception:
            # progress skal aldri stoppe kjøringen
            logger.debug("Progress listener raised", exc_info=True)

    def _checkpoint(self, msg: str = "Cancelled by user") -> None:
        if self._cancel.is_set():
            raise ConversionCancelled(msg)

    def _remove_tmp(self, tmp: Path) -> None:
        try:
            tmp.unlink(missing_ok=True)
        except OSError:
            logger.warning("Could not remove temporary file %s", tmp, exc_info=True)

    # --- hovedløp ---

    def process_file(self) -> ConversionResult:
        """Kjør hele løpet synkront. Kaster ConversionCancelled eller ConversionError."""
        if self.state is not ConversionState.IDLE:
            raise RuntimeError(f"VoucherConverter already used (state={self.state.value})")
        try:
            result = self._run()
        except ConversionCancelled:
            # avbrudd under skanning er allerede meldt fra _run
            if self.state is not ConversionState.SCANNING:
                self._publish("Operation cancelled")
            self.state = ConversionState.CANCELLED
            logger.warning("Conversion of %s cancelled", self.input_path.name)
            raise
        except ConversionError as exc:
            self.state = ConversionState.FAILED
            logger.error("Processing failed: %s", exc)
            raise
        except OSError as exc:
            self.state = ConversionState.FAILED
            logger.error("Processing failed: %s", exc)
            raise ConversionIOError(str(exc), {"input": str(self.input_path)}) from exc
        except Exception as exc:
            self.state = ConversionState.FAILED
            logger.exception("Processing failed")
            raise ConversionError(f"Processing failed: {exc}", {"input": str(self.input_path)}) from exc
        self.state = ConversionState.DONE
        self.result = result
        return result

    def _run(self) -> ConversionResult:
        name = self.input_path.name
        dest = self._output_path
        self._publish(f"Starting: {name}")
        logger.info("Processing %s -> %s", self.input_path, dest)

        # 1) skann strukturen
        self.state = ConversionState.SCANNING
        self._publish("Analyzing XML structure...")
        try:
            extraction = extract_rows(self.input_path, should_stop=self._cancel.is_set,
                                      settings=self.settings)
            self._checkpoint("Cancelled during scan")
        except ConversionCancelled:
            self._publish("Cancelled during scan")
            raise

        if not extraction.rows:
            self._publish("No data found in XML")
            logger.warning("No transactions found in XML file %s", name)
            return ConversionResult(dest, fields=extraction.fields, written=False)

        # 2) klassifiser + skriv til tmp
        tmp = self.tmp_path
        writer = make_writer(self.format, tmp, name, self.settings)
        try:
            self._publish("Creating CSV file..." if self.csv_export else "Creating Excel workbook...")
            try:
                tmp.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ConversionIOError(f"Cannot create output directory: {exc}",
                                        {"path": str(tmp.parent)}) from exc
            writer.open(extraction.fields)

            self.state = ConversionState.WRITING
            self._publish("Writing data rows...")
            every = max(self.settings.progress_rows, 1)
            processed = 0
            for row in extraction.rows:
                self._checkpoint()
                verdict = classify_row(row)
                if verdict.accepted:
                    writer.write_row(row)
                else:
                    writer.write_rejected(row, verdict.reason or "")
                processed += 1
                if processed % every == 0:
                    self._publish(f"Converted ~{processed} rows...")
            self._checkpoint()

            # 3) ferdigstill og flytt atomisk
            self.state = ConversionState.FINALIZING
            self._publish("Finalizing CSV file..." if self.csv_export else "Finalizing Excel file...")
            writer.close()
            self._checkpoint()
            try:
                os.replace(tmp, dest)
            except OSError as exc:
                raise CommitError(f"Cannot replace {dest.name}: {exc}",
                                  {"tmp": str(tmp), "dest": str(dest)}) from exc
        except BaseException:
            writer.discard()
            raise
        finally:
            self._remove_tmp(tmp)

        accepted, rejected = writer.accepted_count, writer.rejected_count
        if rejected:
            self._publish(f"Completed: {accepted} rows converted, {rejected} rejected")
            logger.info("Processing summary: %d valid rows, %d rejected rows out of %d total",
                        accepted, rejected, accepted + rejected)
        else:
            self._publish(f"Completed: {accepted} rows converted successfully")
            logger.info("Processing summary: All %d rows processed successfully", accepted)
        logger.info("%s written to %s", "CSV" if self.csv_export else "Workbook", dest)

        return ConversionResult(
            output_path=dest,
            accepted=accepted,
            rejected=rejected,
            fields=extraction.fields,
            rejected_rows=list(writer.rejected),
        )
