# -*- coding: utf-8 -*-
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

import pandas as pd

from .config import DEFAULT_TMP_SUFFIX
from .errors import ConversionIOError
from .writers import REJECTED_HEADERS, RejectedRow

__all__ = ["rejected_frame", "write_rejects_csv"]


def rejected_frame(rows: Iterable[RejectedRow]) -> pd.DataFrame:
    return pd.DataFrame([r.as_tuple() for r in rows], columns=list(REJECTED_HEADERS), dtype=str)


def write_rejects_csv(rows: Iterable[RejectedRow], path: Path | str,
                      tmp_suffix: str = DEFAULT_TMP_SUFFIX) -> Path:
    """Skriv avviste rader som CSV (via tmp + os.replace). Returnerer stien."""
    p = Path(path)
    tmp = p.with_name(p.name + tmp_suffix)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        rejected_frame(rows).to_csv(tmp, index=False, encoding="utf-8")
        os.replace(tmp, p)
    except OSError as exc:
        raise ConversionIOError(f"Cannot write rejects file: {exc}", {"path": str(p)}) from exc
    finally:
        tmp.unlink(missing_ok=True)
    return p
