# -*- coding: utf-8 -*-
"""
config.py – innstillinger for konverteringen.

Alt kan overstyres med miljøvariabler (VOUCHERFLAT_*), på samme måte som
progress-intervallet i stream-parseren. Ugyldige heltall gir standardverdi.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_VOUCHER_TAG = "GL_VOUCHER"
DEFAULT_GROUP_TAG = "TRANSACTIONS"
DEFAULT_TRANSACTION_TAG = "TRANSACTION"
DEFAULT_PROGRESS_ROWS = 500
DEFAULT_AUTOSIZE_COLUMNS = 15
DEFAULT_TMP_SUFFIX = ".tmp"


@dataclass(frozen=True)
class Settings:
    voucher_tag: str = DEFAULT_VOUCHER_TAG
    group_tag: str = DEFAULT_GROUP_TAG
    transaction_tag: str = DEFAULT_TRANSACTION_TAG
    progress_rows: int = DEFAULT_PROGRESS_ROWS
    autosize_columns: int = DEFAULT_AUTOSIZE_COLUMNS
    tmp_suffix: str = DEFAULT_TMP_SUFFIX
    log_level: str = "INFO"


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        val = int(raw.strip())
    except ValueError:
        return default
    return val if val >= minimum else default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def load_settings() -> Settings:
    """Les innstillinger fra miljøet."""
    return Settings(
        voucher_tag=_env_str("VOUCHERFLAT_VOUCHER_TAG", DEFAULT_VOUCHER_TAG),
        group_tag=_env_str("VOUCHERFLAT_GROUP_TAG", DEFAULT_GROUP_TAG),
        transaction_tag=_env_str("VOUCHERFLAT_TRANSACTION_TAG", DEFAULT_TRANSACTION_TAG),
        progress_rows=_env_int("VOUCHERFLAT_PROGRESS_ROWS", DEFAULT_PROGRESS_ROWS, minimum=1),
        autosize_columns=_env_int("VOUCHERFLAT_AUTOSIZE_COLUMNS", DEFAULT_AUTOSIZE_COLUMNS),
        tmp_suffix=_env_str("VOUCHERFLAT_TMP_SUFFIX", DEFAULT_TMP_SUFFIX),
        log_level=_env_str("VOUCHERFLAT_LOG_LEVEL", "INFO").upper(),
    )
