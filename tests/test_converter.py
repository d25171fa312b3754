import sys
from pathlib import Path

import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from voucherflat.config import Settings  # type: ignore[import]
from voucherflat.converter import ConversionState, VoucherConverter, default_output_path  # type: ignore[import]
from voucherflat import excel_writer  # type: ignore[import]
from voucherflat.errors import (  # type: ignore[import]
    CommitError,
    ConversionCancelled,
    ConversionIOError,
    StructuralParseError,
)

SAMPLE = """<?xml version="1.0" encoding="UTF-8"?>
<EXPORT>
  <GL_VOUCHER>
    <BRANCH>001</BRANCH>
    <TRANSACTIONS>
      <TRANSACTION><ACCOUNT>100</ACCOUNT><AMOUNT>1.234,56</AMOUNT><DATE>01.01.2024</DATE></TRANSACTION>
      <TRANSACTION><ACCOUNT></ACCOUNT><AMOUNT>200</AMOUNT><DATE>02.01.2024</DATE></TRANSACTION>
    </TRANSACTIONS>
  </GL_VOUCHER>
</EXPORT>
"""


def _big_xml(n: int) -> str:
    lines = "".join(
        f"<TRANSACTION><ACCOUNT>{i}</ACCOUNT><AMOUNT>{i},50</AMOUNT><DATE>01.02.2024</DATE></TRANSACTION>"
        for i in range(1, n + 1)
    )
    return f"<R><GL_VOUCHER><BRANCH>1</BRANCH><TRANSACTIONS>{lines}</TRANSACTIONS></GL_VOUCHER></R>"


@pytest.fixture
def sample_xml(tmp_path) -> Path:
    p = tmp_path / "bilag.xml"
    p.write_text(SAMPLE, encoding="utf-8")
    return p


def test_default_output_path(tmp_path):
    assert default_output_path(tmp_path / "bilag.xml") == tmp_path / "bilag_out.xlsx"
    assert default_output_path(tmp_path / "bilag.2024.xml", True) == tmp_path / "bilag.2024_out.csv"
    assert default_output_path(tmp_path / "noext") == tmp_path / "noext_out.xlsx"


def test_sample_to_xlsx(sample_xml):
    conv = VoucherConverter(sample_xml)
    result = conv.process_file()

    assert conv.state is ConversionState.DONE
    assert result.output_path == sample_xml.parent / "bilag_out.xlsx"
    assert (result.accepted, result.rejected, result.total) == (1, 1, 2)
    assert result.fields == ("BRANCH", "ACCOUNT", "AMOUNT", "DATE")
    assert not conv.tmp_path.exists()

    data = pd.read_excel(result.output_path, sheet_name="Data")
    assert list(data.columns) == ["BRANCH", "ACCOUNT", "AMOUNT", "DATE"]
    assert len(data) == 1
    assert data.loc[0, "AMOUNT"] == pytest.approx(1234.56)
    assert data.loc[0, "DATE"] == pd.Timestamp("2024-01-01")

    rej = pd.read_excel(result.output_path, sheet_name="Rejected", dtype=str, keep_default_na=False)
    assert list(rej.columns) == ["SourceFile", "RowContext", "Reason"]
    assert rej.loc[0, "SourceFile"] == "bilag.xml"
    assert rej.loc[0, "RowContext"] == "{BRANCH=001, ACCOUNT=, AMOUNT=200, DATE=02.01.2024}"
    assert rej.loc[0, "Reason"] == "Missing required field: ACCOUNT"


def test_sample_to_csv_keeps_rejects_in_result(sample_xml):
    result = VoucherConverter(sample_xml, csv_export=True).process_file()
    assert result.output_path.name == "bilag_out.csv"
    assert result.output_path.read_text(encoding="utf-8") == (
        "BRANCH,ACCOUNT,AMOUNT,DATE\n"
        '001,100,"1.234,56",01.01.2024\n'
    )
    assert [r.reason for r in result.rejected_rows] == ["Missing required field: ACCOUNT"]


def test_explicit_output_path_in_new_directory(sample_xml, tmp_path):
    out = tmp_path / "ut" / "resultat.csv"
    conv = VoucherConverter(sample_xml, out, csv_export=True)
    assert conv.output_path == out
    conv.process_file()
    assert out.exists()
    assert sorted(p.name for p in out.parent.iterdir()) == ["resultat.csv"]


def test_progress_milestones(sample_xml):
    msgs = []
    VoucherConverter(sample_xml, progress=msgs.append).process_file()
    assert msgs == [
        "Starting: bilag.xml",
        "Analyzing XML structure...",
        "Creating Excel workbook...",
        "Writing data rows...",
        "Finalizing Excel file...",
        "Completed: 1 rows converted, 1 rejected",
    ]


def test_progress_every_500_rows(tmp_path):
    p = tmp_path / "big.xml"
    p.write_text(_big_xml(1000), encoding="utf-8")
    msgs = []
    conv = VoucherConverter(p, csv_export=True)
    conv.set_progress_listener(msgs.append)
    result = conv.process_file()
    assert result.accepted == 1000
    assert "Converted ~500 rows..." in msgs
    assert "Converted ~1000 rows..." in msgs
    assert msgs[-1] == "Completed: 1000 rows converted successfully"


def test_failing_progress_listener_does_not_abort(sample_xml):
    def boom(msg):
        raise RuntimeError("listener broke")

    result = VoucherConverter(sample_xml, progress=boom).process_file()
    assert result.output_path.exists()


def test_cancel_before_start(sample_xml):
    msgs = []
    conv = VoucherConverter(sample_xml, progress=msgs.append)
    conv.cancel()
    conv.cancel()  # idempotent
    with pytest.raises(ConversionCancelled):
        conv.process_file()
    assert conv.state is ConversionState.CANCELLED
    assert conv.is_cancelled
    # kun én avbruddsmelding når skanningen stoppes
    assert msgs == ["Starting: bilag.xml", "Analyzing XML structure...", "Cancelled during scan"]
    assert sorted(p.name for p in sample_xml.parent.iterdir()) == ["bilag.xml"]


@pytest.mark.parametrize("csv_export", [False, True])
def test_cancel_mid_write_leaves_destination_untouched(tmp_path, csv_export):
    p = tmp_path / "big.xml"
    p.write_text(_big_xml(50), encoding="utf-8")
    dest = tmp_path / ("old.csv" if csv_export else "old.xlsx")
    dest.write_bytes(b"previous run")

    conv = VoucherConverter(p, dest, csv_export=csv_export, settings=Settings(progress_rows=10))
    msgs = []

    def listener(msg):
        msgs.append(msg)
        if msg == "Converted ~10 rows...":
            conv.cancel()

    conv.set_progress_listener(listener)
    with pytest.raises(ConversionCancelled):
        conv.process_file()

    assert dest.read_bytes() == b"previous run"
    assert not conv.tmp_path.exists()
    assert "Converted ~20 rows..." not in msgs
    assert msgs[-1] == "Operation cancelled"


def test_structural_failure(tmp_path):
    p = tmp_path / "bad.xml"
    p.write_text("<R><GL_VOUCHER><TRANSACTIONS>", encoding="utf-8")
    dest = tmp_path / "bad_out.xlsx"
    dest.write_bytes(b"keep")
    conv = VoucherConverter(p)
    with pytest.raises(StructuralParseError):
        conv.process_file()
    assert conv.state is ConversionState.FAILED
    assert dest.read_bytes() == b"keep"
    assert not conv.tmp_path.exists()


def test_full_sheet_aborts_and_keeps_destination(tmp_path, monkeypatch):
    real_open = excel_writer.ExcelWriter._open

    def open_at_last_row(self):
        real_open(self)
        self._data_row = 1048575  # siste rad arket har plass til

    monkeypatch.setattr(excel_writer.ExcelWriter, "_open", open_at_last_row)
    p = tmp_path / "big.xml"
    p.write_text(_big_xml(3), encoding="utf-8")
    dest = tmp_path / "old.xlsx"
    dest.write_bytes(b"previous run")

    conv = VoucherConverter(p, dest)
    with pytest.raises(ConversionIOError):
        conv.process_file()
    assert conv.state is ConversionState.FAILED
    assert dest.read_bytes() == b"previous run"
    assert not conv.tmp_path.exists()


def test_commit_failure_removes_tmp(sample_xml, tmp_path):
    # målstien er en mappe som ikke kan erstattes av en fil
    dest = tmp_path / "taken.csv"
    dest.mkdir()
    (dest / "inside.txt").write_text("x")
    conv = VoucherConverter(sample_xml, dest, csv_export=True)
    with pytest.raises(CommitError):
        conv.process_file()
    assert dest.is_dir()
    assert not conv.tmp_path.exists()
    assert conv.state is ConversionState.FAILED


def test_no_data_writes_nothing(tmp_path):
    p = tmp_path / "empty.xml"
    p.write_text("<R><GL_VOUCHER><BRANCH>1</BRANCH></GL_VOUCHER></R>", encoding="utf-8")
    msgs = []
    result = VoucherConverter(p, progress=msgs.append).process_file()
    assert result.written is False
    assert result.total == 0
    assert "No data found in XML" in msgs
    assert not result.output_path.exists()


def test_runs_are_repeatable(sample_xml):
    first = VoucherConverter(sample_xml).process_file()
    second = VoucherConverter(sample_xml).process_file()
    assert (first.accepted, first.rejected, first.fields) == (second.accepted, second.rejected, second.fields)


def test_instance_is_single_use(sample_xml):
    conv = VoucherConverter(sample_xml, csv_export=True)
    conv.process_file()
    with pytest.raises(RuntimeError):
        conv.process_file()


def test_every_row_is_classified_once(tmp_path):
    xml = """<R>
      <GL_VOUCHER><TRANSACTIONS>
        <TRANSACTION><ACCOUNT>1</ACCOUNT><DATE>2024/01/01</DATE></TRANSACTION>
        <TRANSACTION><ACCOUNT> </ACCOUNT><NOTE/></TRANSACTION>
        <TRANSACTION><ACCOUNT>2</ACCOUNT><AMOUNT>--5</AMOUNT></TRANSACTION>
        <TRANSACTION><ACCOUNT>3</ACCOUNT><AMOUNT>N/A</AMOUNT></TRANSACTION>
      </TRANSACTIONS></GL_VOUCHER>
    </R>"""
    p = tmp_path / "mix.xml"
    p.write_text(xml, encoding="utf-8")
    result = VoucherConverter(p, csv_export=True).process_file()
    assert result.total == 4
    assert result.accepted == 1
    assert [r.reason for r in result.rejected_rows] == [
        "Invalid date format in field: DATE (value: 2024/01/01)",
        "Empty row - no data found",
        "Invalid number format in field: AMOUNT (value: --5)",
    ]
    lines = result.output_path.read_text(encoding="utf-8").splitlines()
    assert lines == ["ACCOUNT,DATE,NOTE,AMOUNT", "3,,,N/A"]
