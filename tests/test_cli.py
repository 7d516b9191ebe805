"""
Command-line entry point tests — exit codes and fixture loading.
"""
import json

import pytest

from conftest import make_settings
from expense_lane.cli import build_parser, main


@pytest.fixture()
def receipt_file(tmp_path):
    path = tmp_path / "receipt.json"
    path.write_text(
        json.dumps({"orderId": "ORD-2024-001", "amount": 150.0, "payer": "John Doe"}),
        encoding="utf-8",
    )
    return path


class TestParser:
    def test_flags(self):
        args = build_parser().parse_args(["-s", "C1", "-m", "r.json", "-d", "-v"])
        assert args.source_channel == "C1"
        assert args.receipt_file == "r.json"
        assert args.dry_run is True
        assert args.verbose is True

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.source_channel is None
        assert args.dry_run is False


class TestMain:
    def test_fixture_dry_run(self, receipt_file):
        assert main(["--receipt-file", str(receipt_file), "--dry-run"], settings=make_settings()) == 0

    def test_fixture_full_run(self, receipt_file):
        assert main(["-m", str(receipt_file)], settings=make_settings()) == 0

    def test_channel_scan(self):
        assert main(["--source-channel", "C1"], settings=make_settings()) == 0

    def test_no_channel_fails(self):
        assert main([], settings=make_settings()) == 1

    def test_invalid_fixture(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"orderId": "X", "amount": 0, "payer": "Y"}), encoding="utf-8")
        assert main(["-m", str(path)], settings=make_settings()) == 1

    def test_missing_fixture(self, tmp_path):
        assert main(["-m", str(tmp_path / "nope.json")], settings=make_settings()) == 1

    def test_shipped_fixture(self):
        from pathlib import Path

        fixture = Path(__file__).resolve().parent.parent / "fixtures" / "receipt.json"
        assert main(["-m", str(fixture), "-d"], settings=make_settings()) == 0
