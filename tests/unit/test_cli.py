"""Unit tests for the acpiview command line."""

from __future__ import annotations

import json
import struct

import pytest
from click.testing import CliRunner

from acpiview.cli.main import cli
from acpiview.config import ENV_ARCH, ENV_CONSISTENCY


def _table(signature: bytes, body: bytes, revision: int = 2) -> bytes:
    header = struct.pack(
        "<4sIBB6s8sI4sI",
        signature, 36 + len(body), revision, 0, b"ARMLTD", b"ARMVEXPR", 1, b"ARM ", 1,
    )
    return header + body


def _cache(associativity: int = 8) -> bytes:
    return struct.pack("<BBHIIIIBBH", 1, 24, 0, 0x7F, 0, 0x8000, 256, associativity, 0x0A, 64)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(ENV_ARCH, raising=False)
    monkeypatch.delenv(ENV_CONSISTENCY, raising=False)


@pytest.fixture
def pptt_file(tmp_path):
    path = tmp_path / "PPTT.aml"
    path.write_bytes(_table(b"PPTT", _cache()))
    return path


class TestParseCommand:
    def test_valid_table_exits_zero(self, runner, pptt_file):
        result = runner.invoke(cli, ["parse", "--arch", "aarch64", str(pptt_file)], obj={})
        assert result.exit_code == 0
        assert "Table Statistics (PPTT): 0 Error(s), 0 Warning(s)" in result.output
        assert "Cache [0]" in result.output
        assert "Table Breakdown:" in result.output

    def test_errors_exit_one(self, runner, tmp_path):
        path = tmp_path / "bad.aml"
        path.write_bytes(_table(b"PPTT", _cache(associativity=0)))
        result = runner.invoke(cli, ["parse", str(path)], obj={})
        assert result.exit_code == 1
        assert "ERROR: Cache associativity must be greater than 0" in result.output
        assert "Table Statistics (PPTT): 1 Error(s), 0 Warning(s)" in result.output

    def test_no_consistency_suppresses_validation(self, runner, tmp_path):
        path = tmp_path / "bad.aml"
        path.write_bytes(_table(b"PPTT", _cache(associativity=0)))
        result = runner.invoke(cli, ["parse", "--no-consistency", str(path)], obj={})
        assert result.exit_code == 0
        assert "Table Breakdown:" not in result.output

    def test_unsupported_table_skipped(self, runner, tmp_path, pptt_file):
        path = tmp_path / "FACP.aml"
        path.write_bytes(_table(b"FACP", bytes(8)))
        result = runner.invoke(cli, ["parse", str(path), str(pptt_file)], obj={})
        assert result.exit_code == 0
        assert "No parser available for table 'FACP'" in result.output
        assert "Table Statistics (FACP)" not in result.output
        assert "Table Statistics (PPTT)" in result.output

    def test_short_file_skipped(self, runner, tmp_path):
        path = tmp_path / "short.aml"
        path.write_bytes(b"APIC")
        result = runner.invoke(cli, ["parse", "--no-consistency", str(path)], obj={})
        assert result.exit_code == 0
        assert "too short for a table header" in result.output

    def test_missing_file_rejected(self, runner, tmp_path):
        result = runner.invoke(cli, ["parse", str(tmp_path / "nope.aml")], obj={})
        assert result.exit_code == 2

    def test_json_output(self, runner, pptt_file):
        result = runner.invoke(
            cli, ["--json-output", "parse", "--arch", "arm", str(pptt_file)], obj={}
        )
        assert result.exit_code == 0
        reports = json.loads(result.stdout)
        assert len(reports) == 1
        report = reports[0]
        assert report["path"] == str(pptt_file)
        assert report["signature"] == "PPTT"
        assert report["state"] == "done"
        assert report["errors"] == 0
        assert {s["name"]: s["count"] for s in report["structures"]}["Cache"] == 1

    def test_arch_from_environment(self, runner, tmp_path, monkeypatch):
        path = tmp_path / "line.aml"
        body = struct.pack("<BBHIIIIBBH", 1, 24, 0, 0, 0, 0, 1, 1, 0, 48)
        path.write_bytes(_table(b"PPTT", body))

        monkeypatch.setenv(ENV_ARCH, "x64")
        assert runner.invoke(cli, ["parse", str(path)], obj={}).exit_code == 0

        monkeypatch.setenv(ENV_ARCH, "aarch64")
        result = runner.invoke(cli, ["parse", str(path)], obj={})
        assert result.exit_code == 1
        assert "The cache line size is not a power of 2." in result.output


    def test_invalid_arch_environment_is_usage_error(self, runner, pptt_file, monkeypatch):
        monkeypatch.setenv(ENV_ARCH, "sparc")
        result = runner.invoke(cli, ["parse", str(pptt_file)], obj={})
        assert result.exit_code == 2
        assert "Invalid ACPIVIEW_ARCH setting" in result.output
        assert "aarch64" in result.output
        assert not isinstance(result.exception, ValueError)

    def test_truncated_file_reports_length_error(self, runner, tmp_path):
        path = tmp_path / "cut.aml"
        path.write_bytes(_table(b"PPTT", _cache())[:50])
        result = runner.invoke(cli, ["parse", str(path)], obj={})
        assert result.exit_code == 1
        assert "exceeds the buffer length 50" in result.output


class TestHeaderCommand:
    def test_traces_header(self, runner, pptt_file):
        result = runner.invoke(cli, ["header", str(pptt_file)], obj={})
        assert result.exit_code == 0
        assert "ACPI Table Header" in result.output
        assert ": PPTT" in result.output
        assert "Cache" not in result.output
