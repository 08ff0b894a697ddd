"""
tests/test_cli.py

Command-line validation, exit codes and written artifacts. The network
client is replaced with an in-memory one.
"""

from __future__ import annotations

import json

import pytest

from fakes import FakeClient
from trustaudit import cli

BASE = "https://clinic.example/"


@pytest.fixture(autouse=True)
def no_api_keys(monkeypatch) -> None:
    monkeypatch.delenv("PAGESPEED_API_KEY", raising=False)
    monkeypatch.delenv("TRUSTAUDIT_CONCURRENCY", raising=False)


@pytest.fixture()
def public_host(monkeypatch) -> None:
    monkeypatch.setattr(cli, "is_public_target", lambda url: True)


class TestValidation:
    @pytest.mark.parametrize(
        ("argv", "message"),
        [
            ([BASE, "--max-pages", "0"], "Error: --max-pages must be >= 1"),
            ([BASE, "--timeout", "0"], "Error: --timeout must be >= 1"),
            ([BASE, "--concurrency", "0"], "Error: --concurrency must be >= 1"),
            ([BASE, "--deadline", "0"], "Error: --deadline must be > 0"),
            (["ftp://clinic.example/"], "Error: Unsupported URL scheme: ftp"),
        ],
    )
    def test_invalid_arguments(self, argv, message, capsys) -> None:
        assert cli.main(argv) == 2
        assert message in capsys.readouterr().out

    def test_private_host_rejected(self, monkeypatch, capsys) -> None:
        monkeypatch.setattr(cli, "is_public_target", lambda url: False)
        assert cli.main(["http://127.0.0.1/"]) == 2
        assert "non-public or invalid host" in capsys.readouterr().out


class TestRun:
    def test_total_failure_exits_1(self, public_host, monkeypatch, tmp_path, capsys) -> None:
        monkeypatch.setattr(cli, "RequestsClient", lambda: FakeClient())
        assert cli.main([BASE, "--output-dir", str(tmp_path)]) == 1
        assert "no pages analyzable" in capsys.readouterr().out
        assert not (tmp_path / "REPORT.md").exists()

    def test_success_writes_reports(self, public_host, monkeypatch, tmp_path, capsys, home_html) -> None:
        monkeypatch.setattr(cli, "RequestsClient", lambda: FakeClient(pages={BASE: home_html}))
        history_file = tmp_path / "history.json"
        argv = [
            "clinic.example",
            "--output-dir",
            str(tmp_path / "out"),
            "--history-file",
            str(history_file),
            "--concurrency",
            "2",
        ]
        assert cli.main(argv) == 0
        out = capsys.readouterr().out
        assert "Audit target: https://clinic.example/" in out
        assert "Trend: first audit for this domain" in out
        assert (tmp_path / "out" / "REPORT.md").exists()
        summary = json.loads((tmp_path / "out" / "SUMMARY.json").read_text(encoding="utf-8"))
        assert summary["pages_succeeded"] == 1
        history = json.loads(history_file.read_text(encoding="utf-8"))
        assert list(history) == ["clinic.example"]

        assert cli.main(argv) == 0
        assert "Trend: +0 since" in capsys.readouterr().out

    def test_trust_only_audit(self, public_host, monkeypatch, tmp_path, home_html) -> None:
        client = FakeClient(pages={BASE: home_html})
        monkeypatch.setattr(cli, "RequestsClient", lambda: client)
        assert cli.main([BASE, "--audit", "trust", "--output-dir", str(tmp_path)]) == 0
        summary = json.loads((tmp_path / "SUMMARY.json").read_text(encoding="utf-8"))
        assert "metadata" not in summary["categories"]
        assert client.urls("HEAD") == []

    def test_corrupt_history_still_writes_reports(self, public_host, monkeypatch, tmp_path, home_html) -> None:
        monkeypatch.setattr(cli, "RequestsClient", lambda: FakeClient(pages={BASE: home_html}))
        history_file = tmp_path / "history.json"
        history_file.write_text("{not json", encoding="utf-8")
        argv = [BASE, "--output-dir", str(tmp_path / "out"), "--history-file", str(history_file)]
        assert cli.main(argv) == 0
        report = (tmp_path / "out" / "REPORT.md").read_text(encoding="utf-8")
        assert "- Trend: no history available" in report
