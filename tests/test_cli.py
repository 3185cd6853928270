from __future__ import annotations

import json

import pytest

from dose_engine.cli import _build_parser, main


def _write_snapshot(tmp_path) -> str:
    path = tmp_path / "snapshot.json"
    path.write_text(
        json.dumps(
            {
                "user_dose_schedules": [
                    {
                        "id": "a",
                        "peptide": "BPC-157",
                        "frequency": "weekly",
                        "daysOfWeek": [1, 3, 5],
                        "time": "09:00",
                        "enabled": True,
                    },
                    {"id": "b", "peptide": "Tirzepatide", "daysOfWeek": [2], "time": "08:00"},
                ],
                "user_peptides": [{"id": "c1", "name": "BPC-157"}],
                "user_dose_history": [{"date": "2026-02-02T09:00:00Z", "peptide": "BPC-157"}],
            }
        )
    )
    return str(path)


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args([])


def test_parser_rejects_bad_dates() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args(["--today", "02/04/2026", "stats"])


def test_reconcile_command_prints_kept_schedules(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("DOSE_TIMEZONE", "UTC")
    monkeypatch.setenv("DOSE_LOG_FORMAT", "text")

    with pytest.raises(SystemExit) as excinfo:
        main(["--snapshot", _write_snapshot(tmp_path), "reconcile"])

    assert excinfo.value.code == 0
    output = json.loads(capsys.readouterr().out)
    assert [row["id"] for row in output["kept"]] == ["a"]


def test_day_command_classifies_snapshot(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("DOSE_TIMEZONE", "UTC")
    monkeypatch.setenv("DOSE_LOG_FORMAT", "text")

    with pytest.raises(SystemExit):
        main(
            [
                "--snapshot",
                _write_snapshot(tmp_path),
                "--today",
                "2026-02-04",
                "day",
                "--date",
                "2026-02-02",
            ]
        )

    output = json.loads(capsys.readouterr().out)
    assert output["date"] == "2026-02-02"
    assert [row["status"] for row in output["occurrences"]] == ["completed"]
