import json
from datetime import datetime

from scripts import capacity_report


def test_report_stdout_is_pure_json(monkeypatch, capsys, session_factory, seed):
    therapist_id = seed.therapist()
    seed.session(therapist_id, datetime(2026, 3, 2, 9, 0), duration=120)
    monkeypatch.setattr(capacity_report, "SessionLocal", session_factory)
    monkeypatch.setattr(capacity_report, "create_schema", lambda: None)

    exit_code = capacity_report.main(["--date-from", "2026-03-01T00:00:00", "--date-to", "2026-03-31T23:59:00"])

    captured = capsys.readouterr()
    assert exit_code == 0
    report = json.loads(captured.out)
    assert report["summary"]["totalSessions"] == 1
    assert report["summary"]["maxUtilization"] == 25
    assert "logging_initialized" not in captured.out
    assert "logging_initialized" in captured.err
