from __future__ import annotations

from datetime import date
from pathlib import Path

from health_optimizer.services import build_analysis_report
from health_optimizer.storage import JsonRecordStore


def test_generate_demo_data_writes_a_valid_store(tmp_path: Path) -> None:
    import scripts.generate_demo_data as demo

    target = tmp_path / "demo.json"
    demo.main(["--days", "60", "--start-date", "2024-01-01", "--seed", "7", "--json", str(target)])

    snapshot = JsonRecordStore(target).snapshot()
    snapshot.validate()
    assert len(snapshot.daily_metrics) == 60
    assert len(snapshot.sessions) == 30
    assert snapshot.blood_pressure
    assert snapshot.measurements[0].date == date(2024, 1, 1)

    report = build_analysis_report(snapshot, as_of=date(2024, 2, 29))
    assert report.weekly


def test_generate_demo_data_is_reproducible(tmp_path: Path) -> None:
    import scripts.generate_demo_data as demo

    first = tmp_path / "first.json"
    second = tmp_path / "second.json"
    demo.main(["--days", "14", "--start-date", "2024-03-01", "--json", str(first)])
    demo.main(["--days", "14", "--start-date", "2024-03-01", "--json", str(second)])

    assert JsonRecordStore(first).snapshot() == JsonRecordStore(second).snapshot()
