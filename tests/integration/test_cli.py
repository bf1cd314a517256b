"""Tests for the ``python -m schoolsync`` command line.

get_engine and get_settings are imported lazily inside the command
functions, so they are patched at their source modules.
"""
import importlib
import json
from unittest.mock import MagicMock, patch

import pytest
from sqlmodel import Session, select

from schoolsync.__main__ import build_parser, main
from schoolsync.models.stats import SchoolStats
from schoolsync.models.sync import AuditRecord, SyncLog


@pytest.fixture
def settings():
    mock_settings = MagicMock()
    mock_settings.default_acting_user = "system"
    mock_settings.persist_audit = True
    return mock_settings


@pytest.fixture
def patched(engine, settings):
    with patch("schoolsync.db.engine.get_engine", return_value=engine), \
         patch("schoolsync.config.get_settings", return_value=settings):
        yield


def write_snapshot(tmp_path, payload) -> str:
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(payload))
    return str(path)


class TestParser:
    def test_sync_arguments(self):
        args = build_parser().parse_args(["sync", "snap.json", "--user", "admin", "--dry-run"])
        assert args.command == "sync"
        assert args.user == "admin"
        assert args.dry_run is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestSyncCommand:
    def test_applies_snapshot_and_records_run(self, patched, engine, tmp_path, capsys):
        path = write_snapshot(tmp_path, {"totalStudents": 120, "totalClasses": 6})

        code = main(["sync", path, "--user", "admin"])

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["success"] is True
        assert output["updated_tables"] == ["school_stats", "students", "classes"]

        with Session(engine) as s:
            assert s.get(SchoolStats, 1).total_students == 120
            log = s.exec(select(SyncLog)).one()
            assert log.acting_user == "admin"
            assert log.status == "success"
            assert len(s.exec(select(AuditRecord)).all()) == 3

    def test_default_acting_user(self, patched, engine, tmp_path):
        path = write_snapshot(tmp_path, {"totalBooks": 10})
        main(["sync", path])
        with Session(engine) as s:
            assert s.exec(select(SyncLog)).one().acting_user == "system"

    def test_invalid_snapshot_exits_nonzero(self, patched, tmp_path, capsys):
        path = write_snapshot(tmp_path, {"totalFees": -500})

        code = main(["sync", path])

        assert code == 1
        output = json.loads(capsys.readouterr().out)
        assert output["errors"] == ["Validation failed: Total fees cannot be negative"]

    def test_audit_persistence_can_be_disabled(self, patched, engine, settings, tmp_path):
        settings.persist_audit = False
        path = write_snapshot(tmp_path, {"totalBooks": 10})
        main(["sync", path])
        with Session(engine) as s:
            assert s.exec(select(SyncLog)).all() == []

    def test_missing_file(self, patched, tmp_path):
        assert main(["sync", str(tmp_path / "nope.json")]) == 2

    def test_dry_run_prints_plan_without_writing(self, patched, engine, tmp_path, capsys):
        path = write_snapshot(tmp_path, {"totalStudents": 120})

        code = main(["sync", path, "--dry-run"])

        assert code == 0
        plan = json.loads(capsys.readouterr().out)
        assert [step["table"] for step in plan] == ["school_stats", "students"]
        with Session(engine) as s:
            assert s.get(SchoolStats, 1) is None

    def test_dry_run_invalid_snapshot(self, patched, tmp_path):
        path = write_snapshot(tmp_path, {"attendanceRate": 150})
        assert main(["sync", path, "--dry-run"]) == 1


class TestStatusAndCurrent:
    def test_status_never_run(self, patched, capsys):
        assert main(["status"]) == 0
        assert json.loads(capsys.readouterr().out) == {"status": "never_run"}

    def test_status_after_sync(self, patched, tmp_path, capsys):
        main(["sync", write_snapshot(tmp_path, {"totalBooks": 10})])
        capsys.readouterr()

        main(["status"])
        output = json.loads(capsys.readouterr().out)
        assert output["status"] == "success"
        assert output["records_updated"] == 2

    def test_current(self, patched, seeded_stats, capsys):
        assert main(["current"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert output["students"] == {"total_count": 100}


class TestNonFiniteSnapshot:
    def test_nan_literal_rejected(self, patched, engine, tmp_path, capsys):
        path = tmp_path / "snapshot.json"
        path.write_text('{"totalFees": 100, "feesCollectionRate": NaN}')

        code = main(["sync", str(path)])

        assert code == 1
        output = json.loads(capsys.readouterr().out)
        assert output["updated_tables"] == []
        assert output["errors"][0].startswith("Validation failed: feesCollectionRate")
        with Session(engine) as s:
            assert s.get(SchoolStats, 1) is None


def test_module_import_configures_logging():
    """The console script calls main() directly, so logging is set up at import."""
    import schoolsync.__main__ as cli

    with patch("logging.basicConfig") as basic_config:
        importlib.reload(cli)
    basic_config.assert_called_once()
