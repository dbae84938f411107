"""
FlowCast - Command-Line Tests.

End-to-end tests for the main entry point: settings initialisation,
the projection pipeline and its error exits.
"""

import json
import tempfile
from pathlib import Path

from main import main
from flowcast.audit import AuditLogger
from flowcast.schema import Scenario


class TestMainCli:
    """Tests for the command-line pipeline."""

    def setup_method(self) -> None:
        """Create a scratch directory for each test."""
        self._tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self._tmpdir.name)
        self.settings_path = self.root / "household.json"
        self.output_dir = self.root / "reports"

    def teardown_method(self) -> None:
        """Remove the scratch directory."""
        self._tmpdir.cleanup()

    def test_init_writes_defaults(self) -> None:
        """Verify --init writes a loadable default settings file."""
        assert main([str(self.settings_path), "--init"]) == 0

        data = json.loads(self.settings_path.read_text(encoding="utf-8"))
        assert data["monthly_income"] == "3000.00"
        assert data["horizon_months"] == 12

    def test_init_refuses_to_overwrite(self) -> None:
        """Verify --init never replaces an existing file."""
        self.settings_path.write_text("{}", encoding="utf-8")

        assert main([str(self.settings_path), "--init"]) == 1
        assert self.settings_path.read_text(encoding="utf-8") == "{}"

    def test_full_pipeline(self) -> None:
        """Verify a run writes an audit log and an Excel report."""
        main([str(self.settings_path), "--init"])

        exit_code = main([
            str(self.settings_path),
            "--months", "3",
            "--start-month", "2025-01",
            "--output-dir", str(self.output_dir),
        ])

        assert exit_code == 0
        audits = list(self.output_dir.glob("projection_audit_*.json"))
        reports = list(self.output_dir.glob("projection_report_*.xlsx"))
        assert len(audits) == 1
        assert len(reports) == 1

        run = AuditLogger().load_from_file(audits[0])
        assert run.scenarios == list(Scenario)
        assert [m.month for m in run.projections[Scenario.BASE]] == [
            "2025-01", "2025-02", "2025-03"
        ]

    def test_single_scenario(self) -> None:
        """Verify --scenario limits the run to one scenario."""
        main([str(self.settings_path), "--init"])

        exit_code = main([
            str(self.settings_path),
            "--scenario", "worst",
            "--output-dir", str(self.output_dir),
        ])

        assert exit_code == 0
        audit = next(self.output_dir.glob("projection_audit_*.json"))
        assert AuditLogger().load_from_file(audit).scenarios == [Scenario.WORST]

    def test_missing_settings_file(self, capsys) -> None:
        """Verify a missing settings file exits with 1."""
        exit_code = main([str(self.settings_path), "--output-dir", str(self.output_dir)])

        assert exit_code == 1
        assert "File not found" in capsys.readouterr().out

    def test_invalid_settings_reported(self, capsys) -> None:
        """Verify validation errors are printed and nothing is written."""
        self.settings_path.write_text(json.dumps({
            "current_balance": "100",
            "monthly_income": "abc",
            "monthly_fixed_expenses": "10",
            "monthly_variable_expenses": "100,00",
        }), encoding="utf-8")

        exit_code = main([str(self.settings_path), "--output-dir", str(self.output_dir)])

        out = capsys.readouterr().out
        assert exit_code == 1
        assert "VALIDATION ERRORS (2 errors)" in out
        assert "'monthly_income'" in out
        assert not self.output_dir.exists()

    def test_invalid_horizon_override(self, capsys) -> None:
        """Verify a zero --months override is rejected."""
        main([str(self.settings_path), "--init"])

        exit_code = main([
            str(self.settings_path),
            "--months", "0",
            "--output-dir", str(self.output_dir),
        ])

        assert exit_code == 1
        assert "horizon_months" in capsys.readouterr().out

    def test_invalid_start_month(self, capsys) -> None:
        """Verify a malformed --start-month is rejected."""
        main([str(self.settings_path), "--init"])

        exit_code = main([
            str(self.settings_path),
            "--start-month", "January",
            "--output-dir", str(self.output_dir),
        ])

        assert exit_code == 1
        assert "YYYY-MM" in capsys.readouterr().out
