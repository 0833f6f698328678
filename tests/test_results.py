import json
import os
import tempfile

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from core.errors import ErrorType
from core.results import CheckResult, ResultAggregator


class TestResultAggregator:
    """Test suite for ResultAggregator."""

    def test_empty_run_does_not_pass(self):
        aggregator = ResultAggregator()
        assert aggregator.total == 0
        assert aggregator.pass_rate == 0.0
        assert not aggregator.all_passed

    def test_counts(self):
        aggregator = ResultAggregator()
        aggregator.record("a", True)
        aggregator.record("b", False, "boom", ErrorType.STRUCTURAL)
        aggregator.record("c", True)
        assert aggregator.total == 3
        assert aggregator.passed == 2
        assert aggregator.failed == 1
        assert round(aggregator.pass_rate, 1) == 66.7
        assert not aggregator.all_passed

    def test_all_passed(self):
        aggregator = ResultAggregator()
        aggregator.record("a", True)
        assert aggregator.all_passed

    def test_passing_checks_carry_no_error_type(self):
        aggregator = ResultAggregator()
        result = aggregator.record("a", True, error_type=ErrorType.BEHAVIORAL)
        assert result.error_type is None

    def test_results_keep_order(self):
        aggregator = ResultAggregator()
        for name in ("third", "first", "second"):
            aggregator.record(name, True)
        assert [r.name for r in aggregator.results] == [
            "third", "first", "second",
        ]

    def test_failures_by_type(self):
        aggregator = ResultAggregator()
        aggregator.record("a", False, error_type=ErrorType.API_CONTRACT)
        aggregator.record("b", False, error_type=ErrorType.API_CONTRACT)
        aggregator.record("c", False)
        assert aggregator.failures_by_type() == {
            "api_contract": 2, "unknown": 1,
        }
        assert [r.name for r in aggregator.failures()] == ["a", "b", "c"]

    def test_record_logs_outcome(self, caplog):
        aggregator = ResultAggregator()
        with caplog.at_level("INFO", logger="core.results"):
            aggregator.record("good check", True)
            aggregator.record("bad check", False, "got 500")
        assert "PASS good check" in caplog.text
        assert "FAIL bad check (got 500)" in caplog.text


class TestReporting:
    def test_summary_panel(self):
        aggregator = ResultAggregator()
        aggregator.record("a", True)
        panel = aggregator.build_summary_panel()
        assert isinstance(panel, Panel)
        assert "Conformance Summary" in str(panel.title)

    def test_failure_table_lists_failures_only(self):
        aggregator = ResultAggregator()
        aggregator.record("a", True)
        aggregator.record("b", False, "missing", ErrorType.STRUCTURAL)
        table = aggregator.build_failure_table()
        assert isinstance(table, Table)
        assert table.row_count == 1

    def test_display_prints_failures(self):
        aggregator = ResultAggregator()
        aggregator.record("Button \"Home\" exists", False, "not found")
        console = Console(record=True, width=120)
        aggregator.display(console)
        output = console.export_text()
        assert "Conformance Summary" in output
        assert "Failed Checks" in output

    def test_to_dict(self):
        aggregator = ResultAggregator()
        aggregator.record("a", False, "x", ErrorType.CONNECTIVITY)
        data = aggregator.to_dict()
        assert data["failed"] == 1
        assert data["all_passed"] is False
        assert data["results"][0]["error_type"] == "connectivity"

    def test_export(self):
        aggregator = ResultAggregator()
        aggregator.record("a", True)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out", "results.json")
            assert aggregator.export(path)
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        assert data["total"] == 1
        assert data["results"][0]["name"] == "a"


class TestCheckResult:
    def test_to_dict_serialises_error_type(self):
        result = CheckResult("x", False, "d", ErrorType.SCENARIO)
        data = result.to_dict()
        assert data["error_type"] == "scenario"
        assert isinstance(data["timestamp"], float)
