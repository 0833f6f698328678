"""Result aggregation for conformance runs.

Every verifier, runner and engine reports into one :class:`ResultAggregator`
through :meth:`ResultAggregator.record`.  Failures are data, not exceptions:
the run continues past them and the overall verdict is decided once at the
end (every named check must pass).
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from core.errors import ErrorType
from core.utils import safe_json_write

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Outcome of one named check.

    Attributes:
        name: Unique, human-readable check name.
        passed: Whether the assertion held.
        detail: Observed value or failure reason.
        error_type: Failure class; ``None`` for passing checks.
        timestamp: Unix time the result was recorded.
    """

    name: str
    passed: bool
    detail: str = ""
    error_type: Optional[ErrorType] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["error_type"] = (
            self.error_type.value if self.error_type else None
        )
        return data


class ResultAggregator:
    """Collects named check outcomes in the order they were produced."""

    def __init__(self) -> None:
        self.results: List[CheckResult] = []

    def record(
        self,
        name: str,
        passed: bool,
        detail: str = "",
        error_type: Optional[ErrorType] = None,
    ) -> CheckResult:
        """Store one outcome and log it.

        Args:
            name: Check name.
            passed: Assertion outcome.
            detail: Observed value or failure reason.
            error_type: Failure class, ignored when *passed*.

        Returns:
            The stored :class:`CheckResult`.
        """
        result = CheckResult(
            name=name,
            passed=bool(passed),
            detail=detail,
            error_type=None if passed else error_type,
        )
        self.results.append(result)
        if result.passed:
            logger.info("PASS %s", name)
        else:
            logger.warning(
                "FAIL %s%s", name, f" ({detail})" if detail else "",
            )
        return result

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def pass_rate(self) -> float:
        """Share of passing checks in percent (0.0 for an empty run)."""
        if not self.results:
            return 0.0
        return self.passed / self.total * 100

    @property
    def all_passed(self) -> bool:
        """Overall verdict: at least one check ran and all of them passed."""
        return bool(self.results) and self.failed == 0

    def failures(self) -> List[CheckResult]:
        return [r for r in self.results if not r.passed]

    def failures_by_type(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for result in self.failures():
            key = result.error_type.value if result.error_type else "unknown"
            counts[key] = counts.get(key, 0) + 1
        return counts

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def build_summary_panel(self) -> Panel:
        rate_color = "green" if self.all_passed else "red"
        content = (
            f"[cyan]Checks:[/cyan]    [white]{self.total}[/white]\n"
            f"[cyan]Passed:[/cyan]    [green]{self.passed}[/green]\n"
            f"[cyan]Failed:[/cyan]    [red]{self.failed}[/red]\n"
            f"[cyan]Pass rate:[/cyan] "
            f"[{rate_color}]{self.pass_rate:.1f}%[/{rate_color}]"
        )
        return Panel(
            content,
            title="[bold]Conformance Summary[/bold]",
            border_style="blue",
            box=box.ROUNDED,
        )

    def build_failure_table(self) -> Table:
        """Table of failed checks with their class and detail."""
        table = Table(
            title="Failed Checks",
            box=box.ROUNDED,
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Check", style="cyan")
        table.add_column("Type", style="yellow", no_wrap=True)
        table.add_column("Detail", style="white")

        for result in self.failures():
            table.add_row(
                result.name,
                result.error_type.value if result.error_type else "-",
                result.detail or "-",
            )
        return table

    def display(self, console: Optional[Console] = None) -> None:
        console = console or Console()
        console.print(self.build_summary_panel())
        if self.failed:
            console.print(self.build_failure_table())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "pass_rate": round(self.pass_rate, 2),
            "all_passed": self.all_passed,
            "failures_by_type": self.failures_by_type(),
            "results": [r.to_dict() for r in self.results],
        }

    def export(self, filepath: str) -> bool:
        """Write every result to *filepath* as JSON."""
        ok = safe_json_write(filepath, self.to_dict())
        if ok:
            logger.info("Results written to %s", filepath)
        return ok
