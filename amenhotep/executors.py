from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Protocol

from amenhotep.errors import WriteError
from amenhotep.io_atomic import atomic_write_bytes
from amenhotep.models import GenerationPlan, GenerationPlanEntry, PlanStatus

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_WRITE_FAILED = 2
EXIT_PENDING_CHANGES = 3


@dataclass
class ExecutionReport:
    mode: str
    lines: List[str] = field(default_factory=list)
    written: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    failures: List[WriteError] = field(default_factory=list)
    has_changes: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def exit_code(self) -> int:
        if self.failures:
            return EXIT_WRITE_FAILED
        if self.mode == DryRunExecutor.name and self.has_changes:
            return EXIT_PENDING_CHANGES
        return EXIT_OK

    def render(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)


class PlanExecutor(Protocol):
    name: str

    def execute(self, plan: GenerationPlan) -> ExecutionReport:
        ...


def format_entry(entry: GenerationPlanEntry) -> str:
    return f"{entry.status.value} {entry.path}"


class DryRunExecutor:
    """Reports the plan; never touches the filesystem."""

    name = "dry-run"

    def execute(self, plan: GenerationPlan) -> ExecutionReport:
        entries = sorted(plan.entries, key=lambda entry: entry.path)
        return ExecutionReport(
            mode=self.name,
            lines=[format_entry(entry) for entry in entries],
            has_changes=plan.has_changes,
        )


class ApplyExecutor:
    """Writes every entry, best effort.

    A failing entry is recorded as a WriteError and the remaining entries are
    still attempted. Entries whose content is already on disk are skipped.
    """

    name = "apply"

    def execute(self, plan: GenerationPlan) -> ExecutionReport:
        report = ExecutionReport(mode=self.name, has_changes=plan.has_changes)
        for entry in sorted(plan.entries, key=lambda e: e.path):
            if entry.status is PlanStatus.OVERWRITE_IDENTICAL:
                report.unchanged.append(entry.path)
                report.lines.append(format_entry(entry))
                continue

            target = plan.output_root / entry.path
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                logger.error("cannot create directory %s: %s", target.parent, exc)
                report.failures.append(WriteError(entry.path, exc))
                report.lines.append(f"FAILED {entry.path}: {exc}")
                continue

            try:
                atomic_write_bytes(target, entry.content)
            except OSError as exc:
                logger.error("cannot write %s: %s", target, exc)
                report.failures.append(WriteError(entry.path, exc))
                report.lines.append(f"FAILED {entry.path}: {exc}")
                continue

            report.written.append(entry.path)
            report.lines.append(format_entry(entry))

        logger.info(
            "applied plan under %s: %d written, %d unchanged, %d failed",
            plan.output_root,
            len(report.written),
            len(report.unchanged),
            len(report.failures),
        )
        return report
