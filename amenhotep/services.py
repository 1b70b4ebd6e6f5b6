from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from amenhotep.executors import ExecutionReport
from amenhotep.models import ContractSchema, GenerationPlan


@dataclass
class PlanReportService:
    templates: tuple[str, ...]

    def build_summary(
        self,
        schemas: list[ContractSchema],
        plan: GenerationPlan,
        report: Optional[ExecutionReport] = None,
    ) -> dict[str, Any]:
        template_counts: dict[str, int] = {}
        contract_counts: dict[str, int] = {}
        for entry in plan.entries:
            template_counts[entry.template] = template_counts.get(entry.template, 0) + 1
            contract_counts[entry.contract] = contract_counts.get(entry.contract, 0) + 1

        unknown_types = sorted(
            {
                f"{schema.name}.{event.name}.{f.name}: {f.type.name}"
                for schema in schemas
                for event in schema.events
                for f in event.fields
                if f.type.is_unknown
            }
        )

        summary: dict[str, Any] = {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "output_root": str(plan.output_root),
            "templates": list(self.templates),
            "contracts": [
                {
                    "name": schema.name,
                    "source": schema.source_path,
                    "events": [event.name for event in schema.events],
                    "entrypoints": [entry.name for entry in schema.entrypoints],
                }
                for schema in schemas
            ],
            "total": len(plan.entries),
            "status_counts": plan.status_counts(),
            "template_counts": template_counts,
            "contract_counts": contract_counts,
            "has_changes": plan.has_changes,
            "unknown_field_types": unknown_types,
            "entries": [{"path": e.path, "status": e.status.value, "template": e.template} for e in plan.entries],
        }
        if report is not None:
            summary["execution"] = {
                "mode": report.mode,
                "written": list(report.written),
                "unchanged": list(report.unchanged),
                "failed": [{"path": f.path, "error": str(f.cause)} for f in report.failures],
                "exit_code": report.exit_code,
            }
        return summary


def validate_ordered_results(results: list[dict[str, Any]]) -> None:
    expected = list(range(len(results)))
    actual = [int(item.get("index", -1)) for item in results]
    if actual != expected:
        raise RuntimeError(f"extraction ordering mismatch: expected {expected} got {actual}")
