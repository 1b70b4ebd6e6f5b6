from pathlib import Path

import pytest

from amenhotep.executors import ApplyExecutor
from amenhotep.models import (
    ContractSchema,
    EventDecl,
    Field,
    GenerationPlan,
    GenerationPlanEntry,
    PlanStatus,
    TypeKind,
    TypeRef,
)
from amenhotep.services import PlanReportService, validate_ordered_results


def test_validate_ordered_results_passes() -> None:
    validate_ordered_results([
        {"index": 0, "ok": True},
        {"index": 1, "ok": True},
    ])


def test_validate_ordered_results_rejects_out_of_order() -> None:
    with pytest.raises(RuntimeError, match="ordering mismatch"):
        validate_ordered_results([{"index": 1}, {"index": 0}])


def test_plan_report_service_summary_contains_counts(tmp_path: Path) -> None:
    schema = ContractSchema(
        name="Vault",
        events=(
            EventDecl(
                "Deposited",
                (
                    Field("amount", TypeRef(kind=TypeKind.INTEGER, name="u128", bits=128)),
                    Field("memo", TypeRef(kind=TypeKind.UNKNOWN, name="Option<felt252>")),
                ),
            ),
        ),
        entrypoints=(),
        source_path="vault.cairo",
    )
    plan = GenerationPlan(
        output_root=tmp_path,
        entries=[
            GenerationPlanEntry("vault/manifest.json", b"{}", PlanStatus.CREATE, "manifest", "Vault"),
            GenerationPlanEntry("vault/handlers/deposited.ts", b"", PlanStatus.OVERWRITE_DIFFERENT, "handler", "Vault"),
        ],
    )
    service = PlanReportService(("manifest", "config", "handler"))

    summary = service.build_summary([schema], plan)

    assert summary["total"] == 2
    assert summary["status_counts"]["CREATE"] == 1
    assert summary["status_counts"]["OVERWRITE_DIFFERENT"] == 1
    assert summary["template_counts"] == {"handler": 1, "manifest": 1}
    assert summary["contract_counts"]["Vault"] == 2
    assert summary["has_changes"] is True
    assert summary["unknown_field_types"] == ["Vault.Deposited.memo: Option<felt252>"]
    assert "execution" not in summary


def test_plan_report_includes_execution_details(tmp_path: Path) -> None:
    plan = GenerationPlan(
        output_root=tmp_path,
        entries=[GenerationPlanEntry("vault/manifest.json", b"{}\n", PlanStatus.CREATE, "manifest", "Vault")],
    )
    report = ApplyExecutor().execute(plan)

    summary = PlanReportService(("manifest",)).build_summary([], plan, report)

    assert summary["execution"]["written"] == ["vault/manifest.json"]
    assert summary["execution"]["exit_code"] == 0
