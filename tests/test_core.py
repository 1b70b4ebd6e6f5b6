from __future__ import annotations

import json
from pathlib import Path

import pytest

from amenhotep.config import ScaffoldConfig
from amenhotep.core import IndexerScaffolder
from amenhotep.errors import ExtractionError, ScanError
from amenhotep.models import PlanStatus

EXAMPLES = Path(__file__).resolve().parents[1] / "examples" / "contracts"


def test_vault_generate_end_to_end(vault_dir: Path, tmp_path: Path) -> None:
    out = tmp_path / "indexer"

    report = IndexerScaffolder().generate(vault_dir, out)

    assert report.ok
    assert sorted(p.relative_to(out).as_posix() for p in out.rglob("*") if p.is_file()) == [
        "vault/checkpoint.json",
        "vault/handlers/deposited.ts",
        "vault/manifest.json",
    ]
    manifest = json.loads((out / "vault" / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["contract"] == "Vault"
    assert [e["name"] for e in manifest["events"]] == ["Deposited"]
    handler = (out / "vault" / "handlers" / "deposited.ts").read_text(encoding="utf-8")
    assert handler.index("amount") < handler.index("sender")
    assert "const [amount, sender] = event.data;" in handler


def test_second_generate_is_all_identical(vault_dir: Path, tmp_path: Path) -> None:
    scaffolder = IndexerScaffolder()
    out = tmp_path / "indexer"
    scaffolder.generate(vault_dir, out)

    plan = scaffolder.build_generation_plan(vault_dir, out)

    assert {entry.status for entry in plan.entries} == {PlanStatus.OVERWRITE_IDENTICAL}
    report = scaffolder.dry_run(vault_dir, out)
    assert report.exit_code == 0


def test_dry_run_flags_edited_output(vault_dir: Path, tmp_path: Path) -> None:
    scaffolder = IndexerScaffolder()
    out = tmp_path / "indexer"
    scaffolder.generate(vault_dir, out)
    handler = out / "vault" / "handlers" / "deposited.ts"
    handler.write_text("// edited by hand\n", encoding="utf-8")

    report = scaffolder.dry_run(vault_dir, out)

    assert "OVERWRITE_DIFFERENT vault/handlers/deposited.ts" in report.lines
    assert report.exit_code == 3
    assert handler.read_text(encoding="utf-8") == "// edited by hand\n"


def test_plans_are_deterministic_across_worker_counts(tmp_path: Path) -> None:
    source_dir = tmp_path / "contracts"
    source_dir.mkdir()
    for idx in range(12):
        (source_dir / f"c{idx:02d}.cairo").write_text(
            f"#[contract]\nmod Contract{idx} {{\n    #[event]\n    fn Moved{idx}(x: u8, y: u8) {{}}\n}}\n",
            encoding="utf-8",
        )
    scaffolder = IndexerScaffolder()

    serial = scaffolder.build_generation_plan(source_dir, tmp_path / "out", max_workers=1)
    parallel = scaffolder.build_generation_plan(source_dir, tmp_path / "out", max_workers=6)

    assert [(e.path, e.content) for e in serial.entries] == [(e.path, e.content) for e in parallel.entries]
    schemas = scaffolder.load_schemas(source_dir, max_workers=6)
    assert [s.name for s in schemas] == [f"Contract{idx}" for idx in range(12)]


@pytest.mark.parametrize("workers", [1, 4])
def test_parse_errors_from_every_file_are_collected(tmp_path: Path, workers: int) -> None:
    (tmp_path / "a.cairo").write_text("#[contract]\nmod A {\n", encoding="utf-8")
    (tmp_path / "b.cairo").write_text("#[contract]\nmod B {}\n", encoding="utf-8")
    (tmp_path / "c.cairo").write_text("#[contract]\nmod C {\n    #[event]\n    fn E(x: u8 {}\n}\n", encoding="utf-8")

    with pytest.raises(ExtractionError) as excinfo:
        IndexerScaffolder().load_schemas(tmp_path, max_workers=workers)

    assert [(e.path, e.line) for e in excinfo.value.errors] == [("a.cairo", 2), ("c.cairo", 4)]


def test_missing_source_dir_raises_scan_error(tmp_path: Path) -> None:
    with pytest.raises(ScanError):
        IndexerScaffolder().dry_run(tmp_path / "missing")


def test_run_rejects_unknown_mode(vault_dir: Path) -> None:
    with pytest.raises(ValueError, match="Unsupported mode"):
        IndexerScaffolder().run("preview", vault_dir)


def test_bundled_examples_plan_cleanly(tmp_path: Path) -> None:
    scaffolder = IndexerScaffolder(ScaffoldConfig(templates=("manifest", "config", "handler", "graphql")))

    summary = scaffolder.explain_plan(EXAMPLES, tmp_path)

    assert [c["name"] for c in summary["contracts"]] == ["ERC20", "Vault"]
    assert "erc20/handlers/transfer.ts" in [e["path"] for e in summary["entries"]]
    assert "vault/schema.gql" in [e["path"] for e in summary["entries"]]
    assert summary["status_counts"]["CREATE"] == summary["total"]


def test_deploy_template_wires_deploy_writer(vault_dir: Path, tmp_path: Path) -> None:
    out = tmp_path / "indexer"
    scaffolder = IndexerScaffolder(ScaffoldConfig(templates=("manifest", "config", "handler", "deploy")))

    report = scaffolder.generate(vault_dir, out)

    assert "vault/handlers/deploy.ts" in report.written
    checkpoint = json.loads((out / "vault" / "checkpoint.json").read_text(encoding="utf-8"))
    assert checkpoint["sources"][0]["deploy_fn"] == "handleDeploy"
    assert checkpoint["writers"]["handleDeploy"] == "./handlers/deploy"


def test_deeply_nested_source_is_reported_with_other_errors(tmp_path: Path) -> None:
    depth = 1500
    (tmp_path / "deep.cairo").write_text("mod m {\n" * depth + "}\n" * depth, encoding="utf-8")
    (tmp_path / "open.cairo").write_text("#[contract]\nmod Open {\n", encoding="utf-8")

    with pytest.raises(ExtractionError) as excinfo:
        IndexerScaffolder().load_schemas(tmp_path)

    assert [e.path for e in excinfo.value.errors] == ["deep.cairo", "open.cairo"]
    assert "nested too deeply" in excinfo.value.errors[0].message


def test_write_plan_report(vault_dir: Path, tmp_path: Path) -> None:
    scaffolder = IndexerScaffolder()
    schemas, plan, report = scaffolder.run("dry-run", vault_dir, tmp_path / "out")

    destination = scaffolder.write_plan_report(scaffolder.summarize(schemas, plan, report), str(tmp_path / "r" / "plan.json"))

    payload = json.loads(Path(destination).read_text(encoding="utf-8"))
    assert payload["execution"]["mode"] == "dry-run"
    assert payload["total"] == 3
